"""
Shared fixtures: in-memory SQLite, a mocked LLM endpoint and an API client.
"""

import json
import os
from datetime import datetime, timezone

# Must be set before tripplanner reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENROUTER_API_KEY"] = "test-key"
os.environ["ARCHIVE_INTERVAL_MINUTES"] = "0"
os.environ["GENERATION_RATE_LIMIT"] = "1000/minute"

import httpx
import pytest
from fastapi.testclient import TestClient

from tripplanner.db.database import SessionLocal, engine, get_db
from tripplanner.db.models import Base, FixedPoint, Plan, Profile
from tripplanner.services.openrouter_client import OpenRouterClient

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_profile(db):
    def _make(user_id=USER_ID, generations=5, **fields):
        profile = Profile(id=user_id, generations_remaining=generations, **fields)
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def make_plan(db):
    def _make(
        user_id=USER_ID,
        name="Summer trip",
        destination="Rome",
        start_date=datetime(2026, 6, 15, 9, 0, tzinfo=timezone.utc),
        end_date=datetime(2026, 6, 17, 18, 0, tzinfo=timezone.utc),
        status="draft",
        **fields,
    ):
        plan = Plan(
            user_id=user_id,
            name=name,
            destination=destination,
            start_date=start_date,
            end_date=end_date,
            status=status,
            **fields,
        )
        db.add(plan)
        db.commit()
        return plan
    return _make


@pytest.fixture
def make_fixed_point(db):
    def _make(plan, location, event_at, event_duration=60, description=None):
        fixed_point = FixedPoint(
            plan_id=plan.id,
            location=location,
            event_at=event_at,
            event_duration=event_duration,
            description=description,
        )
        db.add(fixed_point)
        db.commit()
        return fixed_point
    return _make


# ----------------------------------------------------------------------------
# LLM endpoint
# ----------------------------------------------------------------------------

def chat_completion(content) -> dict:
    """Body of a chat-completions response whose first choice carries `content`."""
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class FakeLLM:
    """Records requests and answers them with a handler-produced response."""

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)

    def system_prompt(self, index: int = -1) -> str:
        return self.body(index)["messages"][0]["content"]


def replying(payload, status_code=200) -> FakeLLM:
    """FakeLLM that always answers with `payload` as the message content."""
    return FakeLLM(lambda request: httpx.Response(status_code, json=chat_completion(payload)))


def llm_client(fake: FakeLLM, **kwargs) -> OpenRouterClient:
    return OpenRouterClient(api_key="test-key", transport=httpx.MockTransport(fake), **kwargs)


def success_payload(days, destination="Rome", start="2026-06-15", end="2026-06-17", currency="EUR") -> dict:
    """`days` is a list of (date, [activity dict, ...])."""
    return {
        "status": "success",
        "summary": f"Three days in {destination}.",
        "currency": currency,
        "itinerary": {
            "destination": destination,
            "dates": {"start": start, "end": end},
            "days": [{"date": date, "activities": activities} for date, activities in days],
        },
    }


def activity(time, title, category="culture", description="Something to do.", price="10", duration="1 hour"):
    return {
        "time": time,
        "activity": title,
        "category": category,
        "description": description,
        "estimated_price": price,
        "estimated_duration": duration,
    }


# ----------------------------------------------------------------------------
# API
# ----------------------------------------------------------------------------

@pytest.fixture
def api(db):
    from tripplanner.main import app

    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": USER_ID}
