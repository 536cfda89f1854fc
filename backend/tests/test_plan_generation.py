import json
import logging
import re
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import (
    OTHER_USER_ID,
    USER_ID,
    FakeLLM,
    activity,
    chat_completion,
    llm_client,
    replying,
    success_payload,
)
from tripplanner.core.errors import (
    BadRequestError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from tripplanner.db.models import Plan, Profile
from tripplanner.db.repositories import PlanRepository, ProfileRepository
from tripplanner.services.plan_generation import PlanGenerationService, transform_to_content
from tripplanner.services.schemas import AISuccessResponse

ROME_DAYS = [
    (
        "2026-06-15",
        [
            activity("09:00", "Colosseum", "history", price="18"),
            activity("12:30", "Trattoria lunch", "food", price="25"),
            activity("15:00", "Villa Borghese", "nature", price="0"),
            activity("20:00", "Taxi to hotel", "transport", price="15"),
        ],
    ),
    (
        "2026-06-16",
        [
            activity("10:00", "Vatican Museums", "culture", price="20"),
            activity("13:00", "Pizza al taglio", "food", price="8"),
            activity("17:00", "Trevi Fountain", "other", price="0", duration=None),
        ],
    ),
]


def _service(db, fake):
    return PlanGenerationService(db, llm_client(fake))


def _reload(db, plan_id, user_id=USER_ID):
    db.expire_all()
    plan = db.query(Plan).filter(Plan.id == plan_id).one()
    profile = db.query(Profile).filter(Profile.id == user_id).one()
    return plan, profile


def _items(content):
    for day in content["days"]:
        for item in day["items"]:
            yield day["date"], item


# ----------------------------------------------------------------------------
# End-to-end scenarios
# ----------------------------------------------------------------------------

def test_rome_itinerary_is_generated(db, make_profile, make_plan):
    make_profile(generations=5)
    plan = make_plan(destination="Rome")
    fake = replying(success_payload(ROME_DAYS))

    result = _service(db, fake).generate_and_save_plan(plan.id, USER_ID, "en")

    assert result.status == "generated"
    plan, profile = _reload(db, plan.id)
    assert plan.status == "generated"
    assert profile.generations_remaining == 4
    assert fake.calls == 1

    content = plan.generated_content
    assert content["currency"] == "EUR"
    assert content["summary"] == "Three days in Rome."
    assert len(content["days"]) == 2
    assert [len(day["items"]) for day in content["days"]] == [4, 3]

    items = [item for _, item in _items(content)]
    assert len({item["id"] for item in items}) == 7
    assert [item["type"] for item in items] == [
        "activity", "meal", "activity", "transport", "activity", "meal", "activity",
    ]
    assert items[0]["title"] == "Colosseum"
    assert items[0]["estimated_price"] == "18"
    assert items[6]["estimated_duration"] is None


def test_ai_rejection_changes_nothing(db, make_profile, make_plan):
    make_profile(generations=5)
    plan = make_plan(destination="All of Spain")
    message = "Seeing all of Spain in three days is not realistic."
    fake = replying({"status": "error", "error_type": "unrealistic_plan", "error_message": message})

    with pytest.raises(BadRequestError) as exc_info:
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)

    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400
    plan, profile = _reload(db, plan.id)
    assert plan.status == "draft"
    assert plan.generated_content is None
    assert profile.generations_remaining == 5


def test_airport_and_concert_hall_stay_at_their_times(db, make_profile, make_plan, make_fixed_point):
    make_profile()
    plan = make_plan()
    make_fixed_point(plan, "Airport", datetime(2026, 6, 15, 8, 0, tzinfo=timezone.utc), 90)
    make_fixed_point(plan, "Concert Hall", datetime(2026, 6, 17, 20, 0, tzinfo=timezone.utc), 150)
    fake = replying(
        success_payload(
            [
                ("2026-06-15", [activity("08:00", "Arrival at Airport", "transport"), activity("11:00", "Pantheon")]),
                ("2026-06-16", [activity("09:30", "Colosseum", "history")]),
                ("2026-06-17", [activity("14:00", "Gelato", "food"), activity("8:00 PM", "Concert Hall evening")]),
            ]
        )
    )

    _service(db, fake).generate_and_save_plan(plan.id, USER_ID)

    prompt = fake.system_prompt()
    assert "- 2026-06-15 08:00 (Mon, Jun 15, 2026): Airport" in prompt
    assert "- 2026-06-17 20:00 (Wed, Jun 17, 2026): Concert Hall" in prompt

    plan, _ = _reload(db, plan.id)
    placed = {(date, item["time"]) for date, item in _items(plan.generated_content) if "Airport" in item["title"]}
    assert placed == {("2026-06-15", "08:00")}
    placed = {
        (date, item["time"]) for date, item in _items(plan.generated_content) if "Concert Hall" in item["title"]
    }
    assert placed == {("2026-06-17", "20:00")}


_FIXED_POINT_LINE = re.compile(r"^- (\d{4}-\d{2}-\d{2}) (\d{2}:\d{2}) \([^)]*\): (.+?) - ", re.MULTILINE)


def _echo_fixed_points(request: httpx.Request) -> httpx.Response:
    """An LLM that schedules every fixed point it was given at its stated date and time."""
    prompt = json.loads(request.content)["messages"][0]["content"]
    days = {}
    for date, time, location in _FIXED_POINT_LINE.findall(prompt):
        days.setdefault(date, []).append(activity(time, f"{location} (booked)", "other"))
    for date in ("2026-06-15", "2026-06-16", "2026-06-17"):
        days.setdefault(date, []).insert(0, activity("07:00", "Breakfast", "food"))
    return httpx.Response(200, json=chat_completion(success_payload(sorted(days.items()))))


@pytest.mark.parametrize("count", [1, 2, 5, 12])
def test_every_fixed_point_appears_unmoved(db, make_profile, make_plan, make_fixed_point, count):
    make_profile()
    plan = make_plan()
    start = datetime(2026, 6, 15, 8, 0, tzinfo=timezone.utc)
    expected = set()
    for i in range(count):
        event_at = start + timedelta(minutes=317 * i)
        fixed_point = make_fixed_point(plan, f"Landmark {i}", event_at, 30)
        expected.add((fixed_point.location, event_at.strftime("%Y-%m-%d"), event_at.strftime("%H:%M")))
    fake = FakeLLM(_echo_fixed_points)

    _service(db, fake).generate_and_save_plan(plan.id, USER_ID)

    plan, _ = _reload(db, plan.id)
    found = set()
    for date, item in _items(plan.generated_content):
        for location, fp_date, fp_time in expected:
            if location in item["title"] and date == fp_date and item["time"] == fp_time:
                found.add((location, fp_date, fp_time))
    assert found == expected


# ----------------------------------------------------------------------------
# Preconditions
# ----------------------------------------------------------------------------

@pytest.mark.parametrize("status", ["generated", "archived"])
def test_non_draft_plan_conflicts(db, make_profile, make_plan, status):
    make_profile(generations=3)
    content = {"summary": "Existing.", "currency": "EUR", "days": []}
    plan = make_plan(status=status, generated_content=content)
    fake = replying(success_payload(ROME_DAYS))

    with pytest.raises(ConflictError) as exc_info:
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)

    assert exc_info.value.message == "This plan has already been generated."
    assert fake.calls == 0
    plan, profile = _reload(db, plan.id)
    assert profile.generations_remaining == 3
    assert plan.generated_content == content
    assert plan.status == status


def test_no_credits_is_forbidden_without_calling_llm(db, make_profile, make_plan):
    make_profile(generations=0)
    plan = make_plan()
    fake = replying(success_payload(ROME_DAYS))

    with pytest.raises(ForbiddenError):
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)

    assert fake.calls == 0
    plan, profile = _reload(db, plan.id)
    assert plan.status == "draft"
    assert profile.generations_remaining == 0


def test_missing_profile(db, make_plan):
    plan = make_plan()
    fake = replying(success_payload(ROME_DAYS))
    with pytest.raises(NotFoundError):
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)
    assert fake.calls == 0


def test_plan_of_another_user_is_not_found(db, make_profile, make_plan):
    make_profile()
    plan = make_plan(user_id=OTHER_USER_ID)
    fake = replying(success_payload(ROME_DAYS))
    with pytest.raises(NotFoundError):
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)
    assert fake.calls == 0


@pytest.mark.parametrize("missing", ["start_date", "end_date"])
def test_missing_dates_are_rejected(db, make_profile, make_plan, missing):
    make_profile()
    plan = make_plan(**{missing: None})
    fake = replying(success_payload(ROME_DAYS))
    with pytest.raises(BadRequestError):
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)
    assert fake.calls == 0


def test_malformed_ai_payload_changes_nothing(db, make_profile, make_plan):
    make_profile(generations=2)
    plan = make_plan()
    fake = replying({"status": "success", "summary": "Oops"})

    with pytest.raises(ValidationError):
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)

    plan, profile = _reload(db, plan.id)
    assert plan.status == "draft"
    assert profile.generations_remaining == 2


def test_llm_outage_changes_nothing(db, make_profile, make_plan):
    make_profile(generations=2)
    plan = make_plan()
    fake = FakeLLM(lambda request: httpx.Response(503, text="upstream down"))

    with pytest.raises(ExternalServiceError):
        _service(db, fake).generate_and_save_plan(plan.id, USER_ID)

    plan, profile = _reload(db, plan.id)
    assert plan.status == "draft"
    assert profile.generations_remaining == 2


# ----------------------------------------------------------------------------
# Credit spend + persist
# ----------------------------------------------------------------------------

def test_failed_save_rolls_back_the_credit(db, make_profile, make_plan, monkeypatch, caplog):
    make_profile(generations=5)
    plan = make_plan()

    def broken_update(self, plan_id, user_id, fields):
        raise DatabaseError("Failed to update plan. Please try again later.")

    monkeypatch.setattr(PlanRepository, "update", broken_update)

    with caplog.at_level(logging.CRITICAL, logger="tripplanner.services.plan_generation"):
        with pytest.raises(ExternalServiceError) as exc_info:
            _service(db, replying(success_payload(ROME_DAYS))).generate_and_save_plan(plan.id, USER_ID)

    assert exc_info.value.message == "Failed to save generated plan."
    assert any(r.levelno == logging.CRITICAL and plan.id in r.getMessage() for r in caplog.records)
    plan, profile = _reload(db, plan.id)
    assert plan.status == "draft"
    assert profile.generations_remaining == 5


def test_failed_credit_write_stores_nothing(db, make_profile, make_plan, monkeypatch):
    make_profile(generations=5)
    plan = make_plan()

    def broken_decrement(self, user_id):
        raise DatabaseError("Failed to update user credits.")

    monkeypatch.setattr(ProfileRepository, "decrement_generations", broken_decrement)

    with pytest.raises(ExternalServiceError) as exc_info:
        _service(db, replying(success_payload(ROME_DAYS))).generate_and_save_plan(plan.id, USER_ID)

    assert exc_info.value.message == "Failed to update user credits."
    plan, profile = _reload(db, plan.id)
    assert plan.status == "draft"
    assert plan.generated_content is None
    assert profile.generations_remaining == 5


def test_credit_spent_concurrently_is_forbidden(db, make_profile, make_plan, monkeypatch):
    make_profile(generations=1)
    plan = make_plan()

    def lost_race(self, user_id):
        return False

    monkeypatch.setattr(ProfileRepository, "decrement_generations", lost_race)

    with pytest.raises(ForbiddenError):
        _service(db, replying(success_payload(ROME_DAYS))).generate_and_save_plan(plan.id, USER_ID)

    plan, _ = _reload(db, plan.id)
    assert plan.status == "draft"


def test_second_generation_of_same_plan_conflicts(db, make_profile, make_plan):
    make_profile(generations=5)
    plan = make_plan()
    fake = replying(success_payload(ROME_DAYS))
    service = _service(db, fake)

    service.generate_and_save_plan(plan.id, USER_ID)
    with pytest.raises(ConflictError):
        service.generate_and_save_plan(plan.id, USER_ID)

    _, profile = _reload(db, plan.id)
    assert profile.generations_remaining == 4
    assert fake.calls == 1


# ----------------------------------------------------------------------------
# Language and mapping
# ----------------------------------------------------------------------------

@pytest.mark.parametrize("code, name", [("pl", "Polish"), ("de-DE", "German"), ("xx", "English"), (None, "English")])
def test_output_language_reaches_the_prompt(db, make_profile, make_plan, code, name):
    make_profile()
    plan = make_plan()
    fake = replying(success_payload(ROME_DAYS))

    _service(db, fake).generate_and_save_plan(plan.id, USER_ID, code)

    assert f"must be in {name}." in fake.system_prompt()


def test_transform_normalises_times_and_currency():
    response = AISuccessResponse.model_validate(
        success_payload(
            [("2026-06-15", [activity("2:30 PM", "Boat tour", "sport"), activity("9:00", "Hotel", "accommodation")])],
            currency="eur",
        )
    )
    content = transform_to_content(response)

    assert content.currency == "EUR"
    items = content.days[0].items
    assert [i.time for i in items] == ["14:30", "09:00"]
    assert [i.type for i in items] == ["activity", "activity"]
    assert items[0].id != items[1].id


def test_transform_keeps_free_text_times(caplog):
    response = AISuccessResponse.model_validate(
        success_payload([("2026-06-15", [activity("TBD", "Sunset drinks", "food"), activity("7:00 PM", "Dinner", "food")])])
    )
    with caplog.at_level(logging.WARNING, logger="tripplanner.services.plan_generation"):
        content = transform_to_content(response)

    assert [i.time for i in content.days[0].items] == ["TBD", "19:00"]
    assert any("TBD" in r.getMessage() for r in caplog.records)
