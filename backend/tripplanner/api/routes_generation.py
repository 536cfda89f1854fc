"""
AI generation of a draft plan.
Throttled per client IP because every call hits the paid LLM endpoint.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Generator, Optional
import logging

from tripplanner.core.auth import get_current_user_id
from tripplanner.core.rate_limiting import limiter, GENERATION_LIMIT
from tripplanner.db.database import get_db
from tripplanner.services.openrouter_client import OpenRouterClient
from tripplanner.services.plan_generation import PlanGenerationService
from tripplanner.services.schemas import PlanDetailsDto

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["generation"])


def get_llm_client() -> Generator[OpenRouterClient, None, None]:
    """Request-scoped LLM client built from settings."""
    client = OpenRouterClient.from_settings()
    try:
        yield client
    finally:
        client.close()


def get_generation_service(
    db: Session = Depends(get_db),
    client: OpenRouterClient = Depends(get_llm_client),
) -> PlanGenerationService:
    return PlanGenerationService(db, client)


@router.post("/{plan_id}/generate", response_model=PlanDetailsDto)
@limiter.limit(GENERATION_LIMIT)
def generate_plan(
    request: Request,
    plan_id: str,
    lang: Optional[str] = Query(None, description="Output language code (en, pl, de, fr, es, it, pt)"),
    user_id: str = Depends(get_current_user_id),
    service: PlanGenerationService = Depends(get_generation_service),
):
    """
    Generate the itinerary of a draft plan and spend one generation credit.

    Responses:
        200: the generated plan
        400: missing dates, or the AI judged the plan unrealistic / the location invalid
        403: no generations remaining
        404: unknown plan or profile
        409: plan already generated
        502: the AI service failed or the result could not be saved
    """
    plan = service.generate_and_save_plan(plan_id, user_id, lang)
    return PlanDetailsDto.model_validate(plan)
