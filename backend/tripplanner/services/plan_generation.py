"""
AI itinerary generation for a draft plan.

Flow:
    profile -> quota -> plan (owned, draft, dated) -> fixed points
    -> prompt -> LLM (success | error variant)
    -> spend one credit + store content, committed together

Nothing is written unless the LLM returns a usable itinerary. The credit
decrement and the plan update share one transaction, so a failed save
never leaves the user charged for a plan that was not stored.
"""

from typing import Optional
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tripplanner.core.errors import (
    AppError,
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
)
from tripplanner.core.i18n import language_name, resolve_language
from tripplanner.core.monitoring import track_performance
from tripplanner.db.models import Plan
from tripplanner.db.repositories import FixedPointRepository, PlanRepository
from tripplanner.services.openrouter_client import OpenRouterClient
from tripplanner.services.profile_service import ProfileService
from tripplanner.services.prompt_builder import USER_PROMPT, build_system_prompt
from tripplanner.services.schemas import (
    AIErrorResponse,
    AIGeneratedContent,
    AISuccessResponse,
    DayPlan,
    GeneratedContent,
    PlanStatus,
    TimelineItem,
    category_to_type,
)
from tripplanner.services.time_formatters import convert_to_24_hour, is_valid_time_24

logger = logging.getLogger(__name__)


def transform_to_content(response: AISuccessResponse) -> GeneratedContent:
    """Map the LLM itinerary onto the stored document, one fresh id per item."""
    days = []
    for day in response.itinerary.days:
        items = []
        for event in day.activities:
            time = convert_to_24_hour(event.time) or None
            if time and not is_valid_time_24(time):
                logger.warning(f"Keeping non-clock time \"{time}\" for \"{event.activity}\" on {day.date}")
            items.append(
                TimelineItem(
                    id=str(uuid.uuid4()),
                    type=category_to_type(event.category),
                    time=time,
                    category=event.category,
                    title=event.activity,
                    description=event.description,
                    estimated_price=event.estimated_price,
                    estimated_duration=event.estimated_duration,
                )
            )
        days.append(DayPlan(date=day.date, items=items))

    return GeneratedContent(summary=response.summary, currency=response.currency.upper(), days=days)


class PlanGenerationService:
    """Turns a draft plan into a generated one using the LLM."""

    def __init__(self, db: Session, client: OpenRouterClient):
        self.db = db
        self.client = client
        self.profiles = ProfileService(db)
        self.plans = PlanRepository(db)
        self.fixed_points = FixedPointRepository(db)

    @track_performance("Plan generation")
    def generate_and_save_plan(self, plan_id: str, user_id: str, language: Optional[str] = None) -> Plan:
        """
        Generate and store the itinerary of a draft plan.

        Raises:
            NotFoundError: no profile, or the plan does not exist for this user.
            ForbiddenError: no generations remaining.
            ConflictError: the plan is not a draft.
            BadRequestError: missing dates, or the LLM rejected the plan.
            ValidationError: the LLM answered with an unusable payload.
            ExternalServiceError: the LLM call failed, or the result could not be saved.
        """
        lang = resolve_language(language)
        logger.info(f"Generating plan {plan_id} for user {user_id} (lang={lang})")

        if not self.profiles.has_remaining(user_id):
            logger.warning(f"User {user_id} has no generations remaining")
            raise ForbiddenError("You have no plan generations remaining.")
        profile = self.profiles.get_profile(user_id)

        plan = self.plans.get_by_id(plan_id, user_id)
        if plan is None:
            raise NotFoundError("Plan not found.")
        if plan.status != PlanStatus.DRAFT.value:
            raise ConflictError("This plan has already been generated.")
        if plan.start_date is None or plan.end_date is None:
            raise BadRequestError("Plan must have a start date and an end date before generation.")

        fixed_points = self.fixed_points.list_for_plan(plan_id, user_id)
        logger.debug(f"Plan {plan_id} has {len(fixed_points)} fixed point(s)")

        system_prompt = build_system_prompt(plan, fixed_points, profile, language_name(lang))
        ai_response = self.client.get_structured_response(
            system_prompt=system_prompt,
            user_prompt=USER_PROMPT,
            schema=AIGeneratedContent,
        )

        if isinstance(ai_response, AIErrorResponse):
            logger.info(f"LLM declined plan {plan_id}: {ai_response.error_type}")
            raise BadRequestError(ai_response.error_message)

        content = transform_to_content(ai_response)
        self._charge_and_store(plan_id, user_id, content)

        logger.info(
            f"Plan {plan_id} generated with {len(content.days)} day(s)",
            extra={"plan_id": plan_id, "user_id": user_id},
        )
        return self.plans.get_by_id(plan_id, user_id)

    def _charge_and_store(self, plan_id: str, user_id: str, content: GeneratedContent) -> None:
        try:
            self.profiles.decrement(user_id)
        except ForbiddenError:
            self.db.rollback()
            raise
        except AppError as e:
            self.db.rollback()
            logger.error(f"Failed to decrement generations for user {user_id}: {e.message}")
            raise ExternalServiceError("Failed to update user credits.", e)

        try:
            updated = self.plans.update(
                plan_id,
                user_id,
                {"status": PlanStatus.GENERATED.value, "generated_content": content.model_dump(mode="json")},
            )
            if updated is None:
                raise NotFoundError("Plan disappeared before it could be saved.")
            self.db.commit()
        except (AppError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.critical(
                f"Generated plan {plan_id} could not be saved for user {user_id}; credit change rolled back: {e}",
                extra={"plan_id": plan_id, "user_id": user_id},
            )
            raise ExternalServiceError("Failed to save generated plan.", e)
