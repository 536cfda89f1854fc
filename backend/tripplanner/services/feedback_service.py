"""
Thumbs up / down feedback on a plan, one entry per user and plan.
"""

import logging

from sqlalchemy.orm import Session

from tripplanner.core.errors import NotFoundError
from tripplanner.db.models import Feedback
from tripplanner.db.repositories import FeedbackRepository, PlanRepository
from tripplanner.services.schemas import SubmitFeedbackCommand

logger = logging.getLogger(__name__)


class FeedbackService:
    def __init__(self, db: Session):
        self.db = db
        self.plans = PlanRepository(db)
        self.repo = FeedbackRepository(db)

    def submit_feedback(self, plan_id: str, user_id: str, command: SubmitFeedbackCommand) -> Feedback:
        """Create or replace the user's feedback for the plan."""
        if self.plans.get_by_id(plan_id, user_id) is None:
            raise NotFoundError("Plan not found.")

        rating = command.rating.value if command.rating is not None else None
        feedback = self.repo.upsert(plan_id, user_id, rating, command.comment)
        self.db.commit()
        logger.info(f"Feedback saved for plan {plan_id} (rating={rating})")
        return feedback

    def get_feedback(self, plan_id: str, user_id: str) -> Feedback:
        if self.plans.get_by_id(plan_id, user_id) is None:
            raise NotFoundError("Plan not found.")
        feedback = self.repo.get(plan_id, user_id)
        if feedback is None:
            raise NotFoundError("No feedback submitted for this plan.")
        return feedback
