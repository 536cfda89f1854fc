"""
Repository pattern for data access.

Every query made on behalf of a user filters by that user's id in SQL, so a
row owned by someone else is indistinguishable from a missing row.
Repositories flush but never commit; the service layer owns transactions.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import func
import logging

from tripplanner.core.errors import DatabaseError
from tripplanner.db.models import Feedback, FixedPoint, Plan, Profile

logger = logging.getLogger(__name__)


class ProfileRepository:
    """Data access for the profiles table."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[Profile]:
        try:
            return self.db.query(Profile).filter(Profile.id == user_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            raise DatabaseError("Failed to retrieve profile. Please try again later.", e)

    def create(self, user_id: str, generations_remaining: int, **fields: Any) -> Profile:
        try:
            profile = Profile(id=user_id, generations_remaining=generations_remaining, **fields)
            self.db.add(profile)
            self.db.flush()
            return profile
        except SQLAlchemyError as e:
            logger.error(f"Error creating profile {user_id}: {e}")
            raise DatabaseError("Failed to create profile.", e)

    def update(self, user_id: str, fields: Dict[str, Any]) -> Optional[Profile]:
        profile = self.get_by_id(user_id)
        if profile is None:
            return None
        try:
            for key, value in fields.items():
                setattr(profile, key, value)
            profile.updated_at = func.now()
            self.db.flush()
            self.db.refresh(profile)
            return profile
        except SQLAlchemyError as e:
            logger.error(f"Error updating profile {user_id}: {e}")
            raise DatabaseError("Failed to update profile.", e)

    def decrement_generations(self, user_id: str) -> bool:
        """
        Take one generation credit in a single conditional UPDATE.
        Returns False when no row qualified (missing profile or already at 0),
        so concurrent requests can never push the counter below zero.
        """
        try:
            affected = (
                self.db.query(Profile)
                .filter(Profile.id == user_id, Profile.generations_remaining > 0)
                .update(
                    {
                        Profile.generations_remaining: Profile.generations_remaining - 1,
                        Profile.updated_at: func.now(),
                    },
                    synchronize_session="fetch",
                )
            )
            return affected == 1
        except SQLAlchemyError as e:
            logger.error(f"Error decrementing generations for {user_id}: {e}")
            raise DatabaseError("Failed to update user credits.", e)


class PlanRepository:
    """Data access for the plans table."""

    SORTABLE = {"created_at": Plan.created_at, "name": Plan.name}

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, fields: Dict[str, Any]) -> Plan:
        try:
            plan = Plan(user_id=user_id, status="draft", **fields)
            self.db.add(plan)
            self.db.flush()
            self.db.refresh(plan)
            return plan
        except SQLAlchemyError as e:
            logger.error(f"Error creating plan for {user_id}: {e}")
            raise DatabaseError("Failed to create a plan. Please try again later.", e)

    def get_by_id(self, plan_id: str, user_id: str) -> Optional[Plan]:
        """Get a plan by id, only if it belongs to `user_id`."""
        try:
            return self.db.query(Plan).filter(
                Plan.id == plan_id,
                Plan.user_id == user_id,
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching plan {plan_id}: {e}")
            raise DatabaseError("Failed to retrieve plan. Please try again later.", e)

    def list_for_user(
        self,
        user_id: str,
        statuses: Optional[Sequence[str]] = None,
        sort_by: str = "created_at",
        order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Plan], int]:
        """Paginated plans of one user plus the total count before paging."""
        try:
            query = self.db.query(Plan).filter(Plan.user_id == user_id)
            if statuses:
                query = query.filter(Plan.status.in_(list(statuses)))

            total = query.count()

            column = self.SORTABLE.get(sort_by, Plan.created_at)
            query = query.order_by(column.asc() if order == "asc" else column.desc(), Plan.id)

            results = query.offset(offset).limit(limit).all()
            logger.debug(f"Plan list for {user_id} returned {len(results)} of {total}")
            return results, total
        except SQLAlchemyError as e:
            logger.error(f"Error listing plans for {user_id}: {e}")
            raise DatabaseError("Failed to retrieve plans. Please try again later.", e)

    def update(self, plan_id: str, user_id: str, fields: Dict[str, Any]) -> Optional[Plan]:
        """Plain partial update; no optimistic-concurrency check."""
        plan = self.get_by_id(plan_id, user_id)
        if plan is None:
            return None
        try:
            for key, value in fields.items():
                setattr(plan, key, value)
            plan.updated_at = func.now()
            self.db.flush()
            self.db.refresh(plan)
            return plan
        except SQLAlchemyError as e:
            logger.error(f"Error updating plan {plan_id}: {e}")
            raise DatabaseError("Failed to update plan. Please try again later.", e)

    def delete(self, plan_id: str, user_id: str) -> bool:
        plan = self.get_by_id(plan_id, user_id)
        if plan is None:
            return False
        try:
            self.db.delete(plan)
            self.db.flush()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error deleting plan {plan_id}: {e}")
            raise DatabaseError("Failed to delete plan. Please try again later.", e)

    def archive_expired(self, now: datetime) -> int:
        """Move every generated plan whose end date has passed to archived."""
        try:
            return (
                self.db.query(Plan)
                .filter(Plan.status == "generated", Plan.end_date.isnot(None), Plan.end_date < now)
                .update({Plan.status: "archived", Plan.updated_at: func.now()}, synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error(f"Error archiving expired plans: {e}")
            raise DatabaseError("Failed to archive expired plans.", e)

    def count(self) -> int:
        try:
            return self.db.query(func.count(Plan.id)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Error counting plans: {e}")
            raise DatabaseError("Failed to count plans.", e)


class FixedPointRepository:
    """Data access for fixed points, always joined through the owning plan."""

    def __init__(self, db: Session):
        self.db = db

    def _owned(self, plan_id: str, user_id: str):
        return (
            self.db.query(FixedPoint)
            .join(Plan, Plan.id == FixedPoint.plan_id)
            .filter(FixedPoint.plan_id == plan_id, Plan.user_id == user_id)
        )

    def list_for_plan(self, plan_id: str, user_id: str) -> List[FixedPoint]:
        """Fixed points of a plan ordered by scheduled time ascending."""
        try:
            return self._owned(plan_id, user_id).order_by(FixedPoint.event_at.asc(), FixedPoint.id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching fixed points for plan {plan_id}: {e}")
            raise DatabaseError("Failed to retrieve fixed points. Please try again later.", e)

    def get_by_id(self, fixed_point_id: str, plan_id: str, user_id: str) -> Optional[FixedPoint]:
        try:
            return self._owned(plan_id, user_id).filter(FixedPoint.id == fixed_point_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching fixed point {fixed_point_id}: {e}")
            raise DatabaseError("Failed to retrieve fixed point. Please try again later.", e)

    def create(self, plan_id: str, fields: Dict[str, Any]) -> FixedPoint:
        try:
            fixed_point = FixedPoint(plan_id=plan_id, **fields)
            self.db.add(fixed_point)
            self.db.flush()
            self.db.refresh(fixed_point)
            return fixed_point
        except SQLAlchemyError as e:
            logger.error(f"Error creating fixed point for plan {plan_id}: {e}")
            raise DatabaseError("Failed to create fixed point. Please try again later.", e)

    def update(self, fixed_point: FixedPoint, fields: Dict[str, Any]) -> FixedPoint:
        try:
            for key, value in fields.items():
                setattr(fixed_point, key, value)
            fixed_point.updated_at = func.now()
            self.db.flush()
            self.db.refresh(fixed_point)
            return fixed_point
        except SQLAlchemyError as e:
            logger.error(f"Error updating fixed point {fixed_point.id}: {e}")
            raise DatabaseError("Failed to update fixed point. Please try again later.", e)

    def delete(self, fixed_point: FixedPoint) -> None:
        try:
            self.db.delete(fixed_point)
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting fixed point {fixed_point.id}: {e}")
            raise DatabaseError("Failed to delete fixed point. Please try again later.", e)


class FeedbackRepository:
    """Data access for feedback; one row per (plan, user)."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, plan_id: str, user_id: str) -> Optional[Feedback]:
        try:
            return self.db.query(Feedback).filter(
                Feedback.plan_id == plan_id,
                Feedback.user_id == user_id,
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching feedback for plan {plan_id}: {e}")
            raise DatabaseError("Failed to retrieve feedback. Please try again later.", e)

    def upsert(self, plan_id: str, user_id: str, rating: Optional[str], comment: Optional[str]) -> Feedback:
        """Insert the feedback row or update the existing one in place."""
        feedback = self.get(plan_id, user_id)
        try:
            if feedback is None:
                feedback = Feedback(plan_id=plan_id, user_id=user_id, rating=rating, comment=comment)
                self.db.add(feedback)
            else:
                feedback.rating = rating
                feedback.comment = comment
                feedback.updated_at = func.now()
            self.db.flush()
            self.db.refresh(feedback)
            return feedback
        except SQLAlchemyError as e:
            logger.error(f"Error saving feedback for plan {plan_id}: {e}")
            raise DatabaseError("Failed to submit feedback. Please try again later.", e)
