"""
Fixed points: time-locked events a generated itinerary must keep as given.
"""

from typing import List
import logging

from sqlalchemy.orm import Session

from tripplanner.core.errors import BadRequestError, ConflictError, NotFoundError
from tripplanner.db.models import FixedPoint, Plan
from tripplanner.db.repositories import FixedPointRepository, PlanRepository
from tripplanner.services.schemas import (
    CreateFixedPointCommand,
    PlanStatus,
    UpdateFixedPointCommand,
)
from tripplanner.services.time_formatters import as_utc

logger = logging.getLogger(__name__)


class FixedPointService:
    def __init__(self, db: Session):
        self.db = db
        self.plans = PlanRepository(db)
        self.repo = FixedPointRepository(db)

    def _owned_plan(self, plan_id: str, user_id: str) -> Plan:
        plan = self.plans.get_by_id(plan_id, user_id)
        if plan is None:
            raise NotFoundError("Plan not found.")
        return plan

    def _writable_plan(self, plan_id: str, user_id: str) -> Plan:
        plan = self._owned_plan(plan_id, user_id)
        if plan.status == PlanStatus.ARCHIVED.value:
            raise ConflictError("Archived plans are read-only.")
        return plan

    def list_fixed_points(self, plan_id: str, user_id: str) -> List[FixedPoint]:
        self._owned_plan(plan_id, user_id)
        return self.repo.list_for_plan(plan_id, user_id)

    def create_fixed_point(self, plan_id: str, user_id: str, command: CreateFixedPointCommand) -> FixedPoint:
        self._writable_plan(plan_id, user_id)
        fixed_point = self.repo.create(
            plan_id,
            {
                "location": command.location.strip(),
                "event_at": as_utc(command.event_at),
                "event_duration": command.event_duration,
                "description": command.description,
            },
        )
        self.db.commit()
        logger.info(f"Fixed point {fixed_point.id} added to plan {plan_id}")
        return fixed_point

    def update_fixed_point(
        self, plan_id: str, fixed_point_id: str, user_id: str, command: UpdateFixedPointCommand
    ) -> FixedPoint:
        self._writable_plan(plan_id, user_id)
        fixed_point = self.repo.get_by_id(fixed_point_id, plan_id, user_id)
        if fixed_point is None:
            raise NotFoundError("Fixed point not found.")

        fields = command.model_dump(exclude_unset=True)
        for required in ("location", "event_at", "event_duration"):
            if required in fields and fields[required] is None:
                raise BadRequestError(f"{required} cannot be empty.")
        if fields.get("event_at") is not None:
            fields["event_at"] = as_utc(fields["event_at"])
        if not fields:
            return fixed_point

        fixed_point = self.repo.update(fixed_point, fields)
        self.db.commit()
        logger.info(f"Fixed point {fixed_point_id} updated on plan {plan_id}")
        return fixed_point

    def delete_fixed_point(self, plan_id: str, fixed_point_id: str, user_id: str) -> None:
        self._writable_plan(plan_id, user_id)
        fixed_point = self.repo.get_by_id(fixed_point_id, plan_id, user_id)
        if fixed_point is None:
            raise NotFoundError("Fixed point not found.")
        self.repo.delete(fixed_point)
        self.db.commit()
        logger.info(f"Fixed point {fixed_point_id} removed from plan {plan_id}")
