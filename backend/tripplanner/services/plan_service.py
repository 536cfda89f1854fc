"""
Plan lifecycle: create, list, read, edit, delete, archive, and manual edits
to the activities of a generated itinerary.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence
import logging
import uuid

from sqlalchemy.orm import Session

from tripplanner.core.errors import BadRequestError, ConflictError, NotFoundError
from tripplanner.db.models import Plan
from tripplanner.db.repositories import PlanRepository
from tripplanner.services.schemas import (
    AddActivityCommand,
    CreatePlanCommand,
    DayPlan,
    GeneratedContent,
    PlanStatus,
    TimelineItem,
    UpdateActivityCommand,
    UpdatePlanCommand,
    category_to_type,
)
from tripplanner.services.time_formatters import as_utc, format_duration, time_sort_key

logger = logging.getLogger(__name__)

READ_ONLY_MESSAGE = "Archived plans are read-only."


def sort_day_items(items: List[TimelineItem]) -> List[TimelineItem]:
    """Order a day's items by 24h time; untimed items go last, ties keep order."""
    return sorted(items, key=lambda item: time_sort_key(item.time))


class PlanService:
    """Service for managing travel plans of one acting user at a time."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PlanRepository(db)

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def create_plan(self, user_id: str, command: CreatePlanCommand) -> Plan:
        logger.debug(f"Creating plan for user {user_id} (destination={command.destination})")
        plan = self.repo.create(
            user_id,
            {
                "name": command.name.strip(),
                "destination": command.destination.strip(),
                "start_date": as_utc(command.start_date),
                "end_date": as_utc(command.end_date),
                "notes": command.notes,
            },
        )
        self.db.commit()
        logger.info(f"Plan {plan.id} created for user {user_id}")
        return plan

    def list_plans(
        self,
        user_id: str,
        statuses: Optional[Sequence[PlanStatus]] = None,
        sort_by: str = "created_at",
        order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ):
        status_values = [PlanStatus(s).value for s in statuses] if statuses else None
        plans, total = self.repo.list_for_user(
            user_id, statuses=status_values, sort_by=sort_by, order=order, limit=limit, offset=offset
        )
        logger.info(f"Fetched {len(plans)} plans for user {user_id} (total={total})")
        return plans, total

    def get_plan(self, plan_id: str, user_id: str) -> Plan:
        plan = self.repo.get_by_id(plan_id, user_id)
        if plan is None:
            logger.warning(f"Plan {plan_id} not found for user {user_id}")
            raise NotFoundError("Plan not found.")
        return plan

    def update_plan(self, plan_id: str, user_id: str, command: UpdatePlanCommand) -> Plan:
        """Rename a plan or edit its notes."""
        plan = self.get_plan(plan_id, user_id)
        if plan.status == PlanStatus.ARCHIVED.value:
            raise ConflictError(READ_ONLY_MESSAGE)

        fields = command.model_dump(exclude_unset=True)
        if "name" in fields and fields["name"] is None:
            raise BadRequestError("Name cannot be empty.")
        if not fields:
            return plan

        plan = self.repo.update(plan_id, user_id, fields)
        self.db.commit()
        logger.info(f"Plan {plan_id} updated ({', '.join(sorted(fields))})")
        return plan

    def delete_plan(self, plan_id: str, user_id: str) -> None:
        if not self.repo.delete(plan_id, user_id):
            raise NotFoundError("Plan not found.")
        self.db.commit()
        logger.info(f"Plan {plan_id} deleted by user {user_id}")

    def archive_plan(self, plan_id: str, user_id: str) -> Plan:
        """Explicitly move a generated plan to history; its content is kept."""
        plan = self.get_plan(plan_id, user_id)
        if plan.status == PlanStatus.ARCHIVED.value:
            raise ConflictError("This plan is already archived.")
        if plan.status != PlanStatus.GENERATED.value:
            raise ConflictError("Only generated plans can be archived.")

        plan = self.repo.update(plan_id, user_id, {"status": PlanStatus.ARCHIVED.value})
        self.db.commit()
        logger.info(f"Plan {plan_id} archived by user {user_id}")
        return plan

    def archive_expired_plans(self, now: Optional[datetime] = None) -> int:
        """Archive every generated plan whose end date is before `now`."""
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        archived = self.repo.archive_expired(now)
        self.db.commit()
        if archived:
            logger.info(f"Archived {archived} expired plan(s)")
        return archived

    # ------------------------------------------------------------------
    # Activities inside generated_content
    # ------------------------------------------------------------------

    def _editable_content(self, plan: Plan) -> GeneratedContent:
        if plan.status == PlanStatus.ARCHIVED.value:
            raise ConflictError(READ_ONLY_MESSAGE)
        if plan.status != PlanStatus.GENERATED.value:
            raise ConflictError("Activities can only be edited on generated plans.")
        if not plan.generated_content:
            raise ConflictError("Plan does not have generated content.")
        return GeneratedContent.model_validate(plan.generated_content)

    @staticmethod
    def _find_day(content: GeneratedContent, date: str) -> DayPlan:
        for day in content.days:
            if day.date == date:
                return day
        raise NotFoundError(f"Day {date} not found in plan.")

    def _save_content(self, plan: Plan, user_id: str, content: GeneratedContent) -> Plan:
        plan = self.repo.update(plan.id, user_id, {"generated_content": content.model_dump(mode="json")})
        self.db.commit()
        return plan

    def add_activity(self, plan_id: str, user_id: str, date: str, command: AddActivityCommand) -> Plan:
        plan = self.get_plan(plan_id, user_id)
        content = self._editable_content(plan)
        day = self._find_day(content, date)

        item = TimelineItem(
            id=str(uuid.uuid4()),
            type=category_to_type(command.category),
            time=command.time,
            category=command.category,
            title=command.title,
            description=command.description,
            location=command.location,
            estimated_price=command.estimated_cost,
            estimated_duration=format_duration(command.duration) if command.duration else None,
        )
        day.items = sort_day_items(day.items + [item])

        plan = self._save_content(plan, user_id, content)
        logger.info(f"Activity {item.id} added to plan {plan_id} on {date}")
        return plan

    def update_activity(
        self, plan_id: str, user_id: str, date: str, item_id: str, command: UpdateActivityCommand
    ) -> Plan:
        plan = self.get_plan(plan_id, user_id)
        content = self._editable_content(plan)
        day = self._find_day(content, date)

        index = next((i for i, item in enumerate(day.items) if item.id == item_id), None)
        if index is None:
            raise NotFoundError(f"Activity {item_id} not found in day {date}.")

        changes = command.model_dump(exclude_unset=True)
        if "title" in changes and changes["title"] is None:
            raise BadRequestError("Title cannot be empty.")
        updates = {}
        for field in ("time", "title", "description", "location", "category"):
            if field in changes:
                updates[field] = changes[field]
        if "estimated_cost" in changes:
            updates["estimated_price"] = changes["estimated_cost"]
        if "duration" in changes:
            updates["estimated_duration"] = format_duration(changes["duration"]) if changes["duration"] else None
        if updates.get("category") is not None:
            updates["type"] = category_to_type(updates["category"])
        elif "category" in updates:
            del updates["category"]

        day.items[index] = TimelineItem.model_validate({**day.items[index].model_dump(), **updates})
        if "time" in updates:
            day.items = sort_day_items(day.items)

        plan = self._save_content(plan, user_id, content)
        logger.info(f"Activity {item_id} updated in plan {plan_id} on {date}")
        return plan

    def delete_activity(self, plan_id: str, user_id: str, date: str, item_id: str) -> Plan:
        plan = self.get_plan(plan_id, user_id)
        content = self._editable_content(plan)
        day = self._find_day(content, date)

        remaining = [item for item in day.items if item.id != item_id]
        if len(remaining) == len(day.items):
            raise NotFoundError(f"Activity {item_id} not found in day {date}.")
        day.items = remaining

        plan = self._save_content(plan, user_id, content)
        logger.info(f"Activity {item_id} removed from plan {plan_id} on {date}")
        return plan
