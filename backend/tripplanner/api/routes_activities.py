"""
Manual edits to the timeline of a generated plan.
Each endpoint returns the full, updated plan.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from tripplanner.core.auth import get_current_user_id
from tripplanner.db.database import get_db
from tripplanner.services.plan_service import PlanService
from tripplanner.services.schemas import AddActivityCommand, PlanDetailsDto, UpdateActivityCommand

router = APIRouter(prefix="/plans/{plan_id}/days/{date}/items", tags=["activities"])

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


@router.post("", response_model=PlanDetailsDto, status_code=201)
def add_activity(
    plan_id: str,
    command: AddActivityCommand,
    date: str = Path(..., pattern=DATE_PATTERN),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    plan = PlanService(db).add_activity(plan_id, user_id, date, command)
    return PlanDetailsDto.model_validate(plan)


@router.patch("/{item_id}", response_model=PlanDetailsDto)
def update_activity(
    plan_id: str,
    item_id: str,
    command: UpdateActivityCommand,
    date: str = Path(..., pattern=DATE_PATTERN),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    plan = PlanService(db).update_activity(plan_id, user_id, date, item_id, command)
    return PlanDetailsDto.model_validate(plan)


@router.delete("/{item_id}", response_model=PlanDetailsDto)
def delete_activity(
    plan_id: str,
    item_id: str,
    date: str = Path(..., pattern=DATE_PATTERN),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    plan = PlanService(db).delete_activity(plan_id, user_id, date, item_id)
    return PlanDetailsDto.model_validate(plan)
