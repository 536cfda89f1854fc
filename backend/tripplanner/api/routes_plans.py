from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import Optional
import logging

from tripplanner.core.auth import get_current_user_id
from tripplanner.core.errors import BadRequestError
from tripplanner.db.database import get_db
from tripplanner.services.plan_service import PlanService
from tripplanner.services.schemas import (
    CreatePlanCommand,
    PaginatedPlansDto,
    PaginationDto,
    PlanDetailsDto,
    PlanListItemDto,
    PlanStatus,
    UpdatePlanCommand,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["plans"])


def _parse_statuses(statuses: Optional[str]):
    """Comma-separated status filter, e.g. "draft,generated"."""
    if not statuses:
        return None
    values = [s.strip() for s in statuses.split(",") if s.strip()]
    try:
        return [PlanStatus(value) for value in values]
    except ValueError:
        allowed = ", ".join(s.value for s in PlanStatus)
        raise BadRequestError(f"Invalid status filter. Allowed values: {allowed}.")


@router.post("", response_model=PlanDetailsDto, status_code=201)
def create_plan(
    command: CreatePlanCommand,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a new draft plan."""
    plan = PlanService(db).create_plan(user_id, command)
    return PlanDetailsDto.model_validate(plan)


@router.get("", response_model=PaginatedPlansDto)
def list_plans(
    statuses: Optional[str] = Query(None, description="Comma-separated statuses: draft,generated,archived"),
    sort_by: str = Query("created_at", pattern="^(created_at|name)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(20, ge=1, le=100, description="Number of results"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the caller's plans with pagination."""
    plans, total = PlanService(db).list_plans(
        user_id,
        statuses=_parse_statuses(statuses),
        sort_by=sort_by,
        order=order,
        limit=limit,
        offset=offset,
    )
    return PaginatedPlansDto(
        data=[PlanListItemDto.model_validate(p) for p in plans],
        pagination=PaginationDto(total=total, limit=limit, offset=offset),
    )


@router.get("/{plan_id}", response_model=PlanDetailsDto)
def get_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    plan = PlanService(db).get_plan(plan_id, user_id)
    return PlanDetailsDto.model_validate(plan)


@router.patch("/{plan_id}", response_model=PlanDetailsDto)
def update_plan(
    plan_id: str,
    command: UpdatePlanCommand,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Rename a plan or change its notes."""
    plan = PlanService(db).update_plan(plan_id, user_id, command)
    return PlanDetailsDto.model_validate(plan)


@router.delete("/{plan_id}", status_code=204)
def delete_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    PlanService(db).delete_plan(plan_id, user_id)
    return Response(status_code=204)


@router.post("/{plan_id}/archive", response_model=PlanDetailsDto)
def archive_plan(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Move a generated plan to history."""
    plan = PlanService(db).archive_plan(plan_id, user_id)
    return PlanDetailsDto.model_validate(plan)
