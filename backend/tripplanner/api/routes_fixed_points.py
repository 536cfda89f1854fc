from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List

from tripplanner.core.auth import get_current_user_id
from tripplanner.db.database import get_db
from tripplanner.services.fixed_point_service import FixedPointService
from tripplanner.services.schemas import (
    CreateFixedPointCommand,
    FixedPointDto,
    UpdateFixedPointCommand,
)

router = APIRouter(prefix="/plans/{plan_id}/fixed-points", tags=["fixed-points"])


@router.get("", response_model=List[FixedPointDto])
def list_fixed_points(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Fixed points of a plan, earliest first."""
    fixed_points = FixedPointService(db).list_fixed_points(plan_id, user_id)
    return [FixedPointDto.model_validate(fp) for fp in fixed_points]


@router.post("", response_model=FixedPointDto, status_code=201)
def create_fixed_point(
    plan_id: str,
    command: CreateFixedPointCommand,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    fixed_point = FixedPointService(db).create_fixed_point(plan_id, user_id, command)
    return FixedPointDto.model_validate(fixed_point)


@router.patch("/{fixed_point_id}", response_model=FixedPointDto)
def update_fixed_point(
    plan_id: str,
    fixed_point_id: str,
    command: UpdateFixedPointCommand,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    fixed_point = FixedPointService(db).update_fixed_point(plan_id, fixed_point_id, user_id, command)
    return FixedPointDto.model_validate(fixed_point)


@router.delete("/{fixed_point_id}", status_code=204)
def delete_fixed_point(
    plan_id: str,
    fixed_point_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    FixedPointService(db).delete_fixed_point(plan_id, fixed_point_id, user_id)
    return Response(status_code=204)
