from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tripplanner.core.auth import get_current_user_id
from tripplanner.db.database import get_db
from tripplanner.services.profile_service import ProfileService
from tripplanner.services.schemas import ProfileDto, UpdateProfileCommand

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileDto)
def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Profile of the caller, including remaining generations."""
    return ProfileDto.model_validate(ProfileService(db).get_profile(user_id))


@router.patch("/me", response_model=ProfileDto)
def update_my_profile(
    command: UpdateProfileCommand,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Partial update of preferences, travel pace and onboarding flag."""
    profile = ProfileService(db).update_profile(user_id, command)
    return ProfileDto.model_validate(profile)
