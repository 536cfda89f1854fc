from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tripplanner.core.auth import get_current_user_id
from tripplanner.db.database import get_db
from tripplanner.services.feedback_service import FeedbackService
from tripplanner.services.schemas import FeedbackDto, SubmitFeedbackCommand

router = APIRouter(prefix="/plans/{plan_id}/feedback", tags=["feedback"])


@router.put("", response_model=FeedbackDto)
def submit_feedback(
    plan_id: str,
    command: SubmitFeedbackCommand,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create or replace the caller's feedback on a plan."""
    feedback = FeedbackService(db).submit_feedback(plan_id, user_id, command)
    return FeedbackDto.model_validate(feedback)


@router.get("", response_model=FeedbackDto)
def get_feedback(
    plan_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    feedback = FeedbackService(db).get_feedback(plan_id, user_id)
    return FeedbackDto.model_validate(feedback)
