"""
User profiles and the plan-generation quota.
"""

from typing import Optional
import logging

from sqlalchemy.orm import Session

from tripplanner.core.config import settings
from tripplanner.core.errors import ConflictError, ForbiddenError, NotFoundError
from tripplanner.db.models import Profile
from tripplanner.db.repositories import ProfileRepository
from tripplanner.services.schemas import UpdateProfileCommand

logger = logging.getLogger(__name__)


class ProfileService:
    """Profile reads/updates plus the credit gate used by plan generation."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProfileRepository(db)

    def get_profile(self, user_id: str) -> Profile:
        profile = self.repo.get_by_id(user_id)
        if profile is None:
            logger.debug(f"Profile not found for user {user_id}")
            raise NotFoundError("Profile not found.")
        return profile

    def create_profile(self, user_id: str, generations: Optional[int] = None) -> Profile:
        """Provision a profile with the configured (or given) allowance."""
        if self.repo.get_by_id(user_id) is not None:
            raise ConflictError("Profile already exists.")
        allowance = settings.default_generations if generations is None else generations
        if allowance < 0:
            raise ValueError("generations must be >= 0")
        profile = self.repo.create(user_id, allowance)
        self.db.commit()
        logger.info(f"Profile created for user {user_id} with {allowance} generations")
        return profile

    def update_profile(self, user_id: str, command: UpdateProfileCommand) -> Profile:
        """Partial update: only fields present in the request are written."""
        fields = command.model_dump(exclude_unset=True, mode="json")
        logger.debug(f"Updating profile {user_id}: {sorted(fields)}")
        profile = self.repo.update(user_id, fields)
        if profile is None:
            raise NotFoundError("Profile not found.")
        self.db.commit()
        logger.info(f"Profile updated for user {user_id}")
        return profile

    # ------------------------------------------------------------------
    # Credit gate
    # ------------------------------------------------------------------

    def has_remaining(self, user_id: str) -> bool:
        """True iff the user can still generate a plan."""
        return self.get_profile(user_id).generations_remaining > 0

    def decrement(self, user_id: str) -> None:
        """
        Spend one generation credit.

        Done as a single conditional UPDATE; when it matches no row the profile
        is re-read to tell "missing" from "already at zero". The change is
        flushed, not committed, so it joins the caller's transaction.
        """
        if self.repo.decrement_generations(user_id):
            logger.debug(f"Generation credit spent for user {user_id}")
            return

        if self.repo.get_by_id(user_id) is None:
            raise NotFoundError("Profile not found.")
        logger.warning(f"Credit decrement refused for user {user_id}: no generations remaining")
        raise ForbiddenError("You have no plan generations remaining.")
