# app/services/user_service.py
import uuid

from sqlmodel import Session

from app.core.exceptions import NotFoundError
from app.models.user import User, utcnow
from app.repositories.user_repo import UserRepository
from app.schemas.user import ProfileUpdate


class UserService:
    """
    Business logic for user profiles.

    Responsibilities:
      - self-service profile reads and edits
      - admin user listing
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def get_profile(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Return the profile of the token's identity.

        Raises:
            NotFoundError: if the profile row does not exist.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: ProfileUpdate,
    ) -> User:
        """
        Partial update for profile edits.

        Only fields present in the payload are written; role and approval
        state are not editable here.
        """
        user = self.get_profile(session, user_id)

        changes = payload.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(user, field, value)
        user.updated_at = utcnow()

        return self.repo.update(session, user)

    # ----- Admin operations -----

    def list_users(self, session: Session, skip: int, limit: int) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list(session, skip=skip, limit=limit)
