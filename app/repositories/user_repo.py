# app/repositories/user_repo.py
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.exceptions import ProfileConflictError
from app.models.user import User, ROLE_RIDER


class UserRepository:
    """
    Data access layer for the `users` profile table.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Basic CRUD -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_rider(self, session: Session, rider_id: uuid.UUID) -> User | None:
        """Return the profile only if it belongs to a rider."""
        stmt = select(User).where(User.id == rider_id, User.role == ROLE_RIDER)
        return session.exec(stmt).first()

    def list_riders(self, session: Session, status: str | None = None) -> list[User]:
        """Riders newest first, optionally filtered by approval_status."""
        stmt = select(User).where(User.role == ROLE_RIDER)
        if status:
            stmt = stmt.where(User.approval_status == status)
        stmt = stmt.order_by(User.created_at.desc())
        return list(session.exec(stmt).all())

    def list(self, session: Session, skip: int = 0, limit: int = 50) -> list[User]:
        """
        Paginated user listing, newest first.

        Args:
            skip: offset rows (for paging)
            limit: max number of rows returned
        """
        stmt = (
            select(User)
            .order_by(User.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def create(self, session: Session, user: User) -> User:
        """
        Insert a new User and return the persisted row.

        Raises:
            ProfileConflictError: a row with the same id or email already
            exists. The session is rolled back before raising.
        """
        session.add(user)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise ProfileConflictError(str(e.orig)) from e
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
