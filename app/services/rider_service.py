# app/services/rider_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.exceptions import InvalidTransition, NotFoundError, ValidationError
from app.models.user import (
    APPROVAL_STATUSES,
    STATUS_APPROVED,
    STATUS_REJECTED,
    User,
    utcnow,
)
from app.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


class RiderService:
    """
    Rider approval workflow (admin only).

    Allowed transitions:
      - pending  -> approved
      - pending  -> rejected
      - rejected -> approved
      - approved -> approved, rejected -> rejected (no-ops)

    Not offered: approved -> rejected (revoking an approved rider) and
    rejected -> pending.
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def list_riders(self, session: Session, status: str | None = None) -> list[User]:
        if status is not None and status not in APPROVAL_STATUSES:
            raise ValidationError(f"Unknown approval status: {status}")
        return self.repo.list_riders(session, status=status)

    def get_rider(self, session: Session, rider_id: uuid.UUID) -> User:
        """
        Raises:
            NotFoundError: no profile with that id, or it is not a rider.
        """
        rider = self.repo.get_rider(session, rider_id)
        if rider is None:
            raise NotFoundError("Rider not found")
        return rider

    def approve(self, session: Session, rider_id: uuid.UUID) -> User:
        """Approve a pending or rejected rider. Approving twice is a no-op."""
        rider = self.get_rider(session, rider_id)
        if rider.approval_status == STATUS_APPROVED and rider.approved:
            return rider

        rider.approved = True
        rider.approval_status = STATUS_APPROVED
        rider.rejection_reason = None
        rider.updated_at = utcnow()
        logger.info("Rider %s approved", rider_id)
        return self.repo.update(session, rider)

    def reject(
        self,
        session: Session,
        rider_id: uuid.UUID,
        reason: str | None = None,
    ) -> User:
        """
        Reject a pending rider.

        Rejecting an already rejected rider keeps it rejected and only
        replaces the stored reason when a new one is given.

        Raises:
            InvalidTransition: the rider is already approved.
        """
        rider = self.get_rider(session, rider_id)
        if rider.approval_status == STATUS_APPROVED:
            raise InvalidTransition("Approved riders cannot be rejected")

        if rider.approval_status == STATUS_REJECTED and (
            reason is None or reason == rider.rejection_reason
        ):
            return rider

        rider.approved = False
        rider.approval_status = STATUS_REJECTED
        if reason is not None:
            rider.rejection_reason = reason
        rider.updated_at = utcnow()
        logger.info("Rider %s rejected", rider_id)
        return self.repo.update(session, rider)
