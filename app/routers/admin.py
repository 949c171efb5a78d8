# app/routers/admin.py
import uuid

from fastapi import APIRouter, Body, Depends
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.user_repo import UserRepository
from app.schemas.user import ApprovalStatus, RiderDecisionRead, RiderReject, UserRead
from app.services.rider_service import RiderService
from app.services.user_service import UserService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)

repo = UserRepository()
rider_service = RiderService(repo)
user_service = UserService(repo)


# -------- Rider management --------


@router.get("/riders", response_model=list[UserRead])
def list_riders(
    status: ApprovalStatus | None = None,
    session: Session = Depends(get_session),
):
    """
    List riders, newest first.

    Optional `?status=pending|approved|rejected` filter.
    """
    return rider_service.list_riders(session, status)


@router.get("/riders/{rider_id}", response_model=UserRead)
def get_rider(
    rider_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return rider_service.get_rider(session, rider_id)


@router.put("/riders/{rider_id}/approve", response_model=RiderDecisionRead)
def approve_rider(
    rider_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Approve a pending or rejected rider.

    Idempotent. The rider has to sign in again to get a usable token.
    """
    rider = rider_service.approve(session, rider_id)
    return RiderDecisionRead(
        message="Rider approved successfully",
        rider=UserRead.model_validate(rider, from_attributes=True),
    )


@router.put("/riders/{rider_id}/reject", response_model=RiderDecisionRead)
def reject_rider(
    rider_id: uuid.UUID,
    payload: RiderReject | None = Body(default=None),
    session: Session = Depends(get_session),
):
    """
    Reject a pending rider, with an optional reason.

    Approved riders cannot be rejected (409).
    """
    reason = payload.reason if payload else None
    rider = rider_service.reject(session, rider_id, reason)
    return RiderDecisionRead(
        message="Rider rejected",
        rider=UserRead.model_validate(rider, from_attributes=True),
    )


# -------- Users --------


@router.get("/users", response_model=list[UserRead])
def list_users(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all users (admin only), newest first.

    Pagination via skip/limit.
    """
    return user_service.list_users(session, skip, limit)
