import uuid

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.core.exceptions import (
    AuthProviderError,
    NotFoundError,
    PendingApproval,
    ProvisioningError,
    ValidationError,
)
from app.core.supabase_client import Identity
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService


def make_service(repo=None, sleep=None, **kwargs):
    return AuthService(
        repo or UserRepository(),
        grace_seconds=1.0,
        poll_attempts=3,
        poll_delay_seconds=0.5,
        sleep=sleep or (lambda seconds: None),
        **kwargs,
    )


def profiles_for(session, user_id):
    return session.exec(select(User).where(User.id == user_id)).all()


def signup(service, session, provider, issuer, **overrides):
    fields = dict(email="a@x.com", password="secret123", full_name="A")
    fields.update(overrides)
    return service.signup(session, provider, issuer, **fields)


# ----- Reconciliation -----


def test_customer_signup_with_trigger(session, provider, issuer):
    res = signup(make_service(), session, provider, issuer)

    rows = profiles_for(session, res.user.id)
    assert len(rows) == 1
    assert rows[0].role == "customer"
    assert rows[0].approved is True
    assert rows[0].approval_status == "approved"
    assert issuer.verify(res.token).role == "customer"
    assert res.user.email == "a@x.com"


def test_signup_passes_metadata_to_provider(session, provider, issuer):
    signup(make_service(), session, provider, issuer, phone=" 555 ", role="rider")
    assert provider.last_metadata == {"full_name": "A", "phone": "555", "role": "rider"}


def test_poll_schedule_is_bounded(session, provider, issuer):
    provider.trigger = "never"
    waits = []
    signup(make_service(sleep=waits.append), session, provider, issuer)
    # grace period, then a delay between each of the three polls
    assert waits == [1.0, 0.5, 0.5]


def test_trigger_fires_during_poll(session, provider, issuer):
    provider.trigger = "never"
    waits = []

    def sleep(seconds):
        waits.append(seconds)
        if len(waits) == 2:
            identity = provider.identities["a@x.com"][0]
            provider.run_trigger(
                identity, {"full_name": "From trigger", "role": "customer"}
            )

    res = signup(make_service(sleep=sleep), session, provider, issuer)

    rows = profiles_for(session, res.user.id)
    assert len(rows) == 1
    assert rows[0].full_name == "From trigger"
    assert waits == [1.0, 0.5]


def test_fallback_insert_when_trigger_never_fires(session, provider, issuer):
    provider.trigger = "never"
    res = signup(make_service(), session, provider, issuer, role="rider", phone="123")

    rows = profiles_for(session, res.user.id)
    assert len(rows) == 1
    assert rows[0].full_name == "A"
    assert rows[0].phone == "123"
    assert rows[0].role == "rider"
    assert rows[0].approved is False
    assert rows[0].approval_status == "pending"


class LateTriggerRepository(UserRepository):
    """The trigger commits its row just before the fallback insert does."""

    def __init__(self, provider):
        self.provider = provider

    def create(self, session, user):
        identity = Identity(id=user.id, email=user.email)
        self.provider.run_trigger(identity, {"full_name": "From trigger", "role": user.role})
        session.expunge_all()
        return super().create(session, user)


def test_insert_conflict_uses_existing_row(session, provider, issuer):
    provider.trigger = "never"
    service = make_service(repo=LateTriggerRepository(provider))

    res = signup(service, session, provider, issuer)

    rows = profiles_for(session, res.user.id)
    assert len(rows) == 1
    assert rows[0].full_name == "From trigger"


class BrokenInsertRepository(UserRepository):
    def create(self, session, user):
        raise OperationalError("INSERT", {}, Exception("connection lost"))


def test_failed_insert_still_returns_token(session, provider, issuer):
    provider.trigger = "never"
    service = make_service(repo=BrokenInsertRepository())

    res = signup(service, session, provider, issuer, role="rider")

    assert profiles_for(session, res.user.id) == []
    assert issuer.verify(res.token).role == "rider"


def test_unsaved_profile_when_row_unreadable(session, provider, issuer):
    service = make_service(repo=BrokenInsertRepository())
    identity = Identity(id=uuid.uuid4(), email="ghost@x.com")

    profile = service.reconcile_profile(
        session, identity, full_name="Ghost", phone=None, role="rider"
    )

    assert profile.id == identity.id
    assert profile.approval_status == "pending"
    assert profile.approved is False


@pytest.mark.parametrize(
    "role, expected",
    [
        ("customer", (True, "approved")),
        ("admin", (True, "approved")),
        ("rider", (False, "pending")),
    ],
)
def test_trigger_row_gets_initial_approval(session, provider, issuer, role, expected):
    # the trigger leaves approved/approval_status at the column defaults
    res = signup(make_service(), session, provider, issuer, role=role)

    row = profiles_for(session, res.user.id)[0]
    assert (row.approved, row.approval_status) == expected


class CountingRepository(UserRepository):
    def __init__(self):
        self.updates = 0

    def update(self, session, user):
        self.updates += 1
        return super().update(session, user)


def test_consistent_trigger_row_is_not_rewritten(session, provider, issuer):
    provider.trigger_approval = (True, "approved")
    repo = CountingRepository()

    signup(make_service(repo=repo), session, provider, issuer)

    assert repo.updates == 0


class BrokenUpdateRepository(UserRepository):
    def update(self, session, user):
        raise OperationalError("UPDATE", {}, Exception("connection lost"))


def test_failed_approval_repair_still_returns_token(session, provider, issuer):
    service = make_service(repo=BrokenUpdateRepository())

    res = signup(service, session, provider, issuer, role="rider")

    assert issuer.verify(res.token).role == "rider"
    assert len(profiles_for(session, res.user.id)) == 1


class FlakyReadRepository(UserRepository):
    """get_by_id fails for the first `failures` calls."""

    def __init__(self, failures):
        self.failures = failures

    def get_by_id(self, session, user_id):
        if self.failures > 0:
            self.failures -= 1
            raise OperationalError("SELECT", {}, Exception("connection lost"))
        return super().get_by_id(session, user_id)


def test_poll_read_error_counts_as_missing(session, provider, issuer):
    waits = []
    service = make_service(repo=FlakyReadRepository(failures=1), sleep=waits.append)

    res = signup(service, session, provider, issuer)

    # first poll failed, second found the trigger row
    assert waits == [1.0, 0.5]
    assert profiles_for(session, res.user.id)[0].approval_status == "approved"


def test_unreadable_store_still_returns_token(session, provider, issuer):
    provider.trigger = "never"
    service = make_service(repo=FlakyReadRepository(failures=100))

    res = signup(service, session, provider, issuer, role="rider")

    assert issuer.verify(res.token).role == "rider"
    rows = profiles_for(session, res.user.id)
    assert len(rows) == 1
    assert rows[0].approval_status == "pending"


def test_reconcile_twice_keeps_one_row(session, provider, issuer):
    service = make_service()
    identity = Identity(id=uuid.uuid4(), email="twice@x.com")

    service.reconcile_profile(session, identity, full_name="T", phone=None, role="customer")
    service.reconcile_profile(session, identity, full_name="T", phone=None, role="customer")

    assert len(profiles_for(session, identity.id)) == 1


def test_duplicate_email_fails_at_provider(session, provider, issuer):
    service = make_service()
    first = signup(service, session, provider, issuer)

    with pytest.raises(AuthProviderError):
        signup(service, session, provider, issuer)

    assert len(session.exec(select(User)).all()) == 1
    assert len(profiles_for(session, first.user.id)) == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": ""},
        {"email": None},
        {"password": ""},
        {"full_name": "   "},
        {"role": "owner"},
    ],
)
def test_signup_validation(session, provider, issuer, overrides):
    with pytest.raises(ValidationError):
        signup(make_service(), session, provider, issuer, **overrides)
    assert provider.identities == {}


def test_weak_password_is_provider_error(session, provider, issuer):
    with pytest.raises(AuthProviderError) as exc:
        signup(make_service(), session, provider, issuer, password="123")
    assert "at least 6" in exc.value.detail


def test_no_identity_returned_is_provisioning_error(session, provider, issuer):
    provider.trigger = "never"
    provider.return_user = False

    with pytest.raises(ProvisioningError):
        signup(make_service(), session, provider, issuer)

    assert session.exec(select(User)).all() == []


def test_signup_message_reflects_email_confirmation(session, provider, issuer):
    service = make_service()
    pending = signup(service, session, provider, issuer)
    assert "verification" in pending.message

    provider.session_active = True
    confirmed = signup(service, session, provider, issuer, email="b@x.com")
    assert "verification" not in confirmed.message


# ----- Sign-in -----


def test_signin_customer(session, provider, issuer):
    service = make_service()
    created = signup(service, session, provider, issuer)

    res = service.signin(session, provider, issuer, email="a@x.com", password="secret123")

    claims = issuer.verify(res.token)
    assert claims.user_id == created.user.id
    assert claims.role == "customer"
    assert res.user.approved is True


def test_signin_wrong_password(session, provider, issuer):
    service = make_service()
    signup(service, session, provider, issuer, role="rider")

    # wrong password is reported by the provider, before the approval gate
    with pytest.raises(AuthProviderError):
        service.signin(session, provider, issuer, email="a@x.com", password="nope")


def test_signin_pending_rider(session, provider, issuer):
    service = make_service()
    signup(service, session, provider, issuer, role="rider")

    with pytest.raises(PendingApproval) as exc:
        service.signin(session, provider, issuer, email="a@x.com", password="secret123")

    assert exc.value.approval_status == "pending"
    assert exc.value.status_code == 403


def test_signin_without_profile(session, provider, issuer):
    provider.trigger = "never"
    service = make_service(repo=BrokenInsertRepository())
    signup(service, session, provider, issuer)

    with pytest.raises(NotFoundError):
        service.signin(session, provider, issuer, email="a@x.com", password="secret123")


def test_signin_role_comes_from_profile(session, provider, issuer):
    service = make_service()
    created = signup(service, session, provider, issuer)
    profile = session.get(User, created.user.id)
    profile.role = "admin"
    session.add(profile)
    session.commit()

    res = service.signin(session, provider, issuer, email="a@x.com", password="secret123")
    assert issuer.verify(res.token).role == "admin"


# ----- Password reset -----


def test_reset_password_redirect(provider):
    service = make_service(frontend_url="https://shop.example")
    service.reset_password(provider, "a@x.com")
    assert provider.reset_requests == [
        ("a@x.com", "https://shop.example/auth/reset-password")
    ]


def test_reset_password_requires_email(provider):
    with pytest.raises(ValidationError):
        make_service().reset_password(provider, " ")
