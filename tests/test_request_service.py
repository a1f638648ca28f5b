"""Unit tests for the blood request lifecycle and its inventory reservations."""
import json
from datetime import date, timedelta

import pytest

from app.core.exceptions import (
    InsufficientInventoryError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.activity_log import ActivityLog
from app.models.blood_request import RequestStatus
from app.models.recipient import Recipient
from app.services.request_service import (
    create_request,
    list_requests,
    request_stats,
    request_transition_sign,
    update_request_status,
)
from app.services.user_service import register_user


@pytest.fixture
def file_request(db, bank, hospital):
    def _file_request(units=5, blood_group="O+"):
        return create_request(
            db,
            hospital,
            bank_id=bank.id,
            blood_group=blood_group,
            units_requested=units,
            required_by=date.today() + timedelta(days=3),
            purpose="Scheduled surgery"
        )
    return _file_request


def test_create_request_is_pending_and_reserves_nothing(db, bank, recipient, stock, units_of, file_request):
    stock("O+", 10)
    blood_request = file_request(units=4)

    assert blood_request.status == RequestStatus.PENDING
    assert blood_request.recipient_id == recipient.id
    assert units_of("O+") == 10
    assert db.query(ActivityLog).filter(ActivityLog.activity_type == "request").count() == 1


def test_required_by_must_be_in_future(db, bank, hospital):
    with pytest.raises(ValidationError, match="Required by date must be in the future"):
        create_request(db, hospital, bank.id, "O+", 1, date.today(), "Trauma")


@pytest.mark.parametrize("units", [0, -2])
def test_units_requested_must_be_positive(db, bank, hospital, units):
    with pytest.raises(ValidationError, match="Units requested must be a positive number"):
        create_request(db, hospital, bank.id, "O+", units, date.today() + timedelta(days=1), "Trauma")


def test_missing_units_requested(db, bank, hospital):
    with pytest.raises(ValidationError, match="Please provide all required fields"):
        create_request(db, hospital, bank.id, "O+", None, date.today() + timedelta(days=1), "Trauma")


def test_recipient_resolved_by_email_when_not_linked(db, bank):
    user = register_user(db, name="Lab Admin", email="lab@research.test", password="lab-pass-12", role="admin")
    lab = Recipient(
        organization_name="Research Lab",
        contact_person="Dr. Kim",
        contact_number="555-0300",
        email="LAB@research.test",
        address="9 Science Park"
    )
    db.add(lab)
    db.commit()

    blood_request = create_request(db, user, bank.id, "A+", 1, date.today() + timedelta(days=1), "Study")
    assert blood_request.recipient_id == lab.id


def test_unknown_recipient_is_not_created(db, bank):
    user = register_user(db, name="Nobody", email="nobody@example.test", password="nobody-pass", role="admin")
    with pytest.raises(NotFoundError, match="Recipient not found"):
        create_request(db, user, bank.id, "A+", 1, date.today() + timedelta(days=1), "Study")
    assert db.query(Recipient).count() == 0


def test_explicit_recipient_id_wins(db, bank, hospital, recipient):
    other = Recipient(
        organization_name="Mercy Clinic",
        contact_person="Jo",
        contact_number="555-0400",
        email="mercy@example.test",
        address="4 Side Street"
    )
    db.add(other)
    db.commit()
    blood_request = create_request(
        db, hospital, bank.id, "A+", 1, date.today() + timedelta(days=1), "Transfusion", recipient_id=other.id
    )
    assert blood_request.recipient_id == other.id


def test_approval_decrements_exactly_units_requested(db, admin, stock, units_of, file_request):
    stock("O+", 10)
    blood_request = file_request(units=4)

    update_request_status(db, blood_request.id, "approved", actor_id=admin.id, approved_by=admin.id)

    assert units_of("O+") == 6
    assert blood_request.approved_by == admin.id
    entry = db.query(ActivityLog).filter(ActivityLog.activity_type == "approval").one()
    assert json.loads(entry.details)["inventory_delta"] == -4


def test_approval_with_insufficient_stock_changes_nothing(db, admin, stock, units_of, file_request):
    stock("O+", 10)
    blood_request = file_request(units=12)

    with pytest.raises(InsufficientInventoryError) as exc_info:
        update_request_status(db, blood_request.id, "approved", actor_id=admin.id, approved_by=admin.id)

    assert exc_info.value.message == "Insufficient units available. Current inventory: 10, Requested: 12"
    assert units_of("O+") == 10
    db.refresh(blood_request)
    assert blood_request.status == RequestStatus.PENDING


def test_approval_requires_approver(db, stock, file_request):
    stock("O+", 10)
    blood_request = file_request()
    with pytest.raises(ValidationError, match="approved_by"):
        update_request_status(db, blood_request.id, "approved")


@pytest.mark.parametrize("release_to", ["rejected", "pending"])
def test_releasing_an_approval_restores_counter(db, admin, stock, units_of, file_request, release_to):
    stock("O+", 10)
    blood_request = file_request(units=5)

    update_request_status(db, blood_request.id, "approved", approved_by=admin.id)
    assert units_of("O+") == 5
    update_request_status(db, blood_request.id, release_to)
    assert units_of("O+") == 10


def test_same_status_updates_notes_only(db, admin, stock, units_of, file_request):
    stock("O+", 10)
    blood_request = file_request(units=5)
    update_request_status(db, blood_request.id, "approved", approved_by=admin.id)

    _, old_status = update_request_status(db, blood_request.id, "approved", notes="Courier booked", approved_by=admin.id)

    assert old_status == RequestStatus.APPROVED
    assert units_of("O+") == 5
    db.refresh(blood_request)
    assert blood_request.notes == "Courier booked"


def test_fulfil_and_complete_keep_reservation(db, admin, stock, units_of, file_request):
    stock("O+", 10)
    blood_request = file_request(units=5)
    update_request_status(db, blood_request.id, "approved", approved_by=admin.id)
    update_request_status(db, blood_request.id, "fulfilled")
    assert blood_request.fulfillment_date is not None
    update_request_status(db, blood_request.id, "completed")

    assert blood_request.status == RequestStatus.COMPLETED
    assert units_of("O+") == 5


@pytest.mark.parametrize("terminal", ["rejected", "fulfilled", "completed"])
@pytest.mark.parametrize("target", ["approved", "pending"])
def test_terminal_requests_never_reopen(db, admin, stock, units_of, file_request, terminal, target):
    stock("O+", 10)
    blood_request = file_request(units=5)
    if terminal == "rejected":
        update_request_status(db, blood_request.id, "rejected")
    else:
        update_request_status(db, blood_request.id, "approved", approved_by=admin.id)
        update_request_status(db, blood_request.id, "fulfilled")
        if terminal == "completed":
            update_request_status(db, blood_request.id, "completed")
    before = units_of("O+")

    with pytest.raises(InvalidTransitionError, match=f"Cannot change status from {terminal} to {target}"):
        update_request_status(db, blood_request.id, target, approved_by=admin.id)
    assert units_of("O+") == before


def test_pending_cannot_jump_to_fulfilled(db, file_request):
    blood_request = file_request()
    with pytest.raises(InvalidTransitionError, match="Cannot change status from pending to fulfilled"):
        update_request_status(db, blood_request.id, "fulfilled")


def test_transition_sign_table():
    assert request_transition_sign(RequestStatus.PENDING, RequestStatus.APPROVED) == -1
    assert request_transition_sign(RequestStatus.APPROVED, RequestStatus.REJECTED) == 1
    assert request_transition_sign(RequestStatus.APPROVED, RequestStatus.PENDING) == 1
    assert request_transition_sign(RequestStatus.PENDING, RequestStatus.REJECTED) == 0
    assert request_transition_sign(RequestStatus.FULFILLED, RequestStatus.COMPLETED) == 0


def test_invalid_status_value(db, file_request):
    blood_request = file_request()
    with pytest.raises(ValidationError):
        update_request_status(db, blood_request.id, "shipped")


def test_unknown_request(db):
    with pytest.raises(NotFoundError):
        update_request_status(db, 12345, "rejected")


def test_list_requests_filters(db, admin, stock, file_request):
    stock("O+", 10)
    first = file_request(units=1)
    file_request(units=2)
    update_request_status(db, first.id, "approved", approved_by=admin.id)

    assert [r.id for r in list_requests(db, status=RequestStatus.APPROVED)] == [first.id]
    assert len(list_requests(db, status=RequestStatus.APPROVED, include_all=True)) == 2


def test_request_stats(db, admin, stock, file_request):
    stock("O+", 10)
    first = file_request(units=3)
    file_request(units=2)
    update_request_status(db, first.id, "approved", approved_by=admin.id)

    totals = request_stats(db)["totals"]
    assert totals["total_requests"] == 2
    assert totals["total_units_requested"] == 5
    assert totals["approved_count"] == 1
    assert totals["approval_rate"] == "50.00"
