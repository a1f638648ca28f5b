"""
Blood request lifecycle.

Units are reserved (deducted) when a request is approved and released again
if it goes back to pending or is rejected. Fulfilment consumes the reservation
without touching the counter.

    pending   -> approved   inventory -= units_requested (needs approved_by)
    pending   -> rejected
    approved  -> pending    inventory += units_requested
    approved  -> rejected   inventory += units_requested
    approved  -> fulfilled  fulfillment_date = now
    fulfilled -> completed

A same-status update only touches notes. rejected, fulfilled and completed
never reopen.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.database.database import atomic
from app.models.activity_log import ActivityType
from app.models.blood_bank import BloodBank
from app.models.blood_request import BloodRequest, RequestStatus
from app.models.recipient import Recipient
from app.models.user import User
from app.schemas.common import normalize_blood_group
from app.services import inventory_service
from app.services.activity_service import record_activity

logger = logging.getLogger(__name__)

# (from, to) -> sign of the inventory delta, in units of units_requested
REQUEST_TRANSITIONS = {
    (RequestStatus.PENDING, RequestStatus.APPROVED): -1,
    (RequestStatus.PENDING, RequestStatus.REJECTED): 0,
    (RequestStatus.APPROVED, RequestStatus.PENDING): 1,
    (RequestStatus.APPROVED, RequestStatus.REJECTED): 1,
    (RequestStatus.APPROVED, RequestStatus.FULFILLED): 0,
    (RequestStatus.FULFILLED, RequestStatus.COMPLETED): 0,
}

TERMINAL_STATUSES = frozenset({RequestStatus.REJECTED, RequestStatus.FULFILLED, RequestStatus.COMPLETED})
ACTIVE_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.APPROVED})

APPROVAL_SHORTFALL_MESSAGE = "Insufficient units available. Current inventory: {current}, Requested: {requested}"


def request_transition_sign(current: RequestStatus, new: RequestStatus) -> int:
    """Return the inventory sign for a status change; same-status is 0."""
    if current == new:
        return 0
    if current in TERMINAL_STATUSES and new in ACTIVE_STATUSES:
        raise InvalidTransitionError(f"Cannot change status from {current.value} to {new.value}")
    try:
        return REQUEST_TRANSITIONS[(current, new)]
    except KeyError:
        raise InvalidTransitionError(f"Cannot change status from {current.value} to {new.value}")


def resolve_recipient(db: Session, recipient_id: Optional[int], user: Optional[User]) -> Recipient:
    """
    Find the recipient a request is filed for.

    Uses `recipient_id` when it names an existing row, otherwise the recipient
    linked to the logged-in account (by user_id, then by email).
    """
    if recipient_id is not None:
        recipient = db.query(Recipient).filter(Recipient.id == recipient_id).first()
        if recipient:
            return recipient

    if user is not None:
        recipient = db.query(Recipient).filter(Recipient.user_id == user.id).first()
        if recipient is None:
            recipient = db.query(Recipient).filter(func.lower(Recipient.email) == user.email.lower()).first()
        if recipient:
            return recipient
        raise NotFoundError("Recipient not found. Please check your recipient ID or user permissions.")

    raise NotFoundError("Recipient not found")


def create_request(
    db: Session,
    user: Optional[User],
    bank_id: int,
    blood_group: str,
    units_requested: int,
    required_by: date,
    purpose: str,
    notes: Optional[str] = None,
    recipient_id: Optional[int] = None
) -> BloodRequest:
    """File a pending request. Nothing is reserved until approval."""
    if not bank_id or not blood_group or units_requested is None or not required_by or not purpose:
        raise ValidationError("Please provide all required fields")
    if units_requested <= 0:
        raise ValidationError("Units requested must be a positive number")
    if required_by <= date.today():
        raise ValidationError("Required by date must be in the future")
    blood_group = normalize_blood_group(blood_group)

    with atomic(db):
        recipient = resolve_recipient(db, recipient_id, user)

        bank = db.query(BloodBank).filter(BloodBank.id == bank_id).first()
        if not bank:
            raise NotFoundError("Blood bank not found")

        blood_request = BloodRequest(
            recipient_id=recipient.id,
            bank_id=bank.id,
            blood_group=blood_group,
            units_requested=units_requested,
            required_by=required_by,
            purpose=purpose,
            notes=notes,
            status=RequestStatus.PENDING
        )
        db.add(blood_request)
        db.flush()

        record_activity(
            db,
            user.id if user else None,
            ActivityType.REQUEST,
            f"New blood request: {units_requested} units of {blood_group} from {recipient.organization_name}",
            {
                "request_id": blood_request.id,
                "recipient_id": recipient.id,
                "recipient_name": recipient.organization_name,
                "bank_id": bank.id,
                "bank_name": bank.bank_name,
                "blood_group": blood_group,
                "units_requested": units_requested,
                "purpose": purpose,
            }
        )

    logger.info(f"Blood request {blood_request.id} filed by recipient {recipient.id} for {units_requested} {blood_group}")
    return blood_request


def update_request_status(
    db: Session,
    request_id: int,
    new_status,
    actor_id: Optional[int] = None,
    notes: Optional[str] = None,
    approved_by: Optional[int] = None
) -> Tuple[BloodRequest, RequestStatus]:
    """Apply an admin status change. Returns the request and its previous status."""
    try:
        new_status = RequestStatus(new_status)
    except ValueError:
        raise ValidationError(
            "Invalid status. Must be one of: pending, approved, rejected, fulfilled, completed"
        )

    with atomic(db):
        blood_request = db.query(BloodRequest).filter(
            BloodRequest.id == request_id
        ).with_for_update().first()
        if not blood_request:
            raise NotFoundError("Blood request not found")

        old_status = blood_request.status
        if old_status == new_status:
            if notes:
                blood_request.notes = notes
            return blood_request, old_status

        sign = request_transition_sign(old_status, new_status)
        units = blood_request.units_requested

        if new_status == RequestStatus.APPROVED:
            if approved_by is None:
                raise ValidationError("approved_by field is required when approving a request")
            if not db.query(User.id).filter(User.id == approved_by).first():
                raise NotFoundError("Approving user not found")
            inventory_service.remove_units(
                db,
                blood_request.bank_id,
                blood_request.blood_group,
                units,
                shortfall_message=APPROVAL_SHORTFALL_MESSAGE
            )
            blood_request.approved_by = approved_by
        elif sign > 0:
            inventory_service.add_units(db, blood_request.bank_id, blood_request.blood_group, units)

        if new_status == RequestStatus.FULFILLED:
            blood_request.fulfillment_date = datetime.now(timezone.utc)
        if notes:
            blood_request.notes = notes
        blood_request.status = new_status
        db.flush()

        if new_status == RequestStatus.APPROVED:
            activity_type = ActivityType.APPROVAL
            description = f"Blood request approved: {blood_request.blood_group} ({units} units)"
        elif new_status == RequestStatus.REJECTED:
            activity_type = ActivityType.REQUEST
            description = f"Blood request rejected: {blood_request.blood_group} ({units} units)"
        else:
            activity_type = ActivityType.REQUEST
            description = f"Blood request status updated: {old_status.value} -> {new_status.value}"

        record_activity(
            db,
            actor_id,
            activity_type,
            description,
            {
                "request_id": blood_request.id,
                "recipient_id": blood_request.recipient_id,
                "recipient_name": blood_request.recipient.organization_name if blood_request.recipient else None,
                "bank_id": blood_request.bank_id,
                "bank_name": blood_request.bank.bank_name if blood_request.bank else None,
                "blood_group": blood_request.blood_group,
                "units": units,
                "inventory_delta": sign * units,
                "old_status": old_status.value,
                "new_status": new_status.value,
            }
        )

    logger.info(
        f"Blood request {request_id} {old_status.value} -> {new_status.value} by user {actor_id} "
        f"(inventory delta {sign * units})"
    )
    return blood_request, old_status


def get_request(db: Session, request_id: int) -> BloodRequest:
    blood_request = db.query(BloodRequest).filter(BloodRequest.id == request_id).first()
    if not blood_request:
        raise NotFoundError("Blood request not found")
    return blood_request


def list_requests(
    db: Session,
    status: Optional[RequestStatus] = None,
    include_all: bool = False,
    recipient_id: Optional[int] = None,
    bank_id: Optional[int] = None
) -> List[BloodRequest]:
    query = db.query(BloodRequest)
    if status is not None and not include_all:
        query = query.filter(BloodRequest.status == status)
    if recipient_id is not None:
        query = query.filter(BloodRequest.recipient_id == recipient_id)
    if bank_id is not None:
        query = query.filter(BloodRequest.bank_id == bank_id)
    return query.order_by(BloodRequest.request_date.desc(), BloodRequest.id.desc()).all()


def request_stats(db: Session, months: int = 6) -> dict:
    by_status = db.query(
        BloodRequest.status,
        func.count(BloodRequest.id),
        func.sum(BloodRequest.units_requested)
    ).group_by(BloodRequest.status).all()

    by_group = db.query(
        BloodRequest.blood_group,
        func.count(BloodRequest.id),
        func.sum(BloodRequest.units_requested)
    ).group_by(BloodRequest.blood_group).order_by(BloodRequest.blood_group).all()

    since = datetime.now(timezone.utc) - timedelta(days=months * 31)
    by_month = defaultdict(lambda: {"count": 0, "total_units": 0})
    for request_date, units in db.query(BloodRequest.request_date, BloodRequest.units_requested).filter(
        BloodRequest.request_date >= since
    ):
        bucket = by_month[request_date.strftime("%Y-%m")]
        bucket["count"] += 1
        bucket["total_units"] += units

    total_requests = sum(count for _, count, _ in by_status)
    total_units = sum(int(units or 0) for _, _, units in by_status)
    reserved = {RequestStatus.APPROVED, RequestStatus.FULFILLED, RequestStatus.COMPLETED}
    approved_count = sum(count for status, count, _ in by_status if status in reserved)
    approved_units = sum(int(units or 0) for status, _, units in by_status if status in reserved)

    return {
        "by_status": [
            {"status": status.value, "count": count, "total_units": int(units or 0)}
            for status, count, units in by_status
        ],
        "by_blood_group": [
            {"blood_group": group, "count": count, "total_units": int(units or 0)}
            for group, count, units in by_group
        ],
        "by_month": [{"month": month, **values} for month, values in sorted(by_month.items())],
        "totals": {
            "total_requests": total_requests,
            "total_units_requested": total_units,
            "approved_count": approved_count,
            "approved_units": approved_units,
            "approval_rate": f"{(approved_count / total_requests * 100) if total_requests else 0:.2f}",
        },
    }
