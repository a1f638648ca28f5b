"""
Donation recording and the donation status state machine.

    valid   -> expired | used   inventory -= units
    expired | used -> valid     inventory += units_debited

units_debited records what actually left the counter, which is less than
units when the expiry sweep clamped at zero.

Same-status updates and expired <-> used are rejected. Status and counter
always change in the same transaction.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    DonorIneligibleError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.database.database import atomic
from app.models.activity_log import ActivityType
from app.models.blood_bank import BloodBank
from app.models.donation import Donation, DonationStatus
from app.models.donor import Donor, HealthStatus
from app.schemas.common import normalize_blood_group
from app.services import inventory_service
from app.services.activity_service import record_activity

logger = logging.getLogger(__name__)

# (from, to) -> sign of the inventory delta, in units of donation.units
DONATION_TRANSITIONS = {
    (DonationStatus.VALID, DonationStatus.EXPIRED): -1,
    (DonationStatus.VALID, DonationStatus.USED): -1,
    (DonationStatus.EXPIRED, DonationStatus.VALID): 1,
    (DonationStatus.USED, DonationStatus.VALID): 1,
}


def donation_transition_sign(current: DonationStatus, new: DonationStatus) -> int:
    """Return +1/-1 for an allowed transition, raise InvalidTransitionError otherwise."""
    if current == new:
        raise InvalidTransitionError(f"Donation status is already {new.value}")
    try:
        return DONATION_TRANSITIONS[(current, new)]
    except KeyError:
        raise InvalidTransitionError(f"Cannot change status from {current.value} to {new.value}")


def check_donor_eligibility(donor: Donor, blood_group: str, donation_date: date) -> None:
    """Raise DonorIneligibleError if `donor` may not give `blood_group` on `donation_date`."""
    donor_group = normalize_blood_group(donor.blood_group)
    if donor_group != blood_group:
        raise DonorIneligibleError(
            f"Blood group mismatch. Donor's blood group is {donor_group}, but donation is for {blood_group}"
        )

    if donor.health_status == HealthStatus.NOT_ELIGIBLE:
        raise DonorIneligibleError("Donor is not eligible to donate at this time")

    if donor.last_donation_date:
        min_days = settings.DONATION_MIN_INTERVAL_DAYS
        days_since = (donation_date - donor.last_donation_date).days
        if days_since < min_days:
            raise DonorIneligibleError(
                f"Donor's last donation was less than {min_days} days ago ({days_since} days). "
                f"Must wait at least {min_days} days between donations."
            )


def create_donation(
    db: Session,
    donor_id: int,
    bank_id: int,
    blood_group: str,
    units: int,
    donation_date: date,
    actor_id: Optional[int] = None
) -> Donation:
    """
    Record a donation and credit its units to the bank's inventory.

    The donor row is locked so two concurrent donations cannot both pass the
    minimum-interval check.
    """
    if units is None or units <= 0:
        raise ValidationError("Units must be a positive number")
    blood_group = normalize_blood_group(blood_group)

    with atomic(db):
        donor = db.query(Donor).filter(Donor.id == donor_id).with_for_update().first()
        if not donor:
            raise NotFoundError("Donor not found")

        bank = db.query(BloodBank).filter(BloodBank.id == bank_id).first()
        if not bank:
            raise NotFoundError("Blood bank not found")

        check_donor_eligibility(donor, blood_group, donation_date)

        donation = Donation(
            donor_id=donor.id,
            bank_id=bank.id,
            blood_group=blood_group,
            units=units,
            donation_date=donation_date,
            expiry_date=donation_date + timedelta(days=settings.DONATION_SHELF_LIFE_DAYS),
            status=DonationStatus.VALID
        )
        db.add(donation)
        donor.last_donation_date = donation_date
        db.flush()

        inventory_service.add_units(db, bank.id, blood_group, units)

        record_activity(
            db,
            actor_id,
            ActivityType.DONATION,
            f"New donation: {units} units of {blood_group} from {donor.full_name}",
            {
                "donation_id": donation.id,
                "donor_id": donor.id,
                "donor_name": donor.full_name,
                "bank_id": bank.id,
                "bank_name": bank.bank_name,
                "blood_group": blood_group,
                "units": units,
            }
        )

    logger.info(f"Donation {donation.id} recorded: {units} {blood_group} from donor {donor_id} to bank {bank_id}")
    return donation


def apply_donation_transition(db: Session, donation: Donation, new_status: DonationStatus) -> DonationStatus:
    """Move `donation` to `new_status` and apply its inventory delta. Caller owns the transaction."""
    old_status = donation.status
    sign = donation_transition_sign(old_status, new_status)

    if sign > 0:
        # Give back only what was taken when the donation left 'valid'
        credit = donation.units if donation.units_debited is None else donation.units_debited
        if credit > 0:
            inventory_service.add_units(db, donation.bank_id, donation.blood_group, credit)
        donation.units_debited = None
    else:
        inventory_service.remove_units(
            db,
            donation.bank_id,
            donation.blood_group,
            donation.units,
            shortfall_message=(
                f"Cannot mark donation #{donation.id} as {new_status.value}: "
                "inventory holds {current} units of {blood_group}, donation has {requested}"
            )
        )
        donation.units_debited = donation.units

    donation.status = new_status
    db.flush()
    return old_status


def update_donation_status(
    db: Session,
    donation_id: int,
    new_status,
    actor_id: Optional[int] = None
) -> Tuple[Donation, DonationStatus]:
    """Apply an admin status change. Returns the donation and its previous status."""
    try:
        new_status = DonationStatus(new_status)
    except ValueError:
        raise ValidationError("Invalid status. Must be one of: valid, expired, used")

    with atomic(db):
        donation = db.query(Donation).filter(Donation.id == donation_id).with_for_update().first()
        if not donation:
            raise NotFoundError("Donation not found")

        old_status = apply_donation_transition(db, donation, new_status)

        record_activity(
            db,
            actor_id,
            ActivityType.DONATION,
            f"Donation status updated: {old_status.value} -> {new_status.value} for donation #{donation.id}",
            {
                "donation_id": donation.id,
                "donor_id": donation.donor_id,
                "donor_name": donation.donor.full_name if donation.donor else None,
                "bank_id": donation.bank_id,
                "bank_name": donation.bank.bank_name if donation.bank else None,
                "blood_group": donation.blood_group,
                "units": donation.units,
                "old_status": old_status.value,
                "new_status": new_status.value,
            }
        )

    logger.info(f"Donation {donation_id} status {old_status.value} -> {new_status.value} by user {actor_id}")
    return donation, old_status


def get_donation(db: Session, donation_id: int) -> Donation:
    donation = db.query(Donation).filter(Donation.id == donation_id).first()
    if not donation:
        raise NotFoundError("Donation not found")
    return donation


def list_donations(
    db: Session,
    donor_id: Optional[int] = None,
    bank_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[Donation]:
    query = db.query(Donation)
    if donor_id is not None:
        query = query.filter(Donation.donor_id == donor_id)
    if bank_id is not None:
        query = query.filter(Donation.bank_id == bank_id)
    if start_date and end_date:
        query = query.filter(Donation.donation_date.between(start_date, end_date))
    return query.order_by(Donation.donation_date.desc(), Donation.id.desc()).all()


def donation_stats(db: Session, months: int = 6) -> dict:
    since = date.today() - timedelta(days=months * 31)
    by_month = defaultdict(lambda: {"total_units": 0, "donation_count": 0})
    for donation_date, units in db.query(Donation.donation_date, Donation.units).filter(
        Donation.donation_date >= since
    ):
        bucket = by_month[donation_date.strftime("%Y-%m")]
        bucket["total_units"] += units
        bucket["donation_count"] += 1

    by_group = db.query(
        Donation.blood_group,
        func.sum(Donation.units),
        func.count(Donation.id)
    ).group_by(Donation.blood_group).order_by(Donation.blood_group).all()

    total_donations, total_units = db.query(func.count(Donation.id), func.sum(Donation.units)).one()

    return {
        "by_month": [{"month": month, **values} for month, values in sorted(by_month.items())],
        "by_blood_group": [
            {"blood_group": group, "total_units": int(units or 0), "donation_count": count}
            for group, units, count in by_group
        ],
        "totals": {"total_donations": total_donations, "total_units": int(total_units or 0)},
    }
