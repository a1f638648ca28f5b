"""
Expiry sweep: retire valid donations past their expiry date.

A donation that has already been marked expired is never selected again, so
the sweep and the admin status endpoint cannot both take its units.
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.database.database import atomic
from app.models.activity_log import ActivityType
from app.models.donation import Donation, DonationStatus
from app.services import inventory_service
from app.services.activity_service import record_activity

logger = logging.getLogger(__name__)


def expire_donations(db: Session, as_of: Optional[date] = None, actor_id: Optional[int] = None) -> dict:
    """
    Mark every valid donation with expiry_date < `as_of` (default today) as expired.

    The counter drops by the donation's units, stopping at zero when the stock
    has already been reserved by approvals; the shortfall is logged.
    """
    as_of = as_of or date.today()
    expired_ids = []
    expired_units = 0

    with atomic(db):
        donations = db.query(Donation).filter(
            Donation.status == DonationStatus.VALID,
            Donation.expiry_date < as_of
        ).order_by(Donation.id).with_for_update().all()

        for donation in donations:
            removed, shortfall = inventory_service.drain_units(
                db, donation.bank_id, donation.blood_group, donation.units
            )
            if shortfall:
                logger.warning(
                    f"Donation {donation.id} expired with {donation.units} {donation.blood_group} units "
                    f"but bank {donation.bank_id} only held {removed}; counter clamped at zero"
                )
            donation.status = DonationStatus.EXPIRED
            donation.units_debited = removed
            expired_ids.append(donation.id)
            expired_units += donation.units

        db.flush()

        if expired_ids:
            record_activity(
                db,
                actor_id,
                ActivityType.EXPIRY,
                f"Expired {len(expired_ids)} donation(s) totalling {expired_units} units",
                {"as_of": as_of.isoformat(), "donation_ids": expired_ids, "units": expired_units}
            )

    if expired_ids:
        logger.info(f"Expiry sweep as of {as_of}: {len(expired_ids)} donations, {expired_units} units")
    else:
        logger.debug(f"Expiry sweep as of {as_of}: nothing to expire")

    return {
        "expired_count": len(expired_ids),
        "expired_units": expired_units,
        "donation_ids": expired_ids,
    }
