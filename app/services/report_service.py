"""
Read-only summaries for the admin dashboard.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.activity_log import ActivityLog
from app.models.blood_bank import BloodBank
from app.models.blood_inventory import BloodInventory
from app.models.blood_request import BloodRequest, RequestStatus
from app.models.donation import Donation, DonationStatus
from app.models.donor import Donor
from app.models.recipient import Recipient
from app.services.activity_service import list_activities

logger = logging.getLogger(__name__)


class ReportService:
    """Aggregate queries across donors, inventory, donations and requests."""

    def overview(self, db: Session) -> dict:
        today = date.today()
        soon = today + timedelta(days=settings.EXPIRING_SOON_DAYS)

        requests_by_status = dict(
            db.query(BloodRequest.status, func.count(BloodRequest.id)).group_by(BloodRequest.status).all()
        )
        inventory_by_group = db.query(
            BloodInventory.blood_group,
            func.sum(BloodInventory.available_units)
        ).group_by(BloodInventory.blood_group).order_by(BloodInventory.blood_group).all()

        expiring_count, expiring_units = db.query(
            func.count(Donation.id),
            func.sum(Donation.units)
        ).filter(
            Donation.status == DonationStatus.VALID,
            Donation.expiry_date.between(today, soon)
        ).one()

        donation_count, donation_units = db.query(func.count(Donation.id), func.sum(Donation.units)).one()

        return {
            "donors": db.query(func.count(Donor.id)).scalar(),
            "recipients": db.query(func.count(Recipient.id)).scalar(),
            "banks": db.query(func.count(BloodBank.id)).scalar(),
            "donations": {
                "total": donation_count,
                "total_units": int(donation_units or 0),
                "valid": db.query(func.count(Donation.id)).filter(Donation.status == DonationStatus.VALID).scalar(),
            },
            "requests": {
                status.value: requests_by_status.get(status, 0) for status in RequestStatus
            },
            "inventory": {
                "total_units": sum(int(units or 0) for _, units in inventory_by_group),
                "by_blood_group": [
                    {"blood_group": group, "total_units": int(units or 0)} for group, units in inventory_by_group
                ],
            },
            "expiring_soon": {
                "days": settings.EXPIRING_SOON_DAYS,
                "count": expiring_count,
                "total_units": int(expiring_units or 0),
            },
        }

    def activity_logs(
        self,
        db: Session,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        activity_type: Optional[str] = None,
        limit: int = 100
    ) -> List[ActivityLog]:
        """Activity entries, newest first; the date range is inclusive of whole days."""
        start = datetime.combine(start_date, time.min) if start_date else None
        end = datetime.combine(end_date, time.max) if end_date else None
        if start and not end:
            end = datetime.combine(date.today(), time.max)
        if end and not start:
            start = datetime.min
        return list_activities(db, limit=limit, activity_type=activity_type, start_date=start, end_date=end)


report_service = ReportService()
