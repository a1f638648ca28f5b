from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging
from app.database.database import get_db
from app.models.donation import Donation
from app.models.user import User
from app.schemas.common import APIResponse
from app.schemas.donation import DonationCreate, DonationStatusUpdate, DonationResponse, ExpirySweepResult
from app.services import donation_service
from app.services.expiry_service import expire_donations
from app.core.exceptions import ValidationError
from app.api.v1.endpoints.auth import get_current_user, require_admin

logger = logging.getLogger(__name__)
router = APIRouter()


def to_donation_response(donation: Donation, today: Optional[date] = None) -> DonationResponse:
    today = today or date.today()
    return DonationResponse.model_validate(donation).model_copy(update={
        "donor_name": donation.donor.full_name if donation.donor else None,
        "bank_name": donation.bank.bank_name if donation.bank else None,
        "days_to_expiry": (donation.expiry_date - today).days,
    })


def _list_response(donations: List[Donation]) -> APIResponse[List[DonationResponse]]:
    today = date.today()
    data = [to_donation_response(d, today) for d in donations]
    return APIResponse(count=len(data), data=data)


@router.get("", response_model=APIResponse[List[DonationResponse]])
def get_donations(
    bank_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get all donations, newest first."""
    return _list_response(donation_service.list_donations(db, bank_id=bank_id))


@router.get("/date-range", response_model=APIResponse[List[DonationResponse]])
def get_donations_by_date_range(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not start_date or not end_date:
        raise ValidationError("Please provide start and end dates")
    if start_date > end_date:
        raise ValidationError("Start date must be on or before end date")
    return _list_response(donation_service.list_donations(db, start_date=start_date, end_date=end_date))


@router.get("/stats", response_model=APIResponse[dict])
def get_donation_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=donation_service.donation_stats(db))


@router.get("/donor/{donor_id}", response_model=APIResponse[List[DonationResponse]])
def get_donations_by_donor(
    donor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _list_response(donation_service.list_donations(db, donor_id=donor_id))


@router.post("/expire", response_model=APIResponse[ExpirySweepResult])
def run_expiry_sweep(
    as_of: Optional[date] = Query(None, description="Expire donations with expiry_date before this date (default today)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Mark every valid donation past its expiry date as expired."""
    result = expire_donations(db, as_of=as_of, actor_id=current_user.id)
    return APIResponse(
        message=f"{result['expired_count']} donation(s) expired",
        data=ExpirySweepResult(**result)
    )


@router.get("/{donation_id}", response_model=APIResponse[DonationResponse])
def get_donation(
    donation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=to_donation_response(donation_service.get_donation(db, donation_id)))


@router.post("", response_model=APIResponse[DonationResponse], status_code=status.HTTP_201_CREATED)
def create_donation(
    donation_in: DonationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record a donation and add its units to the bank's inventory."""
    donation = donation_service.create_donation(
        db,
        donor_id=donation_in.donor_id,
        bank_id=donation_in.bank_id,
        blood_group=donation_in.blood_group,
        units=donation_in.units,
        donation_date=donation_in.donation_date,
        actor_id=current_user.id
    )
    logger.info(f"Donation created: {donation.id} by user: {current_user.email}")
    return APIResponse(message="Donation recorded successfully", data=to_donation_response(donation))


@router.put("/{donation_id}/status", response_model=APIResponse[DonationResponse])
def update_donation_status(
    donation_id: int,
    status_update: DonationStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    donation, old_status = donation_service.update_donation_status(
        db, donation_id, status_update.status, actor_id=current_user.id
    )
    return APIResponse(
        message=f"Donation status updated from {old_status.value} to {donation.status.value}",
        data=to_donation_response(donation)
    )
