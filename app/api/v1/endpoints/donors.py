from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
import logging
from app.core.exceptions import InvariantViolationError, NotFoundError
from app.database.database import get_db
from app.models.donor import Donor
from app.models.user import User
from app.schemas.common import APIResponse
from app.schemas.donor import DonorCreate, DonorUpdate, DonorResponse
from app.schemas.donation import DonationResponse
from app.services import donation_service
from app.api.v1.endpoints.auth import get_current_user
from app.api.v1.endpoints.donations import to_donation_response

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_donor_or_404(db: Session, donor_id: int) -> Donor:
    donor = db.query(Donor).filter(Donor.id == donor_id).first()
    if not donor:
        raise NotFoundError("Donor not found")
    return donor


@router.get("", response_model=APIResponse[List[DonorResponse]])
def get_donors(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get all donors with pagination."""
    donors = db.query(Donor).order_by(Donor.full_name).offset(skip).limit(limit).all()
    return APIResponse(count=len(donors), data=[DonorResponse.model_validate(d) for d in donors])


@router.get("/{donor_id}", response_model=APIResponse[DonorResponse])
def get_donor(
    donor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=DonorResponse.model_validate(_get_donor_or_404(db, donor_id)))


@router.get("/{donor_id}/donations", response_model=APIResponse[List[DonationResponse]])
def get_donor_donations(
    donor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _get_donor_or_404(db, donor_id)
    data = [to_donation_response(d) for d in donation_service.list_donations(db, donor_id=donor_id)]
    return APIResponse(count=len(data), data=data)


@router.post("", response_model=APIResponse[DonorResponse], status_code=status.HTTP_201_CREATED)
def create_donor(
    donor_in: DonorCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a new donor."""
    db_donor = Donor(**donor_in.model_dump())
    db.add(db_donor)
    db.commit()
    db.refresh(db_donor)

    logger.info(f"Donor created: {db_donor.id} by user: {current_user.email}")
    return APIResponse(message="Donor created successfully", data=DonorResponse.model_validate(db_donor))


@router.put("/{donor_id}", response_model=APIResponse[DonorResponse])
def update_donor(
    donor_id: int,
    donor_update: DonorUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a donor."""
    donor = _get_donor_or_404(db, donor_id)

    update_data = donor_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(donor, field, value)

    db.commit()
    db.refresh(donor)

    logger.info(f"Donor updated: {donor.id} by user: {current_user.email}")
    return APIResponse(message="Donor updated successfully", data=DonorResponse.model_validate(donor))


@router.delete("/{donor_id}", response_model=APIResponse[None])
def delete_donor(
    donor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a donor that has no recorded donations."""
    donor = _get_donor_or_404(db, donor_id)
    if donor.donations.count():
        raise InvariantViolationError("Cannot delete donor with existing donations")

    db.delete(donor)
    db.commit()

    logger.info(f"Donor deleted: {donor_id} by user: {current_user.email}")
    return APIResponse(message="Donor deleted successfully")
