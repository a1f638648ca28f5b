from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
import logging
from app.core.exceptions import DuplicateRecordError, InvariantViolationError, NotFoundError
from app.database.database import get_db
from app.models.blood_bank import BloodBank
from app.models.blood_inventory import BloodInventory
from app.models.user import User
from app.schemas.common import APIResponse
from app.schemas.blood_bank import BloodBankCreate, BloodBankUpdate, BloodBankResponse
from app.schemas.blood_request import BloodRequestResponse
from app.schemas.donation import DonationResponse
from app.schemas.inventory import InventoryResponse
from app.services import donation_service, request_service
from app.api.v1.endpoints.auth import get_current_user
from app.api.v1.endpoints.donations import to_donation_response
from app.api.v1.endpoints.inventory import to_inventory_response
from app.api.v1.endpoints.requests import to_request_response

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_bank_or_404(db: Session, bank_id: int) -> BloodBank:
    bank = db.query(BloodBank).filter(BloodBank.id == bank_id).first()
    if not bank:
        raise NotFoundError("Blood bank not found")
    return bank


def _check_unique_name(db: Session, bank_name: str, exclude_id: int = None):
    query = db.query(BloodBank).filter(BloodBank.bank_name == bank_name)
    if exclude_id is not None:
        query = query.filter(BloodBank.id != exclude_id)
    if query.first():
        raise DuplicateRecordError("Blood bank with this name already exists")


@router.get("", response_model=APIResponse[List[BloodBankResponse]])
def get_banks(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    banks = db.query(BloodBank).order_by(BloodBank.bank_name).all()
    return APIResponse(count=len(banks), data=[BloodBankResponse.model_validate(b) for b in banks])


@router.get("/{bank_id}", response_model=APIResponse[BloodBankResponse])
def get_bank(
    bank_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=BloodBankResponse.model_validate(_get_bank_or_404(db, bank_id)))


@router.get("/{bank_id}/inventory", response_model=APIResponse[List[InventoryResponse]])
def get_bank_inventory(
    bank_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    bank = _get_bank_or_404(db, bank_id)
    records = bank.inventory.order_by(BloodInventory.blood_group).all()
    return APIResponse(count=len(records), data=[to_inventory_response(r) for r in records])


@router.get("/{bank_id}/donations", response_model=APIResponse[List[DonationResponse]])
def get_bank_donations(
    bank_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _get_bank_or_404(db, bank_id)
    data = [to_donation_response(d) for d in donation_service.list_donations(db, bank_id=bank_id)]
    return APIResponse(count=len(data), data=data)


@router.get("/{bank_id}/requests", response_model=APIResponse[List[BloodRequestResponse]])
def get_bank_requests(
    bank_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _get_bank_or_404(db, bank_id)
    data = [to_request_response(r) for r in request_service.list_requests(db, bank_id=bank_id)]
    return APIResponse(count=len(data), data=data)


@router.post("", response_model=APIResponse[BloodBankResponse], status_code=status.HTTP_201_CREATED)
def create_bank(
    bank_in: BloodBankCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _check_unique_name(db, bank_in.bank_name)

    bank = BloodBank(**bank_in.model_dump())
    db.add(bank)
    db.commit()
    db.refresh(bank)

    logger.info(f"Blood bank created: {bank.bank_name} by user: {current_user.email}")
    return APIResponse(message="Blood bank created successfully", data=BloodBankResponse.model_validate(bank))


@router.put("/{bank_id}", response_model=APIResponse[BloodBankResponse])
def update_bank(
    bank_id: int,
    bank_update: BloodBankUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    bank = _get_bank_or_404(db, bank_id)

    update_data = bank_update.model_dump(exclude_unset=True)
    if update_data.get("bank_name"):
        _check_unique_name(db, update_data["bank_name"], exclude_id=bank_id)
    for field, value in update_data.items():
        setattr(bank, field, value)

    db.commit()
    db.refresh(bank)

    logger.info(f"Blood bank updated: {bank.id} by user: {current_user.email}")
    return APIResponse(message="Blood bank updated successfully", data=BloodBankResponse.model_validate(bank))


@router.delete("/{bank_id}", response_model=APIResponse[None])
def delete_bank(
    bank_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a bank with no inventory rows, donations or requests."""
    bank = _get_bank_or_404(db, bank_id)
    if bank.inventory.count() or bank.donations.count() or bank.requests.count():
        raise InvariantViolationError(
            "Cannot delete blood bank with existing inventory, donations or requests"
        )

    db.delete(bank)
    db.commit()

    logger.info(f"Blood bank deleted: {bank_id} by user: {current_user.email}")
    return APIResponse(message="Blood bank deleted successfully")
