from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.database.database import get_db
from app.models.blood_inventory import BloodInventory
from app.models.user import User
from app.schemas.common import APIResponse, BLOOD_GROUPS, normalize_blood_group
from app.schemas.donation import DonationResponse
from app.schemas.inventory import InventoryUpdate, InventoryResponse
from app.services import inventory_service
from app.api.v1.endpoints.auth import get_current_user, require_admin
from app.api.v1.endpoints.donations import to_donation_response

logger = logging.getLogger(__name__)
router = APIRouter()


def to_inventory_response(record: BloodInventory) -> InventoryResponse:
    return InventoryResponse.model_validate(record).model_copy(update={
        "bank_name": record.bank.bank_name if record.bank else None,
    })


@router.get("", response_model=APIResponse[List[InventoryResponse]])
def get_inventory(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    data = [to_inventory_response(r) for r in inventory_service.list_inventory(db)]
    return APIResponse(count=len(data), data=data)


@router.get("/stats", response_model=APIResponse[dict])
def get_inventory_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=inventory_service.inventory_stats(db, settings.EXPIRING_SOON_DAYS))


@router.get("/blood-group/{blood_group}", response_model=APIResponse[List[InventoryResponse]])
def get_inventory_by_blood_group(
    blood_group: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if normalize_blood_group(blood_group) not in BLOOD_GROUPS:
        raise ValidationError(f"Invalid blood group. Must be one of: {', '.join(BLOOD_GROUPS)}")
    data = [to_inventory_response(r) for r in inventory_service.list_inventory(db, blood_group)]
    return APIResponse(count=len(data), data=data)


@router.get("/expiring", response_model=APIResponse[List[DonationResponse]])
def get_expiring_donations(
    days: int = Query(settings.EXPIRING_SOON_DAYS, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Valid donations expiring within `days` days."""
    data = [to_donation_response(d) for d in inventory_service.expiring_donations(db, days)]
    return APIResponse(count=len(data), data=data)


@router.post("/update", response_model=APIResponse[InventoryResponse])
def update_inventory(
    update_in: InventoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Manually add or subtract units for a bank and blood group."""
    record = inventory_service.adjust_inventory(
        db,
        bank_id=update_in.bank_id,
        blood_group=update_in.blood_group,
        units=update_in.units,
        operation=update_in.operation,
        actor_id=current_user.id
    )
    return APIResponse(message="Inventory updated successfully", data=to_inventory_response(record))
