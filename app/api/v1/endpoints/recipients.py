from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
import logging
from app.core.exceptions import DuplicateRecordError, InvariantViolationError, NotFoundError
from app.database.database import get_db
from app.models.recipient import Recipient
from app.models.user import User
from app.schemas.common import APIResponse
from app.schemas.recipient import RecipientCreate, RecipientUpdate, RecipientResponse
from app.schemas.blood_request import BloodRequestResponse
from app.services import request_service
from app.api.v1.endpoints.auth import get_current_user, require_admin
from app.api.v1.endpoints.requests import to_request_response

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_recipient_or_404(db: Session, recipient_id: int) -> Recipient:
    recipient = db.query(Recipient).filter(Recipient.id == recipient_id).first()
    if not recipient:
        raise NotFoundError("Recipient not found")
    return recipient


def _check_unique_name(db: Session, organization_name: str, exclude_id: int = None):
    query = db.query(Recipient).filter(Recipient.organization_name == organization_name)
    if exclude_id is not None:
        query = query.filter(Recipient.id != exclude_id)
    if query.first():
        raise DuplicateRecordError("Organization name already exists")


@router.get("", response_model=APIResponse[List[RecipientResponse]])
def get_recipients(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    recipients = db.query(Recipient).order_by(Recipient.organization_name).all()
    return APIResponse(count=len(recipients), data=[RecipientResponse.model_validate(r) for r in recipients])


@router.get("/{recipient_id}", response_model=APIResponse[RecipientResponse])
def get_recipient(
    recipient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=RecipientResponse.model_validate(_get_recipient_or_404(db, recipient_id)))


@router.get("/{recipient_id}/requests", response_model=APIResponse[List[BloodRequestResponse]])
def get_recipient_requests(
    recipient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _get_recipient_or_404(db, recipient_id)
    data = [to_request_response(r) for r in request_service.list_requests(db, recipient_id=recipient_id)]
    return APIResponse(count=len(data), data=data)


@router.post("", response_model=APIResponse[RecipientResponse], status_code=status.HTTP_201_CREATED)
def create_recipient(
    recipient_in: RecipientCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    _check_unique_name(db, recipient_in.organization_name)
    if recipient_in.user_id is not None:
        if not db.query(User.id).filter(User.id == recipient_in.user_id).first():
            raise NotFoundError("User not found")
        if db.query(Recipient.id).filter(Recipient.user_id == recipient_in.user_id).first():
            raise DuplicateRecordError("User is already linked to a recipient")

    recipient = Recipient(**recipient_in.model_dump())
    db.add(recipient)
    db.commit()
    db.refresh(recipient)

    logger.info(f"Recipient created: {recipient.organization_name} by user: {current_user.email}")
    return APIResponse(message="Recipient created successfully", data=RecipientResponse.model_validate(recipient))


@router.put("/{recipient_id}", response_model=APIResponse[RecipientResponse])
def update_recipient(
    recipient_id: int,
    recipient_update: RecipientUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    recipient = _get_recipient_or_404(db, recipient_id)

    update_data = recipient_update.model_dump(exclude_unset=True)
    if update_data.get("organization_name"):
        _check_unique_name(db, update_data["organization_name"], exclude_id=recipient_id)
    for field, value in update_data.items():
        setattr(recipient, field, value)

    db.commit()
    db.refresh(recipient)

    logger.info(f"Recipient updated: {recipient.id} by user: {current_user.email}")
    return APIResponse(message="Recipient updated successfully", data=RecipientResponse.model_validate(recipient))


@router.delete("/{recipient_id}", response_model=APIResponse[None])
def delete_recipient(
    recipient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    recipient = _get_recipient_or_404(db, recipient_id)
    if recipient.requests.count():
        raise InvariantViolationError("Cannot delete recipient with existing blood requests")

    db.delete(recipient)
    db.commit()

    logger.info(f"Recipient deleted: {recipient_id} by user: {current_user.email}")
    return APIResponse(message="Recipient deleted successfully")
