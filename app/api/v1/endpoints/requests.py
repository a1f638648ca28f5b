from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
from app.database.database import get_db
from app.models.blood_request import BloodRequest, RequestStatus
from app.models.user import User
from app.schemas.common import APIResponse
from app.schemas.blood_request import BloodRequestCreate, BloodRequestStatusUpdate, BloodRequestResponse
from app.services import request_service
from app.api.v1.endpoints.auth import get_current_user, require_admin, require_hospital

logger = logging.getLogger(__name__)
router = APIRouter()


def to_request_response(blood_request: BloodRequest) -> BloodRequestResponse:
    recipient = blood_request.recipient
    return BloodRequestResponse.model_validate(blood_request).model_copy(update={
        "recipient_name": recipient.organization_name if recipient else None,
        "contact_person": recipient.contact_person if recipient else None,
        "recipient_email": recipient.email if recipient else None,
        "recipient_phone": recipient.contact_number if recipient else None,
        "bank_name": blood_request.bank.bank_name if blood_request.bank else None,
    })


def _list_response(requests: List[BloodRequest]) -> APIResponse[List[BloodRequestResponse]]:
    data = [to_request_response(r) for r in requests]
    return APIResponse(count=len(data), data=data)


@router.get("", response_model=APIResponse[List[BloodRequestResponse]])
def get_requests(
    status: Optional[RequestStatus] = None,
    include_all: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get blood requests, optionally filtered by status unless include_all is set."""
    return _list_response(request_service.list_requests(db, status=status, include_all=include_all))


@router.get("/stats", response_model=APIResponse[dict])
def get_request_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=request_service.request_stats(db))


@router.get("/recipient/{recipient_id}", response_model=APIResponse[List[BloodRequestResponse]])
def get_requests_by_recipient(
    recipient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _list_response(request_service.list_requests(db, recipient_id=recipient_id))


@router.get("/{request_id}", response_model=APIResponse[BloodRequestResponse])
def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return APIResponse(data=to_request_response(request_service.get_request(db, request_id)))


@router.post("", response_model=APIResponse[BloodRequestResponse], status_code=status.HTTP_201_CREATED)
def create_request(
    request_in: BloodRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hospital)
):
    """File a blood request for the logged-in hospital (or the given recipient)."""
    blood_request = request_service.create_request(
        db,
        current_user,
        bank_id=request_in.bank_id,
        blood_group=request_in.blood_group,
        units_requested=request_in.units_requested,
        required_by=request_in.required_by,
        purpose=request_in.purpose,
        notes=request_in.notes,
        recipient_id=request_in.recipient_id
    )
    return APIResponse(message="Blood request submitted successfully", data=to_request_response(blood_request))


@router.put("/{request_id}/status", response_model=APIResponse[BloodRequestResponse])
def update_request_status(
    request_id: int,
    status_update: BloodRequestStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    approved_by = status_update.approved_by
    if status_update.status == RequestStatus.APPROVED and approved_by is None:
        approved_by = current_user.id

    blood_request, old_status = request_service.update_request_status(
        db,
        request_id,
        status_update.status,
        actor_id=current_user.id,
        notes=status_update.notes,
        approved_by=approved_by
    )
    if old_status == blood_request.status:
        message = f"Blood request is already {old_status.value}"
    else:
        message = f"Blood request status updated from {old_status.value} to {blood_request.status.value}"
    return APIResponse(message=message, data=to_request_response(blood_request))
