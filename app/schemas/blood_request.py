from pydantic import BaseModel, Field, PositiveInt
from typing import Optional
from datetime import date, datetime
from app.models.blood_request import RequestStatus
from app.schemas.common import BloodGroup

class BloodRequestCreate(BaseModel):
    recipient_id: Optional[int] = None  # resolved from the logged-in hospital when omitted
    bank_id: int
    blood_group: BloodGroup
    units_requested: PositiveInt
    required_by: date
    purpose: str = Field(..., min_length=1)
    notes: Optional[str] = None

class BloodRequestStatusUpdate(BaseModel):
    status: RequestStatus
    notes: Optional[str] = None
    approved_by: Optional[int] = None

class BloodRequestResponse(BaseModel):
    id: int
    recipient_id: int
    bank_id: int
    blood_group: str
    units_requested: int
    required_by: date
    purpose: str
    notes: Optional[str] = None
    status: RequestStatus
    approved_by: Optional[int] = None
    request_date: Optional[datetime] = None
    fulfillment_date: Optional[datetime] = None
    recipient_name: Optional[str] = None
    bank_name: Optional[str] = None
    contact_person: Optional[str] = None
    recipient_email: Optional[str] = None
    recipient_phone: Optional[str] = None

    class Config:
        from_attributes = True
