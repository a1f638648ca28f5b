from pydantic import BaseModel, PositiveInt
from typing import Optional
from datetime import date, datetime
from app.models.donation import DonationStatus
from app.schemas.common import BloodGroup

class DonationCreate(BaseModel):
    donor_id: int
    bank_id: int
    blood_group: BloodGroup
    units: PositiveInt
    donation_date: date

class DonationStatusUpdate(BaseModel):
    status: DonationStatus

class DonationResponse(BaseModel):
    id: int
    donor_id: int
    bank_id: int
    blood_group: str
    units: int
    donation_date: date
    expiry_date: date
    status: DonationStatus
    donor_name: Optional[str] = None
    bank_name: Optional[str] = None
    days_to_expiry: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ExpirySweepResult(BaseModel):
    expired_count: int
    expired_units: int
    donation_ids: list[int]
