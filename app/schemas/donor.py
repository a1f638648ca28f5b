from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from app.models.donor import HealthStatus
from app.schemas.common import BloodGroup

class DonorBase(BaseModel):
    full_name: str = Field(..., min_length=1)
    date_of_birth: date
    age: int = Field(..., gt=0)
    gender: str
    blood_group: BloodGroup
    contact_number: str
    email: str
    address: str
    health_status: HealthStatus = HealthStatus.ELIGIBLE
    medical_history: Optional[str] = "None reported"

class DonorCreate(DonorBase):
    pass

class DonorUpdate(BaseModel):
    full_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    age: Optional[int] = Field(None, gt=0)
    gender: Optional[str] = None
    blood_group: Optional[BloodGroup] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    health_status: Optional[HealthStatus] = None
    medical_history: Optional[str] = None

class DonorResponse(DonorBase):
    id: int
    blood_group: str
    last_donation_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
