from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class BloodBankBase(BaseModel):
    bank_name: str = Field(..., min_length=1)
    location: str
    contact_number: str
    email: str
    capacity: int = Field(..., gt=0)

class BloodBankCreate(BloodBankBase):
    pass

class BloodBankUpdate(BaseModel):
    bank_name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    capacity: Optional[int] = Field(None, gt=0)

class BloodBankResponse(BloodBankBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
