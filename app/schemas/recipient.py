from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from app.models.recipient import RecipientType

class RecipientBase(BaseModel):
    organization_name: str = Field(..., min_length=1)
    type: RecipientType = RecipientType.HOSPITAL
    contact_person: str
    contact_number: str
    email: str
    address: str

class RecipientCreate(RecipientBase):
    user_id: Optional[int] = None

class RecipientUpdate(BaseModel):
    organization_name: Optional[str] = Field(None, min_length=1)
    type: Optional[RecipientType] = None
    contact_person: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

class RecipientResponse(RecipientBase):
    id: int
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
