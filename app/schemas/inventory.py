from pydantic import BaseModel, PositiveInt
from typing import Optional
from datetime import datetime
import enum
from app.schemas.common import BloodGroup

class InventoryOperation(str, enum.Enum):
    ADD = "add"
    SUBTRACT = "subtract"

class InventoryUpdate(BaseModel):
    bank_id: int
    blood_group: BloodGroup
    units: PositiveInt
    operation: InventoryOperation

class InventoryResponse(BaseModel):
    id: int
    bank_id: int
    bank_name: Optional[str] = None
    blood_group: str
    available_units: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
