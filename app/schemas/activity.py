from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime
import json

class ActivityCreate(BaseModel):
    user_id: Optional[int] = None
    activity_type: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    details: Optional[Dict[str, Any]] = None

class ActivityResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_role: Optional[str] = None
    activity_type: str
    description: str
    details: Optional[Dict[str, Any]] = None
    timestamp: Optional[datetime] = None

    @field_validator("details", mode="before")
    @classmethod
    def parse_details(cls, v):
        """Details are stored as a JSON string."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except ValueError:
                return {"raw": v}
            return parsed if isinstance(parsed, dict) else {"value": parsed}
        return v

    class Config:
        from_attributes = True
