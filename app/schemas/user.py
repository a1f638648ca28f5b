from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime
from app.core.config import settings
from app.models.user import UserRole

class UserRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)
    role: Literal["admin", "hospital", "recipient"]
    contact_number: Optional[str] = None
    address: Optional[str] = None

class UserLogin(BaseModel):
    email: str
    password: str

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TokenData(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse
