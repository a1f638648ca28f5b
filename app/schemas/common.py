from pydantic import BaseModel, BeforeValidator
from typing import Annotated, Generic, Optional, TypeVar

BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")

T = TypeVar("T")

def normalize_blood_group(value: str) -> str:
    """Trim and upper-case a blood group so ' ab+' and 'AB+' compare equal."""
    return value.strip().upper()

def _validate_blood_group(value):
    if not isinstance(value, str):
        raise ValueError("blood group must be a string")
    normalized = normalize_blood_group(value)
    if normalized not in BLOOD_GROUPS:
        raise ValueError(f"blood group must be one of: {', '.join(BLOOD_GROUPS)}")
    return normalized

BloodGroup = Annotated[str, BeforeValidator(_validate_blood_group)]

class APIResponse(BaseModel, Generic[T]):
    """Envelope shared by every endpoint: {success, message?, count?, data?}."""
    success: bool = True
    message: Optional[str] = None
    count: Optional[int] = None
    data: Optional[T] = None
