from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
from app.core.exceptions import ValidationError
from app.database.database import get_db
from app.models.activity_log import ActivityLog, ActivityType
from app.models.user import User
from app.schemas.activity import ActivityCreate, ActivityResponse
from app.schemas.common import APIResponse
from app.services.activity_service import list_activities, record_activity
from app.api.v1.endpoints.auth import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter()


def to_activity_response(entry: ActivityLog) -> ActivityResponse:
    return ActivityResponse.model_validate(entry).model_copy(update={
        "user_name": entry.user.name if entry.user else None,
        "user_role": entry.user.role.value if entry.user else None,
    })


@router.get("", response_model=APIResponse[List[ActivityResponse]])
def get_activities(
    limit: int = Query(20, ge=1, le=500),
    activity_type: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    entries = list_activities(db, limit=limit, activity_type=activity_type)
    return APIResponse(count=len(entries), data=[to_activity_response(e) for e in entries])


@router.get("/recent", response_model=APIResponse[List[ActivityResponse]])
def get_recent_activities(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    entries = list_activities(db, limit=5)
    return APIResponse(count=len(entries), data=[to_activity_response(e) for e in entries])


@router.post("", response_model=APIResponse[ActivityResponse], status_code=status.HTTP_201_CREATED)
def create_activity(
    activity_in: ActivityCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Append a client-supplied entry to the activity log."""
    try:
        activity_type = ActivityType(activity_in.activity_type)
    except ValueError:
        raise ValidationError(
            f"Invalid activity type. Must be one of: {', '.join(t.value for t in ActivityType)}"
        )

    entry = record_activity(
        db,
        activity_in.user_id or current_user.id,
        activity_type,
        activity_in.description,
        activity_in.details
    )
    if entry is None:
        db.rollback()
        raise ValidationError("Activity could not be recorded")
    db.commit()
    db.refresh(entry)
    return APIResponse(message="Activity logged successfully", data=to_activity_response(entry))
