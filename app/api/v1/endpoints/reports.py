from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from app.database.database import get_db
from app.models.user import User
from app.schemas.activity import ActivityResponse
from app.schemas.common import APIResponse
from app.services.report_service import report_service
from app.api.v1.endpoints.auth import get_current_user, require_admin
from app.api.v1.endpoints.activities import to_activity_response

router = APIRouter()


@router.get("/overview", response_model=APIResponse[dict])
def get_overview(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Headline counts for the dashboard."""
    return APIResponse(data=report_service.overview(db))


@router.get("/activity-logs", response_model=APIResponse[List[ActivityResponse]])
def get_activity_logs(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    activity_type: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    entries = report_service.activity_logs(
        db,
        start_date=start_date,
        end_date=end_date,
        activity_type=activity_type,
        limit=limit
    )
    return APIResponse(count=len(entries), data=[to_activity_response(e) for e in entries])
