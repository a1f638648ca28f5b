"""
Best-effort audit trail.
Entries are written inside a SAVEPOINT so a failed insert never rolls back
the state change it describes.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog, ActivityType

logger = logging.getLogger(__name__)


def record_activity(
    db: Session,
    user_id: Optional[int],
    activity_type: ActivityType,
    description: str,
    details: Optional[Dict[str, Any]] = None,
) -> Optional[ActivityLog]:
    """
    Append an activity log entry to the current transaction.

    Returns the entry, or None when the insert failed (the failure is logged
    and swallowed).
    """
    entry = ActivityLog(
        user_id=user_id,
        activity_type=getattr(activity_type, "value", activity_type),
        description=description,
        details=json.dumps(details, default=str) if details is not None else None,
    )
    try:
        with db.begin_nested():
            db.add(entry)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to log activity '{description}', continuing: {e}")
        return None
    return entry


def list_activities(
    db: Session,
    limit: int = 20,
    activity_type: Optional[str] = None,
    start_date=None,
    end_date=None,
) -> List[ActivityLog]:
    query = db.query(ActivityLog)
    if activity_type:
        query = query.filter(ActivityLog.activity_type == activity_type)
    if start_date and end_date:
        query = query.filter(ActivityLog.timestamp.between(start_date, end_date))
    return query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()
