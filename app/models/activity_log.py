from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.database import Base
import enum

class ActivityType(str, enum.Enum):
    DONATION = "donation"
    REQUEST = "request"
    APPROVAL = "approval"
    INVENTORY_UPDATE = "inventory_update"
    USER_MANAGEMENT = "user_management"
    EXPIRY = "expiry"

class ActivityLog(Base):
    """Append-only audit trail. Rows are never updated or deleted."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    activity_type = Column(String(32), nullable=False, index=True)
    description = Column(Text, nullable=False)
    details = Column(Text, nullable=True)  # JSON string
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    user = relationship("User", lazy="select")
