from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Enum, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.database import Base
import enum

class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FULFILLED = "fulfilled"
    COMPLETED = "completed"

class BloodRequest(Base):
    __tablename__ = "blood_requests"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("recipients.id"), nullable=False, index=True)
    bank_id = Column(Integer, ForeignKey("blood_banks.id"), nullable=False, index=True)
    blood_group = Column(String(3), nullable=False)
    units_requested = Column(Integer, nullable=False)
    required_by = Column(Date, nullable=False)
    purpose = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(
        Enum(RequestStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True
    )
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    request_date = Column(DateTime(timezone=True), server_default=func.now())
    fulfillment_date = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    recipient = relationship("Recipient", back_populates="requests", lazy="select")
    bank = relationship("BloodBank", back_populates="requests", lazy="select")
    approver = relationship("User", lazy="select")
