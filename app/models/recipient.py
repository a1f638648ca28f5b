from sqlalchemy import Column, Integer, String, DateTime, Text, Enum, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.database import Base
import enum

class RecipientType(str, enum.Enum):
    HOSPITAL = "Hospital"
    RESEARCH = "Research"
    EMS = "EMS"
    OTHER = "Other"

class Recipient(Base):
    __tablename__ = "recipients"

    id = Column(Integer, primary_key=True, index=True)
    organization_name = Column(String, unique=True, index=True, nullable=False)
    type = Column(
        Enum(RecipientType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RecipientType.HOSPITAL
    )
    contact_person = Column(String, nullable=False)
    contact_number = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    address = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)  # hospital login account
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", lazy="select")
    requests = relationship("BloodRequest", back_populates="recipient", lazy="dynamic")
