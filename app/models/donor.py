from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.database import Base
import enum

class HealthStatus(str, enum.Enum):
    ELIGIBLE = "Eligible"
    NOT_ELIGIBLE = "Not Eligible"

class Donor(Base):
    __tablename__ = "donors"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=False)
    age = Column(Integer, nullable=False)
    gender = Column(String, nullable=False)
    blood_group = Column(String(3), nullable=False, index=True)
    contact_number = Column(String, nullable=False)
    email = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    health_status = Column(
        Enum(HealthStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=HealthStatus.ELIGIBLE
    )
    medical_history = Column(Text, nullable=True, default="None reported")
    last_donation_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    donations = relationship("Donation", back_populates="donor", lazy="dynamic")
