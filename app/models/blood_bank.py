from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.database import Base

class BloodBank(Base):
    __tablename__ = "blood_banks"

    id = Column(Integer, primary_key=True, index=True)
    bank_name = Column(String, unique=True, index=True, nullable=False)
    location = Column(Text, nullable=False)
    contact_number = Column(String, nullable=False)
    email = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    inventory = relationship("BloodInventory", back_populates="bank", lazy="dynamic")
    donations = relationship("Donation", back_populates="bank", lazy="dynamic")
    requests = relationship("BloodRequest", back_populates="bank", lazy="dynamic")
