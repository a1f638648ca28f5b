from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.database import Base
import enum

class DonationStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    USED = "used"

class Donation(Base):
    __tablename__ = "donations"

    id = Column(Integer, primary_key=True, index=True)
    donor_id = Column(Integer, ForeignKey("donors.id"), nullable=False, index=True)
    bank_id = Column(Integer, ForeignKey("blood_banks.id"), nullable=False, index=True)
    blood_group = Column(String(3), nullable=False)
    units = Column(Integer, nullable=False)
    # Units removed from the counter when the donation left 'valid'; can be
    # below `units` when the expiry sweep found the stock already reserved
    units_debited = Column(Integer, nullable=True)
    donation_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False, index=True)
    status = Column(
        Enum(DonationStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DonationStatus.VALID,
        index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    donor = relationship("Donor", back_populates="donations", lazy="select")
    bank = relationship("BloodBank", back_populates="donations", lazy="select")
