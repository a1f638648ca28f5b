from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database.database import Base

class BloodInventory(Base):
    """Running available_units counter for one (bank, blood group) pair."""
    __tablename__ = "blood_inventory"
    __table_args__ = (
        UniqueConstraint("bank_id", "blood_group", name="uq_blood_inventory_bank_group"),
        CheckConstraint("available_units >= 0", name="ck_blood_inventory_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    bank_id = Column(Integer, ForeignKey("blood_banks.id"), nullable=False, index=True)
    blood_group = Column(String(3), nullable=False, index=True)
    available_units = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    bank = relationship("BloodBank", back_populates="inventory", lazy="select")
