"""
Inventory ledger: the available_units counter per (bank, blood group).

The counter is maintained incrementally, so every caller goes through
add_units / remove_units / drain_units. Rows are read FOR UPDATE and every
decrement is a single conditional UPDATE guarded by available_units >= n, so
two concurrent transactions can never both spend the same units.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InsufficientInventoryError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from app.database.database import atomic
from app.models.activity_log import ActivityType
from app.models.blood_bank import BloodBank
from app.models.blood_inventory import BloodInventory
from app.models.donation import Donation, DonationStatus
from app.schemas.common import normalize_blood_group
from app.schemas.inventory import InventoryOperation
from app.services.activity_service import record_activity

logger = logging.getLogger(__name__)

SHORTFALL_MESSAGE = "Insufficient units available. Current: {current}, Requested: {requested}"


def find_inventory(
    db: Session,
    bank_id: int,
    blood_group: str,
    lock: bool = False
) -> Optional[BloodInventory]:
    """Look up the counter row, matching the blood group case- and whitespace-insensitively."""
    query = db.query(BloodInventory).filter(
        BloodInventory.bank_id == bank_id,
        func.upper(func.trim(BloodInventory.blood_group)) == normalize_blood_group(blood_group)
    )
    if lock:
        query = query.with_for_update()
    return query.first()


def _apply_delta(db: Session, record: BloodInventory, delta: int, floor: Optional[int] = None) -> bool:
    stmt = (
        update(BloodInventory)
        .where(BloodInventory.id == record.id)
        .values(
            available_units=BloodInventory.available_units + delta,
            updated_at=func.now()
        )
        .execution_options(synchronize_session=False)
    )
    if floor is not None:
        stmt = stmt.where(BloodInventory.available_units >= floor)
    result = db.execute(stmt)
    db.refresh(record)
    return result.rowcount == 1


def add_units(db: Session, bank_id: int, blood_group: str, units: int) -> BloodInventory:
    """Increase the counter, creating the row on first use."""
    record = find_inventory(db, bank_id, blood_group, lock=True)
    if record is None:
        try:
            with db.begin_nested():
                record = BloodInventory(
                    bank_id=bank_id,
                    blood_group=normalize_blood_group(blood_group),
                    available_units=units
                )
                db.add(record)
            logger.info(f"Created inventory row for bank {bank_id} / {record.blood_group} with {units} units")
            return record
        except IntegrityError:
            # Another transaction created the row first
            record = find_inventory(db, bank_id, blood_group, lock=True)
            if record is None:
                raise

    _apply_delta(db, record, units)
    logger.debug(f"Inventory bank {bank_id} / {record.blood_group}: +{units} -> {record.available_units}")
    return record


def remove_units(
    db: Session,
    bank_id: int,
    blood_group: str,
    units: int,
    shortfall_message: str = SHORTFALL_MESSAGE
) -> BloodInventory:
    """
    Decrease the counter by exactly `units` or raise.

    Raises InsufficientInventoryError (message built from `shortfall_message`
    with {current}, {requested} and {blood_group}) when the row is missing or
    holds fewer units; the counter is left untouched in that case.
    """
    record = find_inventory(db, bank_id, blood_group, lock=True)
    current = record.available_units if record else 0

    if record is None or current < units or not _apply_delta(db, record, -units, floor=units):
        if record is not None:
            current = record.available_units
        raise InsufficientInventoryError(
            shortfall_message.format(
                current=current,
                requested=units,
                blood_group=normalize_blood_group(blood_group)
            ),
            current=current,
            requested=units
        )

    logger.debug(f"Inventory bank {bank_id} / {record.blood_group}: -{units} -> {record.available_units}")
    return record


def drain_units(db: Session, bank_id: int, blood_group: str, units: int) -> Tuple[int, int]:
    """
    Remove up to `units`, stopping at zero.

    Returns (removed, shortfall). Used where the physical stock is gone no
    matter what the counter says, e.g. expired blood.
    """
    record = find_inventory(db, bank_id, blood_group, lock=True)
    if record is None:
        return 0, units

    removed = min(units, record.available_units)
    if removed > 0 and not _apply_delta(db, record, -removed, floor=removed):
        # Row changed under us without a lock (e.g. SQLite); take what is left
        removed = min(units, record.available_units)
        _apply_delta(db, record, -removed, floor=removed)
    return removed, units - removed


def adjust_inventory(
    db: Session,
    bank_id: int,
    blood_group: str,
    units: int,
    operation: InventoryOperation,
    actor_id: Optional[int] = None
) -> BloodInventory:
    """Manual admin add/subtract outside the donation and request flows."""
    if units is None or units <= 0:
        raise ValidationError("Units must be a positive number")
    try:
        operation = InventoryOperation(operation)
    except ValueError:
        raise ValidationError('Operation must be either "add" or "subtract"')
    blood_group = normalize_blood_group(blood_group)

    with atomic(db):
        bank = db.query(BloodBank).filter(BloodBank.id == bank_id).first()
        if not bank:
            raise NotFoundError("Blood bank not found")

        if operation == InventoryOperation.SUBTRACT:
            if find_inventory(db, bank_id, blood_group) is None:
                raise InvariantViolationError("Cannot subtract from non-existent inventory")
            record = remove_units(db, bank_id, blood_group, units)
        else:
            record = add_units(db, bank_id, blood_group, units)

        record_activity(
            db,
            actor_id,
            ActivityType.INVENTORY_UPDATE,
            f"Manual inventory {operation.value}: {units} units of {blood_group} at {bank.bank_name}",
            {
                "bank_id": bank_id,
                "bank_name": bank.bank_name,
                "blood_group": blood_group,
                "units": units,
                "operation": operation.value,
                "available_units": record.available_units,
            }
        )

    logger.info(
        f"Inventory {operation.value} of {units} {blood_group} at bank {bank_id} by user {actor_id}; "
        f"now {record.available_units}"
    )
    return record


def list_inventory(db: Session, blood_group: Optional[str] = None) -> List[BloodInventory]:
    query = db.query(BloodInventory)
    if blood_group:
        query = query.filter(
            func.upper(func.trim(BloodInventory.blood_group)) == normalize_blood_group(blood_group)
        )
        return query.order_by(BloodInventory.available_units.desc()).all()
    return query.order_by(BloodInventory.blood_group.asc(), BloodInventory.bank_id.asc()).all()


def expiring_donations(db: Session, days: int, today: Optional[date] = None) -> List[Donation]:
    """Valid donations whose expiry date falls within the next `days` days."""
    today = today or date.today()
    return db.query(Donation).filter(
        Donation.status == DonationStatus.VALID,
        Donation.expiry_date.between(today, today + timedelta(days=days))
    ).order_by(Donation.expiry_date.asc()).all()


def inventory_stats(db: Session, expiring_within_days: int = 7) -> dict:
    by_group = db.query(
        BloodInventory.blood_group,
        func.sum(BloodInventory.available_units)
    ).group_by(BloodInventory.blood_group).order_by(BloodInventory.blood_group).all()

    today = date.today()
    expiring = db.query(
        Donation.blood_group,
        func.count(Donation.id),
        func.sum(Donation.units)
    ).filter(
        Donation.status == DonationStatus.VALID,
        Donation.expiry_date.between(today, today + timedelta(days=expiring_within_days))
    ).group_by(Donation.blood_group).all()

    return {
        "by_blood_group": [
            {"blood_group": group, "total_units": int(total or 0)} for group, total in by_group
        ],
        "total_units": sum(int(total or 0) for _, total in by_group),
        "expiring_soon": [
            {"blood_group": group, "count": count, "total_units": int(total or 0)}
            for group, count, total in expiring
        ],
    }
