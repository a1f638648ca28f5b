"""Unit tests for the inventory ledger: add/remove/drain and manual adjustments."""
import json
import logging
from datetime import date, timedelta

import pytest
from sqlalchemy import update

from app.core.exceptions import InsufficientInventoryError, InvariantViolationError, NotFoundError, ValidationError
from app.models.activity_log import ActivityLog
from app.models.blood_inventory import BloodInventory
from app.schemas.inventory import InventoryOperation
from app.services import inventory_service
from app.services.donation_service import create_donation


def test_add_units_creates_row_on_first_use(db, bank, units_of):
    inventory_service.add_units(db, bank.id, "AB-", 4)
    db.commit()
    assert units_of("AB-") == 4


def test_add_units_increments_existing_row(db, bank, stock, units_of):
    stock("O+", 10)
    inventory_service.add_units(db, bank.id, "O+", 3)
    db.commit()
    assert units_of("O+") == 13
    assert db.query(BloodInventory).count() == 1


def test_lookup_ignores_case_and_whitespace(db, bank, stock, units_of):
    stock("AB+", 6)
    inventory_service.remove_units(db, bank.id, " ab+ ", 2)
    db.commit()
    assert units_of("AB+") == 4


def test_remove_units_refuses_to_go_negative(db, bank, stock, units_of):
    stock("O+", 10)
    with pytest.raises(InsufficientInventoryError) as exc_info:
        inventory_service.remove_units(db, bank.id, "O+", 12)
    assert exc_info.value.current == 10
    assert exc_info.value.requested == 12
    assert exc_info.value.message == "Insufficient units available. Current: 10, Requested: 12"
    db.rollback()
    assert units_of("O+") == 10


def test_remove_units_missing_row_reports_zero(db, bank):
    with pytest.raises(InsufficientInventoryError) as exc_info:
        inventory_service.remove_units(db, bank.id, "B-", 1)
    assert exc_info.value.current == 0


def test_remove_units_exact_amount_leaves_zero(db, bank, stock, units_of):
    stock("A+", 5)
    inventory_service.remove_units(db, bank.id, "A+", 5)
    db.commit()
    assert units_of("A+") == 0


def test_drain_units_clamps_at_zero(db, bank, stock, units_of):
    stock("O-", 3)
    removed, shortfall = inventory_service.drain_units(db, bank.id, "O-", 5)
    db.commit()
    assert (removed, shortfall) == (3, 2)
    assert units_of("O-") == 0


def test_drain_units_without_row(db, bank):
    assert inventory_service.drain_units(db, bank.id, "O-", 5) == (0, 5)


def test_adjust_add_creates_row_and_logs(db, bank, admin, units_of):
    record = inventory_service.adjust_inventory(db, bank.id, "b+", 7, InventoryOperation.ADD, actor_id=admin.id)
    assert record.blood_group == "B+"
    assert units_of("B+") == 7

    entry = db.query(ActivityLog).filter(ActivityLog.activity_type == "inventory_update").one()
    details = json.loads(entry.details)
    assert details["operation"] == "add"
    assert details["units"] == 7
    assert entry.user_id == admin.id


def test_adjust_subtract_more_than_available(db, bank, stock, units_of):
    stock("A+", 3)
    with pytest.raises(InsufficientInventoryError) as exc_info:
        inventory_service.adjust_inventory(db, bank.id, "A+", 5, "subtract")
    assert exc_info.value.message == "Insufficient units available. Current: 3, Requested: 5"
    assert units_of("A+") == 3
    assert db.query(ActivityLog).count() == 0


def test_adjust_subtract_from_missing_row(db, bank):
    with pytest.raises(InvariantViolationError, match="Cannot subtract from non-existent inventory"):
        inventory_service.adjust_inventory(db, bank.id, "A-", 1, "subtract")


def test_adjust_validates_input(db, bank):
    with pytest.raises(ValidationError):
        inventory_service.adjust_inventory(db, bank.id, "A-", 0, "add")
    with pytest.raises(ValidationError):
        inventory_service.adjust_inventory(db, bank.id, "A-", 1, "multiply")
    with pytest.raises(NotFoundError):
        inventory_service.adjust_inventory(db, 999, "A-", 1, "add")


def test_expiring_donations_window(db, bank, make_donor):
    today = date.today()
    # shelf life is 42 days: these expire in 2 and 20 days
    soon = create_donation(db, make_donor("O+").id, bank.id, "O+", 1, today - timedelta(days=40))
    create_donation(db, make_donor("A+", email="b@example.test").id, bank.id, "A+", 1, today - timedelta(days=22))

    expiring = inventory_service.expiring_donations(db, days=7)
    assert [d.id for d in expiring] == [soon.id]


def test_inventory_stats_totals(db, bank, stock):
    stock("O+", 10)
    stock("A-", 4)
    stats = inventory_service.inventory_stats(db)
    assert stats["total_units"] == 14
    assert {row["blood_group"]: row["total_units"] for row in stats["by_blood_group"]} == {"A-": 4, "O+": 10}


def test_conditional_decrement_rejects_stale_read(db, bank, stock, units_of, monkeypatch):
    stock("O+", 10)
    real_find_inventory = inventory_service.find_inventory

    def find_then_lose_stock(db, bank_id, blood_group, lock=False):
        record = real_find_inventory(db, bank_id, blood_group, lock=lock)
        # A concurrent writer takes 8 units after this row was read
        db.execute(
            update(BloodInventory)
            .where(BloodInventory.id == record.id)
            .values(available_units=2)
            .execution_options(synchronize_session=False)
        )
        return record

    monkeypatch.setattr(inventory_service, "find_inventory", find_then_lose_stock)

    with pytest.raises(InsufficientInventoryError) as exc_info:
        inventory_service.remove_units(db, bank.id, "O+", 5)

    assert exc_info.value.current == 2
    assert exc_info.value.requested == 5
    assert units_of("O+") == 2


def test_apply_delta_floor_blocks_update(db, bank, stock, units_of):
    record = stock("A-", 3)
    assert inventory_service._apply_delta(db, record, -4, floor=4) is False
    assert record.available_units == 3
    assert inventory_service._apply_delta(db, record, -3, floor=3) is True
    db.commit()
    assert units_of("A-") == 0


def test_failed_activity_log_does_not_roll_back_adjustment(db, bank, admin, units_of, caplog):
    ActivityLog.__table__.drop(bind=db.connection())
    db.commit()

    with caplog.at_level(logging.WARNING, logger="app.services.activity_service"):
        record = inventory_service.adjust_inventory(db, bank.id, "AB+", 4, "add", actor_id=admin.id)

    assert record.available_units == 4
    assert units_of("AB+") == 4
    assert "Failed to log activity" in caplog.text
