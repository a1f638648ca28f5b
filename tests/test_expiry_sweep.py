"""Tests for the expiry sweep and its background worker."""
import asyncio
import logging
from datetime import date, timedelta

from app.models.activity_log import ActivityLog
from app.models.donation import DonationStatus
from app.services import inventory_service
from app.services.donation_service import create_donation, update_donation_status
from app.services.expiry_service import expire_donations
from app.workers.expiry_worker import ExpiryWorker


def test_sweep_expires_only_past_due_donations(db, bank, make_donor, units_of):
    today = date.today()
    old = create_donation(db, make_donor("O+").id, bank.id, "O+", 3, today - timedelta(days=50))
    fresh = create_donation(db, make_donor("O+", email="b@example.test").id, bank.id, "O+", 2, today)
    assert units_of("O+") == 5

    result = expire_donations(db)

    assert result == {"expired_count": 1, "expired_units": 3, "donation_ids": [old.id]}
    assert units_of("O+") == 2
    db.refresh(old)
    db.refresh(fresh)
    assert old.status == DonationStatus.EXPIRED
    assert fresh.status == DonationStatus.VALID
    assert db.query(ActivityLog).filter(ActivityLog.activity_type == "expiry").count() == 1


def test_expiry_date_itself_is_not_past_due(db, bank, make_donor):
    as_of = date.today()
    donation = create_donation(db, make_donor("A+").id, bank.id, "A+", 1, as_of - timedelta(days=42))
    assert donation.expiry_date == as_of
    assert expire_donations(db, as_of=as_of)["expired_count"] == 0
    assert expire_donations(db, as_of=as_of + timedelta(days=1))["expired_count"] == 1


def test_sweep_is_idempotent(db, bank, make_donor, units_of):
    create_donation(db, make_donor("B-").id, bank.id, "B-", 4, date.today() - timedelta(days=60))
    expire_donations(db)
    assert expire_donations(db)["expired_count"] == 0
    assert units_of("B-") == 0


def test_sweep_does_not_double_count_admin_expiry(db, bank, make_donor, units_of):
    donor = make_donor("O+")
    donation = create_donation(db, donor.id, bank.id, "O+", 3, date.today() - timedelta(days=50))
    inventory_service.add_units(db, bank.id, "O+", 10)
    db.commit()

    update_donation_status(db, donation.id, "expired")
    assert units_of("O+") == 10
    assert expire_donations(db)["expired_count"] == 0
    assert units_of("O+") == 10


def test_sweep_clamps_at_zero_and_warns(db, bank, make_donor, units_of, caplog):
    donation = create_donation(db, make_donor("O-").id, bank.id, "O-", 5, date.today() - timedelta(days=45))
    # Approvals have already reserved 4 of the 5 units
    inventory_service.remove_units(db, bank.id, "O-", 4)
    db.commit()

    with caplog.at_level(logging.WARNING, logger="app.services.expiry_service"):
        result = expire_donations(db)

    assert result["donation_ids"] == [donation.id]
    assert units_of("O-") == 0
    assert "counter clamped at zero" in caplog.text


def test_revalidating_clamped_expiry_restores_only_units_taken(db, bank, make_donor, units_of):
    donation = create_donation(db, make_donor("O-").id, bank.id, "O-", 5, date.today() - timedelta(days=45))
    inventory_service.remove_units(db, bank.id, "O-", 4)
    db.commit()
    assert units_of("O-") == 1

    expire_donations(db)
    db.refresh(donation)
    assert donation.units_debited == 1
    assert units_of("O-") == 0

    update_donation_status(db, donation.id, "valid")
    assert units_of("O-") == 1
    db.refresh(donation)
    assert donation.units_debited is None

    # A later strict expiry takes the full donation again
    inventory_service.add_units(db, bank.id, "O-", 4)
    db.commit()
    update_donation_status(db, donation.id, "expired")
    assert units_of("O-") == 0
    update_donation_status(db, donation.id, "valid")
    assert units_of("O-") == 5


def test_revalidating_fully_reserved_expiry_adds_nothing(db, bank, make_donor, units_of):
    donation = create_donation(db, make_donor("B+").id, bank.id, "B+", 3, date.today() - timedelta(days=45))
    inventory_service.remove_units(db, bank.id, "B+", 3)
    db.commit()

    expire_donations(db)
    update_donation_status(db, donation.id, "valid")

    assert units_of("B+") == 0


def test_worker_run_once_runs_the_sweep(monkeypatch):
    calls = []

    def fake_sweep(self):
        calls.append(True)
        return {"expired_count": 0, "expired_units": 0, "donation_ids": []}

    monkeypatch.setattr(ExpiryWorker, "_sweep", fake_sweep)
    result = asyncio.run(ExpiryWorker().run_once())

    assert calls == [True]
    assert result["expired_count"] == 0


def test_worker_run_once_survives_errors(monkeypatch):
    def broken_sweep(self):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(ExpiryWorker, "_sweep", broken_sweep)
    assert asyncio.run(ExpiryWorker().run_once()) is None


def test_disabled_worker_returns_immediately():
    worker = ExpiryWorker()
    asyncio.run(worker.start())
    assert worker.running is False
