"""Pytest configuration and fixtures."""
import os

# Settings are read at import time; point the app at in-memory SQLite first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DEBUG"] = "true"
os.environ["EXPIRY_SWEEP_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event

from app import models  # noqa: F401
from app.core.security import create_access_token
from app.database.database import Base, SessionLocal, engine, get_db
from app.main import app
from app.models.blood_bank import BloodBank
from app.models.blood_inventory import BloodInventory
from app.models.donor import Donor
from app.models.recipient import Recipient
from app.services.user_service import register_user, token_claims


# pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """TestClient sharing the test session, so assertions see committed state."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    return register_user(db, name="Admin User", email="admin@bloodhaven.test", password="admin-pass-1", role="admin")


@pytest.fixture
def hospital(db):
    return register_user(
        db,
        name="City General Hospital",
        email="hospital@bloodhaven.test",
        password="hospital-pass-1",
        role="hospital",
        contact_number="555-0199",
        address="1 Main Street"
    )


@pytest.fixture
def recipient(db, hospital):
    return db.query(Recipient).filter(Recipient.user_id == hospital.id).one()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(token_claims(user))}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def hospital_headers(hospital):
    return auth_headers(hospital)


@pytest.fixture
def bank(db):
    bank = BloodBank(
        bank_name="Central Blood Bank",
        location="12 Harbour Road",
        contact_number="555-0100",
        email="central@bloodbank.test",
        capacity=500
    )
    db.add(bank)
    db.commit()
    return bank


@pytest.fixture
def make_donor(db):
    def _make_donor(blood_group="O+", last_donation_date=None, **overrides):
        fields = dict(
            full_name="Asha Menon",
            date_of_birth=date(1990, 5, 17),
            age=35,
            gender="F",
            blood_group=blood_group,
            contact_number="555-0200",
            email="asha@example.test",
            address="3 Donor Lane",
            last_donation_date=last_donation_date,
        )
        fields.update(overrides)
        donor = Donor(**fields)
        db.add(donor)
        db.commit()
        return donor
    return _make_donor


@pytest.fixture
def stock(db, bank):
    """Set the counter for (bank, blood_group) directly."""
    def _stock(blood_group, units, bank_id=None):
        bank_id = bank_id or bank.id
        record = db.query(BloodInventory).filter(
            BloodInventory.bank_id == bank_id,
            BloodInventory.blood_group == blood_group
        ).first()
        if record is None:
            record = BloodInventory(bank_id=bank_id, blood_group=blood_group, available_units=units)
            db.add(record)
        else:
            record.available_units = units
        db.commit()
        return record
    return _stock


@pytest.fixture
def units_of(db, bank):
    """Current counter value for a blood group, read fresh from the database."""
    def _units_of(blood_group, bank_id=None):
        db.expire_all()
        record = db.query(BloodInventory).filter(
            BloodInventory.bank_id == (bank_id or bank.id),
            BloodInventory.blood_group == blood_group
        ).first()
        return record.available_units if record else None
    return _units_of
