#!/usr/bin/env python3
"""
Seed a local database with demo accounts, banks, donors and donations.
Never run this against production.

Usage: python scripts/seed_demo_data.py
       python scripts/seed_demo_data.py --password 'demo-pass'
"""
import sys
import os
import argparse
from datetime import date, timedelta
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database.database import SessionLocal, init_db
from app.models.blood_bank import BloodBank
from app.models.donor import Donor
from app.services.donation_service import create_donation
from app.services.user_service import get_user_by_email, register_user

DEMO_BANKS = [
    {"bank_name": "Central Blood Bank", "location": "12 Harbour Road", "contact_number": "555-0100",
     "email": "central@bloodbank.test", "capacity": 500},
    {"bank_name": "Northside Blood Centre", "location": "48 Hill Street", "contact_number": "555-0101",
     "email": "north@bloodbank.test", "capacity": 250},
]

DEMO_DONORS = [
    ("Asha Menon", "O+", "F"),
    ("Daniel Okafor", "A-", "M"),
    ("Lin Wei", "B+", "F"),
    ("Marco Rossi", "AB+", "M"),
    ("Sara Haddad", "O-", "F"),
]

def seed(password: str):
    init_db()
    db = SessionLocal()

    try:
        if get_user_by_email(db, "admin@bloodhaven.test"):
            print("ℹ Demo data already present, nothing to do")
            return

        admin = register_user(db, name="Demo Admin", email="admin@bloodhaven.test", password=password, role="admin")
        register_user(
            db,
            name="City General Hospital",
            email="hospital@bloodhaven.test",
            password=password,
            role="hospital",
            contact_number="555-0199",
            address="1 Main Street"
        )
        print("✅ Created admin@bloodhaven.test and hospital@bloodhaven.test")

        banks = [BloodBank(**data) for data in DEMO_BANKS]
        db.add_all(banks)
        db.commit()
        print(f"✅ Created {len(banks)} blood banks")

        today = date.today()
        for index, (name, group, gender) in enumerate(DEMO_DONORS):
            donor = Donor(
                full_name=name,
                date_of_birth=today - timedelta(days=365 * (25 + index)),
                age=25 + index,
                gender=gender,
                blood_group=group,
                contact_number=f"555-02{index:02d}",
                email=f"donor{index}@bloodhaven.test",
                address=f"{index + 1} Donor Lane"
            )
            db.add(donor)
            db.commit()
            create_donation(
                db,
                donor_id=donor.id,
                bank_id=banks[index % len(banks)].id,
                blood_group=group,
                units=2 + index,
                donation_date=today - timedelta(days=index * 7),
                actor_id=admin.id
            )
        print(f"✅ Created {len(DEMO_DONORS)} donors with one donation each")

    finally:
        db.close()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--password", default="bloodhaven-demo", help="Password for both demo accounts")
    args = parser.parse_args()
    seed(args.password)
