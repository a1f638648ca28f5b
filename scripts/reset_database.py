#!/usr/bin/env python3
"""
Script to reset the operational blood bank data.
This will delete:
- All activity log entries
- All blood requests
- All donations
- All inventory counters

This script preserves:
- User accounts
- Donors, recipients and blood banks

⚠️  WARNING: This is a destructive operation that cannot be undone!

Usage: python scripts/reset_database.py
       python scripts/reset_database.py --confirm  # Skip confirmation prompt
"""
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database.database import SessionLocal
from app.models.activity_log import ActivityLog
from app.models.blood_inventory import BloodInventory
from app.models.blood_request import BloodRequest
from app.models.donation import Donation
from app.models.donor import Donor


def reset_database(skip_confirmation: bool = False):
    """
    Remove donations, requests, inventory and activity logs.

    Args:
        skip_confirmation: If True, skip the confirmation prompt
    """
    db = SessionLocal()

    try:
        counts = {
            "Activity logs": db.query(ActivityLog).count(),
            "Blood requests": db.query(BloodRequest).count(),
            "Donations": db.query(Donation).count(),
            "Inventory rows": db.query(BloodInventory).count(),
        }

        print("=" * 60)
        print("DATABASE RESET - Current Data Summary")
        print("=" * 60)
        for label, count in counts.items():
            print(f"{label + ':':<26} {count}")
        print("=" * 60)

        if not any(counts.values()):
            print("✅ Database is already empty. Nothing to reset.")
            return

        if not skip_confirmation:
            print("\n⚠️  WARNING: This will PERMANENTLY DELETE all donations, requests and inventory!")
            print("   This operation CANNOT be undone.")
            response = input("\n   Are you absolutely sure you want to proceed? (type 'RESET' to confirm): ")
            if response != "RESET":
                print("❌ Operation cancelled")
                return

        # Children before parents
        deleted = {
            "Activity logs": db.query(ActivityLog).delete(synchronize_session=False),
            "Blood requests": db.query(BloodRequest).delete(synchronize_session=False),
            "Donations": db.query(Donation).delete(synchronize_session=False),
            "Inventory rows": db.query(BloodInventory).delete(synchronize_session=False),
        }
        db.query(Donor).update({Donor.last_donation_date: None}, synchronize_session=False)
        db.commit()

        print("\n" + "=" * 60)
        print("✅ DATABASE RESET COMPLETE")
        print("=" * 60)
        for label, count in deleted.items():
            print(f"{label + ' deleted:':<26} {count}")

    except Exception as e:
        print(f"\n❌ Error resetting database: {e}")
        import traceback
        traceback.print_exc()
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    skip_confirmation = "--confirm" in sys.argv or "-y" in sys.argv

    try:
        reset_database(skip_confirmation=skip_confirmation)
    except KeyboardInterrupt:
        print("\n\n❌ Operation cancelled by user")
        sys.exit(1)
