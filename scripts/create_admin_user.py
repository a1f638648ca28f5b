#!/usr/bin/env python3
"""
Production script to create the initial admin user
Usage: python scripts/create_admin_user.py --email admin@example.org --name "Admin" --password '...'
"""
import sys
import os
import argparse
import getpass
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.exceptions import BloodBankError
from app.database.database import SessionLocal, init_db
from app.services.user_service import get_user_by_email, register_user

def create_admin_user(email: str, name: str, password: str) -> bool:
    """Create an admin account unless the email is already registered."""
    init_db()
    db = SessionLocal()

    try:
        if get_user_by_email(db, email):
            print(f"✅ User {email} already exists")
            return True

        register_user(db, name=name, email=email, password=password, role="admin")
        print("✅ Admin user created successfully!")
        print(f"📧 Email: {email}")
        return True

    except BloodBankError as e:
        print(f"❌ Error creating admin user: {e.message}")
        return False
    finally:
        db.close()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the initial admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="System Administrator")
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        print(f"❌ Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
        sys.exit(1)

    sys.exit(0 if create_admin_user(args.email, args.name, password) else 1)
