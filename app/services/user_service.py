"""
Account registration and login.

Hospital sign-ups get the `recipient` role and a linked Recipient row so
their blood requests resolve to an organization.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import DuplicateRecordError, ValidationError
from app.core.security import hash_password, verify_password
from app.database.database import atomic
from app.models.activity_log import ActivityType
from app.models.recipient import Recipient, RecipientType
from app.models.user import User, UserRole
from app.services.activity_service import record_activity

logger = logging.getLogger(__name__)

ROLE_ALIASES = {
    "admin": UserRole.ADMIN,
    "hospital": UserRole.RECIPIENT,
    "recipient": UserRole.RECIPIENT,
}


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def register_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: str,
    contact_number: Optional[str] = None,
    address: Optional[str] = None
) -> User:
    """Create a user; hospital accounts also get (or claim) a Recipient row."""
    try:
        user_role = ROLE_ALIASES[role.strip().lower()]
    except KeyError:
        raise ValidationError("Role must be one of: admin, hospital, recipient")
    email = email.strip().lower()

    with atomic(db):
        if get_user_by_email(db, email):
            raise DuplicateRecordError("User already exists")

        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role=user_role,
            is_active=True
        )
        db.add(user)
        db.flush()

        if user_role == UserRole.RECIPIENT:
            _link_recipient(db, user, contact_number, address)

        record_activity(
            db,
            user.id,
            ActivityType.USER_MANAGEMENT,
            f"New {user_role.value} account registered: {email}",
            {"user_id": user.id, "email": email, "role": user_role.value}
        )

    logger.info(f"User registered: {email} ({user_role.value})")
    return user


def _link_recipient(db: Session, user: User, contact_number: Optional[str], address: Optional[str]) -> Recipient:
    recipient = db.query(Recipient).filter(Recipient.organization_name == user.name).first()
    if recipient:
        if recipient.user_id is not None or recipient.email.lower() != user.email:
            raise DuplicateRecordError("A recipient organization with this name already exists")
        recipient.user_id = user.id
        return recipient

    recipient = Recipient(
        organization_name=user.name,
        type=RecipientType.HOSPITAL,
        contact_person=user.name,
        contact_number=contact_number or "",
        email=user.email,
        address=address or "",
        user_id=user.id
    )
    db.add(recipient)
    db.flush()
    return recipient


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Return the active user matching the credentials, or None."""
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def token_claims(user: User) -> dict:
    return {
        "sub": str(user.id),
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
    }
