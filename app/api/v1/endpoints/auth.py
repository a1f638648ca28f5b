from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from typing import Optional
import logging
from app.database.database import get_db
from app.core.security import create_access_token, verify_token
from app.models.user import User, UserRole
from app.schemas.common import APIResponse
from app.schemas.user import UserRegister, UserLogin, UserResponse, TokenData
from app.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the bearer token to an active user."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(credentials.credentials)
    user_id = payload.get("id")
    user = db.query(User).filter(User.id == user_id).first() if user_id is not None else None
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, user not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def _require_role(role: UserRole):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {current_user.role.value} is not authorized to access this route"
            )
        return current_user
    return dependency


require_admin = _require_role(UserRole.ADMIN)
require_hospital = _require_role(UserRole.RECIPIENT)


def _token_response(user: User) -> TokenData:
    return TokenData(
        token=create_access_token(user_service.token_claims(user)),
        user=UserResponse.model_validate(user)
    )


@router.post("/register", response_model=APIResponse[TokenData], status_code=status.HTTP_201_CREATED)
def register(user_in: UserRegister, db: Session = Depends(get_db)):
    """Register an admin or hospital account and return a token."""
    user = user_service.register_user(
        db,
        name=user_in.name,
        email=user_in.email,
        password=user_in.password,
        role=user_in.role,
        contact_number=user_in.contact_number,
        address=user_in.address
    )
    return APIResponse(message="User registered successfully", data=_token_response(user))


@router.post("/login", response_model=APIResponse[TokenData])
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = user_service.authenticate_user(db, credentials.email, credentials.password)
    if not user:
        logger.info(f"Failed login attempt for {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    logger.info(f"User logged in: {user.email}")
    return APIResponse(message="Login successful", data=_token_response(user))


@router.get("/profile", response_model=APIResponse[UserResponse])
def get_profile(current_user: User = Depends(get_current_user)):
    return APIResponse(data=UserResponse.model_validate(current_user))
