"""
Authentication routes: register and login through one action-style endpoint.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.auth import UserCreate, UserSummary, UserResponse, AuthResponse
from ..auth import (
    verify_password,
    get_password_hash,
    create_user_token,
    get_required_user,
)
from ..config import get_settings
from ..limiter import limiter
from ..logging_config import api_logger
from ..responses import AuthError, ConflictError, ValidationError

settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("", response_model=AuthResponse)
@limiter.limit(settings.auth_rate_limit)
def authenticate(
    request: Request,
    response: Response,
    credentials: UserCreate,
    action: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Register (?action=register) or log in (?action=login) with email and password."""
    if action not in ("register", "login"):
        raise ValidationError("Invalid action. Use ?action=login or ?action=register")

    if not credentials.email or not credentials.password:
        raise ValidationError("Email and password required")

    email = credentials.email.strip().lower()

    if action == "register":
        response.status_code = status.HTTP_201_CREATED
        return _register(db, email, credentials.password, credentials.app_id)
    return _login(db, email, credentials.password)


def _register(db: Session, email: str, password: str, app_id: Optional[str]) -> AuthResponse:
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("Email already exists")

    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        app_id=app_id or "default",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent registration with the same email
        db.rollback()
        raise ConflictError("Email already exists")
    db.refresh(user)

    api_logger.info("User registered", user_id=user.id)
    return AuthResponse(token=create_user_token(user), user=UserSummary.model_validate(user))


def _login(db: Session, email: str, password: str) -> AuthResponse:
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active or not verify_password(password, user.hashed_password):
        raise AuthError("Invalid credentials")

    return AuthResponse(token=create_user_token(user), user=UserSummary.model_validate(user))


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_required_user)):
    """Get current authenticated user."""
    return current_user
