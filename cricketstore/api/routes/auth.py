# cricketstore/api/routes/auth.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Form, Request, Response
from fastapi.security import OAuth2PasswordRequestForm

from cricketstore.api.deps import get_app_settings, get_db, get_rate_limiter, guard
from cricketstore.api.schemas.user import TokenResponse, UserCreate, UserOut
from cricketstore.config import Settings
from cricketstore.core.errors import ApiError, ErrorCode, GuardRejected, with_error_handler
from cricketstore.core.identity import Identity, Role
from cricketstore.core.rate_limit import RateLimiter, RateLimitTier, get_ip_address, get_rate_limit_identifier
from cricketstore.core.security import create_access_token, hash_password, verify_password
from cricketstore.database import DuplicateRecordError, FileBackedDB
from cricketstore.models.fields import now_iso
from cricketstore.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _throttle_by_ip(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    # credential endpoints have no identity yet; key them by caller address
    rejected = limiter.check_rate_limit(get_rate_limit_identifier(None, get_ip_address(request)), RateLimitTier.STRICT)
    if rejected is not None:
        raise GuardRejected(rejected)


def _authenticate(db: FileBackedDB, email: str, password: str) -> Optional[User]:
    row = db.get_record("users", "email", (email or "").strip().lower())
    if not row:
        return None
    user = User.from_dict(row)
    if not verify_password(password, user.password_hash):
        return None
    return user


def _issue_token(settings: Settings, user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )


@router.post("/register", response_model=UserOut, status_code=201, dependencies=[Depends(_throttle_by_ip)])
@with_error_handler("POST /api/auth/register")
def register(payload: UserCreate = Body(...), db: FileBackedDB = Depends(get_db)):
    """Create a customer account. Roles are only granted by an admin."""
    user = User(
        email=str(payload.email).lower(),
        password_hash=hash_password(payload.password),
        role=Role.CUSTOMER,
        display_name=payload.display_name,
        created_at=now_iso(),
    )
    try:
        row = db.create_record("users", user.to_dict(), unique=("email",))
    except DuplicateRecordError:
        raise ApiError(ErrorCode.VALIDATION_DUPLICATE, "An account with this email already exists")
    return User.from_dict(row).to_public()


@router.post("/token", response_model=TokenResponse, dependencies=[Depends(_throttle_by_ip)])
@with_error_handler("POST /api/auth/token")
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: FileBackedDB = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Token endpoint used by OAuth2PasswordRequestForm clients.
    `username` carries the account email.
    """
    user = _authenticate(db, form_data.username, form_data.password)
    if user is None:
        raise ApiError(ErrorCode.AUTH_INVALID_TOKEN, "Invalid email or password")
    return {"access_token": _issue_token(settings, user), "token_type": "bearer"}


@router.post("/login", dependencies=[Depends(_throttle_by_ip)])
@with_error_handler("POST /api/auth/login")
def login_form(
    response: Response,
    email: str = Form(...),
    password: str = Form(...),
    db: FileBackedDB = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Form login for browser flows: sets an 'access_token' cookie."""
    user = _authenticate(db, email, password)
    if user is None:
        raise ApiError(ErrorCode.AUTH_INVALID_TOKEN, "Invalid email or password")
    response.set_cookie(
        key="access_token",
        value=_issue_token(settings, user),
        httponly=True,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return user.to_public()


@router.get("/me")
@with_error_handler("GET /api/auth/me")
def me(identity: Identity = Depends(guard(RateLimitTier.MODERATE))) -> Dict[str, Any]:
    return {"user_id": identity.user_id, "email": identity.email, "role": identity.role.value, "user": identity.user}
