"""
Request dependencies: injected services, the auth guard and the rate-limit guard.

Services are built once by the application factory and live on ``app.state``.
Guards short-circuit by raising ``GuardRejected`` with a pre-built response, so
the route body never runs for a rejected request.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.responses import JSONResponse

from cricketstore.config import Settings
from cricketstore.core.errors import ApiError, ErrorCode, GuardRejected, create_error_response
from cricketstore.core.identity import Identity, IdentityProvider, Role
from cricketstore.core.rate_limit import RateLimiter, RateLimitTier, get_ip_address, get_rate_limit_identifier
from cricketstore.database import FileBackedDB

logger = logging.getLogger(__name__)


def get_db(request: Request) -> FileBackedDB:
    """
    Dependency that returns the file-backed DB built at startup.
    Usage:
        db: FileBackedDB = Depends(get_db)
    """
    return request.app.state.db


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


@dataclass
class AuthResult:
    success: bool
    identity: Optional[Identity] = None
    error: Optional[JSONResponse] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.identity.user_id if self.identity else None

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.identity.user if self.identity else None

    @property
    def role(self) -> Optional[Role]:
        return self.identity.role if self.identity else None


def require_auth(provider: IdentityProvider, request: Request) -> AuthResult:
    try:
        identity = provider.get_current_user(request)
    except Exception as exc:
        logger.error("Auth check failed: %s", exc, exc_info=exc)
        return AuthResult(success=False, error=create_error_response(ErrorCode.SERVER_ERROR, "Authentication failed"))
    if identity is None:
        return AuthResult(success=False, error=create_error_response(ErrorCode.AUTH_REQUIRED))
    return AuthResult(success=True, identity=identity)


def require_admin(provider: IdentityProvider, request: Request) -> AuthResult:
    result = require_auth(provider, request)
    if not result.success:
        return result
    if not result.identity.is_admin:
        return AuthResult(success=False, error=create_error_response(ErrorCode.AUTH_ADMIN_REQUIRED))
    return result


def parse_id(raw: str, label: str = "ID") -> int:
    """Path ids are numeric; anything else is a validation failure, not a lookup."""
    value = (raw or "").strip()
    if not (value.isascii() and value.isdigit()) or int(value) <= 0:
        raise ApiError(ErrorCode.VALIDATION_FAILED, f"Invalid {label}")
    return int(value)


# --- FastAPI dependencies ---

def current_identity(request: Request, provider: IdentityProvider = Depends(get_identity_provider)) -> Identity:
    result = require_auth(provider, request)
    if not result.success:
        raise GuardRejected(result.error)
    return result.identity


def admin_identity(request: Request, provider: IdentityProvider = Depends(get_identity_provider)) -> Identity:
    result = require_admin(provider, request)
    if not result.success:
        raise GuardRejected(result.error)
    return result.identity


def optional_identity(request: Request, provider: IdentityProvider = Depends(get_identity_provider)) -> Optional[Identity]:
    result = require_auth(provider, request)
    if result.success:
        return result.identity
    # a lookup failure is still a failure; a missing session is not
    if result.error is not None and result.error.status_code >= 500:
        raise GuardRejected(result.error)
    return None


def guard(tier: RateLimitTier, identity_dependency: Callable = current_identity):
    """
    Compose the auth guard and the rate limiter into one dependency.
    Auth runs first; the rate-limit key uses the user id when there is one,
    the caller's IP address otherwise.

        identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity))
    """

    def _dependency(
        request: Request,
        identity: Optional[Identity] = Depends(identity_dependency),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> Optional[Identity]:
        key = get_rate_limit_identifier(identity.user_id if identity else None, get_ip_address(request))
        rejected = limiter.check_rate_limit(key, tier)
        if rejected is not None:
            raise GuardRejected(rejected)
        return identity

    return _dependency
