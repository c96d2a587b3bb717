"""
Tiered request rate limiting on top of the `limits` library.

Three tiers cover the API: ``strict`` for mutations, ``moderate`` for
authenticated reads and ``relaxed`` for public reads. A check either allows the
request (``None``) or returns the 429 response to send back verbatim.
"""
import logging
import math
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Mapping, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from limits import parse, strategies
from limits.storage import storage_from_string
from slowapi.util import get_remote_address

from cricketstore.config import Settings
from cricketstore.core.errors import ErrorCode, create_error_response

logger = logging.getLogger(__name__)

STRATEGIES = {
    "fixed-window": strategies.FixedWindowRateLimiter,
    "moving-window": strategies.MovingWindowRateLimiter,
}


class RateLimitTier(str, Enum):
    STRICT = "strict"
    MODERATE = "moderate"
    RELAXED = "relaxed"


class RateLimiter:
    def __init__(
        self,
        tiers: Mapping[RateLimitTier, str],
        storage_uri: str = "memory://",
        strategy: str = "moving-window",
        enabled: bool = True,
    ):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown rate limit strategy: {strategy}")
        self.enabled = enabled
        self._limits = {RateLimitTier(tier): parse(expr) for tier, expr in tiers.items()}
        self._storage = storage_from_string(storage_uri)
        self._limiter = STRATEGIES[strategy](self._storage)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        return cls(
            tiers={
                RateLimitTier.STRICT: settings.RATE_LIMIT_STRICT,
                RateLimitTier.MODERATE: settings.RATE_LIMIT_MODERATE,
                RateLimitTier.RELAXED: settings.RATE_LIMIT_RELAXED,
            },
            storage_uri=settings.RATE_LIMIT_STORAGE_URI,
            strategy=settings.RATE_LIMIT_STRATEGY,
            enabled=settings.RATE_LIMIT_ENABLED,
        )

    def check_rate_limit(self, identifier: str, tier: RateLimitTier = RateLimitTier.MODERATE) -> Optional[JSONResponse]:
        """
        Count one request for `identifier` against `tier`.
        Returns None when allowed, otherwise the 429 response with the
        X-RateLimit-* headers. Storage failures let the request through.
        """
        if not self.enabled:
            return None
        tier = RateLimitTier(tier)
        item = self._limits[tier]
        try:
            allowed = self._limiter.hit(item, tier.value, identifier)
            if allowed:
                return None
            stats = self._limiter.get_window_stats(item, tier.value, identifier)
        except Exception:
            logger.exception("Rate limit check failed for %s (%s); allowing request", identifier, tier.value)
            return None

        reset_at = datetime.fromtimestamp(stats.reset_time, tz=timezone.utc)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        headers: Dict[str, str] = {
            "X-RateLimit-Limit": str(item.amount),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": reset_at.isoformat(),
            "Retry-After": str(retry_after),
        }
        logger.info("Rate limit exceeded for %s on %s tier", identifier, tier.value)
        return create_error_response(
            ErrorCode.RATE_LIMIT_EXCEEDED,
            details={"limit": item.amount, "remaining": 0, "reset": reset_at.isoformat()},
            headers=headers,
        )

    def reset(self) -> None:
        self._storage.reset()


def get_ip_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return get_remote_address(request)


def get_rate_limit_identifier(user_id: Optional[str], ip: Optional[str]) -> str:
    if user_id:
        return f"user:{user_id}"
    if ip:
        return f"ip:{ip}"
    return "anonymous"
