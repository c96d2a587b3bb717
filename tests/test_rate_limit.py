import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from cricketstore.core.rate_limit import RateLimiter, RateLimitTier, get_ip_address, get_rate_limit_identifier
from cricketstore.main import create_app

TIERS = {
    RateLimitTier.STRICT: "2/minute",
    RateLimitTier.MODERATE: "3/minute",
    RateLimitTier.RELAXED: "5/minute",
}


def _request(headers=None, client=("10.0.0.9", 5555)):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "query_string": b"", "headers": raw, "client": client})


@pytest.mark.parametrize("strategy", ["fixed-window", "moving-window"])
def test_allows_up_to_limit_then_rejects(strategy):
    limiter = RateLimiter(TIERS, strategy=strategy)
    assert limiter.check_rate_limit("user:1", RateLimitTier.STRICT) is None
    assert limiter.check_rate_limit("user:1", RateLimitTier.STRICT) is None

    rejected = limiter.check_rate_limit("user:1", RateLimitTier.STRICT)
    assert rejected is not None
    assert rejected.status_code == 429
    assert rejected.headers["X-RateLimit-Limit"] == "2"
    assert rejected.headers["X-RateLimit-Remaining"] == "0"
    assert "X-RateLimit-Reset" in rejected.headers
    assert int(rejected.headers["Retry-After"]) >= 1


def test_identifiers_and_tiers_are_independent():
    limiter = RateLimiter(TIERS)
    for _ in range(2):
        assert limiter.check_rate_limit("user:1", RateLimitTier.STRICT) is None
    assert limiter.check_rate_limit("user:1", RateLimitTier.STRICT) is not None
    # another caller, and another tier for the same caller, still have quota
    assert limiter.check_rate_limit("user:2", RateLimitTier.STRICT) is None
    assert limiter.check_rate_limit("user:1", RateLimitTier.MODERATE) is None


def test_reset_clears_counters():
    limiter = RateLimiter(TIERS)
    for _ in range(2):
        limiter.check_rate_limit("ip:1.2.3.4", RateLimitTier.STRICT)
    assert limiter.check_rate_limit("ip:1.2.3.4", RateLimitTier.STRICT) is not None
    limiter.reset()
    assert limiter.check_rate_limit("ip:1.2.3.4", RateLimitTier.STRICT) is None


def test_disabled_limiter_always_allows():
    limiter = RateLimiter(TIERS, enabled=False)
    for _ in range(10):
        assert limiter.check_rate_limit("user:1", RateLimitTier.STRICT) is None


def test_storage_failure_fails_open(monkeypatch):
    limiter = RateLimiter(TIERS)

    def boom(*args, **kwargs):
        raise ConnectionError("storage down")

    monkeypatch.setattr(limiter._limiter, "hit", boom)
    assert limiter.check_rate_limit("user:1", RateLimitTier.STRICT) is None


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        RateLimiter(TIERS, strategy="token-bucket")


def test_rate_limit_identifier():
    assert get_rate_limit_identifier("42", "1.2.3.4") == "user:42"
    assert get_rate_limit_identifier(None, "1.2.3.4") == "ip:1.2.3.4"
    assert get_rate_limit_identifier(None, None) == "anonymous"
    assert get_rate_limit_identifier("42", "1.2.3.4") != get_rate_limit_identifier(None, "1.2.3.4")


def test_ip_address_resolution():
    assert get_ip_address(_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})) == "203.0.113.7"
    assert get_ip_address(_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"
    assert get_ip_address(_request()) == "10.0.0.9"


def test_anonymous_public_reads_limited_by_ip(make_settings):
    app = create_app(settings=make_settings(RATE_LIMIT_RELAXED="2/minute"))
    client = TestClient(app)
    headers = {"X-Forwarded-For": "203.0.113.50"}
    assert client.get("/api/products", headers=headers).status_code == 200
    assert client.get("/api/products", headers=headers).status_code == 200
    resp = client.get("/api/products", headers=headers)
    assert resp.status_code == 429
    assert resp.json()["code"] == "RATE_LIMIT_EXCEEDED"
    assert resp.json()["error"] == "Too many requests. Please try again later."

    # a different address has its own window
    assert client.get("/api/products", headers={"X-Forwarded-For": "203.0.113.51"}).status_code == 200


def test_rate_limiting_can_be_disabled(make_settings, make_user_for):
    app = create_app(settings=make_settings(RATE_LIMIT_STRICT="1/minute", RATE_LIMIT_ENABLED=False))
    client = TestClient(app)
    _, header = make_user_for(app.state.db, app.state.settings)
    for _ in range(3):
        assert client.delete("/api/wishlist/99", headers=header).status_code == 404
