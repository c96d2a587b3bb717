# tests/conftest.py
import json
import os
import sys

import pytest
from fastapi.testclient import TestClient

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from cricketstore.config import Settings  # noqa: E402
from cricketstore.core.identity import Role  # noqa: E402
from cricketstore.core.security import create_access_token, hash_password  # noqa: E402
from cricketstore.main import create_app  # noqa: E402
from cricketstore.models.fields import now_iso  # noqa: E402

TEST_SECRET = "test-secret"


@pytest.fixture
def make_settings(tmp_path):
    """
    Build Settings for an isolated data directory.
    Usage: s = make_settings(RATE_LIMIT_STRICT="2/minute")
    """
    def _fn(**overrides):
        values = {
            "ENV": "test",
            "DATA_DIR": tmp_path / "data",
            "JWT_SECRET": TEST_SECRET,
            "RATE_LIMIT_STRATEGY": "fixed-window",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _fn


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def app(settings):
    return create_app(settings=settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(app):
    return app.state.db


@pytest.fixture
def auth_header(settings):
    """
    Build an Authorization header for a user row (or a raw token string).
    Usage: hdr = auth_header(user_row)
    """
    def _h(user_or_token):
        if isinstance(user_or_token, dict):
            tok = create_access_token(str(user_or_token["id"]), settings.JWT_SECRET, settings.JWT_ALGORITHM, 30)
        else:
            tok = user_or_token
        return {"Authorization": f"Bearer {tok}"}
    return _h


@pytest.fixture
def make_user(db):
    """
    Create a user directly in the file-backed DB and return the stored row.
    Usage: row = make_user(email="a@example.com", role=Role.ADMIN)
    """
    def _fn(email=None, password="testpass123", role=Role.CUSTOMER, display_name=None):
        email = email or f"user_{os.urandom(4).hex()}@example.com"
        return db.create_record(
            "users",
            {
                "email": email,
                "password_hash": hash_password(password),
                "role": role.value,
                "display_name": display_name or email.split("@")[0],
                "created_at": now_iso(),
            },
        )
    return _fn


@pytest.fixture
def make_user_for():
    """
    Create a user in an arbitrary app's DB (for tests that build their own app)
    and return (row, auth_header).
    """
    def _fn(db, settings, admin=False, email=None):
        row = db.create_record(
            "users",
            {
                "email": email or f"user_{os.urandom(4).hex()}@example.com",
                "password_hash": hash_password("testpass123"),
                "role": (Role.ADMIN if admin else Role.CUSTOMER).value,
                "created_at": now_iso(),
            },
        )
        tok = create_access_token(str(row["id"]), settings.JWT_SECRET, settings.JWT_ALGORITHM, 30)
        return row, {"Authorization": f"Bearer {tok}"}
    return _fn


@pytest.fixture
def customer(make_user):
    return make_user(email="customer@example.com")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role=Role.ADMIN)


@pytest.fixture
def make_category(db):
    def _fn(slug="cricket-bats", name="Cricket Bats"):
        return db.create_record(
            "categories",
            {
                "slug": slug,
                "name": name,
                "description": "Bats for every level of play.",
                "long_description": "English and Kashmir willow bats from the best makers in the game.",
                "image": "https://images.example.com/bats.jpg",
                "created_at": now_iso(),
            },
        )
    return _fn


@pytest.fixture
def make_product(db):
    """
    Create a product row. Usage: p = make_product(name="Bat", price_regular=100, stock_quantity=3)
    """
    def _fn(name="Willow Bat", price_regular=100.0, price_sale=None, stock_quantity=10, track_inventory=True, **extra):
        row = {
            "name": name,
            "company": extra.pop("company", "Gray-Nicolls"),
            "category": extra.pop("category", "cricket-bats"),
            "image_src": "https://images.example.com/bat.jpg",
            "image_alt": name,
            "description": "A well balanced cricket bat.",
            "price_regular": price_regular,
            "price_sale": price_sale,
            "price_currency": "USD",
            "stock_quantity": stock_quantity,
            "low_stock_threshold": 2,
            "track_inventory": track_inventory,
            "created_at": now_iso(),
        }
        row.update(extra)
        return db.create_record("products", row)
    return _fn


@pytest.fixture
def make_order(db):
    """
    Insert an order row directly (bypassing checkout).
    Usage: o = make_order(customer_email="c@example.com", status="pending", payment_status="paid")
    """
    def _fn(customer_email="customer@example.com", status="pending", payment_status="unpaid", items=None, total=108.0, **extra):
        items = items or [{"product_id": 1, "product_name": "Willow Bat", "product_image": None, "quantity": 1, "price": 100.0, "total": 100.0}]
        row = {
            "order_number": f"ORD-TEST-{os.urandom(3).hex().upper()}",
            "customer_name": "Test Customer",
            "customer_email": customer_email,
            "shipping_address": "1 Lord's Ground",
            "shipping_city": "London",
            "shipping_state": "LDN",
            "shipping_zip": "NW8 8QN",
            "shipping_country": "UK",
            "items": json.dumps(items),
            "subtotal": 100.0,
            "tax": 8.0,
            "shipping_cost": 0.0,
            "total": total,
            "currency": "USD",
            "status": status,
            "payment_status": payment_status,
            "created_at": extra.pop("created_at", now_iso()),
        }
        row.update(extra)
        return db.create_record("orders", row)
    return _fn
