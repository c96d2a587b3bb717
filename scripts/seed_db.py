"""Seeds the data directory with categories, a few products and an admin account.

Usage:
    python scripts/seed_db.py --admin-email admin@example.com --admin-password change-me
Existing table files are replaced for categories and products; users are only added.
"""
import argparse
import logging

from cricketstore.config import get_settings
from cricketstore.core.identity import Role
from cricketstore.core.security import hash_password
from cricketstore.database import DuplicateRecordError, FileBackedDB
from cricketstore.models.fields import now_iso
from cricketstore.models.user import User

logger = logging.getLogger("seed_db")

CATEGORIES = [
    {
        "slug": "cricket-bats",
        "name": "Cricket Bats",
        "description": "English and Kashmir willow bats for every level.",
        "long_description": "Hand-crafted bats from leading makers, graded willow and balanced for power and control.",
        "image": "https://images.example.com/categories/bats.jpg",
    },
    {
        "slug": "cricket-balls",
        "name": "Cricket Balls",
        "description": "Leather and training balls for match and practice.",
        "long_description": "Four-piece and two-piece leather balls plus tennis and incrediballs for the nets.",
        "image": "https://images.example.com/categories/balls.jpg",
    },
    {
        "slug": "protective-gear",
        "name": "Protective Gear",
        "description": "Pads, gloves and helmets that meet safety standards.",
        "long_description": "Batting pads, gloves, thigh guards and helmets sized for juniors through adults.",
        "image": "https://images.example.com/categories/protective.jpg",
    },
]

PRODUCTS = [
    {
        "name": "Grade 1 English Willow Bat",
        "company": "Gray-Nicolls",
        "category": "cricket-bats",
        "image_src": "https://images.example.com/products/gn-bat.jpg",
        "image_alt": "Grade 1 English willow bat",
        "description": "Premium grade 1 English willow with a mid-to-low sweet spot.",
        "price_regular": 449.0,
        "price_sale": 399.0,
        "price_currency": "USD",
        "badge_text": "Sale",
        "badge_background_color": "#DC2626",
        "sku": "BAT-GN-001",
        "stock_quantity": 12,
    },
    {
        "name": "Club Match Leather Ball",
        "company": "Kookaburra",
        "category": "cricket-balls",
        "image_src": "https://images.example.com/products/kb-ball.jpg",
        "image_alt": "Red leather match ball",
        "description": "Four-piece leather ball for club and school matches.",
        "price_regular": 34.99,
        "price_currency": "USD",
        "sku": "BALL-KB-004",
        "stock_quantity": 120,
    },
    {
        "name": "Test Batting Helmet",
        "company": "Masuri",
        "category": "protective-gear",
        "image_src": "https://images.example.com/products/masuri-helmet.jpg",
        "image_alt": "Navy batting helmet with steel grille",
        "description": "Lightweight helmet with a titanium grille and adjustable fit.",
        "price_regular": 219.0,
        "price_currency": "USD",
        "sku": "HELM-MA-010",
        "stock_quantity": 8,
    },
]


def seed(db: FileBackedDB, admin_email: str, admin_password: str) -> None:
    now = now_iso()
    for table in ("categories", "products"):
        path = db._file_path(table)
        if path.exists():
            path.unlink()

    for cat in CATEGORIES:
        db.create_record("categories", dict(cat, created_at=now, updated_at=now), unique=("slug",))
    logger.info("Inserted %d categories", len(CATEGORIES))

    for prod in PRODUCTS:
        row = dict(prod, low_stock_threshold=10, track_inventory=True, created_at=now, updated_at=now)
        db.create_record("products", row, unique=("sku",))
    logger.info("Inserted %d products", len(PRODUCTS))

    admin = User(email=admin_email.lower(), password_hash=hash_password(admin_password), role=Role.ADMIN,
                 display_name="Store Admin", created_at=now)
    try:
        db.create_record("users", admin.to_dict(), unique=("email",))
        logger.info("Created admin %s", admin.email)
    except DuplicateRecordError:
        logger.info("Admin %s already exists", admin.email)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the cricket store data directory")
    parser.add_argument("--admin-email", default="admin@example.com")
    parser.add_argument("--admin-password", required=True)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = get_settings()
    db = FileBackedDB(settings.DATA_DIR, settings.table_files())
    seed(db, args.admin_email, args.admin_password)


if __name__ == "__main__":
    main()
