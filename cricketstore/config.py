from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from functools import lru_cache


class Settings(BaseSettings):
    ENV: str = "development"
    DATA_DIR: Path = Path("data")  # where the CSV table files live
    USERS_FILE: str = "users.csv"
    PRODUCTS_FILE: str = "products.csv"
    CATEGORIES_FILE: str = "categories.csv"
    ORDERS_FILE: str = "orders.csv"
    CARTS_FILE: str = "carts.csv"
    WISHLISTS_FILE: str = "wishlists.csv"

    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # rate limit expressions use the `limits` notation, e.g. "10/minute"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_STRATEGY: str = "moving-window"
    RATE_LIMIT_STRICT: str = "10/minute"
    RATE_LIMIT_MODERATE: str = "60/minute"
    RATE_LIMIT_RELAXED: str = "100/minute"

    TAX_RATE: float = 0.08
    SHIPPING_COST: float = 0.0
    DEFAULT_CURRENCY: str = "USD"

    CORS_ORIGINS: str = ""

    # Example .env:
    # DATA_DIR=./data
    # RATE_LIMIT_STORAGE_URI=redis://localhost:6379/0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

    def table_files(self):
        return {
            "users": self.USERS_FILE,
            "products": self.PRODUCTS_FILE,
            "categories": self.CATEGORIES_FILE,
            "orders": self.ORDERS_FILE,
            "carts": self.CARTS_FILE,
            "wishlists": self.WISHLISTS_FILE,
        }


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
