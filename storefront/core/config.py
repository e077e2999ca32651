# storefront/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string)
      - JWT_SECRET (signing secret shared with the identity service)
      - RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET (payment gateway credentials)

    Optional:
      - REQUIRE_PAYMENT_BEFORE_DELIVERY (refuse to deliver unpaid orders)
      - PAYMENT_GATEWAY_* (timeouts and retry policy for the gateway)
    """

    PROJECT_NAME: str = "Pottery Storefront API"
    API_V1_STR: str = "/api"

    DATABASE_URL: str

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    # Razorpay
    RAZORPAY_KEY_ID: str
    RAZORPAY_KEY_SECRET: str
    RAZORPAY_BASE_URL: str = "https://api.razorpay.com/v1"

    PAYMENT_CURRENCY: str = "INR"
    PAYMENT_GATEWAY_TIMEOUT: float = 10.0
    PAYMENT_GATEWAY_MAX_RETRIES: int = 2
    PAYMENT_GATEWAY_RETRY_DELAY: float = 0.5

    # Attempts to empty the cart after an order is placed
    CART_CLEAR_RETRIES: int = 3

    # Base behavior lets admins deliver unpaid orders
    REQUIRE_PAYMENT_BEFORE_DELIVERY: bool = False

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
