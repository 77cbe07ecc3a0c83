"""
Configuration management for the FoodLink backend.
"""

import os

from dotenv import load_dotenv

from errors import ConfigError

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration class for the application."""

    # Identity gateway: signs session tokens, required at startup
    AUTH_SECRET = os.getenv("FOODLINK_AUTH_SECRET")
    SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", 60 * 60 * 8))
    MIN_PASSWORD_LENGTH = 6

    # Data store
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./foodlink.db")
    SQL_ECHO = _flag("SQL_ECHO")

    # Payment bridges (public keys go to the browser widget)
    FLUTTERWAVE_PUBLIC_KEY = os.getenv("FLUTTERWAVE_PUBLIC_KEY")
    FLUTTERWAVE_SECRET_KEY = os.getenv("FLUTTERWAVE_SECRET_KEY")
    PAYSTACK_PUBLIC_KEY = os.getenv("PAYSTACK_PUBLIC_KEY")
    PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY")
    VERIFY_PAYMENTS = _flag("VERIFY_PAYMENTS")
    CURRENCY = "NGN"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def validate(cls):
        """Validate that all required configuration is present."""
        missing = []

        if not cls.AUTH_SECRET:
            missing.append("FOODLINK_AUTH_SECRET")
        if not cls.DATABASE_URL:
            missing.append("DATABASE_URL")

        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

        return True
