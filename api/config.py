"""
Portal API Configuration

Environment-based settings for the client portal. Values come from the
process environment, with a local .env file loaded first if present.
"""

import os
from dotenv import load_dotenv
load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Portal settings, read once at startup and passed to create_app()"""

    def __init__(self, **overrides):
        # Database
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portal.db")
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
        self.DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
        self.DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 60))  # Seconds to wait for a pooled connection

        # Signing
        self.AUTH_SECRET_KEY = os.getenv("AUTH_SECRET_KEY")  # Required, no default
        self.AUTH_ALGORITHM = os.getenv("AUTH_ALGORITHM", "HS256")

        # Trading platform manager API
        self.MT5_MANAGER_URL = os.getenv("MT5_MANAGER_URL", "http://127.0.0.1:3000/api")
        self.MT5_TIMEOUT_SECONDS = float(os.getenv("MT5_TIMEOUT_SECONDS", 15))
        self.MT5_DEMO_GROUP = os.getenv("MT5_DEMO_GROUP", "demo\\itrade")
        self.MT5_REAL_GROUP = os.getenv("MT5_REAL_GROUP", "real\\itrade")
        self.DEMO_INITIAL_BALANCE = float(os.getenv("DEMO_INITIAL_BALANCE", 10000))

        # Public links
        self.PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")

        # Email
        self.FROM_EMAIL = os.getenv("FROM_EMAIL")
        self.MAILGUN_API_KEY = os.getenv("MAILGUN_API_KEY")
        self.MAILGUN_DOMAIN = os.getenv("MAILGUN_DOMAIN")
        self.SMTP_SERVER = os.getenv("SMTP_SERVER")
        self.SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
        self.SMTP_USERNAME = os.getenv("SMTP_USERNAME")
        self.SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")

        # HTTP
        self.CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.AUTH_RATE_LIMIT = int(os.getenv("AUTH_RATE_LIMIT", 5))  # Requests per minute per IP on auth endpoints
        self.RATE_LIMIT_ENABLED = _get_bool("RATE_LIMIT_ENABLED", True)

        # Funds
        self.MIN_WITHDRAWAL = float(os.getenv("MIN_WITHDRAWAL", 50))
        self.USDT_WALLET_ADDRESS = os.getenv("USDT_WALLET_ADDRESS", "TLaF6i2GkR7vT4K7Np3m8v9cX8yZk9pQrT")
        self.RECONCILE_INTERVAL_MINUTES = int(os.getenv("RECONCILE_INTERVAL_MINUTES", 10))  # 0 disables the job
        self.RECONCILE_GRACE_MINUTES = int(os.getenv("RECONCILE_GRACE_MINUTES", 15))

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    def check_required(self):
        """Raise if a setting the server cannot run without is missing."""
        if not self.AUTH_SECRET_KEY:
            raise RuntimeError("AUTH_SECRET_KEY must be set")

    def __repr__(self):
        return f"<Settings database={self.DATABASE_URL.split('@')[-1]} mt5={self.MT5_MANAGER_URL}>"


def get_settings() -> Settings:
    return Settings()
