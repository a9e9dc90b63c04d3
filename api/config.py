"""
Environment-aware configuration.
Token secrets and lifetimes come from the environment (or a .env file).
TTL values accept plain seconds or a suffixed number such as "15m" or "10d".
"""
import os
import re
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

_TTL_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_TTL_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_ttl(value) -> timedelta:
    """
    Turn a TTL setting into a timedelta.
    Accepts ints, timedeltas, "900", "15m", "1h", "10d".
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise ValueError("TTL must not be negative")
        return timedelta(seconds=value)
    match = _TTL_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid TTL value: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _TTL_UNITS[unit])


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")

    # Access and refresh tokens are signed with distinct secrets
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-token-secret-please-change-me")
    ACCESS_TOKEN_TTL = parse_ttl(os.getenv("ACCESS_TOKEN_TTL", "1h"))
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-token-secret-please-change-me")
    REFRESH_TOKEN_TTL = parse_ttl(os.getenv("REFRESH_TOKEN_TTL", "10d"))
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    COOKIE_SECURE = _env_flag("COOKIE_SECURE", "true")
    REVOKE_SESSIONS_ON_PASSWORD_CHANGE = _env_flag("REVOKE_SESSIONS_ON_PASSWORD_CHANGE", "true")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    # Let the catch-all handler answer instead of re-raising into the test client
    PROPAGATE_EXCEPTIONS = False


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
