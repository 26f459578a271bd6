"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Placeholder accepted outside production only
DEV_SIGNING_KEY: Final[str] = "CHANGE_ME_dev_only_token_signing_key_0123456789"

# Load .env in development (no-op when missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    SECRET_KEY: str
        Flask secret. Defaults to a development placeholder.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string for the ``sqlalchemy`` session store.
    REDIS_URL: str | None
        Redis connection string; required by the ``redis`` session store.
    SESSION_STORE_BACKEND: str
        ``"sqlalchemy"`` (default), ``"redis"`` or ``"memory"``.
    ACCESS_TOKEN_TTL_SECONDS: int
        Access token lifetime (15 minutes).
    REFRESH_TOKEN_TTL_SECONDS: int
        Lifetime of each refresh token (14 days).
    SESSION_MAX_LIFETIME_SECONDS: int
        Absolute session cap from login (90 days); ``0`` disables it.
    REFRESH_RETENTION_SECONDS: int
        How long consumed/expired refresh records are kept for replay
        detection before ``purge_expired`` removes them (7 days).
    TOKEN_ALGORITHM: str
        HMAC algorithm used by PyJWT.
    TOKEN_ISSUER: str
        ``iss`` claim written and required on access tokens.
    TOKEN_LEEWAY_SECONDS: int
        Clock-skew tolerance when checking ``exp``.
    TOKEN_SIGNING_KEY: str
        Current signing secret. Production refuses the placeholder.
    TOKEN_SIGNING_KEY_ID: str
        ``kid`` of the current signing key.
    TOKEN_PREVIOUS_SIGNING_KEYS: str
        Retired keys as comma separated ``kid:secret`` pairs.
    TOKEN_KEY_ROTATED_AT: str | None
        ISO-8601 time the previous keys were retired.
    TOKEN_KEY_OVERLAP_SECONDS: int
        How long retired keys keep verifying tokens (1 hour).
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # Storage
    SESSION_STORE_BACKEND = os.getenv("SESSION_STORE_BACKEND", "sqlalchemy")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = os.getenv("REDIS_URL")

    # Session lifetimes
    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 900)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 1_209_600)
    SESSION_MAX_LIFETIME_SECONDS = env_int("SESSION_MAX_LIFETIME_SECONDS", 7_776_000)
    REFRESH_RETENTION_SECONDS = env_int("REFRESH_RETENTION_SECONDS", 604_800)

    # Access token signing
    TOKEN_ALGORITHM = os.getenv("TOKEN_ALGORITHM", "HS256")
    TOKEN_ISSUER = os.getenv("TOKEN_ISSUER", "tokensession")
    TOKEN_LEEWAY_SECONDS = env_int("TOKEN_LEEWAY_SECONDS", 0)
    TOKEN_SIGNING_KEY = os.getenv("TOKEN_SIGNING_KEY", DEV_SIGNING_KEY)
    TOKEN_SIGNING_KEY_ID = os.getenv("TOKEN_SIGNING_KEY_ID", "primary")
    TOKEN_PREVIOUS_SIGNING_KEYS = os.getenv("TOKEN_PREVIOUS_SIGNING_KEYS", "")
    TOKEN_KEY_ROTATED_AT = os.getenv("TOKEN_KEY_ROTATED_AT")
    TOKEN_KEY_OVERLAP_SECONDS = env_int("TOKEN_KEY_OVERLAP_SECONDS", 3600)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    SESSION_STORE_BACKEND = "sqlalchemy"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = None
    TOKEN_SIGNING_KEY = "testing-signing-key-that-is-long-enough-for-hs256"
    TOKEN_PREVIOUS_SIGNING_KEYS = ""
    TOKEN_KEY_ROTATED_AT = None
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled. :func:`validate_config` rejects the
    placeholder signing key.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_config(config: Mapping[str, object]) -> None:
    """Refuse unsafe settings outside development and testing.

    Raises
    ------
    RuntimeError
        When a production app (not ``DEBUG``/``TESTING``) still uses the
        placeholder signing key.
    """
    if config.get("DEBUG") or config.get("TESTING"):
        return
    key = str(config.get("TOKEN_SIGNING_KEY") or "")
    if not key or key == DEV_SIGNING_KEY:
        raise RuntimeError("TOKEN_SIGNING_KEY must be set to a real secret in production.")
