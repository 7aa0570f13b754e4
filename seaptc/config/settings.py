"""
seaptc/config/settings.py
Application settings loaded from environment variables.

A .env file in the working directory is loaded first.
"""
import os
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv

from seaptc.exceptions import ConfigurationInvalidError

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./seaptc.db"
EMULATOR_HOST_KEY = "DATASTORE_EMULATOR_HOST"


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_float_env(key: str, default: float) -> float:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationInvalidError(f"{key} must be a number, got {value!r}")


def resolve_database_url(use_emulator: bool) -> str:
    """
    Database URL for the conference store.

    With the emulator flag set, the development database named by
    DATASTORE_EMULATOR_HOST is required. Otherwise that variable is removed
    from the environment so that no library picks it up, and DATABASE_URL is
    used.
    """
    if use_emulator:
        url = os.getenv(EMULATOR_HOST_KEY, "")
        if not url:
            raise ConfigurationInvalidError(
                f"Datastore emulator host not set. Export {EMULATOR_HOST_KEY} "
                f"with the development database URL, e.g. {DEFAULT_DATABASE_URL}"
            )
        return url
    os.environ.pop(EMULATOR_HOST_KEY, None)
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


class Settings:
    """
    Settings for one application instance.

    Read once at startup; tests construct their own instance.
    """

    def __init__(self):
        self.use_datastore_emulator: bool = get_bool_env("USE_DATASTORE_EMULATOR", False)
        self.database_url: str = resolve_database_url(self.use_datastore_emulator)

        # App Engine sets these in production
        self.gae_instance: str = os.getenv("GAE_INSTANCE", "")
        self.gae_service: str = os.getenv("GAE_SERVICE", "")
        self.project_id: str = os.getenv("GOOGLE_CLOUD_PROJECT", "")

        self.environment: str = os.getenv("ENVIRONMENT", "development")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self.cache_ttl_seconds: float = get_float_env("CONFERENCE_CACHE_TTL_SECONDS", 600)

        hours = os.getenv("TIME_OVERRIDE_HOURS")
        self.time_override: Optional[timedelta] = None
        if hours:
            self.time_override = timedelta(hours=get_float_env("TIME_OVERRIDE_HOURS", 0))

    @property
    def dev_mode(self) -> bool:
        return not self.gae_instance

    @property
    def docs_enabled(self) -> bool:
        return self.environment != "production"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
