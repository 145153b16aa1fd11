"""Process-wide clinic configuration.

Settings are read once from the clinic_settings table, with CLINIC_<NAME>
environment variables (or a .env file) taking precedence, and cached until
reload_settings() is called.
"""

import logging
import os
from datetime import time
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from clinic_booking.database.settings_repository import SettingsRepository
from clinic_booking.validation import validate

load_dotenv(override=True)

logger = logging.getLogger(__name__)

ENV_PREFIX = "CLINIC_"


class ClinicSettings(BaseModel):
    """Typed view of the clinic configuration."""

    clinic_name: str = "City Health Clinic"
    business_hours_start: time = time(8, 0)
    business_hours_end: time = time(17, 0)
    # Minutes kept free around existing appointments when suggesting slots
    appointment_buffer: int = Field(15, ge=0)
    # Hours of notice required for cancellation
    cancellation_policy: int = Field(24, ge=0)
    slot_granularity: int = Field(15, gt=0)
    enforce_cancellation_policy: bool = False

    @model_validator(mode="after")
    def check_hours(self):
        if self.business_hours_end <= self.business_hours_start:
            raise ValueError("business_hours_end must be after business_hours_start")
        return self


def load_settings() -> ClinicSettings:
    """Build settings from the database, overridden by environment variables."""
    values = dict(SettingsRepository().all())
    for name in ClinicSettings.model_fields:
        env_value = os.environ.get(ENV_PREFIX + name.upper())
        if env_value is not None:
            values[name] = env_value
    settings = validate(ClinicSettings, values)
    logger.debug("Loaded clinic settings: %s", settings)
    return settings


@lru_cache(maxsize=1)
def get_settings() -> ClinicSettings:
    """Get the cached process-wide settings."""
    return load_settings()


def reload_settings() -> ClinicSettings:
    """Drop the cached settings and read them again."""
    get_settings.cache_clear()
    return get_settings()
