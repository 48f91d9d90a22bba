"""
Application settings

Values come from environment variables (a local .env file is loaded first).
Services call get_settings(), which reads the environment once per process.
"""
import os
from functools import lru_cache
from typing import Optional

import pytz
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()


class Settings(BaseModel):
    database_url: Optional[str] = None
    database_name: Optional[str] = None
    restaurant_id: str = Field("default_restaurant", min_length=1)
    loyalty_points_ratio: int = Field(10, ge=1, description="Currency units spent per loyalty point")
    enable_loyalty_points: bool = True
    log_level: str = "INFO"
    port: int = 8000
    timezone: str = Field("Asia/Kolkata", description="IANA zone used for local calendar days")

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value):
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown time zone {value!r}")
        return value

    def tzinfo(self):
        return pytz.timezone(self.timezone)


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        database_name=os.getenv("DATABASE_NAME") or None,
        restaurant_id=os.getenv("RESTAURANT_ID", "default_restaurant"),
        loyalty_points_ratio=os.getenv("LOYALTY_POINTS_RATIO", "10"),
        enable_loyalty_points=os.getenv("ENABLE_LOYALTY_POINTS", "true"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=os.getenv("PORT", "8000"),
        timezone=os.getenv("TIMEZONE", "Asia/Kolkata"),
    )


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    return load_settings()
