"""
Application settings.

Values come from environment variables or a local .env file.
"""

import logging
import sys
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "PAU BookIt"
    DATABASE_URL: str = "sqlite:///database.db"

    # "header" trusts an upstream gateway; "dev" (built-in default users) must be chosen explicitly
    IDENTITY_PROVIDER: Literal["dev", "header"] = "header"

    ACTIVITY_LOG_LIMIT: int = Field(default=50, ge=1)
    ACTIVITY_RECENT_DEFAULT: int = Field(default=5, ge=1)

    SEED_ROOMS: bool = True
    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    # basicConfig is a no-op once the root logger has handlers (uvicorn, pytest)
    logging.basicConfig(format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger().setLevel(level.upper())
