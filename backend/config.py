"""Configuration management."""

import logging
import os
import sys
from pathlib import Path

from pydantic import BaseModel, Field

ENV_PREFIX = "JOBTRACKER_"


class Settings(BaseModel):
    """Application configuration."""

    database_url: str = "sqlite://"
    upload_dir: Path = Path("uploads")
    max_resume_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from JOBTRACKER_* environment variables."""
        data = {}
        for name in cls.model_fields:
            value = os.getenv(ENV_PREFIX + name.upper())
            if value is not None:
                data[name] = value
        return cls(**data)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
