"""Configuration management for the scalectl application."""
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


class Config:
    """Process-level settings read from the environment."""

    # Deployment configuration file (overridden by --config)
    CONFIG_PATH: Optional[str] = os.getenv("SCALECTL_CONFIG") or None

    # Logging
    LOG_LEVEL: str = os.getenv("SCALECTL_LOG_LEVEL", "").upper()
    LOG_FORMAT: str = os.getenv(
        "SCALECTL_LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
