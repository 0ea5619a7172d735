"""
Service configuration for the Rain feed, loaded from YAML.
"""

from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from rain_feed.constants import (
    DB_NAME,
    DEFAULT_CONFIG_PATH,
    DOCUMENT_READER_BASE_URL,
    FETCH_TIMEOUT_SECONDS,
    MAX_CONCURRENT_SCORING_CALLS,
    SCORING_TIMEOUT_SECONDS,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)


@dataclass
class RainFeedConfig:
    """Process-wide settings. Per-user tuning lives in UserSettings."""
    database_url: str = f"sqlite:///{DB_NAME}"
    scoring_timeout_seconds: float = SCORING_TIMEOUT_SECONDS
    fetch_timeout_seconds: float = FETCH_TIMEOUT_SECONDS
    max_concurrent_scoring_calls: int = MAX_CONCURRENT_SCORING_CALLS
    document_reader_base_url: str = DOCUMENT_READER_BASE_URL


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> RainFeedConfig:
    """Load the service configuration from a YAML file.

    Unknown keys are ignored; a missing file gives the defaults.
    """
    if not config_path.exists():
        logger.warning(f"Config not found at {config_path}, using defaults")
        return RainFeedConfig()

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    known = {f.name for f in fields(RainFeedConfig)}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")

    return RainFeedConfig(**{k: v for k, v in data.items() if k in known})
