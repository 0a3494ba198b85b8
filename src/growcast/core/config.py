import logging
import sys
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env file is in the project root (parent of src/)
# Only use if it exists (CI uses environment variables directly)
# Path: core/config.py -> growcast -> src -> project root -> .env
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"
_ENV_FILE = _ENV_FILE if _ENV_FILE.exists() else None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="GROWCAST_",
        extra="ignore",
    )

    # Sensor API serving the trout and lettuce measurements
    api_base_url: str = "http://localhost:55839"

    # Per-request budgets (seconds)
    window_timeout_seconds: float = 5.0  # one day-window request
    daily_timeout_seconds: float = 15.0  # pre-aggregated daily endpoint
    connection_timeout_seconds: float = 3.0  # connectivity check

    # Upper bound on concurrent day-window requests
    max_parallel_requests: int = 8

    # Trailing days requested by the windowed (regression) path
    trailing_days: int = 30

    # Weekly periodicity for the seasonal forecaster
    seasonal_period: int = 7

    # Seed for the growth-curve search; None draws fresh entropy per facade
    random_seed: int | None = None

    # Serve synthetic measurements instead of calling the sensor API
    use_mock_data: bool = False

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Install a single stdout handler on the ``growcast`` logger.

    Safe to call repeatedly; the handler is only added once.
    """
    logger = logging.getLogger("growcast")
    logger.setLevel(level or settings.log_level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
