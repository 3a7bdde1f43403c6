"""Configuration management using Pydantic settings."""

from datetime import datetime
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# FEC data availability constants
FEC_DATA_START_YEAR = 1980  # FEC electronic data begins in 1980


def get_current_cycle() -> int:
    """
    Get the current election cycle (current or next even year).

    Returns:
        Current election cycle year
    """
    current_year = datetime.now().year
    if current_year % 2 == 0:
        return current_year
    return current_year + 1


def get_max_cycle() -> int:
    """
    Get maximum allowed election cycle (4 years beyond current cycle).

    Returns:
        Maximum election cycle year
    """
    return get_current_cycle() + 4


class ElectionCycle(int):
    """
    Validated election cycle (two-year period ending in even year).

    FEC uses two-year cycles ending in even years (e.g., 2024 covers 2023-2024).
    """

    @classmethod
    def validate(cls, v: int) -> int:
        """Validate election cycle is an even year within valid range."""
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("Election cycle must be an integer")

        if v < FEC_DATA_START_YEAR:
            raise ValueError(
                f"Election cycle must be {FEC_DATA_START_YEAR} or later "
                f"(FEC electronic data starts in {FEC_DATA_START_YEAR})"
            )

        max_cycle = get_max_cycle()
        if v > max_cycle:
            raise ValueError(
                f"Election cycle must be {max_cycle} or earlier (current cycle + 4 years)"
            )

        if v % 2 != 0:
            raise ValueError(
                f"Election cycle must be an even year (e.g., 2024, 2026). "
                f"Got {v}. Did you mean {v + 1}?"
            )

        return v


# Find project root (where .env should be)
PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    # Empty key is allowed at load time; the FEC client rejects it on use.
    fec_api_key: str = ""
    fec_api_base_url: str = "https://api.open.fec.gov/v1"
    fec_api_timeout: int = 30

    # Database Configuration
    database_url: str

    # Rate Limiting
    max_requests_per_minute: int = 55
    api_rate_limit_delay: float = 0.0

    # Retry / backoff on throttling and transient errors
    backoff_base_seconds: float = 2.0
    backoff_max_seconds: float = 20.0
    max_request_attempts: int = 5

    # Transaction fetch budget (per invocation)
    per_page: int = 100
    max_pages_per_committee: int = 150
    max_runtime_seconds: float = 120.0
    include_other_receipts: bool = False
    inter_page_delay: float = 0.2

    # Orchestration
    max_sync_iterations: int = 50
    inter_iteration_delay: float = 0.5
    inter_candidate_delay: float = 1.0
    sync_all_limit: int = 50

    # Identity resolution
    crosswalk_url: str = (
        "https://unitedstates.github.io/congress-legislators/legislators-current.json"
    )
    crosswalk_ttl_seconds: int = 6 * 60 * 60
    identity_min_score: float = 40.0
    identity_auto_apply_score: float = 70.0

    # Reconciliation
    reconciliation_variance_threshold: float = 5.0

    default_cycle: int = 2024

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),  # Explicit path to .env
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# noinspection PyArgumentList
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore


def validate_election_cycle(cycle: int) -> int:
    """
    Validate and return election cycle.

    Args:
        cycle: Election cycle year

    Returns:
        Validated cycle year

    Raises:
        ValueError: If cycle is invalid
    """
    return ElectionCycle.validate(cycle)
