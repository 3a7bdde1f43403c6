"""API clients for external data sources."""

from candidate_finance_etl.clients.crosswalk import CrosswalkCache, fetch_legislators_crosswalk
from candidate_finance_etl.clients.fec import (
    FECAPIClient,
    FECAPIError,
    FECConfigurationError,
    FECRateLimitError,
    FECResponseShapeError,
    compute_backoff_delay,
)

__all__ = [
    "CrosswalkCache",
    "FECAPIClient",
    "FECAPIError",
    "FECConfigurationError",
    "FECRateLimitError",
    "FECResponseShapeError",
    "compute_backoff_delay",
    "fetch_legislators_crosswalk",
]
