"""FEC Committee extractor."""

import logging
from typing import Any

import pandas as pd
from prefect import get_run_logger
from prefect.exceptions import MissingContextError

from candidate_finance_etl.clients.fec import FECAPIClient, FECResponseShapeError
from candidate_finance_etl.config import validate_election_cycle
from candidate_finance_etl.extractors.base import BaseExtractor

# Principal and authorized campaign committees
CAMPAIGN_DESIGNATIONS = ["P", "A"]


def get_logger():
    """Get logger - Prefect if available, otherwise standard logging."""
    try:
        return get_run_logger()
    except MissingContextError:
        return logging.getLogger(__name__)


def _results(response: dict[str, Any], endpoint: str) -> list[dict[str, Any]]:
    results = response.get("results", [])
    if not isinstance(results, list):
        raise FECResponseShapeError(f"Unexpected payload from {endpoint}")
    return results


# noinspection PyMethodMayBeStatic
class FECCommitteeExtractor(BaseExtractor):
    """
    Extract committee data from FEC API.

    Covers the committees linked to a candidate, single committee lookups
    (for display names) and per-cycle committee totals.
    """

    def __init__(self, api_client: FECAPIClient | None = None):
        """
        Initialize the committee extractor.

        Args:
            api_client: FEC API client (creates default if None)
        """
        self.api_client = api_client or FECAPIClient()

    def extract(self, fec_candidate_id: str = "", **kwargs: Any) -> pd.DataFrame:
        """Campaign committees for a candidate as a DataFrame."""
        return pd.DataFrame(self.get_candidate_committees(fec_candidate_id))

    def get_candidate_committees(self, fec_candidate_id: str) -> list[dict[str, Any]]:
        """
        Principal (P) and authorized (A) committees for an FEC candidate.

        Args:
            fec_candidate_id: FEC candidate ID (e.g., 'H0IL01234')

        Returns:
            Raw committee records
        """
        logger = get_logger()
        endpoint = f"/candidate/{fec_candidate_id}/committees/"
        params = {"designation": CAMPAIGN_DESIGNATIONS, "per_page": 50}

        results = _results(self.api_client.get(endpoint, params), endpoint)
        logger.info(f"Found {len(results)} P/A committees for candidate {fec_candidate_id}")
        return results

    def get_committee(self, committee_id: str) -> dict[str, Any] | None:
        """Single committee record, or None when the FEC has no such committee."""
        logger = get_logger()
        endpoint = f"/committee/{committee_id}/"

        results = _results(self.api_client.get(endpoint, params={}), endpoint)
        if not results:
            logger.warning(f"Committee {committee_id} not found")
            return None
        return results[0]

    def get_committee_totals(self, committee_id: str, cycle: int) -> dict[str, Any] | None:
        """
        FEC-reported financial totals for a committee and cycle.

        Returns:
            Totals record (individual_itemized_contributions, receipts, ...)
            or None when the committee reported nothing for the cycle
        """
        cycle = validate_election_cycle(cycle)
        endpoint = f"/committee/{committee_id}/totals/"

        results = _results(self.api_client.get(endpoint, {"cycle": cycle}), endpoint)
        for record in results:
            if record.get("cycle") in (None, cycle):
                return record
        return None
