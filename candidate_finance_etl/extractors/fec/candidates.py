"""FEC Candidate extractor."""

import logging
from typing import Any

import pandas as pd
from prefect import get_run_logger
from prefect.exceptions import MissingContextError

from candidate_finance_etl.clients.fec import FECAPIClient, FECResponseShapeError
from candidate_finance_etl.extractors.base import BaseExtractor
from candidate_finance_etl.utils.text import clean_candidate_name

CANDIDATE_SEARCH_ENDPOINT = "/candidates/search/"


def get_logger():
    """Get logger - Prefect if available, otherwise standard logging."""
    try:
        return get_run_logger()
    except MissingContextError:
        return logging.getLogger(__name__)


# noinspection PyMethodMayBeStatic
class FECCandidateExtractor(BaseExtractor):
    """
    Search FEC candidates by name.

    Used by identity resolution when the crosswalk has no entry for a
    candidate.
    """

    def __init__(self, api_client: FECAPIClient | None = None):
        """
        Initialize the candidate extractor.

        Args:
            api_client: FEC API client (creates default if None)
        """
        self.api_client = api_client or FECAPIClient()

    def extract(self, name: str = "", state: str | None = None, **kwargs: Any) -> pd.DataFrame:
        """Search results as a DataFrame."""
        return pd.DataFrame(self.search_candidates(name, state, **kwargs))

    def search_candidates(
        self, name: str, state: str | None = None, per_page: int = 20
    ) -> list[dict[str, Any]]:
        """
        Fuzzy name search against /candidates/search/.

        Args:
            name: Candidate display name (honorifics are stripped)
            state: Two-letter state filter
            per_page: Maximum results

        Returns:
            Raw FEC candidate records, most recently active first
        """
        logger = get_logger()
        query = clean_candidate_name(name)
        if not query:
            return []

        params: dict[str, Any] = {
            "q": query,
            "per_page": per_page,
            "sort": "-election_years",
        }
        if state:
            params["state"] = state.upper()

        logger.info(f"Searching FEC candidates for '{query}' (state={state or 'ANY'})")
        data = self.api_client.get(CANDIDATE_SEARCH_ENDPOINT, params)

        results = data.get("results", [])
        if not isinstance(results, list):
            raise FECResponseShapeError("Unexpected candidate search payload")

        logger.info(f"Candidate search returned {len(results)} results")
        return results
