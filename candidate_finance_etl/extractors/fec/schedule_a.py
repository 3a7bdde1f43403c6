"""FEC Schedule A extractor for itemized receipts."""

import logging
from collections.abc import Generator
from typing import Any

import pandas as pd
from prefect import get_run_logger
from prefect.exceptions import MissingContextError

from candidate_finance_etl.clients.fec import FECAPIClient, FECResponseShapeError
from candidate_finance_etl.config import get_settings, validate_election_cycle
from candidate_finance_etl.extractors.base import BaseExtractor

SCHEDULE_A_ENDPOINT = "/schedules/schedule_a/"


def get_logger():
    """Get logger - Prefect if available, otherwise standard logging."""
    try:
        return get_run_logger()
    except MissingContextError:
        return logging.getLogger(__name__)


class FECScheduleAExtractor(BaseExtractor):
    """Extractor for FEC Schedule A (itemized receipts) with page-by-page streaming."""

    def __init__(self, api_client: FECAPIClient | None = None, per_page: int | None = None):
        """
        Initialize Schedule A extractor.

        Args:
            api_client: FEC API client (creates default if None)
            per_page: Page size (defaults to settings, FEC maximum is 100)
        """
        self.api_client = api_client or FECAPIClient()
        self.per_page = per_page or get_settings().per_page

    def extract(self, **kwargs) -> pd.DataFrame:
        """
        Extract data - not implemented for page-by-page extractor.

        Use extract_schedule_a_pages().
        """
        raise NotImplementedError("Use generator method: extract_schedule_a_pages()")

    def build_params(
        self,
        committee_id: str,
        election_cycle: int,
        last_index: str | None = None,
        last_contribution_receipt_date: str | None = None,
    ) -> dict[str, Any]:
        """Query parameters for one Schedule A page, newest receipts first."""
        params: dict[str, Any] = {
            "committee_id": committee_id,
            "two_year_transaction_period": election_cycle,
            "per_page": self.per_page,
            "sort": "-contribution_receipt_date",
            "sort_null_only": "false",
        }
        # Cursor pagination only; the API's numeric offsets are not stable
        if last_index:
            params["last_index"] = last_index
            if last_contribution_receipt_date:
                params["last_contribution_receipt_date"] = last_contribution_receipt_date
        return params

    def extract_schedule_a_pages(
        self,
        committee_id: str,
        election_cycle: int,
        last_index: str | None = None,
        last_contribution_receipt_date: str | None = None,
    ) -> Generator[tuple[pd.DataFrame, dict[str, Any]], None, None]:
        """
        Extract Schedule A data page by page.

        Yields one page at a time so the caller can stop between pages and
        persist the cursor it has reached.

        Args:
            committee_id: FEC committee ID
            election_cycle: Two-year transaction period (validated)
            last_index: Stored cursor to resume from (None starts at the newest receipt)
            last_contribution_receipt_date: Stored cursor date paired with last_index

        Yields:
            Tuple of (DataFrame with page data, pagination metadata). The
            metadata's last_index/last_contribution_receipt_date is the cursor
            to resume after this page; is_last is True when the page was
            short, i.e. the committee has no more data for the cycle.

        Raises:
            FECResponseShapeError: If a page is malformed or a full page has no cursor
            FECAPIError: If a page could not be fetched after retries
        """
        logger = get_logger()
        election_cycle = validate_election_cycle(election_cycle)

        logger.info(
            f"Extracting Schedule A for committee {committee_id}, cycle {election_cycle}"
            + (f", resuming after index {last_index}" if last_index else "")
        )

        page = 1
        while True:
            params = self.build_params(
                committee_id, election_cycle, last_index, last_contribution_receipt_date
            )
            logger.debug(f"Fetching page {page} for committee {committee_id}...")

            data = self.api_client.get(SCHEDULE_A_ENDPOINT, params)

            results = data.get("results", [])
            pagination = data.get("pagination") or {}
            if not isinstance(results, list) or not isinstance(pagination, dict):
                raise FECResponseShapeError(
                    f"Unexpected Schedule A payload for committee {committee_id}"
                )

            is_last = len(results) < self.per_page

            if is_last:
                next_index, next_date = None, None
            else:
                last_indexes = pagination.get("last_indexes") or {}
                next_index = last_indexes.get("last_index")
                next_date = last_indexes.get("last_contribution_receipt_date")
                if not next_index:
                    raise FECResponseShapeError(
                        f"Full page without cursor for committee {committee_id} (page {page})"
                    )
                next_index = str(next_index)

            page_metadata = {
                "page": page,
                "committee_id": committee_id,
                "total_pages": pagination.get("pages", 0),
                "total_count": pagination.get("count", 0),
                "records_in_page": len(results),
                "last_index": next_index,
                "last_contribution_receipt_date": next_date,
                "is_last": is_last,
                "rate_limiter_stats": self.api_client.get_rate_limiter_stats(),
            }

            if page == 1 and not last_index:
                logger.info(
                    f"Total available for {committee_id}: {page_metadata['total_count']:,} records"
                )

            logger.info(f"Committee {committee_id} page {page}: {len(results)} records retrieved")

            yield pd.DataFrame(results), page_metadata

            if is_last:
                logger.info(f"Extraction complete for committee {committee_id}")
                return

            last_index, last_contribution_receipt_date = next_index, next_date
            page += 1
