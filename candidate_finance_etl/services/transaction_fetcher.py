"""Per-committee Schedule A fetch loop with page, time and cancellation budgets."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from candidate_finance_etl.clients.fec import FECAPIError
from candidate_finance_etl.extractors.fec.schedule_a import FECScheduleAExtractor
from candidate_finance_etl.orchestration.control import SyncControl
from candidate_finance_etl.repos.sync_cursor_repo import SyncCursor
from candidate_finance_etl.transformers.donor_aggregator import DonorAggregator
from candidate_finance_etl.transformers.schedule_a import ScheduleATransformer

logger = logging.getLogger(__name__)

STOP_COMPLETE = "complete"
STOP_MAX_PAGES = "max_pages"
STOP_TIMEOUT = "timeout"
STOP_CANCELLED = "cancelled"
STOP_ERROR = "error"


@dataclass
class CommitteeFetchOutcome:
    committee_id: str
    cursor: SyncCursor | None = None
    pages_fetched: int = 0
    receipts: int = 0
    completed: bool = False
    stop_reason: str | None = None
    error: str | None = None


class TransactionFetcher:
    """
    Fetches one committee's receipts page by page and folds them into an aggregator.

    Stops on a short page (cursor cleared), the page cap, the invocation
    deadline or cancellation; in every non-completion case the cursor of the
    last processed page is kept. A page that cannot be fetched ends the
    committee for this invocation without losing what was already folded.
    """

    def __init__(
        self,
        extractor: FECScheduleAExtractor,
        transformer: ScheduleATransformer | None = None,
        inter_page_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.extractor = extractor
        self.transformer = transformer or ScheduleATransformer()
        self.inter_page_delay = inter_page_delay
        self.clock = clock
        self.sleep = sleep

    def fetch_committee(
        self,
        committee_id: str,
        cycle: int,
        aggregator: DonorAggregator,
        cursor: SyncCursor | None = None,
        committee_name: str | None = None,
        max_pages: int | None = None,
        deadline: float | None = None,
        control: SyncControl | None = None,
        on_page: Callable[[dict[str, Any]], None] | None = None,
    ) -> CommitteeFetchOutcome:
        """
        Fetch and fold pages for one committee.

        Args:
            committee_id: FEC committee id
            cycle: Two-year transaction period
            aggregator: Aggregator receiving the classified rows
            cursor: Stored cursor to resume from
            committee_name: Recipient display name stored on aggregates
            max_pages: Page cap for this committee in this invocation
            deadline: Clock value after which no further page is requested
            control: Pause/cancel token
            on_page: Called with the page metadata after each folded page

        Returns:
            CommitteeFetchOutcome with the cursor to persist
        """
        outcome = CommitteeFetchOutcome(committee_id=committee_id, cursor=cursor)

        pages = self.extractor.extract_schedule_a_pages(
            committee_id,
            cycle,
            last_index=cursor.last_index if cursor else None,
            last_contribution_receipt_date=cursor.last_contribution_receipt_date if cursor else None,
        )
        try:
            for df, page_metadata in pages:
                rows = self.transformer.transform(
                    df, committee_id=committee_id, committee_name=committee_name, cycle=cycle
                )
                outcome.receipts += aggregator.fold(rows)
                outcome.pages_fetched += 1

                if on_page:
                    on_page(page_metadata)

                if page_metadata["is_last"]:
                    outcome.cursor = None
                    outcome.completed = True
                    outcome.stop_reason = STOP_COMPLETE
                    break

                outcome.cursor = SyncCursor(
                    page_metadata["last_index"], page_metadata["last_contribution_receipt_date"]
                )

                if max_pages is not None and outcome.pages_fetched >= max_pages:
                    outcome.stop_reason = STOP_MAX_PAGES
                    break
                if deadline is not None and self.clock() >= deadline:
                    outcome.stop_reason = STOP_TIMEOUT
                    break
                if control is not None and (control.is_cancelled or not control.wait_if_paused()):
                    outcome.stop_reason = STOP_CANCELLED
                    break

                if self.inter_page_delay:
                    self.sleep(self.inter_page_delay)
        except FECAPIError as e:
            logger.error(
                f"Stopping committee {committee_id} after {outcome.pages_fetched} pages: {e}"
            )
            outcome.stop_reason = STOP_ERROR
            outcome.error = str(e)
        finally:
            pages.close()

        logger.info(
            f"Committee {committee_id}: {outcome.pages_fetched} pages, {outcome.receipts} receipts "
            f"({outcome.stop_reason})"
        )
        return outcome
