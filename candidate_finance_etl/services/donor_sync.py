"""Single sync invocation: fetch, aggregate and persist donors for one candidate."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from candidate_finance_etl.clients.fec import FECAPIClient, FECConfigurationError
from candidate_finance_etl.config import get_settings, validate_election_cycle
from candidate_finance_etl.extractors.fec.committees import FECCommitteeExtractor
from candidate_finance_etl.extractors.fec.schedule_a import FECScheduleAExtractor
from candidate_finance_etl.orchestration.control import SyncControl
from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.repos.donor_repo import DonorRepo
from candidate_finance_etl.repos.sync_cursor_repo import SyncCursor, SyncCursorRepo
from candidate_finance_etl.services.committee_discovery import CommitteeDiscoveryService
from candidate_finance_etl.services.transaction_fetcher import (
    STOP_CANCELLED,
    STOP_TIMEOUT,
    CommitteeFetchOutcome,
    TransactionFetcher,
)
from candidate_finance_etl.transformers.donor_aggregator import DonorAggregator
from candidate_finance_etl.transformers.schedule_a import ScheduleATransformer

logger = logging.getLogger(__name__)


@dataclass
class SyncRequest:
    candidate_id: str
    cycle: int
    fec_candidate_id: str | None = None
    committee_id: str | None = None
    max_pages: int | None = None
    include_other_receipts: bool | None = None
    max_runtime_seconds: float | None = None
    rate_limit_per_minute: int | None = None
    force_full_sync: bool = False


@dataclass
class SyncResult:
    success: bool
    imported: int = 0
    total_raised: float = 0.0
    has_more: bool = False
    committees_processed: int = 0
    committees_remaining: int = 0
    stopped_due_to_timeout: bool = False
    cancelled: bool = False
    new_pass: bool = False
    pages_fetched: int = 0
    message: str = ""
    errors: list[str] = field(default_factory=list)


# noinspection PyMethodMayBeStatic
class DonorSyncService:
    """
    Runs one bounded sync invocation for a candidate and cycle.

    A new pass (nothing unfinished, or force_full_sync) re-discovers
    committees, resets every cursor and starts from an empty aggregate. A
    resumed pass seeds the aggregate from the donors already stored for the
    pass and fetches only unfinished committees from their cursors.

    Donor rows and committee cursors are written in one transaction; a
    failure there fails the invocation and leaves both untouched. The
    candidate's last-sync stamp comes after and is best-effort.
    """

    def __init__(
        self,
        api_client: FECAPIClient | None = None,
        discovery: CommitteeDiscoveryService | None = None,
        cursor_repo: SyncCursorRepo | None = None,
        donor_repo: DonorRepo | None = None,
        candidate_repo: CandidateRepo | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = get_settings()
        self.api_client = api_client or FECAPIClient()
        self.cursor_repo = cursor_repo or SyncCursorRepo()
        self.donor_repo = donor_repo or DonorRepo()
        self.candidate_repo = candidate_repo or CandidateRepo()
        self.discovery = discovery or CommitteeDiscoveryService(
            committee_extractor=FECCommitteeExtractor(api_client=self.api_client),
            cursor_repo=self.cursor_repo,
            candidate_repo=self.candidate_repo,
        )
        self.extractor = FECScheduleAExtractor(api_client=self.api_client)
        self.clock = clock
        self.sleep = sleep

    def _start_new_pass(
        self,
        session: Session,
        request: SyncRequest,
        fec_candidate_id: str | None,
        errors: list[str],
    ) -> None:
        discovery = self.discovery.discover(
            session, request.candidate_id, fec_candidate_id, request.committee_id
        )
        errors.extend(discovery.errors)
        self.cursor_repo.start_pass(session, request.candidate_id, request.cycle, datetime.now(UTC))
        session.commit()

    def sync(
        self,
        session: Session,
        request: SyncRequest,
        control: SyncControl | None = None,
        on_page: Callable[[dict[str, Any]], None] | None = None,
    ) -> SyncResult:
        """
        Run one sync invocation.

        Args:
            session: Database session (committed by this method)
            request: What to sync and the invocation budgets
            control: Pause/cancel token checked between pages and committees
            on_page: Progress callback receiving page metadata

        Returns:
            SyncResult; success is False only for configuration errors and
            donor or cursor write failures
        """
        settings = self.settings
        errors: list[str] = []

        try:
            cycle = validate_election_cycle(request.cycle)
            self.api_client.ensure_configured()
        except (FECConfigurationError, ValueError) as e:
            logger.error(f"Sync rejected for candidate {request.candidate_id}: {e}")
            return SyncResult(success=False, message=str(e), errors=[str(e)])

        candidate = self.candidate_repo.get(session, request.candidate_id)
        if candidate is None:
            return SyncResult(success=False, message=f"Candidate {request.candidate_id} not found")

        fec_candidate_id = request.fec_candidate_id or candidate.fec_candidate_id
        max_pages = request.max_pages or settings.max_pages_per_committee
        max_runtime = request.max_runtime_seconds or settings.max_runtime_seconds
        include_other = (
            request.include_other_receipts
            if request.include_other_receipts is not None
            else settings.include_other_receipts
        )
        if request.rate_limit_per_minute:
            self.api_client.rate_limiter.set_limit(request.rate_limit_per_minute)

        deadline = self.clock() + max_runtime

        new_pass = request.force_full_sync or not self.cursor_repo.has_pending_work(
            session, request.candidate_id, cycle
        )
        aggregator = DonorAggregator()

        if new_pass:
            logger.info(f"Starting new {cycle} pass for candidate {request.candidate_id}")
            try:
                self._start_new_pass(session, request, fec_candidate_id, errors)
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Could not start sync pass for {request.candidate_id}: {e}")
                return SyncResult(
                    success=False, message=f"Failed to start sync pass: {e}", errors=[str(e)]
                )
            targets = self.cursor_repo.list_committees(session, request.candidate_id)
        else:
            seeded = aggregator.seed(
                self.donor_repo.list_for_candidate(session, request.candidate_id, cycle)
            )
            targets = self.cursor_repo.list_unfinished(session, request.candidate_id, cycle)
            logger.info(
                f"Resuming {cycle} pass for candidate {request.candidate_id}: "
                f"{len(targets)} unfinished committees, {seeded} donors seeded"
            )

        if not targets:
            message = f"No committee available for candidate {request.candidate_id}"
            logger.error(message)
            return SyncResult(success=False, message=message, errors=errors + [message])

        fetcher = TransactionFetcher(
            self.extractor,
            ScheduleATransformer(include_other_receipts=include_other),
            inter_page_delay=settings.inter_page_delay,
            clock=self.clock,
            sleep=self.sleep,
        )

        outcomes: list[CommitteeFetchOutcome] = []
        stopped_due_to_timeout = False
        cancelled = False

        for committee in targets:
            if control is not None and (control.is_cancelled or not control.wait_if_paused()):
                cancelled = True
                break
            if self.clock() >= deadline:
                stopped_due_to_timeout = True
                break

            cursor = (
                SyncCursor(committee.last_index, committee.last_contribution_receipt_date)
                if committee.last_index
                else None
            )
            outcome = fetcher.fetch_committee(
                committee.fec_committee_id,
                cycle,
                aggregator,
                cursor=cursor,
                committee_name=committee.name,
                max_pages=max_pages,
                deadline=deadline,
                control=control,
                on_page=on_page,
            )
            outcomes.append(outcome)
            if outcome.error:
                errors.append(f"{committee.fec_committee_id}: {outcome.error}")
            if outcome.stop_reason == STOP_TIMEOUT:
                stopped_due_to_timeout = True
                break
            if outcome.stop_reason == STOP_CANCELLED:
                cancelled = True
                break

        pages_fetched = sum(o.pages_fetched for o in outcomes)
        completed_ids = {o.committee_id for o in outcomes if o.completed}
        committees_remaining = sum(
            1 for c in targets if c.fec_committee_id not in completed_ids
        )

        if new_pass or pages_fetched:
            # Donors and cursors commit together; a resumed pass seeds from these donors
            try:
                imported = self.donor_repo.replace_donors(
                    session,
                    request.candidate_id,
                    cycle,
                    (agg.to_model(request.candidate_id) for agg in aggregator.aggregates()),
                )
                self._write_cursors(session, request.candidate_id, cycle, outcomes)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Donor write failed for candidate {request.candidate_id}: {e}")
                return SyncResult(
                    success=False,
                    committees_processed=len(outcomes),
                    committees_remaining=len(targets),
                    has_more=True,
                    new_pass=new_pass,
                    pages_fetched=pages_fetched,
                    message=f"Failed to save donors: {e}",
                    errors=errors + [str(e)],
                )
        else:
            imported = len(aggregator)

        self._mark_synced(session, request.candidate_id, errors)

        total_raised = aggregator.total_cents / 100
        has_more = committees_remaining > 0
        message = (
            f"Imported {imported} donors (${total_raised:,.2f}) from {len(outcomes)} committees"
            + (f", {committees_remaining} committees remaining" if has_more else "")
            + (" (stopped at time budget)" if stopped_due_to_timeout else "")
            + (" (cancelled)" if cancelled else "")
        )
        logger.info(f"Candidate {request.candidate_id}: {message}")

        return SyncResult(
            success=True,
            imported=imported,
            total_raised=total_raised,
            has_more=has_more,
            committees_processed=len(outcomes),
            committees_remaining=committees_remaining,
            stopped_due_to_timeout=stopped_due_to_timeout,
            cancelled=cancelled,
            new_pass=new_pass,
            pages_fetched=pages_fetched,
            message=message,
            errors=errors,
        )

    def _write_cursors(
        self,
        session: Session,
        candidate_id: str,
        cycle: int,
        outcomes: list[CommitteeFetchOutcome],
    ) -> None:
        """Stage the cursor of every committee that fetched pages (flushes, no commit)."""
        for outcome in outcomes:
            if not outcome.pages_fetched:
                continue
            self.cursor_repo.write(
                session,
                candidate_id,
                outcome.committee_id,
                cycle,
                outcome.cursor,
                completed=outcome.completed,
            )

    def _mark_synced(self, session: Session, candidate_id: str, errors: list[str]) -> None:
        try:
            self.candidate_repo.mark_synced(session, candidate_id)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Could not stamp last sync for candidate {candidate_id}: {e}")
            errors.append(f"Sync timestamp write failed: {e}")
