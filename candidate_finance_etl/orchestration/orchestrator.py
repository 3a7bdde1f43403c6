"""Multi-invocation sync orchestration: complete sync, batch sync and sync-all."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from candidate_finance_etl.config import get_settings
from candidate_finance_etl.models.candidate import Candidate
from candidate_finance_etl.orchestration.control import SyncControl
from candidate_finance_etl.orchestration.state import SyncProgress, SyncState, SyncStateMachine
from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.services.donor_sync import DonorSyncService, SyncRequest, SyncResult

logger = logging.getLogger(__name__)


@dataclass
class CompleteSyncResult:
    candidate_id: str
    success: bool
    state: SyncState
    iterations: int = 0
    imported: int = 0
    total_raised: float = 0.0
    has_more: bool = False
    message: str = ""
    errors: list[str] = field(default_factory=list)


@dataclass
class SyncAllResult:
    success: bool = True
    candidates_found: int = 0
    candidates_synced: int = 0
    candidates_failed: int = 0
    imported: int = 0
    total_raised: float = 0.0
    cancelled: bool = False
    message: str = ""
    errors: list[dict[str, str]] = field(default_factory=list)


class DonorSyncOrchestrator:
    """
    Drives repeated sync invocations until a candidate's pass is finished.

    Candidates are processed strictly one after another. Pause and cancel
    are honored at candidate and page boundaries. A failure for one
    candidate is recorded and the run moves on.
    """

    def __init__(
        self,
        sync_service: DonorSyncService | None = None,
        candidate_repo: CandidateRepo | None = None,
        state_machine: SyncStateMachine | None = None,
        max_iterations: int | None = None,
        iteration_delay: float | None = None,
        candidate_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = get_settings()
        self.sync_service = sync_service or DonorSyncService()
        self.candidate_repo = candidate_repo or CandidateRepo()
        self.state_machine = state_machine or SyncStateMachine()
        self.max_iterations = max_iterations or settings.max_sync_iterations
        self.iteration_delay = (
            iteration_delay if iteration_delay is not None else settings.inter_iteration_delay
        )
        self.candidate_delay = (
            candidate_delay if candidate_delay is not None else settings.inter_candidate_delay
        )
        self.sleep = sleep
        self._progress: SyncProgress | None = None
        self._on_progress: Callable[[SyncProgress], None] | None = None
        self._attach_wait_hooks()

    def _attach_wait_hooks(self) -> None:
        api_client = getattr(self.sync_service, "api_client", None)
        if api_client is None:
            return
        api_client.on_retry = lambda attempt, delay, reason: self._on_wait(delay)
        api_client.rate_limiter.on_wait = self._on_wait

    def _on_wait(self, delay: float) -> None:
        if self.state_machine.can_transition(SyncState.WAITING_FOR_RATE_LIMIT):
            self.state_machine.transition(SyncState.WAITING_FOR_RATE_LIMIT)
        if self._progress is not None:
            self._progress.is_retrying = True
            self._progress.retry_count += 1
            self._progress.state = SyncState.WAITING_FOR_RATE_LIMIT
            self._notify()

    def _on_page(self, page_metadata: dict[str, Any]) -> None:
        if self.state_machine.state == SyncState.WAITING_FOR_RATE_LIMIT:
            self.state_machine.transition(SyncState.FETCHING_PAGE)
        if self._progress is not None:
            was_retrying = self._progress.is_retrying
            self._progress.is_retrying = False
            self._progress.state = SyncState.FETCHING_PAGE
            if was_retrying:
                self._notify()

    def _notify(self) -> None:
        if self._on_progress is not None and self._progress is not None:
            self._on_progress(self._progress)

    def _finish(self, target: SyncState) -> SyncState:
        if not self.state_machine.can_transition(target):
            self.state_machine.transition(SyncState.FETCHING_PAGE)
        return self.state_machine.transition(target)

    def complete_sync(
        self,
        session: Session,
        request: SyncRequest,
        control: SyncControl | None = None,
    ) -> CompleteSyncResult:
        """
        Invoke the single sync until no committee has remaining work.

        Stops early on failure, cancellation, an iteration that fetched no
        pages, or the iteration cap (the latter leaves the candidate PARTIAL
        for a later run). Stopping with work remaining after committee
        errors counts as a failure so batch runs record it.
        """
        machine = self.state_machine
        machine.reset()
        outcome = CompleteSyncResult(
            candidate_id=request.candidate_id, success=True, state=SyncState.IDLE
        )
        current = request
        result: SyncResult | None = None

        while outcome.iterations < self.max_iterations:
            if control is not None and (control.is_cancelled or not control.wait_if_paused()):
                outcome.state = self._finish(SyncState.CANCELLED)
                break

            machine.transition(SyncState.FETCHING_PAGE)
            outcome.iterations += 1
            result = self.sync_service.sync(
                session, current, control=control, on_page=self._on_page
            )
            # Only the first invocation may force a fresh pass
            current = replace(request, force_full_sync=False)

            outcome.imported = result.imported
            outcome.total_raised = result.total_raised
            outcome.has_more = result.has_more
            outcome.message = result.message
            outcome.errors.extend(result.errors)

            if not result.success:
                outcome.success = False
                outcome.state = self._finish(SyncState.FAILED)
                break
            if result.cancelled:
                outcome.state = self._finish(SyncState.CANCELLED)
                break
            if not result.has_more:
                outcome.state = self._finish(SyncState.COMPLETE)
                break
            if not result.pages_fetched:
                # Nothing advanced; the next invocation would repeat the same requests
                logger.warning(
                    f"Candidate {request.candidate_id}: iteration {outcome.iterations} "
                    f"fetched no pages, stopping"
                )
                if result.errors:
                    outcome.success = False
                    outcome.message = f"Sync stalled: {'; '.join(result.errors)}"
                    outcome.state = self._finish(SyncState.FAILED)
                else:
                    outcome.state = self._finish(SyncState.PARTIAL)
                break

            outcome.state = self._finish(SyncState.PARTIAL)
            logger.info(
                f"Candidate {request.candidate_id}: iteration {outcome.iterations} partial, "
                f"continuing"
            )
            if outcome.iterations < self.max_iterations:
                self.sleep(self.iteration_delay)
        else:
            logger.warning(
                f"Candidate {request.candidate_id}: stopped after {self.max_iterations} iterations "
                f"with work remaining"
            )
            if result is not None and result.errors:
                outcome.success = False
                outcome.message = (
                    f"Stopped with work remaining after errors: {'; '.join(result.errors)}"
                )

        logger.info(
            f"Complete sync for {request.candidate_id}: {outcome.state.value} after "
            f"{outcome.iterations} iterations, {outcome.imported} donors"
        )
        return outcome

    def batch_sync(
        self,
        session: Session,
        candidate_ids: list[str],
        cycle: int,
        control: SyncControl | None = None,
        progress: SyncProgress | None = None,
        on_progress: Callable[[SyncProgress], None] | None = None,
        force_full_sync: bool = False,
    ) -> SyncProgress:
        """
        Complete-sync a list of candidates, one after another.

        Args:
            session: Database session
            candidate_ids: Local candidate ids, processed in order
            cycle: Two-year transaction period
            control: Pause/resume/cancel token
            progress: Progress record to update (a new one is created if None)
            on_progress: Called with the progress record after each candidate and
                whenever a rate-limit or retry wait starts or ends

        Returns:
            Final progress record with per-candidate errors
        """
        candidates = self.candidate_repo.list_by_ids(session, candidate_ids)
        progress = progress or SyncProgress()
        progress.total = len(candidates)
        self._progress = progress
        self._on_progress = on_progress

        try:
            for index, candidate in enumerate(candidates):
                if control is not None:
                    if control.is_paused:
                        progress.is_paused = True
                        progress.state = SyncState.PAUSED
                        if on_progress:
                            on_progress(progress)
                    if not control.wait_if_paused():
                        progress.is_cancelled = True
                        progress.state = SyncState.CANCELLED
                        logger.info(f"Batch cancelled before candidate {index + 1}/{progress.total}")
                        break
                    progress.is_paused = False

                if index and self.candidate_delay:
                    self.sleep(self.candidate_delay)

                progress.current_index = index + 1
                progress.current_name = candidate.name
                progress.state = SyncState.FETCHING_PAGE

                result = self._sync_candidate(session, candidate, cycle, control, force_full_sync)
                progress.imported += result.imported
                progress.total_raised += result.total_raised
                progress.is_retrying = False
                if result.success:
                    progress.completed += 1
                else:
                    progress.record_error(candidate.id, candidate.name, result.message)
                if result.state == SyncState.CANCELLED:
                    progress.is_cancelled = True
                    progress.state = SyncState.CANCELLED
                    break
                progress.state = result.state

                if on_progress:
                    on_progress(progress)
            else:
                progress.state = SyncState.COMPLETE if not progress.errors else SyncState.PARTIAL
        finally:
            self._progress = None
            self._on_progress = None

        logger.info(
            f"Batch sync finished: {progress.completed}/{progress.total} candidates, "
            f"{len(progress.errors)} errors"
        )
        return progress

    def _sync_candidate(
        self,
        session: Session,
        candidate: Candidate,
        cycle: int,
        control: SyncControl | None,
        force_full_sync: bool = False,
    ) -> CompleteSyncResult:
        request = SyncRequest(
            candidate_id=candidate.id,
            cycle=cycle,
            fec_candidate_id=candidate.fec_candidate_id,
            force_full_sync=force_full_sync,
        )
        try:
            return self.complete_sync(session, request, control=control)
        except Exception as e:
            # Log error but continue with the next candidate
            session.rollback()
            self.state_machine.reset()
            logger.error(f"Sync failed for candidate {candidate.id} ({candidate.name}): {e}")
            return CompleteSyncResult(
                candidate_id=candidate.id,
                success=False,
                state=SyncState.FAILED,
                message=f"{type(e).__name__}: {e}",
                errors=[str(e)],
            )

    def sync_all(
        self,
        session: Session,
        cycle: int,
        limit: int | None = None,
        control: SyncControl | None = None,
    ) -> SyncAllResult:
        """
        Sync every candidate that was never synced or has unfinished committees.

        Only a failure to enumerate candidates aborts the run.
        """
        result = SyncAllResult()
        limit = limit or get_settings().sync_all_limit

        try:
            candidates = self.candidate_repo.list_needing_sync(session, cycle, limit=limit)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Could not list candidates for sync-all: {e}")
            result.success = False
            result.message = f"Failed to list candidates: {e}"
            return result

        result.candidates_found = len(candidates)
        logger.info(f"Sync-all: {len(candidates)} candidates need donor sync for {cycle}")

        for index, candidate in enumerate(candidates):
            if control is not None and control.is_cancelled:
                result.cancelled = True
                logger.info(f"Sync-all cancelled after {index} candidates")
                break
            if index and self.candidate_delay:
                self.sleep(self.candidate_delay)

            outcome = self._sync_candidate(session, candidate, cycle, control)
            result.imported += outcome.imported
            result.total_raised += outcome.total_raised
            if outcome.success:
                result.candidates_synced += 1
            else:
                result.candidates_failed += 1
                result.errors.append(
                    {"candidate_id": candidate.id, "name": candidate.name, "error": outcome.message}
                )

        result.message = (
            f"Synced {result.candidates_synced}/{result.candidates_found} candidates, "
            f"{result.imported} donors, ${result.total_raised:,.2f}"
            + (f", {result.candidates_failed} failed" if result.candidates_failed else "")
            + (" (cancelled)" if result.cancelled else "")
        )
        logger.info(f"Sync-all: {result.message}")
        return result
