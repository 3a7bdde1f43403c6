"""Finance reconciliation: local donor aggregates vs FEC-reported committee totals."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from candidate_finance_etl.clients.fec import FECAPIError
from candidate_finance_etl.config import get_settings, validate_election_cycle
from candidate_finance_etl.extractors.fec.committees import FECCommitteeExtractor
from candidate_finance_etl.models.donor import ReceiptClass
from candidate_finance_etl.models.finance_reconciliation import FinanceReconciliation
from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.repos.donor_repo import DonorRepo
from candidate_finance_etl.repos.reconciliation_repo import ReconciliationRepo
from candidate_finance_etl.repos.sync_cursor_repo import SyncCursorRepo

logger = logging.getLogger(__name__)

ERROR_THRESHOLD_PCT = 10.0

STATUS_OK = "ok"
STATUS_WARNING = "warning"
STATUS_ERROR = "error"


class NoActiveCommitteesError(Exception):
    """Raised when a candidate has no active committee to reconcile against."""


def _to_cents(value: object) -> int:
    if value is None:
        return 0
    try:
        return int(round(float(value) * 100))
    except (TypeError, ValueError):
        return 0


def variance_pct(local_cents: int, fec_cents: int) -> float:
    """Signed percentage difference, 0 when the FEC reports nothing itemized."""
    if fec_cents == 0:
        return 0.0
    return round((local_cents - fec_cents) / fec_cents * 100, 2)


def reconciliation_status(delta_pct: float, warning_threshold: float) -> str:
    magnitude = abs(delta_pct)
    if magnitude > ERROR_THRESHOLD_PCT:
        return STATUS_ERROR
    if magnitude > warning_threshold:
        return STATUS_WARNING
    return STATUS_OK


@dataclass
class ReconciliationRunResult:
    reconciled: int = 0
    skipped: int = 0
    statuses: dict[str, int] = field(
        default_factory=lambda: {STATUS_OK: 0, STATUS_WARNING: 0, STATUS_ERROR: 0}
    )
    errors: list[dict[str, str]] = field(default_factory=list)


class ReconciliationService:
    """Compares locally aggregated itemized receipts with FEC committee totals."""

    def __init__(
        self,
        committee_extractor: FECCommitteeExtractor | None = None,
        donor_repo: DonorRepo | None = None,
        cursor_repo: SyncCursorRepo | None = None,
        candidate_repo: CandidateRepo | None = None,
        reconciliation_repo: ReconciliationRepo | None = None,
        variance_threshold: float | None = None,
    ):
        self.committee_extractor = committee_extractor or FECCommitteeExtractor()
        self.donor_repo = donor_repo or DonorRepo()
        self.cursor_repo = cursor_repo or SyncCursorRepo()
        self.candidate_repo = candidate_repo or CandidateRepo()
        self.reconciliation_repo = reconciliation_repo or ReconciliationRepo()
        self.variance_threshold = (
            variance_threshold
            if variance_threshold is not None
            else get_settings().reconciliation_variance_threshold
        )

    def reconcile(self, session: Session, candidate_id: str, cycle: int) -> FinanceReconciliation:
        """
        Reconcile one candidate and cycle and store the result (flushes, does not commit).

        Local itemized excludes conduit platforms and transfers; transfers are
        reported separately.

        Raises:
            NoActiveCommitteesError: If the candidate has no active committee
            FECAPIError: If FEC totals could not be fetched
        """
        cycle = validate_election_cycle(cycle)
        committees = self.cursor_repo.list_committees(session, candidate_id)
        if not committees:
            raise NoActiveCommitteesError(f"No active committees for candidate {candidate_id}")

        local_itemized = self.donor_repo.sum_cents(
            session, candidate_id, cycle, ReceiptClass.CONTRIBUTION, exclude_conduits=True
        )
        local_transfers = self.donor_repo.sum_cents(
            session, candidate_id, cycle, ReceiptClass.TRANSFER
        )

        fec_itemized = fec_unitemized = fec_receipts = 0
        missing = []
        for committee in committees:
            totals = self.committee_extractor.get_committee_totals(committee.fec_committee_id, cycle)
            if totals is None:
                missing.append(committee.fec_committee_id)
                continue
            fec_itemized += _to_cents(totals.get("individual_itemized_contributions"))
            fec_unitemized += _to_cents(totals.get("individual_unitemized_contributions"))
            fec_receipts += _to_cents(totals.get("receipts"))

        delta = local_itemized - fec_itemized
        delta_pct = variance_pct(local_itemized, fec_itemized)
        status = reconciliation_status(delta_pct, self.variance_threshold)
        notes = f"No FEC totals for: {', '.join(missing)}" if missing else None

        logger.info(
            f"Reconciled {candidate_id} ({cycle}): local ${local_itemized / 100:,.2f} vs "
            f"FEC ${fec_itemized / 100:,.2f} ({delta_pct:+.2f}%, {status})"
        )

        return self.reconciliation_repo.upsert(
            session,
            candidate_id,
            cycle,
            local_itemized_cents=local_itemized,
            local_transfers_cents=local_transfers,
            fec_itemized_cents=fec_itemized,
            fec_unitemized_cents=fec_unitemized,
            fec_total_receipts_cents=fec_receipts,
            delta_cents=delta,
            delta_pct=delta_pct,
            status=status,
            notes=notes,
        )

    def reconcile_all(
        self,
        session: Session,
        cycle: int,
        limit: int | None = None,
        delay_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ReconciliationRunResult:
        """
        Reconcile every candidate with donor data for the cycle, oldest sync first.

        One candidate's failure is counted as skipped and does not stop the run.
        """
        result = ReconciliationRunResult()
        candidates = self.candidate_repo.list_with_donors(session, cycle, limit=limit)
        logger.info(f"Reconciling {len(candidates)} candidates for cycle {cycle}")

        for i, candidate in enumerate(candidates):
            if i and delay_seconds:
                sleep(delay_seconds)
            try:
                record = self.reconcile(session, candidate.id, cycle)
                session.commit()
            except NoActiveCommitteesError as e:
                logger.info(str(e))
                result.skipped += 1
                continue
            except (FECAPIError, SQLAlchemyError) as e:
                session.rollback()
                logger.error(f"Reconciliation failed for {candidate.id}: {e}")
                result.skipped += 1
                result.errors.append({"candidate_id": candidate.id, "error": str(e)})
                continue

            result.reconciled += 1
            result.statuses[record.status] += 1

        logger.info(
            f"Reconciliation complete: {result.reconciled} reconciled, {result.skipped} skipped, "
            f"{result.statuses[STATUS_WARNING]} warnings, {result.statuses[STATUS_ERROR]} errors"
        )
        return result
