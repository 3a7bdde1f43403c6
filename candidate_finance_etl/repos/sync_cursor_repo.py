"""Repository for candidate committees and their Schedule A sync cursors."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from candidate_finance_etl.models.committee import CandidateCommittee, CommitteeRole, ROLE_PRECEDENCE


class CommitteeSyncStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    PENDING = "pending"


@dataclass(frozen=True)
class SyncCursor:
    """FEC pagination keys of the last processed page."""

    last_index: str
    last_contribution_receipt_date: str | None = None


def committee_status(committee: CandidateCommittee, cycle: int) -> CommitteeSyncStatus:
    """
    Status of one committee for a cycle.

    complete: finished this cycle's pass (cursor cleared, completion stamped)
    partial: a cursor is stored, more pages remain
    pending: not started for this cycle, or started with nothing fetched yet
    """
    if committee.last_cycle != cycle:
        return CommitteeSyncStatus.PENDING
    if committee.last_index is not None:
        return CommitteeSyncStatus.PARTIAL
    if committee.sync_completed_at is not None:
        return CommitteeSyncStatus.COMPLETE
    return CommitteeSyncStatus.PENDING


# noinspection PyMethodMayBeStatic
class SyncCursorRepo:
    """
    Single source of truth for remaining Schedule A work.

    Keyed by (candidate id, committee id). Never commits; the caller owns the
    transaction.
    """

    def get_committee(
        self, session: Session, candidate_id: str, fec_committee_id: str
    ) -> CandidateCommittee | None:
        stmt = select(CandidateCommittee).where(
            CandidateCommittee.candidate_id == candidate_id,
            CandidateCommittee.fec_committee_id == fec_committee_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def list_committees(
        self, session: Session, candidate_id: str, active_only: bool = True
    ) -> list[CandidateCommittee]:
        """Committees for a candidate in discovery (storage) order."""
        stmt = select(CandidateCommittee).where(CandidateCommittee.candidate_id == candidate_id)
        if active_only:
            stmt = stmt.where(CandidateCommittee.active.is_(True))
        return list(session.execute(stmt.order_by(CandidateCommittee.id)).scalars())

    def upsert_committee(
        self,
        session: Session,
        candidate_id: str,
        fec_committee_id: str,
        role: CommitteeRole,
        name: str | None = None,
        designation: str | None = None,
        source_fec_candidate_id: str | None = None,
    ) -> CandidateCommittee:
        """
        Create or update a committee link. Cursor fields are left untouched.

        A stronger role (principal > authorized > manual > stored) replaces a weaker one.
        """
        committee = self.get_committee(session, candidate_id, fec_committee_id)
        if committee is None:
            committee = CandidateCommittee(
                candidate_id=candidate_id,
                fec_committee_id=fec_committee_id,
                role=role.value,
                name=name,
                designation=designation,
                source_fec_candidate_id=source_fec_candidate_id,
                active=True,
            )
            session.add(committee)
        else:
            current = CommitteeRole(committee.role)
            if ROLE_PRECEDENCE[role] < ROLE_PRECEDENCE[current]:
                committee.role = role.value
            if name:
                committee.name = name
            if designation:
                committee.designation = designation
            if source_fec_candidate_id:
                committee.source_fec_candidate_id = source_fec_candidate_id
            committee.active = True
            committee.updated_at = datetime.now(UTC)
        session.flush()
        return committee

    def read(self, session: Session, candidate_id: str, fec_committee_id: str) -> SyncCursor | None:
        """Persisted cursor, or None when the committee has none."""
        committee = self.get_committee(session, candidate_id, fec_committee_id)
        if committee is None or committee.last_index is None:
            return None
        return SyncCursor(committee.last_index, committee.last_contribution_receipt_date)

    def write(
        self,
        session: Session,
        candidate_id: str,
        fec_committee_id: str,
        cycle: int,
        cursor: SyncCursor | None,
        completed: bool,
        started_at: datetime | None = None,
    ) -> CandidateCommittee | None:
        """
        Persist a committee's progress.

        Args:
            cursor: Cursor of the last processed page (None once the committee is done)
            completed: True when a short page was fetched; stamps sync_completed_at
            started_at: Pass start time, when the caller started a pass
        """
        committee = self.get_committee(session, candidate_id, fec_committee_id)
        if committee is None:
            return None

        committee.last_cycle = cycle
        if completed:
            committee.last_index = None
            committee.last_contribution_receipt_date = None
            committee.sync_completed_at = datetime.now(UTC)
        elif cursor is not None:
            committee.last_index = cursor.last_index
            committee.last_contribution_receipt_date = cursor.last_contribution_receipt_date
            committee.sync_completed_at = None
        if started_at is not None:
            committee.sync_started_at = started_at
        committee.updated_at = datetime.now(UTC)
        session.flush()
        return committee

    def start_pass(
        self, session: Session, candidate_id: str, cycle: int, started_at: datetime | None = None
    ) -> list[CandidateCommittee]:
        """Reset every active committee's cursor and timestamps for a new pass."""
        started_at = started_at or datetime.now(UTC)
        committees = self.list_committees(session, candidate_id)
        for committee in committees:
            committee.last_index = None
            committee.last_contribution_receipt_date = None
            committee.last_cycle = cycle
            committee.sync_started_at = started_at
            committee.sync_completed_at = None
        session.flush()
        return committees

    def statuses(self, session: Session, candidate_id: str, cycle: int) -> dict[str, CommitteeSyncStatus]:
        return {
            c.fec_committee_id: committee_status(c, cycle)
            for c in self.list_committees(session, candidate_id)
        }

    def list_unfinished(self, session: Session, candidate_id: str, cycle: int) -> list[CandidateCommittee]:
        return [
            c
            for c in self.list_committees(session, candidate_id)
            if committee_status(c, cycle) != CommitteeSyncStatus.COMPLETE
        ]

    def has_pending_work(self, session: Session, candidate_id: str, cycle: int) -> bool:
        """True when a pass is under way for the cycle and some committee is unfinished."""
        committees = self.list_committees(session, candidate_id)
        in_pass = [c for c in committees if c.last_cycle == cycle and c.sync_started_at is not None]
        if not in_pass:
            return False
        return any(committee_status(c, cycle) != CommitteeSyncStatus.COMPLETE for c in committees)
