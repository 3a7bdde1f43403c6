"""Repository for candidate operations."""

from datetime import UTC, datetime

from sqlalchemy import exists, or_, select
from sqlalchemy.orm import Session

from candidate_finance_etl.models.candidate import Candidate
from candidate_finance_etl.models.committee import CandidateCommittee
from candidate_finance_etl.models.donor import Donor


# noinspection PyMethodMayBeStatic
class CandidateRepo:
    """Repository for reading candidates and writing back FEC linkage."""

    def get(self, session: Session, candidate_id: str) -> Candidate | None:
        return session.get(Candidate, candidate_id)

    def list_by_ids(self, session: Session, candidate_ids: list[str]) -> list[Candidate]:
        """Candidates in the order the ids were given; unknown ids are skipped."""
        if not candidate_ids:
            return []
        rows = session.execute(select(Candidate).where(Candidate.id.in_(candidate_ids))).scalars()
        by_id = {c.id: c for c in rows}
        return [by_id[cid] for cid in candidate_ids if cid in by_id]

    def list_without_fec_id(self, session: Session, limit: int | None = None) -> list[Candidate]:
        stmt = select(Candidate).where(Candidate.fec_candidate_id.is_(None)).order_by(Candidate.id)
        if limit:
            stmt = stmt.limit(limit)
        return list(session.execute(stmt).scalars())

    def list_needing_sync(self, session: Session, cycle: int, limit: int | None = None) -> list[Candidate]:
        """
        Candidates with an FEC id that were never synced, were synced only for
        another cycle or still have unfinished committee work for the cycle,
        least recently synced first.

        Args:
            session: Database session
            cycle: Two-year transaction period
            limit: Maximum candidates to return

        Returns:
            Candidates ordered by last_donor_sync (never-synced first)
        """
        # A committee last synced for another cycle has nothing for this one yet
        pending = exists().where(
            CandidateCommittee.candidate_id == Candidate.id,
            CandidateCommittee.active.is_(True),
            or_(
                CandidateCommittee.last_cycle.is_(None),
                CandidateCommittee.last_cycle != cycle,
                CandidateCommittee.sync_completed_at.is_(None),
            ),
        )
        stmt = (
            select(Candidate)
            .where(
                Candidate.fec_candidate_id.is_not(None),
                or_(Candidate.last_donor_sync.is_(None), pending),
            )
            .order_by(Candidate.last_donor_sync.asc().nulls_first(), Candidate.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(session.execute(stmt).scalars())

    def list_with_donors(self, session: Session, cycle: int, limit: int | None = None) -> list[Candidate]:
        """Candidates that have donor rows for the cycle, oldest sync first."""
        has_donors = exists().where(Donor.candidate_id == Candidate.id, Donor.cycle == cycle)
        stmt = (
            select(Candidate)
            .where(has_donors)
            .order_by(Candidate.last_donor_sync.asc().nulls_first(), Candidate.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(session.execute(stmt).scalars())

    def set_fec_ids(
        self,
        session: Session,
        candidate_id: str,
        fec_candidate_id: str,
        fec_committee_id: str | None = None,
    ) -> Candidate | None:
        """Store the resolved FEC candidate id and, when known, the principal committee."""
        candidate = self.get(session, candidate_id)
        if candidate is None:
            return None
        candidate.fec_candidate_id = fec_candidate_id
        if fec_committee_id:
            candidate.fec_committee_id = fec_committee_id
        candidate.last_updated = datetime.now(UTC)
        session.flush()
        return candidate

    def set_primary_committee_if_missing(
        self, session: Session, candidate_id: str, fec_committee_id: str
    ) -> bool:
        candidate = self.get(session, candidate_id)
        if candidate is None or candidate.fec_committee_id:
            return False
        candidate.fec_committee_id = fec_committee_id
        session.flush()
        return True

    def mark_synced(self, session: Session, candidate_id: str, synced_at: datetime | None = None) -> None:
        candidate = self.get(session, candidate_id)
        if candidate is not None:
            candidate.last_donor_sync = synced_at or datetime.now(UTC)
            session.flush()
