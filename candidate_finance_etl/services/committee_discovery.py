"""Committee discovery: find and persist every fundraising committee for a candidate."""

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from candidate_finance_etl.clients.fec import FECAPIError
from candidate_finance_etl.extractors.fec.committees import FECCommitteeExtractor
from candidate_finance_etl.models.committee import ROLE_PRECEDENCE, CandidateCommittee, CommitteeRole
from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.repos.sync_cursor_repo import SyncCursorRepo

logger = logging.getLogger(__name__)


@dataclass
class DiscoveredCommittee:
    fec_committee_id: str
    role: CommitteeRole
    name: str | None = None
    designation: str | None = None


@dataclass
class DiscoveryResult:
    committees: list[CandidateCommittee] = field(default_factory=list)
    principal_committee_id: str | None = None
    primary_committee_set: bool = False
    errors: list[str] = field(default_factory=list)


def _role_for_designation(designation: str | None) -> CommitteeRole:
    return CommitteeRole.PRINCIPAL if designation == "P" else CommitteeRole.AUTHORIZED


def merge_committees(*sources: list[DiscoveredCommittee]) -> list[DiscoveredCommittee]:
    """
    Deduplicate by committee id, keeping the strongest role.

    Order of first appearance is preserved. A missing name or designation is
    filled from any other source of the same committee.
    """
    merged: dict[str, DiscoveredCommittee] = {}
    for source in sources:
        for committee in source:
            key = committee.fec_committee_id.strip().upper()
            existing = merged.get(key)
            if existing is None:
                merged[key] = DiscoveredCommittee(
                    key, committee.role, committee.name, committee.designation
                )
                continue
            if ROLE_PRECEDENCE[committee.role] < ROLE_PRECEDENCE[existing.role]:
                existing.role = committee.role
            existing.name = existing.name or committee.name
            existing.designation = existing.designation or committee.designation
    return list(merged.values())


class CommitteeDiscoveryService:
    """
    Merges FEC-listed committees with manual and stored ones and persists them.

    FEC lookup failures are logged and discovery falls back to the manual and
    stored committees.
    """

    def __init__(
        self,
        committee_extractor: FECCommitteeExtractor | None = None,
        cursor_repo: SyncCursorRepo | None = None,
        candidate_repo: CandidateRepo | None = None,
    ):
        self.committee_extractor = committee_extractor or FECCommitteeExtractor()
        self.cursor_repo = cursor_repo or SyncCursorRepo()
        self.candidate_repo = candidate_repo or CandidateRepo()

    def fetch_fec_committees(self, fec_candidate_id: str) -> list[DiscoveredCommittee]:
        records = self.committee_extractor.get_candidate_committees(fec_candidate_id)
        committees = []
        for record in records:
            committee_id = record.get("committee_id")
            if not committee_id:
                continue
            designation = record.get("designation")
            committees.append(
                DiscoveredCommittee(
                    fec_committee_id=committee_id,
                    role=_role_for_designation(designation),
                    name=record.get("name"),
                    designation=designation,
                )
            )
        return committees

    def backfill_names(self, committees: list[DiscoveredCommittee], errors: list[str]) -> None:
        for committee in committees:
            if committee.name:
                continue
            try:
                record = self.committee_extractor.get_committee(committee.fec_committee_id)
            except FECAPIError as e:
                logger.warning(f"Name lookup failed for committee {committee.fec_committee_id}: {e}")
                errors.append(f"{committee.fec_committee_id}: {e}")
                continue
            if record:
                committee.name = record.get("name")
                committee.designation = committee.designation or record.get("designation")

    def discover(
        self,
        session: Session,
        candidate_id: str,
        fec_candidate_id: str | None,
        manual_committee_id: str | None = None,
    ) -> DiscoveryResult:
        """
        Discover, merge and upsert a candidate's committees (flushes, does not commit).

        Args:
            session: Database session
            candidate_id: Local candidate id
            fec_candidate_id: Resolved FEC candidate id (None skips the FEC lookup)
            manual_committee_id: Committee id supplied by the caller

        Returns:
            DiscoveryResult with the persisted committees in storage order
        """
        result = DiscoveryResult()

        fec_committees: list[DiscoveredCommittee] = []
        if fec_candidate_id:
            try:
                fec_committees = self.fetch_fec_committees(fec_candidate_id)
            except FECAPIError as e:
                logger.error(f"Committee lookup failed for {fec_candidate_id}: {e}")
                result.errors.append(str(e))

        manual = []
        if manual_committee_id:
            manual.append(DiscoveredCommittee(manual_committee_id, CommitteeRole.MANUAL))

        stored = [
            DiscoveredCommittee(c.fec_committee_id, CommitteeRole.STORED, c.name, c.designation)
            for c in self.cursor_repo.list_committees(session, candidate_id)
        ]
        candidate = self.candidate_repo.get(session, candidate_id)
        if candidate is not None and candidate.fec_committee_id:
            stored.append(DiscoveredCommittee(candidate.fec_committee_id, CommitteeRole.STORED))

        merged = merge_committees(fec_committees, manual, stored)
        self.backfill_names(merged, result.errors)

        for committee in merged:
            row = self.cursor_repo.upsert_committee(
                session,
                candidate_id,
                committee.fec_committee_id,
                committee.role,
                name=committee.name,
                designation=committee.designation,
                source_fec_candidate_id=(
                    fec_candidate_id
                    if committee.role in (CommitteeRole.PRINCIPAL, CommitteeRole.AUTHORIZED)
                    else None
                ),
            )
            result.committees.append(row)
            if committee.role == CommitteeRole.PRINCIPAL and result.principal_committee_id is None:
                result.principal_committee_id = committee.fec_committee_id

        if result.principal_committee_id:
            result.primary_committee_set = self.candidate_repo.set_primary_committee_if_missing(
                session, candidate_id, result.principal_committee_id
            )

        result.committees = self.cursor_repo.list_committees(session, candidate_id)
        logger.info(
            f"Discovered {len(result.committees)} committees for candidate {candidate_id} "
            f"({len(fec_committees)} from FEC)"
        )
        return result
