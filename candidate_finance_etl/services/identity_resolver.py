"""Identity resolution: local candidate -> FEC candidate id."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests
from fuzzywuzzy import fuzz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from candidate_finance_etl.clients.crosswalk import CrosswalkCache
from candidate_finance_etl.clients.fec import FECAPIError
from candidate_finance_etl.config import get_current_cycle, get_settings
from candidate_finance_etl.extractors.fec.candidates import FECCandidateExtractor
from candidate_finance_etl.models.candidate import Candidate
from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.utils.text import clean_candidate_name, normalize_text

logger = logging.getLogger(__name__)

CROSSWALK_SCORE = 100.0

# Fuzzy scoring weights
STATE_POINTS = 20.0
OFFICE_POINTS = 25.0
DISTRICT_POINTS = 15.0
RECENT_CYCLE_POINTS = 20.0
PRINCIPAL_COMMITTEE_POINTS = 10.0
NAME_SIMILARITY_MAX_POINTS = 10.0


def office_code(office: str | None) -> str | None:
    """Map an office label ('House', 'U.S. Senate', 'S', ...) to the FEC prefix H/S/P."""
    if not office:
        return None
    value = office.strip().upper()
    if value in ("H", "S", "P"):
        return value
    if "SENAT" in value:
        return "S"
    if "HOUSE" in value or "REPRESENTATIVE" in value or "CONGRESS" in value:
        return "H"
    if "PRESIDENT" in value:
        return "P"
    return None


def _district_number(value: object) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass
class IdentityQuery:
    candidate_id: str
    name: str
    state: str | None = None
    office: str | None = None
    district: str | None = None
    bioguide_id: str | None = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "IdentityQuery":
        return cls(
            candidate_id=candidate.id,
            name=candidate.name,
            state=candidate.state,
            office=candidate.office,
            district=candidate.district,
            bioguide_id=candidate.bioguide_id,
        )


@dataclass
class CandidateMatch:
    fec_candidate_id: str
    name: str | None
    score: float
    state: str | None = None
    office: str | None = None
    district: str | None = None
    principal_committee_id: str | None = None
    cycles: list[int] = field(default_factory=list)


@dataclass
class IdentityMatch:
    found: bool
    method: str | None = None
    fec_candidate_id: str | None = None
    fec_committee_id: str | None = None
    score: float = 0.0
    candidates: list[CandidateMatch] = field(default_factory=list)
    updated: bool = False
    requires_confirmation: bool = False
    error: str | None = None


@dataclass
class BatchResolveResult:
    total: int = 0
    applied: int = 0
    unresolved: int = 0
    needs_confirmation: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


def pick_crosswalk_id(fec_ids: list[str], office: str | None) -> str | None:
    """Most recent crosswalk id whose office prefix matches, else the most recent id."""
    if not fec_ids:
        return None
    code = office_code(office)
    if code:
        for fec_id in reversed(fec_ids):
            if fec_id.upper().startswith(code):
                return fec_id
    return fec_ids[-1]


def score_candidate(query: IdentityQuery, result: dict[str, Any], current_cycle: int) -> float:
    """
    Score one FEC search result against the local candidate.

    A state mismatch disqualifies the result (score 0).
    """
    result_state = (result.get("state") or "").upper()
    query_state = (query.state or "").upper()
    if query_state and result_state and query_state != result_state:
        return 0.0

    score = 0.0
    if query_state and result_state == query_state:
        score += STATE_POINTS

    query_office = office_code(query.office)
    result_office = office_code(result.get("office"))
    if query_office and result_office == query_office:
        score += OFFICE_POINTS

    query_district = _district_number(query.district)
    if query_district is not None and query_district == _district_number(result.get("district")):
        score += DISTRICT_POINTS

    years = [int(y) for y in (result.get("election_years") or result.get("cycles") or []) if y]
    if years and max(years) >= current_cycle - 2:
        score += RECENT_CYCLE_POINTS

    if result.get("principal_committees"):
        score += PRINCIPAL_COMMITTEE_POINTS

    similarity = fuzz.token_sort_ratio(
        normalize_text(clean_candidate_name(query.name)), normalize_text(result.get("name"))
    )
    score += similarity / 100 * NAME_SIMILARITY_MAX_POINTS

    return round(score, 2)


def _principal_committee_id(result: dict[str, Any]) -> str | None:
    for committee in result.get("principal_committees") or []:
        if committee.get("committee_id"):
            return committee["committee_id"]
    return None


# noinspection PyMethodMayBeStatic
class IdentityResolver:
    """
    Resolves local candidates to FEC candidate ids.

    The bioguide crosswalk is authoritative; fuzzy name search is the
    fallback. Only crosswalk hits and fuzzy matches at or above the
    auto-apply threshold are written back.
    """

    def __init__(
        self,
        candidate_extractor: FECCandidateExtractor | None = None,
        crosswalk: CrosswalkCache | None = None,
        candidate_repo: CandidateRepo | None = None,
        min_score: float | None = None,
        auto_apply_score: float | None = None,
        current_cycle: int | None = None,
    ):
        settings = get_settings()
        self.candidate_extractor = candidate_extractor or FECCandidateExtractor()
        self.crosswalk = crosswalk or CrosswalkCache()
        self.candidate_repo = candidate_repo or CandidateRepo()
        self.min_score = min_score if min_score is not None else settings.identity_min_score
        self.auto_apply_score = (
            auto_apply_score if auto_apply_score is not None else settings.identity_auto_apply_score
        )
        self.current_cycle = current_cycle or get_current_cycle()

        if self.auto_apply_score <= self.min_score:
            raise ValueError("auto_apply_score must be greater than min_score")

    def match(self, query: IdentityQuery) -> IdentityMatch:
        """Find the best FEC match without writing anything."""
        if query.bioguide_id:
            try:
                fec_ids = self.crosswalk.lookup(query.bioguide_id)
            except (requests.RequestException, ValueError) as e:
                logger.warning(
                    f"Crosswalk unavailable for {query.candidate_id}, using name search: {e}"
                )
                fec_ids = []
            fec_id = pick_crosswalk_id(fec_ids, query.office)
            if fec_id:
                logger.info(
                    f"Crosswalk hit for {query.candidate_id} ({query.bioguide_id}): {fec_id}"
                )
                return IdentityMatch(
                    found=True,
                    method="crosswalk",
                    fec_candidate_id=fec_id,
                    score=CROSSWALK_SCORE,
                    candidates=[
                        CandidateMatch(fec_candidate_id=fec_id, name=query.name, score=CROSSWALK_SCORE)
                    ],
                )

        results = self.candidate_extractor.search_candidates(query.name, query.state)

        matches = []
        for result in results:
            fec_id = result.get("candidate_id")
            if not fec_id:
                continue
            score = score_candidate(query, result, self.current_cycle)
            if score < self.min_score:
                continue
            matches.append(
                CandidateMatch(
                    fec_candidate_id=fec_id,
                    name=result.get("name"),
                    score=score,
                    state=result.get("state"),
                    office=result.get("office"),
                    district=result.get("district"),
                    principal_committee_id=_principal_committee_id(result),
                    cycles=list(result.get("election_years") or []),
                )
            )

        matches.sort(key=lambda m: m.score, reverse=True)

        if not matches:
            logger.info(f"No FEC match for {query.candidate_id} ('{query.name}', {query.state})")
            return IdentityMatch(found=False, method="fuzzy")

        best = matches[0]
        logger.info(
            f"Fuzzy match for {query.candidate_id}: {best.fec_candidate_id} "
            f"(score {best.score}, {len(matches)} candidates)"
        )
        return IdentityMatch(
            found=True,
            method="fuzzy",
            fec_candidate_id=best.fec_candidate_id,
            fec_committee_id=best.principal_committee_id,
            score=best.score,
            candidates=matches,
            requires_confirmation=best.score < self.auto_apply_score,
        )

    def resolve(self, session: Session, query: IdentityQuery, apply: bool = False) -> IdentityMatch:
        """
        Match a candidate and, when requested and confident enough, store the FEC ids.

        Args:
            session: Database session (committed on write-back)
            query: Local candidate identity
            apply: Write the match back to the candidate record

        Returns:
            IdentityMatch; updated is True only when the record was written
        """
        match = self.match(query)
        if not apply or not match.found or match.requires_confirmation:
            return match

        try:
            candidate = self.candidate_repo.set_fec_ids(
                session, query.candidate_id, match.fec_candidate_id, match.fec_committee_id
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to store FEC id for {query.candidate_id}: {e}")
            match.error = str(e)
            return match

        match.updated = candidate is not None
        return match

    def batch_resolve(
        self,
        session: Session,
        candidates: list[Candidate],
        apply: bool = True,
        delay_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> BatchResolveResult:
        """Resolve candidates one at a time, collecting per-candidate errors."""
        delay = delay_seconds if delay_seconds is not None else get_settings().inter_candidate_delay
        result = BatchResolveResult(total=len(candidates))

        for i, candidate in enumerate(candidates):
            if i:
                sleep(delay)
            try:
                match = self.resolve(session, IdentityQuery.from_candidate(candidate), apply=apply)
            except (FECAPIError, requests.RequestException, ValueError) as e:
                logger.error(f"Identity resolution failed for {candidate.id}: {e}")
                result.errors.append({"candidate_id": candidate.id, "error": str(e)})
                continue

            if match.updated:
                result.applied += 1
            elif match.found and match.requires_confirmation:
                result.needs_confirmation += 1
            else:
                result.unresolved += 1
            if match.error:
                result.errors.append({"candidate_id": candidate.id, "error": match.error})

        logger.info(
            f"Batch identity resolution: {result.applied}/{result.total} applied, "
            f"{result.needs_confirmation} need confirmation, {result.unresolved} unresolved"
        )
        return result
