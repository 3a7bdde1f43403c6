"""Prefect flow for resolving FEC candidate ids for local candidates."""

from dataclasses import asdict

from prefect import flow, get_run_logger

from candidate_finance_etl.database import get_db_session
from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.services.identity_resolver import IdentityResolver


@flow(
    name="resolve-fec-ids",
    description="Resolve FEC candidate ids via the bioguide crosswalk and fuzzy search",
    log_prints=True,
)
def resolve_fec_ids_flow(
    candidate_ids: list[str] | None = None,
    limit: int | None = None,
    apply: bool = True,
) -> dict:
    """
    Resolve FEC ids for the given candidates, or for every candidate without one.

    Args:
        candidate_ids: Local candidate ids (None = all candidates missing an FEC id)
        limit: Maximum candidates when candidate_ids is None
        apply: Write confident matches back to the candidate records

    Returns:
        Dictionary with total, applied, unresolved, needs_confirmation and errors
    """
    logger = get_run_logger()
    repo = CandidateRepo()
    resolver = IdentityResolver(candidate_repo=repo)

    with get_db_session() as session:
        if candidate_ids:
            candidates = repo.list_by_ids(session, candidate_ids)
        else:
            candidates = repo.list_without_fec_id(session, limit=limit)
        logger.info(f"Resolving FEC ids for {len(candidates)} candidates (apply={apply})")
        result = resolver.batch_resolve(session, candidates, apply=apply)

    logger.info(
        f"Resolved {result.applied}/{result.total}, {result.needs_confirmation} need confirmation, "
        f"{result.unresolved} unresolved, {len(result.errors)} errors"
    )
    return asdict(result)
