"""
Prefect flows for syncing one candidate's donors from FEC Schedule A.

donor_sync_flow runs a single bounded invocation (one step of a pass);
complete_donor_sync_flow repeats invocations until the pass is finished.
"""

from dataclasses import asdict

from prefect import flow, get_run_logger, task
from prefect.cache_policies import NONE

from candidate_finance_etl.config import get_settings
from candidate_finance_etl.database import get_db_session
from candidate_finance_etl.orchestration.orchestrator import DonorSyncOrchestrator
from candidate_finance_etl.services.donor_sync import DonorSyncService, SyncRequest


@task(
    name="sync_candidate_donors",
    description="Run one bounded donor sync invocation for a candidate",
    cache_policy=NONE,
)
def sync_candidate_donors_task(request: SyncRequest) -> dict:
    """
    Run one sync invocation in its own database session.

    Returns:
        SyncResult as a dictionary
    """
    logger = get_run_logger()
    logger.info(f"Syncing donors for candidate {request.candidate_id} (cycle {request.cycle})")

    with get_db_session() as session:
        result = DonorSyncService().sync(session, request)

    logger.info(f"Candidate {request.candidate_id}: {result.message}")
    return asdict(result)


@flow(
    name="donor-sync",
    description="Single bounded donor sync invocation for one candidate",
    log_prints=True,
)
def donor_sync_flow(
    candidate_id: str,
    cycle: int | None = None,
    fec_candidate_id: str | None = None,
    committee_id: str | None = None,
    max_pages: int | None = None,
    include_other_receipts: bool | None = None,
    max_runtime_seconds: float | None = None,
    rate_limit_per_minute: int | None = None,
    force_full_sync: bool = False,
) -> dict:
    """
    Fetch the next slice of a candidate's Schedule A receipts and refresh their donors.

    Args:
        candidate_id: Local candidate id
        cycle: Two-year transaction period (defaults to settings)
        fec_candidate_id: FEC candidate id (defaults to the stored one)
        committee_id: Extra committee to include when a new pass starts
        max_pages: Page cap per committee
        include_other_receipts: Aggregate receipts that are neither 11* nor 12*
        max_runtime_seconds: Wall-clock budget for this invocation
        rate_limit_per_minute: Request budget for this invocation
        force_full_sync: Discard progress and start a new pass

    Returns:
        Dictionary with success, imported, total_raised, has_more,
        committees_processed, committees_remaining, stopped_due_to_timeout,
        message and errors
    """
    request = SyncRequest(
        candidate_id=candidate_id,
        cycle=cycle or get_settings().default_cycle,
        fec_candidate_id=fec_candidate_id,
        committee_id=committee_id,
        max_pages=max_pages,
        include_other_receipts=include_other_receipts,
        max_runtime_seconds=max_runtime_seconds,
        rate_limit_per_minute=rate_limit_per_minute,
        force_full_sync=force_full_sync,
    )
    return sync_candidate_donors_task(request)


@flow(
    name="complete-donor-sync",
    description="Repeat donor sync invocations until the candidate's pass is finished",
    log_prints=True,
)
def complete_donor_sync_flow(
    candidate_id: str,
    cycle: int | None = None,
    force_full_sync: bool = False,
    max_iterations: int | None = None,
) -> dict:
    """
    Sync a candidate to completion.

    Args:
        candidate_id: Local candidate id
        cycle: Two-year transaction period (defaults to settings)
        force_full_sync: Start a new pass even if one is in progress
        max_iterations: Safety cap on invocations

    Returns:
        Dictionary with success, state, iterations, imported, total_raised,
        has_more, message and errors
    """
    logger = get_run_logger()
    cycle = cycle or get_settings().default_cycle

    orchestrator = DonorSyncOrchestrator(max_iterations=max_iterations)
    with get_db_session() as session:
        result = orchestrator.complete_sync(
            session,
            SyncRequest(candidate_id=candidate_id, cycle=cycle, force_full_sync=force_full_sync),
        )

    logger.info(
        f"Complete sync for {candidate_id}: {result.state.value}, {result.iterations} iterations, "
        f"{result.imported} donors, ${result.total_raised:,.2f}"
    )
    summary = asdict(result)
    summary["state"] = result.state.value
    return summary
