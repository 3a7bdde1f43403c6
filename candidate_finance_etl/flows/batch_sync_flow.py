"""
Prefect flows for multi-candidate donor syncs.

batch_donor_sync_flow syncs an explicit list of candidates;
sync_all_donors_flow picks every candidate that was never synced or still
has unfinished committees.
"""

from dataclasses import asdict

from prefect import flow, get_run_logger

from candidate_finance_etl.config import get_settings
from candidate_finance_etl.database import get_db_session
from candidate_finance_etl.orchestration.orchestrator import DonorSyncOrchestrator
from candidate_finance_etl.orchestration.state import SyncProgress


@flow(
    name="batch-donor-sync",
    description="Complete donor sync for a list of candidates, one after another",
    log_prints=True,
)
def batch_donor_sync_flow(
    candidate_ids: list[str],
    cycle: int | None = None,
    force_full_sync: bool = False,
) -> dict:
    """
    Sync candidates sequentially; a failure for one does not stop the rest.

    Args:
        candidate_ids: Local candidate ids, processed in order
        cycle: Two-year transaction period (defaults to settings)
        force_full_sync: Start a new pass for every candidate

    Returns:
        Progress record as a dictionary (completed, errors, totals)
    """
    logger = get_run_logger()
    cycle = cycle or get_settings().default_cycle
    logger.info(f"Starting batch donor sync for {len(candidate_ids)} candidates (cycle {cycle})")

    def report(progress: SyncProgress) -> None:
        if progress.is_retrying:
            logger.info(
                f"Progress {progress.current_index}/{progress.total}: {progress.current_name} "
                f"waiting on FEC rate limit (retry {progress.retry_count})"
            )
            return
        logger.info(
            f"Progress {progress.current_index}/{progress.total}: {progress.current_name} "
            f"({progress.state.value}, {len(progress.errors)} errors)"
        )

    orchestrator = DonorSyncOrchestrator()
    with get_db_session() as session:
        progress = orchestrator.batch_sync(
            session, candidate_ids, cycle, on_progress=report, force_full_sync=force_full_sync
        )

    for error in progress.errors:
        logger.warning(f"Failed: {error['candidate_id']} ({error['name']}): {error['error']}")

    return progress.to_dict()


@flow(
    name="sync-all-donors",
    description="Sync every candidate that was never synced or has unfinished committees",
    log_prints=True,
)
def sync_all_donors_flow(cycle: int | None = None, limit: int | None = None) -> dict:
    """
    Fleet-wide donor sync, least recently synced first.

    Args:
        cycle: Two-year transaction period (defaults to settings)
        limit: Maximum candidates in this run (defaults to settings)

    Returns:
        Dictionary with candidates_found, candidates_synced, candidates_failed,
        imported, total_raised, message and errors
    """
    logger = get_run_logger()
    cycle = cycle or get_settings().default_cycle

    orchestrator = DonorSyncOrchestrator()
    with get_db_session() as session:
        result = orchestrator.sync_all(session, cycle, limit=limit)

    logger.info("=" * 80)
    logger.info(f"SYNC-ALL COMPLETE: {result.message}")
    logger.info("=" * 80)
    if not result.success:
        raise RuntimeError(result.message)
    return asdict(result)
