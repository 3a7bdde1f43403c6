"""Prefect flow for nightly finance reconciliation against FEC committee totals."""

from dataclasses import asdict

from prefect import flow, get_run_logger

from candidate_finance_etl.config import get_settings
from candidate_finance_etl.database import get_db_session
from candidate_finance_etl.services.reconciliation import ReconciliationService


@flow(
    name="nightly-finance-reconciliation",
    description="Compare local donor totals with FEC-reported committee totals",
    log_prints=True,
)
def nightly_reconciliation_flow(cycle: int | None = None, limit: int | None = None) -> dict:
    """
    Reconcile every candidate with donor data for the cycle.

    Args:
        cycle: Two-year transaction period (defaults to settings)
        limit: Maximum candidates to reconcile

    Returns:
        Dictionary with reconciled, skipped, statuses and errors
    """
    logger = get_run_logger()
    settings = get_settings()
    cycle = cycle or settings.default_cycle

    with get_db_session() as session:
        result = ReconciliationService().reconcile_all(
            session, cycle, limit=limit, delay_seconds=settings.inter_candidate_delay
        )

    logger.info(
        f"Reconciliation: {result.reconciled} reconciled, {result.skipped} skipped, "
        f"statuses {result.statuses}"
    )
    return asdict(result)
