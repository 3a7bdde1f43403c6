"""
Prefect deployment schedules for the candidate finance pipeline.

This module defines scheduled deployments for:
- Identity resolution (weekly, Sunday at 12 AM)
- Sync-all donor sync (nightly at 2 AM)
- Finance reconciliation (triggered after sync-all completes)
"""

from prefect.client.schemas.schedules import CronSchedule
from prefect.events import DeploymentEventTrigger

from candidate_finance_etl.config import get_current_cycle

# ============================================================================
# Deployment Parameters
# ============================================================================

DEFAULT_CYCLE = get_current_cycle()

# Timezone for scheduling (FEC operates on US Eastern Time)
TIMEZONE = "America/New_York"

SOURCE = "/opt/candidate-finance-etl"
WORK_POOL = "default"

SYNC_ALL_DEPLOYMENT = "sync-all-donors-nightly"


# ============================================================================
# Identity Resolution
# ============================================================================


def create_identity_deployments():
    """
    Create and deploy the weekly FEC id resolution flow.

    Returns the number of deployments created.
    """
    from candidate_finance_etl.flows.identity_flow import resolve_fec_ids_flow

    resolve_fec_ids_flow.from_source(
        source=SOURCE,
        entrypoint="candidate_finance_etl/flows/identity_flow.py:resolve_fec_ids_flow",
    ).deploy(
        name="resolve-fec-ids-weekly",
        work_pool_name=WORK_POOL,
        parameters={"candidate_ids": None, "limit": 200, "apply": True},
        schedules=[CronSchedule(cron="0 0 * * 0", timezone=TIMEZONE)],  # Sunday 12 AM ET
        tags=["etl", "identity", "weekly"],
        description="Resolve FEC ids for candidates missing one (crosswalk, then fuzzy search)",
        version="1.0.0",
    )

    return 1


# ============================================================================
# Donor Sync
# ============================================================================


def create_sync_deployments():
    """
    Create and deploy the nightly sync-all flow.

    Returns the number of deployments created.
    """
    from candidate_finance_etl.flows.batch_sync_flow import sync_all_donors_flow

    sync_all_donors_flow.from_source(
        source=SOURCE,
        entrypoint="candidate_finance_etl/flows/batch_sync_flow.py:sync_all_donors_flow",
    ).deploy(
        name=SYNC_ALL_DEPLOYMENT,
        work_pool_name=WORK_POOL,
        parameters={"cycle": DEFAULT_CYCLE, "limit": None},
        schedules=[CronSchedule(cron="0 2 * * *", timezone=TIMEZONE)],  # 2 AM ET daily
        tags=["etl", "donors", "sync-all", "nightly"],
        description="Nightly donor sync for never-synced candidates and unfinished passes",
        version="1.0.0",
    )

    return 1


# ============================================================================
# Finance Reconciliation
# ============================================================================


def create_reconciliation_deployments():
    """
    Create and deploy the reconciliation flow, triggered after sync-all.

    Returns the number of deployments created.
    """
    from candidate_finance_etl.flows.reconciliation_flow import nightly_reconciliation_flow

    nightly_reconciliation_flow.from_source(
        source=SOURCE,
        entrypoint="candidate_finance_etl/flows/reconciliation_flow.py:nightly_reconciliation_flow",
    ).deploy(
        name="finance-reconciliation-triggered",
        work_pool_name=WORK_POOL,
        parameters={"cycle": DEFAULT_CYCLE, "limit": None},
        triggers=[
            DeploymentEventTrigger(
                expect={"prefect.flow-run.Completed"},
                match_related={"prefect.resource.name": SYNC_ALL_DEPLOYMENT},
            )
        ],
        tags=["etl", "reconciliation", "triggered"],
        description="Compare local donor totals with FEC committee totals after sync-all",
        version="1.0.0",
    )

    return 1


def create_all_deployments():
    """
    Create all deployment configurations.

    Returns:
        Total number of deployments created
    """
    total = 0
    total += create_identity_deployments()
    total += create_sync_deployments()
    total += create_reconciliation_deployments()
    return total


def print_schedule_summary():
    """Print a human-readable summary of all deployment schedules."""
    print("=" * 80)
    print("Candidate Finance ETL - Deployment Schedules")
    print("=" * 80)
    print()
    print("WEEKLY (Sunday):")
    print("  12:00 AM ET - Identity: resolve FEC ids for candidates missing one")
    print()
    print("NIGHTLY:")
    print("   2:00 AM ET - Sync-all: donor sync for never-synced / unfinished candidates")
    print("               ↓")
    print("  [TRIGGERED] Reconciliation: local totals vs FEC committee totals")
    print()
    print("CONFIGURATION:")
    print(f"  Cycle: {DEFAULT_CYCLE}")
    print(f"  Timezone: {TIMEZONE}")
    print("  Total Deployments: 3")
    print("=" * 80)
