"""Prefect deployment configurations for the candidate finance pipeline."""

from candidate_finance_etl.deployments.schedules import (
    create_all_deployments,
    create_identity_deployments,
    create_reconciliation_deployments,
    create_sync_deployments,
)

__all__ = [
    "create_identity_deployments",
    "create_sync_deployments",
    "create_reconciliation_deployments",
    "create_all_deployments",
]
