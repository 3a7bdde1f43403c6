"""Prefect flows for donor sync orchestration."""

from candidate_finance_etl.flows.batch_sync_flow import batch_donor_sync_flow, sync_all_donors_flow
from candidate_finance_etl.flows.donor_sync_flow import complete_donor_sync_flow, donor_sync_flow
from candidate_finance_etl.flows.identity_flow import resolve_fec_ids_flow
from candidate_finance_etl.flows.reconciliation_flow import nightly_reconciliation_flow

__all__ = [
    "batch_donor_sync_flow",
    "complete_donor_sync_flow",
    "donor_sync_flow",
    "nightly_reconciliation_flow",
    "resolve_fec_ids_flow",
    "sync_all_donors_flow",
]
