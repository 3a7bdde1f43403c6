"""Repository layer for database operations."""

from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.repos.donor_repo import DonorRepo
from candidate_finance_etl.repos.reconciliation_repo import ReconciliationRepo
from candidate_finance_etl.repos.sync_cursor_repo import (
    CommitteeSyncStatus,
    SyncCursor,
    SyncCursorRepo,
    committee_status,
)

__all__ = [
    "CandidateRepo",
    "CommitteeSyncStatus",
    "DonorRepo",
    "ReconciliationRepo",
    "SyncCursor",
    "SyncCursorRepo",
    "committee_status",
]
