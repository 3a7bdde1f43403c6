"""Service layer: identity, discovery, sync and reconciliation."""

from candidate_finance_etl.services.committee_discovery import CommitteeDiscoveryService
from candidate_finance_etl.services.donor_sync import DonorSyncService, SyncRequest, SyncResult
from candidate_finance_etl.services.identity_resolver import (
    IdentityMatch,
    IdentityQuery,
    IdentityResolver,
)
from candidate_finance_etl.services.reconciliation import ReconciliationService
from candidate_finance_etl.services.transaction_fetcher import (
    CommitteeFetchOutcome,
    TransactionFetcher,
)

__all__ = [
    "CommitteeDiscoveryService",
    "CommitteeFetchOutcome",
    "DonorSyncService",
    "IdentityMatch",
    "IdentityQuery",
    "IdentityResolver",
    "ReconciliationService",
    "SyncRequest",
    "SyncResult",
    "TransactionFetcher",
]
