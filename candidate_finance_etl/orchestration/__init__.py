"""Sync orchestration: control token, state machine and multi-candidate runs."""

from candidate_finance_etl.orchestration.control import SyncControl
from candidate_finance_etl.orchestration.state import (
    InvalidTransitionError,
    SyncProgress,
    SyncState,
    SyncStateMachine,
)

__all__ = [
    "InvalidTransitionError",
    "SyncControl",
    "SyncProgress",
    "SyncState",
    "SyncStateMachine",
]
