"""Sync state machine and progress record."""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING_PAGE = "fetching_page"
    WAITING_FOR_RATE_LIMIT = "waiting_for_rate_limit"
    PAUSED = "paused"
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SyncState.COMPLETE, SyncState.FAILED, SyncState.CANCELLED})

ALLOWED_TRANSITIONS: dict[SyncState, frozenset[SyncState]] = {
    SyncState.IDLE: frozenset(
        {
            SyncState.FETCHING_PAGE,
            SyncState.PAUSED,
            SyncState.COMPLETE,
            SyncState.FAILED,
            SyncState.CANCELLED,
        }
    ),
    SyncState.FETCHING_PAGE: frozenset(
        {
            SyncState.WAITING_FOR_RATE_LIMIT,
            SyncState.PAUSED,
            SyncState.COMPLETE,
            SyncState.PARTIAL,
            SyncState.FAILED,
            SyncState.CANCELLED,
        }
    ),
    SyncState.WAITING_FOR_RATE_LIMIT: frozenset(
        {
            SyncState.FETCHING_PAGE,
            SyncState.COMPLETE,
            SyncState.PARTIAL,
            SyncState.FAILED,
            SyncState.CANCELLED,
        }
    ),
    SyncState.PAUSED: frozenset({SyncState.FETCHING_PAGE, SyncState.IDLE, SyncState.CANCELLED}),
    SyncState.PARTIAL: frozenset(
        {SyncState.FETCHING_PAGE, SyncState.PAUSED, SyncState.CANCELLED, SyncState.IDLE}
    ),
    SyncState.COMPLETE: frozenset({SyncState.IDLE}),
    SyncState.FAILED: frozenset({SyncState.IDLE}),
    SyncState.CANCELLED: frozenset({SyncState.IDLE}),
}


class InvalidTransitionError(Exception):
    """Raised when a state change is not allowed from the current state."""


class SyncStateMachine:
    """Tracks the current sync state and rejects invalid transitions."""

    def __init__(self, initial: SyncState = SyncState.IDLE):
        self.state = initial
        self.history: list[SyncState] = [initial]

    def can_transition(self, target: SyncState) -> bool:
        return target == self.state or target in ALLOWED_TRANSITIONS[self.state]

    def transition(self, target: SyncState) -> SyncState:
        if target == self.state:
            return self.state
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"Cannot go from {self.state.value} to {target.value}")
        logger.debug(f"Sync state {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)
        return target

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def reset(self) -> None:
        """Return to IDLE from any state (start of the next candidate)."""
        if self.state != SyncState.IDLE:
            self.state = SyncState.IDLE
            self.history.append(SyncState.IDLE)


@dataclass
class SyncProgress:
    """Progress of a multi-candidate run, updated after each candidate."""

    total: int = 0
    current_index: int = 0
    current_name: str | None = None
    completed: int = 0
    state: SyncState = SyncState.IDLE
    is_paused: bool = False
    is_cancelled: bool = False
    is_retrying: bool = False
    retry_count: int = 0
    imported: int = 0
    total_raised: float = 0.0
    errors: list[dict[str, str]] = field(default_factory=list)

    def record_error(self, candidate_id: str, name: str | None, message: str) -> None:
        self.errors.append({"candidate_id": candidate_id, "name": name or "", "error": message})

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        return data
