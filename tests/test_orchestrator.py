"""Tests for the sync state machine and multi-invocation orchestration."""

import pytest
import requests
from sqlalchemy.exc import OperationalError

from candidate_finance_etl.clients.fec import FECAPIError
from candidate_finance_etl.models.candidate import Candidate
from candidate_finance_etl.orchestration.control import SyncControl
from candidate_finance_etl.orchestration.orchestrator import DonorSyncOrchestrator
from candidate_finance_etl.orchestration.state import (
    InvalidTransitionError,
    SyncProgress,
    SyncState,
    SyncStateMachine,
)
from candidate_finance_etl.repos.candidate_repo import CandidateRepo
from candidate_finance_etl.services.donor_sync import DonorSyncService, SyncRequest, SyncResult
from tests.helpers import (
    FakeClock,
    FakeFECClient,
    ScheduleAFeed,
    committees_response,
    individual_receipts,
    no_sleep,
)

SCHEDULE_A = "/schedules/schedule_a/"
COMMITTEES = "/candidate/H4IL13001/committees/"


class StubSyncService:
    """Returns scripted results per candidate; an Exception entry is raised."""

    def __init__(self, results=None, default=None):
        self.results = results or {}
        self.default = default or SyncResult(success=True, imported=1, total_raised=10.0)
        self.requests: list[SyncRequest] = []

    def sync(self, session, request, control=None, on_page=None):
        self.requests.append(request)
        scripted = self.results.get(request.candidate_id)
        if isinstance(scripted, list):
            scripted = scripted.pop(0)
        if isinstance(scripted, Exception):
            raise scripted
        return scripted or self.default


def _orchestrator(sync_service, **kwargs):
    kwargs.setdefault("max_iterations", 10)
    return DonorSyncOrchestrator(
        sync_service=sync_service,
        iteration_delay=0,
        candidate_delay=0,
        sleep=no_sleep,
        **kwargs,
    )


def _add_candidates(session, count):
    rows = [
        Candidate(id=f"cand-{i}", name=f"Candidate {i}", fec_candidate_id=f"H4IL{i:05d}")
        for i in range(1, count + 1)
    ]
    session.add_all(rows)
    session.commit()
    return rows


class TestSyncStateMachine:
    def test_happy_path(self):
        machine = SyncStateMachine()

        machine.transition(SyncState.FETCHING_PAGE)
        machine.transition(SyncState.WAITING_FOR_RATE_LIMIT)
        machine.transition(SyncState.FETCHING_PAGE)
        machine.transition(SyncState.PARTIAL)
        machine.transition(SyncState.FETCHING_PAGE)
        machine.transition(SyncState.COMPLETE)

        assert machine.is_terminal
        assert machine.history[0] == SyncState.IDLE
        assert machine.history[-1] == SyncState.COMPLETE

    def test_terminal_state_only_returns_to_idle(self):
        machine = SyncStateMachine(SyncState.COMPLETE)

        with pytest.raises(InvalidTransitionError):
            machine.transition(SyncState.FETCHING_PAGE)
        machine.transition(SyncState.IDLE)
        assert machine.state == SyncState.IDLE

    def test_pause_and_resume(self):
        machine = SyncStateMachine()
        machine.transition(SyncState.FETCHING_PAGE)

        machine.transition(SyncState.PAUSED)
        assert not machine.can_transition(SyncState.COMPLETE)
        machine.transition(SyncState.FETCHING_PAGE)

    def test_self_transition_is_noop(self):
        machine = SyncStateMachine()
        machine.transition(SyncState.IDLE)

        assert machine.history == [SyncState.IDLE]

    def test_reset_from_any_state(self):
        machine = SyncStateMachine(SyncState.WAITING_FOR_RATE_LIMIT)

        machine.reset()

        assert machine.state == SyncState.IDLE


class TestSyncControl:
    def test_cancel_wakes_paused_waiter(self):
        control = SyncControl(poll_seconds=0.01)
        control.pause()
        assert control.is_paused

        control.cancel()

        assert control.wait_if_paused() is False
        assert control.is_cancelled

    def test_running_control_continues(self):
        control = SyncControl()

        assert control.wait_if_paused() is True


class TestCompleteSync:
    def test_loops_until_no_work_remains(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})
        client = FakeFECClient(
            {
                SCHEDULE_A: feed,
                COMMITTEES: committees_response(("C00111111", "SMITH FOR CONGRESS", "P")),
            }
        )
        service = DonorSyncService(api_client=client, clock=FakeClock(), sleep=no_sleep)
        orchestrator = _orchestrator(service)

        outcome = orchestrator.complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024, max_pages=1)
        )

        assert outcome.success
        assert outcome.state == SyncState.COMPLETE
        assert outcome.iterations == 3
        assert outcome.imported == 250
        assert outcome.total_raised == 2500.0
        assert not outcome.has_more

    def test_rate_limit_wait_is_reported(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": individual_receipts(3)})
        client = FakeFECClient(
            {
                SCHEDULE_A: feed,
                COMMITTEES: committees_response(("C00111111", "SMITH FOR CONGRESS", "P")),
            }
        )
        service = DonorSyncService(api_client=client, clock=FakeClock(), sleep=no_sleep)
        orchestrator = _orchestrator(service)

        outcome = orchestrator.complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024, rate_limit_per_minute=1)
        )

        assert outcome.state == SyncState.COMPLETE
        assert SyncState.WAITING_FOR_RATE_LIMIT in orchestrator.state_machine.history

    def test_only_first_invocation_forces_new_pass(self, session, candidate):
        partial = SyncResult(success=True, has_more=True, pages_fetched=1)
        done = SyncResult(success=True, imported=5)
        service = StubSyncService({"cand-1": [partial, partial, done]})

        outcome = _orchestrator(service).complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024, force_full_sync=True)
        )

        assert outcome.iterations == 3
        assert [r.force_full_sync for r in service.requests] == [True, False, False]

    def test_stops_at_iteration_cap(self, session, candidate):
        service = StubSyncService(
            default=SyncResult(success=True, has_more=True, pages_fetched=1)
        )

        outcome = _orchestrator(service, max_iterations=4).complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024)
        )

        assert outcome.iterations == 4
        assert outcome.state == SyncState.PARTIAL
        assert outcome.has_more
        assert outcome.success

    def test_iteration_without_pages_stops_as_failure(self, session, candidate):
        stalled = SyncResult(
            success=True, has_more=True, errors=["C00111111: Server error 503 after 5 attempts"]
        )
        service = StubSyncService(default=stalled)

        outcome = _orchestrator(service).complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024)
        )

        assert outcome.iterations == 1
        assert not outcome.success
        assert outcome.state == SyncState.FAILED
        assert "Server error 503" in outcome.message

    def test_iteration_without_pages_or_errors_stays_partial(self, session, candidate):
        service = StubSyncService(default=SyncResult(success=True, has_more=True))

        outcome = _orchestrator(service).complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024)
        )

        assert outcome.iterations == 1
        assert outcome.success
        assert outcome.state == SyncState.PARTIAL

    def test_cap_with_errors_is_a_failure(self, session, candidate):
        service = StubSyncService(
            default=SyncResult(
                success=True, has_more=True, pages_fetched=1, errors=["C00222222: FEC API error: 500"]
            )
        )

        outcome = _orchestrator(service, max_iterations=2).complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024)
        )

        assert outcome.iterations == 2
        assert not outcome.success
        assert outcome.state == SyncState.PARTIAL
        assert "FEC API error: 500" in outcome.message

    def test_failure_ends_loop(self, session, candidate):
        service = StubSyncService(
            default=SyncResult(success=False, message="Failed to save donors: locked")
        )

        outcome = _orchestrator(service).complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024)
        )

        assert not outcome.success
        assert outcome.state == SyncState.FAILED
        assert outcome.iterations == 1

    def test_cancelled_before_start(self, session, candidate):
        service = StubSyncService()
        control = SyncControl()
        control.cancel()

        outcome = _orchestrator(service).complete_sync(
            session, SyncRequest(candidate_id="cand-1", cycle=2024), control=control
        )

        assert outcome.state == SyncState.CANCELLED
        assert service.requests == []


class TestBatchSync:
    def test_one_failure_does_not_stop_the_batch(self, session):
        _add_candidates(session, 5)
        routes = {
            f"/candidate/H4IL{i:05d}/committees/": committees_response(
                (f"C{i:08d}", f"CANDIDATE {i} FOR CONGRESS", "P")
            )
            for i in range(1, 6)
        }
        feed = ScheduleAFeed(
            {f"C{i:08d}": individual_receipts(3, f"DONOR{i}") for i in range(1, 6)},
            fail_at={
                ("C00000003", 0): FECAPIError(
                    f"Request failed after 5 attempts for {SCHEDULE_A}: ConnectionError"
                )
            },
        )
        client = FakeFECClient({SCHEDULE_A: feed, **routes})
        service = DonorSyncService(api_client=client, clock=FakeClock(), sleep=no_sleep)
        updates = []

        progress = _orchestrator(service).batch_sync(
            session,
            [f"cand-{i}" for i in range(1, 6)],
            2024,
            on_progress=lambda p: updates.append(p.current_index),
        )

        assert progress.total == 5
        assert progress.completed == 4
        assert progress.imported == 12
        assert progress.total_raised == 120.0
        assert len(progress.errors) == 1
        (error,) = progress.errors
        assert error["candidate_id"] == "cand-3"
        assert error["name"] == "Candidate 3"
        assert "ConnectionError" in error["error"]
        assert progress.state == SyncState.PARTIAL
        assert updates == [1, 2, 3, 4, 5]
        assert [r for r in feed.requests if r[0] == "C00000003"] == [("C00000003", 0)]

    def test_retrying_is_reported_while_throttled(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": individual_receipts(3)})
        client = FakeFECClient(
            {
                SCHEDULE_A: feed,
                COMMITTEES: committees_response(("C00111111", "SMITH FOR CONGRESS", "P")),
            }
        )
        service = DonorSyncService(api_client=client, clock=FakeClock(), sleep=no_sleep)
        orchestrator = _orchestrator(service)
        client.rate_limiter.set_limit(1)
        updates = []

        progress = orchestrator.batch_sync(
            session,
            ["cand-1"],
            2024,
            on_progress=lambda p: updates.append((p.is_retrying, p.state)),
        )

        assert updates == [
            (True, SyncState.WAITING_FOR_RATE_LIMIT),
            (False, SyncState.FETCHING_PAGE),
            (False, SyncState.COMPLETE),
        ]
        assert progress.retry_count == 1
        assert not progress.is_retrying

    def test_unexpected_exception_is_recorded(self, session):
        _add_candidates(session, 2)
        service = StubSyncService({"cand-1": requests.ConnectionError("connection reset")})

        progress = _orchestrator(service).batch_sync(session, ["cand-1", "cand-2"], 2024)

        assert progress.completed == 1
        assert progress.errors == [
            {
                "candidate_id": "cand-1",
                "name": "Candidate 1",
                "error": "ConnectionError: connection reset",
            }
        ]
        assert [r.candidate_id for r in service.requests] == ["cand-1", "cand-2"]

    def test_all_successful_batch_completes(self, session):
        _add_candidates(session, 2)

        progress = _orchestrator(StubSyncService()).batch_sync(session, ["cand-1", "cand-2"], 2024)

        assert progress.state == SyncState.COMPLETE
        assert progress.to_dict()["state"] == "complete"

    def test_cancelled_batch_stops_before_next_candidate(self, session):
        _add_candidates(session, 3)
        control = SyncControl()
        service = StubSyncService()

        def cancel_after_first(progress: SyncProgress):
            control.cancel()

        progress = _orchestrator(service).batch_sync(
            session, ["cand-1", "cand-2", "cand-3"], 2024, control=control,
            on_progress=cancel_after_first,
        )

        assert progress.is_cancelled
        assert progress.state == SyncState.CANCELLED
        assert [r.candidate_id for r in service.requests] == ["cand-1"]


class TestSyncAll:
    def test_syncs_only_candidates_needing_work(self, session, candidate):
        session.add(Candidate(id="cand-nofec", name="Unknown Una"))
        session.commit()
        service = StubSyncService()

        result = _orchestrator(service).sync_all(session, 2024, limit=10)

        assert result.success
        assert result.candidates_found == 1
        assert result.candidates_synced == 1
        assert [r.candidate_id for r in service.requests] == ["cand-1"]
        assert service.requests[0].fec_candidate_id == "H4IL13001"

    def test_listing_failure_aborts(self, session):
        class BrokenCandidateRepo(CandidateRepo):
            def list_needing_sync(self, session, cycle, limit=None):
                raise OperationalError("SELECT", {}, Exception("connection refused"))

        service = StubSyncService()
        result = _orchestrator(service, candidate_repo=BrokenCandidateRepo()).sync_all(session, 2024)

        assert not result.success
        assert "Failed to list candidates" in result.message
        assert service.requests == []

    def test_failures_are_counted(self, session):
        _add_candidates(session, 2)
        service = StubSyncService({"cand-2": SyncResult(success=False, message="No committee")})

        result = _orchestrator(service).sync_all(session, 2024)

        assert result.candidates_synced == 1
        assert result.candidates_failed == 1
        assert result.errors[0]["candidate_id"] == "cand-2"
