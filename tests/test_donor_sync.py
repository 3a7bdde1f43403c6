"""Tests for a single donor sync invocation."""

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from candidate_finance_etl.clients.fec import FECAPIError
from candidate_finance_etl.models.candidate import Candidate
from candidate_finance_etl.orchestration.control import SyncControl
from candidate_finance_etl.repos.donor_repo import DonorRepo
from candidate_finance_etl.repos.sync_cursor_repo import CommitteeSyncStatus, SyncCursor, SyncCursorRepo
from candidate_finance_etl.services.donor_sync import DonorSyncService, SyncRequest
from tests.helpers import (
    FakeClock,
    FakeFECClient,
    ScheduleAFeed,
    committees_response,
    individual_receipts,
    no_sleep,
    receipt,
)

SCHEDULE_A = "/schedules/schedule_a/"
COMMITTEES = "/candidate/H4IL13001/committees/"
PRINCIPAL = ("C00111111", "SMITH FOR CONGRESS", "P")
AUTHORIZED = ("C00222222", "SMITH VICTORY FUND", "A")

SCENARIO_A_RECEIPTS = [
    receipt("Jane Doe", 100.0, receipt_date="2024-02-01"),
    receipt("Jane Doe", 250.0, receipt_date="2024-04-15"),
    receipt("Acme PAC", 500.0, entity_type="PAC", city="CHICAGO", zip_code="60601"),
]

cursor_repo = SyncCursorRepo()
donor_repo = DonorRepo()


def _service(feed, committees=(PRINCIPAL,), clock=None, api_key="test-key", **kwargs):
    client = FakeFECClient(
        {SCHEDULE_A: feed, COMMITTEES: committees_response(*committees)}, api_key=api_key
    )
    service = DonorSyncService(
        api_client=client, clock=clock or FakeClock(), sleep=no_sleep, **kwargs
    )
    return service, client


def _request(**kwargs):
    return SyncRequest(candidate_id="cand-1", cycle=2024, **kwargs)


class TestSingleSync:
    def test_aggregates_donors_for_candidate(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": SCENARIO_A_RECEIPTS})
        service, _ = _service(feed)

        result = service.sync(session, _request())

        assert result.success
        assert result.new_pass
        assert result.imported == 2
        assert result.total_raised == 850.0
        assert not result.has_more
        assert result.committees_processed == 1

        donors = {d.name: d for d in donor_repo.list_for_candidate(session, "cand-1", 2024)}
        assert set(donors) == {"Jane Doe", "Acme PAC"}
        assert donors["Jane Doe"].amount_cents == 35000
        assert donors["Jane Doe"].transaction_count == 2
        assert donors["Jane Doe"].donor_type == "Individual"
        assert donors["Jane Doe"].recipient_committee_name == "SMITH FOR CONGRESS"
        assert donors["Acme PAC"].donor_type == "PAC"

        assert cursor_repo.statuses(session, "cand-1", 2024) == {
            "C00111111": CommitteeSyncStatus.COMPLETE
        }
        assert candidate.last_donor_sync is not None
        assert candidate.fec_committee_id == "C00111111"

    def test_request_parameters(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": SCENARIO_A_RECEIPTS})
        service, client = _service(feed)

        service.sync(session, _request())

        (params,) = [p for endpoint, p in client.calls if endpoint == SCHEDULE_A]
        assert params["two_year_transaction_period"] == 2024
        assert params["sort"] == "-contribution_receipt_date"
        assert params["per_page"] == 100
        assert "last_index" not in params

    def test_repeated_full_syncs_are_idempotent(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": SCENARIO_A_RECEIPTS})
        service, _ = _service(feed)

        first = service.sync(session, _request())
        second = service.sync(session, _request())

        assert second.new_pass
        assert (second.imported, second.total_raised) == (first.imported, first.total_raised)
        assert donor_repo.count(session, "cand-1", 2024) == 2

    def test_resumes_from_cursor_across_invocations(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})
        service, _ = _service(feed)

        first = service.sync(session, _request(max_pages=1))
        assert first.success and first.has_more
        assert first.imported == 100
        assert cursor_repo.read(session, "cand-1", "C00111111").last_index == "100"

        second = service.sync(session, _request(max_pages=1))
        assert not second.new_pass
        assert second.has_more
        assert second.imported == 200

        third = service.sync(session, _request(max_pages=1))
        assert not third.has_more
        assert third.imported == 250
        assert third.total_raised == 2500.0

        assert feed.requests == [("C00111111", 0), ("C00111111", 100), ("C00111111", 200)]
        assert donor_repo.count(session, "cand-1", 2024) == 250
        assert cursor_repo.read(session, "cand-1", "C00111111") is None

    def test_force_full_sync_restarts_pass(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})
        service, _ = _service(feed)

        service.sync(session, _request(max_pages=1))
        restarted = service.sync(session, _request(max_pages=1, force_full_sync=True))

        assert restarted.new_pass
        assert restarted.imported == 100
        assert feed.requests[-1] == ("C00111111", 0)

    def test_stops_at_time_budget_with_cursor(self, session, candidate):
        clock = FakeClock()
        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})

        def slow_feed(params):
            clock.advance(60)
            return feed(params)

        service, _ = _service(slow_feed, clock=clock)

        result = service.sync(session, _request(max_runtime_seconds=100))

        assert result.success
        assert result.stopped_due_to_timeout
        assert result.has_more
        assert result.imported == 200
        assert cursor_repo.read(session, "cand-1", "C00111111") == SyncCursor(
            "200", "2024-03-01T00:00:00"
        )

    def test_cancel_between_pages_keeps_progress(self, session, candidate):
        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})
        service, _ = _service(feed)
        control = SyncControl()

        result = service.sync(session, _request(), control=control, on_page=lambda meta: control.cancel())

        assert result.success
        assert result.cancelled
        assert result.has_more
        assert result.imported == 100
        assert cursor_repo.read(session, "cand-1", "C00111111").last_index == "100"

    def test_fetch_error_keeps_partial_aggregate(self, session, candidate):
        feed = ScheduleAFeed(
            {"C00111111": individual_receipts(150), "C00222222": SCENARIO_A_RECEIPTS},
            fail_at={("C00111111", 100): FECAPIError("Server error 503 after 5 attempts", 503)},
        )
        service, _ = _service(feed, committees=(PRINCIPAL, AUTHORIZED))

        result = service.sync(session, _request())

        assert result.success
        assert result.has_more
        assert result.committees_remaining == 1
        assert result.imported == 102
        assert any("C00111111" in e for e in result.errors)
        assert cursor_repo.statuses(session, "cand-1", 2024) == {
            "C00111111": CommitteeSyncStatus.PARTIAL,
            "C00222222": CommitteeSyncStatus.COMPLETE,
        }

        feed.fail_at.clear()
        resumed = service.sync(session, _request())

        assert not resumed.new_pass
        assert not resumed.has_more
        assert resumed.imported == 152
        assert resumed.total_raised == 1500.0 + 850.0
        assert feed.requests[-1] == ("C00111111", 100)

    def test_committee_without_receipts_completes(self, session, candidate):
        feed = ScheduleAFeed({})
        service, _ = _service(feed)

        result = service.sync(session, _request())

        assert result.success
        assert result.imported == 0
        assert not result.has_more

    def test_donor_write_failure_fails_and_keeps_cursors(self, session, candidate):
        class FailingDonorRepo(DonorRepo):
            def replace_donors(self, session, candidate_id, cycle, donors):
                raise SQLAlchemyError("disk full")

        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})
        service, _ = _service(feed, donor_repo=FailingDonorRepo())

        result = service.sync(session, _request(max_pages=1))

        assert not result.success
        assert "disk full" in result.message
        assert cursor_repo.read(session, "cand-1", "C00111111") is None
        assert candidate.last_donor_sync is None

    def test_cursor_write_failure_does_not_double_count(self, session, candidate):
        class FlakyCursorRepo(SyncCursorRepo):
            failures = 1

            def write(self, session, *args, **kwargs):
                if self.failures:
                    self.failures -= 1
                    raise OperationalError("UPDATE", {}, Exception("database is locked"))
                return super().write(session, *args, **kwargs)

        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})
        service, _ = _service(feed, cursor_repo=FlakyCursorRepo())

        failed = service.sync(session, _request(max_pages=1))

        assert not failed.success
        assert "database is locked" in failed.message
        assert donor_repo.count(session, "cand-1", 2024) == 0

        results = [service.sync(session, _request(max_pages=1)) for _ in range(3)]

        assert [r.success for r in results] == [True, True, True]
        assert not results[-1].has_more
        assert results[-1].imported == 250
        assert results[-1].total_raised == 2500.0
        assert feed.requests == [
            ("C00111111", 0),
            ("C00111111", 0),
            ("C00111111", 100),
            ("C00111111", 200),
        ]

    def test_missing_api_key_is_configuration_error(self, session, candidate):
        service, client = _service(ScheduleAFeed({}), api_key="")

        result = service.sync(session, _request())

        assert not result.success
        assert "API key" in result.message
        assert client.calls == []

    @pytest.mark.parametrize("cycle", [2023, 1970])
    def test_invalid_cycle_is_rejected(self, session, candidate, cycle):
        service, client = _service(ScheduleAFeed({}))

        result = service.sync(session, SyncRequest(candidate_id="cand-1", cycle=cycle))

        assert not result.success
        assert client.calls == []

    def test_unknown_candidate(self, session):
        service, _ = _service(ScheduleAFeed({}))

        result = service.sync(session, _request())

        assert not result.success
        assert "not found" in result.message

    def test_no_committees_fails(self, session):
        session.add(Candidate(id="cand-9", name="Nobody Known"))
        session.commit()
        service, client = _service(ScheduleAFeed({}))

        result = service.sync(session, SyncRequest(candidate_id="cand-9", cycle=2024))

        assert not result.success
        assert "No committee" in result.message
        assert SCHEDULE_A not in client.endpoints_called()

    def test_manual_committee_is_synced(self, session):
        session.add(Candidate(id="cand-9", name="Nobody Known"))
        session.commit()
        feed = ScheduleAFeed({"C00333333": SCENARIO_A_RECEIPTS})
        client = FakeFECClient(
            {SCHEDULE_A: feed, "/committee/C00333333/": {"results": [{"name": "FRIENDS"}]}}
        )
        service = DonorSyncService(api_client=client, clock=FakeClock(), sleep=no_sleep)

        result = service.sync(
            session, SyncRequest(candidate_id="cand-9", cycle=2024, committee_id="C00333333")
        )

        assert result.success
        assert result.imported == 2

    def test_rate_limit_override(self, session, candidate):
        service, client = _service(ScheduleAFeed({"C00111111": SCENARIO_A_RECEIPTS}))

        service.sync(session, _request(rate_limit_per_minute=30))

        assert client.rate_limiter.max_per_minute == 30
