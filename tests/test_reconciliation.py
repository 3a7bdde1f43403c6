"""Tests for reconciling local donor totals with FEC committee totals."""

import pytest

from candidate_finance_etl.clients.fec import FECAPIError
from candidate_finance_etl.extractors.fec.committees import FECCommitteeExtractor
from candidate_finance_etl.models.committee import CommitteeRole
from candidate_finance_etl.models.donor import Donor
from candidate_finance_etl.repos.reconciliation_repo import ReconciliationRepo
from candidate_finance_etl.repos.sync_cursor_repo import SyncCursorRepo
from candidate_finance_etl.services.reconciliation import (
    NoActiveCommitteesError,
    ReconciliationService,
    reconciliation_status,
    variance_pct,
)
from tests.helpers import FakeFECClient, no_sleep


def _donor(key, amount_cents, receipt_class="contribution", is_conduit_org=False, committee="C00111111"):
    return Donor(
        donor_key=key,
        candidate_id="cand-1",
        cycle=2024,
        name=key.upper(),
        donor_type="Individual",
        amount_cents=amount_cents,
        transaction_count=1,
        recipient_committee_id=committee,
        receipt_class=receipt_class,
        is_conduit_org=is_conduit_org,
    )


def _totals(itemized, unitemized=0.0, receipts=None):
    return {
        "results": [
            {
                "cycle": 2024,
                "individual_itemized_contributions": itemized,
                "individual_unitemized_contributions": unitemized,
                "receipts": receipts if receipts is not None else itemized + unitemized,
            }
        ]
    }


def _service(routes):
    client = FakeFECClient(routes)
    return ReconciliationService(
        committee_extractor=FECCommitteeExtractor(api_client=client), variance_threshold=5.0
    )


@pytest.fixture
def with_committees(session, candidate):
    repo = SyncCursorRepo()
    repo.upsert_committee(session, candidate.id, "C00111111", CommitteeRole.PRINCIPAL)
    repo.upsert_committee(session, candidate.id, "C00222222", CommitteeRole.AUTHORIZED)
    session.add_all(
        [
            _donor("jane", 35000),
            _donor("acme", 50000),
            _donor("actblue", 900000, is_conduit_org=True),
            _donor("transfer", 20000, receipt_class="transfer", committee="C00222222"),
        ]
    )
    session.commit()
    return candidate


class TestStatus:
    def test_variance(self):
        assert variance_pct(105, 100) == 5.0
        assert variance_pct(90, 100) == -10.0
        assert variance_pct(100, 0) == 0.0

    @pytest.mark.parametrize(
        "delta_pct, status",
        [(0.0, "ok"), (5.0, "ok"), (-7.5, "warning"), (10.0, "warning"), (10.01, "error"), (-40, "error")],
    )
    def test_thresholds(self, delta_pct, status):
        assert reconciliation_status(delta_pct, 5.0) == status


class TestReconciliationService:
    def test_matching_totals_are_ok(self, session, with_committees):
        service = _service(
            {
                "/committee/C00111111/totals/": _totals(800.0, unitemized=1200.0),
                "/committee/C00222222/totals/": _totals(50.0),
            }
        )

        record = service.reconcile(session, "cand-1", 2024)

        assert record.local_itemized_cents == 85000
        assert record.local_transfers_cents == 20000
        assert record.fec_itemized_cents == 85000
        assert record.fec_unitemized_cents == 120000
        assert record.delta_cents == 0
        assert record.status == "ok"
        assert record.notes is None

    def test_large_gap_is_error(self, session, with_committees):
        service = _service(
            {
                "/committee/C00111111/totals/": _totals(1000.0),
                "/committee/C00222222/totals/": {"results": []},
            }
        )

        record = service.reconcile(session, "cand-1", 2024)

        assert record.delta_cents == -15000
        assert record.delta_pct == -15.0
        assert record.status == "error"
        assert "C00222222" in record.notes

    def test_rerun_updates_single_row(self, session, with_committees):
        routes = {
            "/committee/C00111111/totals/": _totals(850.0),
            "/committee/C00222222/totals/": _totals(0.0),
        }
        service = _service(routes)

        service.reconcile(session, "cand-1", 2024)
        routes["/committee/C00111111/totals/"] = _totals(900.0)
        record = service.reconcile(session, "cand-1", 2024)

        assert record.status == "warning"
        assert ReconciliationRepo().get(session, "cand-1", 2024).id == record.id

    def test_no_committees(self, session, candidate):
        with pytest.raises(NoActiveCommitteesError):
            _service({}).reconcile(session, "cand-1", 2024)

    def test_reconcile_all_skips_failures(self, session, with_committees):
        service = _service(
            {
                "/committee/C00111111/totals/": FECAPIError("FEC API error: 500", status_code=500),
            }
        )

        result = service.reconcile_all(session, 2024, sleep=no_sleep)

        assert result.reconciled == 0
        assert result.skipped == 1
        assert result.errors[0]["candidate_id"] == "cand-1"

    def test_reconcile_all_counts_statuses(self, session, with_committees):
        service = _service(
            {
                "/committee/C00111111/totals/": _totals(850.0),
                "/committee/C00222222/totals/": _totals(0.0),
            }
        )

        result = service.reconcile_all(session, 2024, sleep=no_sleep)

        assert result.reconciled == 1
        assert result.statuses["ok"] == 1
