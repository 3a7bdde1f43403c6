"""Tests for folding Schedule A pages into donor aggregates."""

from datetime import date

import pandas as pd

from candidate_finance_etl.models.donor import Donor
from candidate_finance_etl.transformers.donor_aggregator import DonorAggregate, DonorAggregator
from candidate_finance_etl.transformers.schedule_a import ScheduleATransformer
from tests.helpers import receipt


def _page(records, committee_id="C00111111"):
    return ScheduleATransformer().transform(
        pd.DataFrame(records), committee_id=committee_id, committee_name=None, cycle=2024
    )


class TestDonorAggregator:
    def test_fold_groups_by_donor_key(self):
        aggregator = DonorAggregator()

        folded = aggregator.fold(
            _page(
                [
                    receipt("DOE, JANE", 100.0, receipt_date="2024-01-15"),
                    receipt("DOE, JANE", 250.0, receipt_date="2024-04-02"),
                    receipt("ACME PAC", 500.0, entity_type="PAC", city="CHICAGO", zip_code="60601"),
                ]
            )
        )

        assert folded == 3
        assert len(aggregator) == 2
        assert aggregator.total_cents == 85000

        jane = next(a for a in aggregator.aggregates() if a.name == "DOE, JANE")
        assert jane.amount_cents == 35000
        assert jane.amount == 350.0
        assert jane.transaction_count == 2
        assert jane.first_receipt_date == date(2024, 1, 15)
        assert jane.last_receipt_date == date(2024, 4, 2)

    def test_fold_across_pages_widens_date_range(self):
        aggregator = DonorAggregator()

        aggregator.fold(_page([receipt("DOE, JANE", 10.0, receipt_date="2024-05-01")]))
        aggregator.fold(_page([receipt("DOE, JANE", 15.0, receipt_date="2023-11-30")]))

        (jane,) = aggregator.aggregates()
        assert jane.amount_cents == 2500
        assert jane.transaction_count == 2
        assert jane.first_receipt_date == date(2023, 11, 30)
        assert jane.last_receipt_date == date(2024, 5, 1)

    def test_same_donor_to_two_committees_stays_separate(self):
        aggregator = DonorAggregator()

        aggregator.fold(_page([receipt("DOE, JANE", 10.0)], committee_id="C1"))
        aggregator.fold(_page([receipt("DOE, JANE", 10.0)], committee_id="C2"))

        assert len(aggregator) == 2

    def test_missing_dates_stay_empty(self):
        aggregator = DonorAggregator()
        page = _page([receipt("DOE, JANE", 10.0)])
        page["receipt_date"] = pd.NaT

        aggregator.fold(page)

        (jane,) = aggregator.aggregates()
        assert jane.first_receipt_date is None
        assert jane.last_receipt_date is None

    def test_seed_then_fold_continues_totals(self):
        first = DonorAggregator()
        first.fold(_page([receipt("DOE, JANE", 100.0)]))
        stored = [agg.to_model("cand-1") for agg in first.aggregates()]

        resumed = DonorAggregator()
        assert resumed.seed(stored) == 1
        resumed.fold(_page([receipt("DOE, JANE", 250.0, receipt_date="2024-02-01")]))

        (jane,) = resumed.aggregates()
        assert jane.amount_cents == 35000
        assert jane.transaction_count == 2

    def test_to_model_round_trip_fields(self):
        aggregate = DonorAggregate(
            donor_key="k" * 64,
            name="ACME PAC",
            donor_type="PAC",
            recipient_committee_id="C1",
            cycle=2024,
            amount_cents=50000,
            transaction_count=1,
            contributor_state="IL",
        )

        model = aggregate.to_model("cand-1")

        assert isinstance(model, Donor)
        assert model.candidate_id == "cand-1"
        assert model.amount == 500.0
        assert DonorAggregate.from_model(model) == aggregate

    def test_empty_page_is_noop(self):
        aggregator = DonorAggregator()

        assert aggregator.fold(_page([])) == 0
        assert len(aggregator) == 0

    def test_distinct_donors_with_identical_identity_merge(self):
        aggregator = DonorAggregator()

        aggregator.fold(
            _page(
                [
                    receipt("J. Doe", 10.0, contributor_employer="ACME CORP"),
                    receipt("J Doe", 20.0, contributor_employer="GLOBEX"),
                ]
            )
        )

        (merged,) = aggregator.aggregates()
        assert merged.amount_cents == 3000
        assert merged.transaction_count == 2
        assert merged.employer == "ACME CORP"
