"""Tests for Schedule A cursor pagination."""

import pytest

from candidate_finance_etl.clients.fec import FECResponseShapeError
from candidate_finance_etl.extractors.fec.schedule_a import SCHEDULE_A_ENDPOINT, FECScheduleAExtractor
from tests.helpers import FakeFECClient, ScheduleAFeed, individual_receipts


def _extractor(route, per_page=100):
    client = FakeFECClient({SCHEDULE_A_ENDPOINT: route})
    return FECScheduleAExtractor(api_client=client, per_page=per_page), client


class TestFECScheduleAExtractor:
    def test_pages_until_short_page(self):
        feed = ScheduleAFeed({"C00111111": individual_receipts(250)})
        extractor, _ = _extractor(feed)

        pages = list(extractor.extract_schedule_a_pages("C00111111", 2024))

        assert [len(df) for df, _ in pages] == [100, 100, 50]
        assert [meta["is_last"] for _, meta in pages] == [False, False, True]
        assert [meta["last_index"] for _, meta in pages] == ["100", "200", None]
        assert pages[0][1]["total_count"] == 250

    def test_exact_multiple_ends_with_empty_page(self):
        feed = ScheduleAFeed({"C00111111": individual_receipts(200)})
        extractor, _ = _extractor(feed)

        pages = list(extractor.extract_schedule_a_pages("C00111111", 2024))

        assert [len(df) for df, _ in pages] == [100, 100, 0]

    def test_resumes_from_cursor(self):
        feed = ScheduleAFeed({"C00111111": individual_receipts(150)})
        extractor, client = _extractor(feed)

        pages = list(
            extractor.extract_schedule_a_pages(
                "C00111111", 2024, last_index="100", last_contribution_receipt_date="2024-03-01"
            )
        )

        assert len(pages) == 1
        _, params = client.calls[0]
        assert params["last_index"] == "100"
        assert params["last_contribution_receipt_date"] == "2024-03-01"

    def test_full_page_without_cursor_is_shape_error(self):
        extractor, _ = _extractor(
            {"results": individual_receipts(2), "pagination": {"count": 10}}, per_page=2
        )

        with pytest.raises(FECResponseShapeError):
            list(extractor.extract_schedule_a_pages("C00111111", 2024))

    def test_non_list_results_is_shape_error(self):
        extractor, _ = _extractor({"results": {"oops": True}})

        with pytest.raises(FECResponseShapeError):
            list(extractor.extract_schedule_a_pages("C00111111", 2024))

    def test_invalid_cycle_rejected_before_request(self):
        extractor, client = _extractor(ScheduleAFeed({}))

        with pytest.raises(ValueError):
            list(extractor.extract_schedule_a_pages("C00111111", 2023))
        assert client.calls == []
