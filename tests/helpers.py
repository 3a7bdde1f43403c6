"""Fake FEC API and record builders shared across tests."""

from typing import Any

from candidate_finance_etl.clients.fec import FECAPIClient, FECAPIError
from candidate_finance_etl.utils.rate_limiter import FECRateLimiter


def no_sleep(seconds: float) -> None:
    pass


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFECClient(FECAPIClient):
    """FECAPIClient whose get() is answered from in-memory routes."""

    def __init__(self, routes: dict[str, Any] | None = None, api_key: str = "test-key"):
        super().__init__(
            api_key=api_key,
            base_url="https://fec.test/v1",
            rate_limiter=FECRateLimiter(10_000, sleep=no_sleep),
            sleep=no_sleep,
        )
        self.routes = routes or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.ensure_configured()
        params = dict(params or {})
        self.calls.append((endpoint, params))
        self.rate_limiter.wait_if_needed()
        handler = self.routes.get(endpoint)
        if handler is None:
            raise FECAPIError("FEC API error: 404", status_code=404)
        if isinstance(handler, Exception):
            raise handler
        return handler(params) if callable(handler) else handler

    def endpoints_called(self) -> list[str]:
        return [endpoint for endpoint, _ in self.calls]


class ScheduleAFeed:
    """
    Serves Schedule A pages per committee with index-based cursors.

    fail_at maps (committee_id, start_index) to an exception raised when that
    page is requested.
    """

    def __init__(
        self,
        records: dict[str, list[dict[str, Any]]],
        fail_at: dict[tuple[str, int], Exception] | None = None,
    ):
        self.records = records
        self.fail_at = fail_at or {}
        self.requests: list[tuple[str, int]] = []

    def __call__(self, params: dict[str, Any]) -> dict[str, Any]:
        committee_id = params["committee_id"]
        per_page = int(params["per_page"])
        start = int(params.get("last_index") or 0)
        self.requests.append((committee_id, start))

        error = self.fail_at.get((committee_id, start))
        if error is not None:
            raise error

        records = self.records.get(committee_id, [])
        page = records[start : start + per_page]
        end = start + len(page)
        return {
            "results": page,
            "pagination": {
                "count": len(records),
                "pages": (len(records) + per_page - 1) // per_page,
                "last_indexes": {
                    "last_index": str(end),
                    "last_contribution_receipt_date": (
                        page[-1]["contribution_receipt_date"] if page else None
                    ),
                },
            },
        }


def receipt(
    name: str,
    amount: float,
    receipt_date: str = "2024-03-01",
    entity_type: str = "IND",
    city: str | None = "SPRINGFIELD",
    state: str | None = "IL",
    zip_code: str | None = "62701",
    line_number: str = "11AI",
    **extra: Any,
) -> dict[str, Any]:
    record = {
        "contributor_name": name,
        "contribution_receipt_amount": amount,
        "contribution_receipt_date": f"{receipt_date}T00:00:00",
        "entity_type": entity_type,
        "contributor_city": city,
        "contributor_state": state,
        "contributor_zip": zip_code,
        "contributor_employer": None,
        "contributor_occupation": None,
        "line_number": line_number,
        "memo_text": None,
    }
    record.update(extra)
    return record


def individual_receipts(count: int, committee_prefix: str = "DONOR") -> list[dict[str, Any]]:
    """count receipts from count distinct individuals, $10 each."""
    return [receipt(f"{committee_prefix} {i:04d}", 10.0) for i in range(count)]


def committees_response(*committees: tuple[str, str, str]) -> dict[str, Any]:
    """(committee_id, name, designation) tuples as a /candidate/{id}/committees/ payload."""
    return {
        "results": [
            {"committee_id": cid, "name": name, "designation": designation}
            for cid, name, designation in committees
        ]
    }
