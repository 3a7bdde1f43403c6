"""Bioguide -> FEC candidate id crosswalk (congress-legislators dataset)."""

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from candidate_finance_etl.config import get_settings

logger = logging.getLogger(__name__)

Crosswalk = dict[str, list[str]]


def parse_legislators(records: list[dict[str, Any]]) -> Crosswalk:
    """
    Build the bioguide -> FEC ids mapping from legislators-current.json records.

    Legislators without a bioguide id or without any FEC ids are skipped.
    FEC ids keep the dataset's order (oldest first).
    """
    crosswalk: Crosswalk = {}
    for record in records:
        ids = record.get("id") or {}
        bioguide = ids.get("bioguide")
        fec_ids = ids.get("fec") or []
        if isinstance(fec_ids, str):
            fec_ids = [fec_ids]
        if bioguide and fec_ids:
            crosswalk[bioguide] = [str(fec_id).strip().upper() for fec_id in fec_ids]
    return crosswalk


def fetch_legislators_crosswalk(url: str | None = None, timeout: int | None = None) -> Crosswalk:
    """
    Download and parse the congress-legislators crosswalk.

    Raises:
        requests.HTTPError: If the download fails
        ValueError: If the payload is not a list of legislator records
    """
    settings = get_settings()
    url = url or settings.crosswalk_url
    timeout = timeout or settings.fec_api_timeout

    logger.info(f"Downloading legislators crosswalk from {url}")
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    records = response.json()
    if not isinstance(records, list):
        raise ValueError(f"Unexpected crosswalk payload type: {type(records).__name__}")

    crosswalk = parse_legislators(records)
    logger.info(f"Loaded crosswalk with {len(crosswalk):,} legislators")
    return crosswalk


class CrosswalkCache:
    """
    Time-bounded cache around the crosswalk loader.

    The dataset is reloaded only when the cached copy is older than
    ttl_seconds (or was never loaded). A failed reload keeps serving the
    previous copy when there is one.
    """

    def __init__(
        self,
        loader: Callable[[], Crosswalk] | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.loader = loader or fetch_legislators_crosswalk
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else get_settings().crosswalk_ttl_seconds
        )
        self.clock = clock
        self._data: Crosswalk | None = None
        self._loaded_at: float | None = None

    def is_stale(self) -> bool:
        if self._data is None or self._loaded_at is None:
            return True
        return self.clock() - self._loaded_at >= self.ttl_seconds

    def get(self) -> Crosswalk:
        """Return the crosswalk, reloading it once the TTL has expired."""
        if self.is_stale():
            try:
                data = self.loader()
            except (requests.RequestException, ValueError) as e:
                if self._data is None:
                    raise
                logger.warning(f"Crosswalk refresh failed, serving cached copy: {e}")
                return self._data
            self._data = data
            self._loaded_at = self.clock()
        return self._data  # type: ignore[return-value]

    def lookup(self, bioguide_id: str) -> list[str]:
        """FEC candidate ids for a bioguide id (empty list on a miss)."""
        if not bioguide_id:
            return []
        return list(self.get().get(bioguide_id, []))

    def invalidate(self) -> None:
        self._data = None
        self._loaded_at = None
