"""FEC API client with rate limiting and retry logic."""

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from candidate_finance_etl.config import get_settings
from candidate_finance_etl.utils.rate_limiter import FECRateLimiter

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({500, 502, 503, 504})


class FECAPIError(Exception):
    """Base exception for FEC API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FECConfigurationError(FECAPIError):
    """Raised when the client or a sync is missing required configuration. Never retried."""


class FECRateLimitError(FECAPIError):
    """Raised when throttling persists after all retry attempts."""


class FECResponseShapeError(FECAPIError):
    """Raised when a response body does not have the expected structure."""


def compute_backoff_delay(attempt: int, base: float, cap: float) -> float:
    """
    Exponential backoff delay for a zero-based retry attempt.

    base * 2**attempt, never more than cap.
    """
    return min(base * (2**attempt), cap)


class FECAPIClient:
    """
    Client for making requests to the FEC API.

    Handles authentication, rate limiting, retries, and request execution.
    Shared by the identity resolver, committee discovery, Schedule A
    extraction and reconciliation.

    Retry policy: throttling (429), 5xx responses, timeouts and connection
    errors are retried with capped exponential backoff up to max_attempts
    total attempts. Other 4xx responses fail immediately.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        rate_limiter: FECRateLimiter | None = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        backoff_max: float | None = None,
        timeout: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Callable[[int, float, str], None] | None = None,
    ):
        """
        Initialize FEC API client. Unset arguments fall back to settings.

        Args:
            api_key: FEC API key
            base_url: API root (e.g. https://api.open.fec.gov/v1)
            rate_limiter: Sliding-window limiter (one per client)
            max_attempts: Total attempts per request, including the first
            backoff_base: First backoff delay in seconds
            backoff_max: Backoff ceiling in seconds
            timeout: Per-request timeout in seconds
            sleep: Sleep function used for backoff
            on_retry: Called with (attempt, delay, reason) before each backoff sleep
        """
        settings = get_settings()
        self.api_key = settings.fec_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.fec_api_base_url).rstrip("/")
        self.rate_limiter = rate_limiter or FECRateLimiter(
            max_per_minute=settings.max_requests_per_minute,
            min_delay=settings.api_rate_limit_delay,
        )
        self.max_attempts = max_attempts or settings.max_request_attempts
        self.backoff_base = backoff_base if backoff_base is not None else settings.backoff_base_seconds
        self.backoff_max = backoff_max if backoff_max is not None else settings.backoff_max_seconds
        self.timeout = timeout or settings.fec_api_timeout
        self.sleep = sleep
        self.on_retry = on_retry

    def ensure_configured(self) -> None:
        """Raise FECConfigurationError if the API key is missing."""
        if not self.api_key:
            raise FECConfigurationError("FEC API key not configured")

    def _backoff(self, attempt: int, reason: str, endpoint: str) -> None:
        delay = compute_backoff_delay(attempt, self.backoff_base, self.backoff_max)
        logger.warning(
            f"{reason} on attempt {attempt + 1}/{self.max_attempts} for {endpoint}. "
            f"Waiting {delay:.1f}s before retry..."
        )
        if self.on_retry:
            self.on_retry(attempt + 1, delay, reason)
        self.sleep(delay)

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Make a GET request to the FEC API with rate limiting and retries.

        Args:
            endpoint: API endpoint path (e.g., '/schedules/schedule_a/')
            params: Query parameters (api_key added automatically)

        Returns:
            JSON response as dictionary

        Raises:
            FECConfigurationError: If no API key is configured
            FECRateLimitError: If throttled on every attempt
            FECResponseShapeError: If the body is not a JSON object
            FECAPIError: On non-retryable errors or when retries are exhausted
        """
        self.ensure_configured()

        url = f"{self.base_url}{endpoint}"
        request_params = dict(params or {})
        request_params["api_key"] = self.api_key

        for attempt in range(self.max_attempts):
            is_last_attempt = attempt == self.max_attempts - 1

            # Wait if needed to respect rate limits
            self.rate_limiter.wait_if_needed()

            try:
                logger.debug(f"API request (attempt {attempt + 1}): {endpoint}")
                response = requests.get(url, params=request_params, timeout=self.timeout)
            except requests.Timeout as e:
                if is_last_attempt:
                    raise FECAPIError(
                        f"Request timeout after {self.max_attempts} attempts for {endpoint}"
                    ) from e
                self._backoff(attempt, "Request timeout", endpoint)
                continue
            except requests.RequestException as e:
                if is_last_attempt:
                    raise FECAPIError(
                        f"Request failed after {self.max_attempts} attempts for {endpoint}: "
                        f"{type(e).__name__}"
                    ) from e
                self._backoff(attempt, f"Request failed ({type(e).__name__})", endpoint)
                continue

            status = response.status_code

            if status == 429:
                if is_last_attempt:
                    logger.error(
                        f"Rate limit exceeded after {self.max_attempts} attempts for {endpoint}"
                    )
                    raise FECRateLimitError(
                        f"Rate limit exceeded after {self.max_attempts} attempts", status_code=429
                    )
                self._backoff(attempt, "Rate limited (429)", endpoint)
                continue

            if status in RETRYABLE_STATUSES:
                if is_last_attempt:
                    logger.error(
                        f"Server error ({status}) after {self.max_attempts} attempts for {endpoint}"
                    )
                    raise FECAPIError(
                        f"Server error {status} after {self.max_attempts} attempts",
                        status_code=status,
                    )
                self._backoff(attempt, f"Server error ({status})", endpoint)
                continue

            if status >= 400:
                # Don't retry other 4xx client errors (bad request, not found, etc.)
                logger.error(f"Client error ({status}) for {endpoint}")
                raise FECAPIError(f"FEC API error: {status}", status_code=status)

            try:
                data = response.json()
            except ValueError as e:
                raise FECResponseShapeError(f"Invalid JSON from {endpoint}") from e

            if not isinstance(data, dict):
                raise FECResponseShapeError(
                    f"Expected JSON object from {endpoint}, got {type(data).__name__}"
                )
            return data

        # Unreachable: the last attempt always returns or raises
        raise FECAPIError(f"Request failed after retries for {endpoint}")

    def get_rate_limiter_stats(self) -> dict[str, Any]:
        """Get current rate limiter statistics."""
        return self.rate_limiter.get_stats()
