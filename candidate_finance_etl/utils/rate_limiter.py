"""Rate limiter for FEC API requests."""

import logging
import time
from collections import deque
from collections.abc import Callable

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class FECRateLimiter:
    """
    Rate limiter enforcing a per-minute request budget against the FEC API.

    Uses a sliding window of request timestamps. When the budget for the
    trailing minute is spent, blocks until the oldest request ages out.
    Clock and sleep are injectable so tests never sleep for real.
    """

    def __init__(
        self,
        max_per_minute: int,
        min_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        on_wait: Callable[[float], None] | None = None,
    ) -> None:
        """
        Initialize rate limiter with an empty request window.

        Args:
            max_per_minute: Maximum requests allowed in any trailing 60 seconds
            min_delay: Minimum spacing between consecutive requests (seconds)
            clock: Monotonic clock returning seconds
            sleep: Sleep function
            on_wait: Called with the wait duration before blocking for the window
        """
        if max_per_minute < 1:
            raise ValueError("max_per_minute must be at least 1")

        self.max_per_minute = max_per_minute
        self.min_delay = min_delay
        self.clock = clock
        self.sleep = sleep
        self.on_wait = on_wait
        self.minute_requests: deque[float] = deque()

    def set_limit(self, max_per_minute: int) -> None:
        """Change the per-minute budget (applies to subsequent requests)."""
        if max_per_minute < 1:
            raise ValueError("max_per_minute must be at least 1")
        self.max_per_minute = max_per_minute

    def _clean_old_requests(self, now: float) -> None:
        """Drop timestamps that fell out of the trailing window."""
        window_start = now - WINDOW_SECONDS
        while self.minute_requests and self.minute_requests[0] <= window_start:
            self.minute_requests.popleft()

    def wait_if_needed(self) -> float:
        """
        Wait if necessary to stay within the per-minute budget, then record the request.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        now = self.clock()
        self._clean_old_requests(now)

        if len(self.minute_requests) >= self.max_per_minute:
            oldest_in_minute = self.minute_requests[0]
            wait_seconds = oldest_in_minute + WINDOW_SECONDS - now

            if wait_seconds > 0:
                logger.warning(
                    f"Rate limit reached ({self.max_per_minute}/min). "
                    f"Waiting {wait_seconds:.1f}s for window reset..."
                )
                if self.on_wait:
                    self.on_wait(wait_seconds)
                self.sleep(wait_seconds)
                waited += wait_seconds
                now = self.clock()
                self._clean_old_requests(now)

        # Enforce minimum delay between requests
        if self.min_delay and self.minute_requests:
            time_since_last = now - self.minute_requests[-1]
            if time_since_last < self.min_delay:
                delay = self.min_delay - time_since_last
                self.sleep(delay)
                waited += delay
                now = self.clock()

        self.minute_requests.append(now)
        return waited

    def get_stats(self) -> dict[str, int]:
        """
        Get current rate limiter statistics.

        Returns:
            Dictionary with request counts
        """
        self._clean_old_requests(self.clock())
        return {
            "requests_last_minute": len(self.minute_requests),
            "remaining_minute": self.max_per_minute - len(self.minute_requests),
        }

    def reset(self) -> None:
        """Clear all tracked requests."""
        self.minute_requests.clear()
