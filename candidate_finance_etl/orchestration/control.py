"""Cooperative pause/resume/cancel token threaded through a sync run."""

import threading


class SyncControl:
    """
    Pause, resume and cancel signals for a running sync.

    Checked only at page and candidate boundaries; an in-flight request is
    never interrupted.
    """

    def __init__(self, poll_seconds: float = 0.5):
        self.poll_seconds = poll_seconds
        self._cancelled = threading.Event()
        self._running = threading.Event()
        self._running.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def cancel(self) -> None:
        self._cancelled.set()
        # Wake anything blocked in wait_if_paused
        self._running.set()

    def wait_if_paused(self) -> bool:
        """
        Block while paused.

        Returns:
            False if the run was cancelled, True to continue
        """
        while not self._running.wait(self.poll_seconds):
            if self.is_cancelled:
                return False
        return not self.is_cancelled
