"""
Cancellation Token

Shared cancellation signal passed down through the pipeline stages and the
external tool adapters.
"""

import threading
import time
from typing import Callable, Optional

from .errors import JobCancelledError


class CancellationToken:
    """
    Cooperative cancellation signal.

    Wraps a ``threading.Event``. Optionally polls an external source (the
    job store) so a cancel issued from another process is observed too;
    the poll is throttled to ``poll_interval`` seconds. A child token is
    cancelled whenever its parent is, but cancelling a child leaves the
    parent untouched.
    """

    def __init__(
        self,
        poll: Optional[Callable[[], bool]] = None,
        poll_interval: float = 0.0,
        parent: Optional["CancellationToken"] = None,
    ):
        """
        Initialize CancellationToken.

        Args:
            poll: Optional callable returning True once the work is cancelled
            poll_interval: Minimum seconds between two polls
            parent: Token whose cancellation propagates to this one
        """
        self._event = threading.Event()
        self._poll = poll
        self._poll_interval = poll_interval
        self._parent = parent
        self._last_poll: Optional[float] = None
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Signal cancellation to every holder of this token."""
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._parent is not None and self._parent.is_cancelled():
            self._event.set()
            return True
        if self._poll is not None and self._should_poll():
            if self._poll():
                self._event.set()
                return True
        return False

    def raise_if_cancelled(self, message: str = "Job cancelled") -> None:
        """
        Raises:
            JobCancelledError: If the token is cancelled
        """
        if self.is_cancelled():
            raise JobCancelledError(message)

    def wait(self, timeout: float) -> bool:
        """
        Sleep up to ``timeout`` seconds, waking early on a local cancel.

        Returns:
            True if the token is cancelled
        """
        self._event.wait(timeout)
        return self.is_cancelled()

    def child(self) -> "CancellationToken":
        """Create a token that is cancelled together with this one."""
        return CancellationToken(parent=self)

    def _should_poll(self) -> bool:
        now = time.monotonic()
        with self._lock:
            if self._last_poll is not None and now - self._last_poll < self._poll_interval:
                return False
            self._last_poll = now
            return True
