"""Cooperative cancellation for requests and streams.

A ``CancellationToken`` is threaded through one logical operation: a request
with all of its retries, or the whole lifetime of a stream. Blocking waits
inside the SDK go through :meth:`CancellationToken.wait`, so cancelling wakes
them immediately instead of after the sleep runs out. Work that blocks outside
the token's control, such as a socket read, registers a callback with
:meth:`CancellationToken.add_callback` that unblocks it.
"""

import threading
import time
from typing import Callable, List, Optional

from ._exceptions import CancelledError, DeadlineExceededError

DEADLINE_EXCEEDED = "deadline exceeded"


class CancellationToken:
    """Cancellation signal with an optional deadline.

    Cancelling a token cascades to its children and runs its callbacks once.
    A token whose deadline has passed reports itself as cancelled with reason
    ``"deadline exceeded"``.
    """

    def __init__(self, timeout: float = None, parent: "CancellationToken" = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._children: List["CancellationToken"] = []
        self._callbacks: List[Callable[[], None]] = []
        self._watcher: Optional[threading.Thread] = None
        self._parent = parent
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None:
            if parent._deadline is not None:
                if self._deadline is None or parent._deadline < self._deadline:
                    self._deadline = parent._deadline
            parent._link_child(self)

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(DEADLINE_EXCEEDED)
            return True
        return False

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason or "operation cancelled"
            self._event.set()
            reason = self._reason
            children, self._children = self._children, []
            callbacks, self._callbacks = self._callbacks, []
        for child in children:
            child.cancel(reason)
        for callback in callbacks:
            callback()
        if self._parent is not None:
            self._parent._unlink_child(self)

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once when the token is cancelled, right away if it already is.

        On a token with a deadline, a watcher thread fires the callbacks when
        the deadline passes even if nobody polls :attr:`cancelled`.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                if self._deadline is not None and self._watcher is None:
                    self._watcher = threading.Thread(
                        target=self.wait, args=(float("inf"),), name="perplexity-deadline", daemon=True
                    )
                    self._watcher.start()
                return
        callback()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True as soon as the token is cancelled."""
        end = time.monotonic() + max(0.0, seconds)
        while not self.cancelled:
            timeout = end - time.monotonic()
            remaining = self.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)
            if timeout <= 0:
                return self.cancelled
            if self._event.wait(timeout):
                return True
        return True

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise self.error()

    def error(self) -> CancelledError:
        """Build the error matching the current cancellation reason."""
        if self._reason == DEADLINE_EXCEEDED:
            return DeadlineExceededError(DEADLINE_EXCEEDED)
        return CancelledError(self._reason or "operation cancelled")

    def child(self, timeout: float = None) -> "CancellationToken":
        return CancellationToken(timeout=timeout, parent=self)

    def _link_child(self, token: "CancellationToken") -> None:
        with self._lock:
            if self._event.is_set():
                reason = self._reason
            else:
                self._children.append(token)
                reason = None
        if reason is not None:
            token.cancel(reason)

    def _unlink_child(self, token: "CancellationToken") -> None:
        with self._lock:
            if token in self._children:
                self._children.remove(token)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._event.is_set()}, reason={self._reason!r})"


def ensure_token(cancel: Optional[CancellationToken]) -> CancellationToken:
    return cancel if cancel is not None else CancellationToken()
