import threading
import time
from typing import Optional

from .errors import DeadlineExceeded, RequestCancelled


class RequestContext:
    """Deadline and cancellation flag shared by every step of one request.

    The API layer cancels the context when the client disconnects; blocking
    calls take their timeouts from ``remaining()`` so nothing outlives the
    request budget.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.deadline = time.monotonic() + timeout if timeout else None
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self, stage: Optional[str] = None) -> None:
        if self.cancelled:
            raise RequestCancelled("request was cancelled", stage)
        if self.expired():
            raise DeadlineExceeded("request deadline exceeded", stage)

    def timeout(self, cap: Optional[float] = None) -> Optional[float]:
        """Seconds a blocking call may take, bounded by ``cap``."""
        left = self.remaining()
        if left is None:
            return cap
        if cap is None:
            return left
        return min(left, cap)

    def sleep(self, seconds: float, stage: Optional[str] = None) -> None:
        left = self.remaining()
        if left is not None:
            seconds = min(seconds, left)
        self._cancelled.wait(seconds)
        self.check(stage)
