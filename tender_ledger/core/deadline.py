import time
from typing import Optional

from tender_ledger.core.errors import DeadlineExceeded


class Deadline:
    """
    Wall-clock budget for one request.

    Created by the transport layer and handed to the services, which check it
    before committing a transaction.
    """

    def __init__(self, seconds: float, clock=time.monotonic):
        self._clock = clock
        self.seconds = seconds
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    def expired(self) -> bool:
        return self._clock() >= self.expires_at

    def check(self, operation: Optional[str] = None):
        if self.expired():
            what = f" during {operation}" if operation else ""
            raise DeadlineExceeded(f"request deadline of {self.seconds:g}s exceeded{what}")
