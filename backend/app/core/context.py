import threading
import time
from typing import Optional

from app.core.exceptions import RequestCancelled


class RequestContext:
    """Cancellation handle shared between a request and the worker serving it"""

    def __init__(self, timeout: Optional[float] = None):
        self.deadline = time.monotonic() + timeout if timeout else None
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self):
        """Raise RequestCancelled once the request has been abandoned"""
        if self.cancelled:
            raise RequestCancelled("Request was cancelled before completion")


def check_context(ctx: Optional[RequestContext]):
    if ctx is not None:
        ctx.check()
