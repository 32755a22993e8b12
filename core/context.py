"""
core/context.py -- Per-request context: deadline, cancellation, diagnostics.

Every core operation and every store call takes a RequestContext as its first
argument. It carries two things:

  deadline/cancel -- check() raises DeadlineExceededError once the deadline
                     has passed or cancel() was called. Operations call it
                     before each store call and after the bcrypt step, so a
                     cancelled request stops before it writes anything.

  log             -- a LoggerAdapter that stamps every record with the
                     request id and any fields bound via with_fields(). This
                     is the only logger the core uses; there is no
                     module-global logger in auth/service.py.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Any

_base_logger = logging.getLogger("sso.request")


class DeadlineExceededError(Exception):
    """The request deadline passed or the request was cancelled."""


class ContextLogger(logging.LoggerAdapter):
    """LoggerAdapter that merges its bound fields into each record's extra."""

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


class RequestContext:
    """Deadline, cancellation flag and diagnostics sink for one request.

    Usage:
        ctx = RequestContext.with_timeout(5.0)
        ctx.check()                       # raises if expired or cancelled
        log = ctx.with_fields(op="auth.register").log
        log.info("registering user")
    """

    def __init__(
        self,
        deadline: float | None = None,
        log: logging.LoggerAdapter | None = None,
        request_id: str | None = None,
        _cancelled: threading.Event | None = None,
    ) -> None:
        self.deadline = deadline  # time.monotonic() value, None = no deadline
        self.request_id = request_id or uuid.uuid4().hex
        self.log = log or ContextLogger(_base_logger, {"request_id": self.request_id})
        self._cancelled = _cancelled or threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float, **kwargs: Any) -> RequestContext:
        return cls(deadline=time.monotonic() + seconds, **kwargs)

    @classmethod
    def background(cls) -> RequestContext:
        """A context with no deadline. For the CLI and tests."""
        return cls()

    def with_fields(self, **fields: Any) -> RequestContext:
        """Return a child context sharing deadline and cancellation, with extra log fields."""
        merged = dict(self.log.extra or {})
        merged.update(fields)
        return RequestContext(
            deadline=self.deadline,
            log=ContextLogger(self.log.logger, merged),
            request_id=self.request_id,
            _cancelled=self._cancelled,
        )

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None if there is none."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def check(self) -> None:
        """Raise DeadlineExceededError if the request should stop now."""
        if self._cancelled.is_set():
            raise DeadlineExceededError("request cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError("deadline exceeded")
