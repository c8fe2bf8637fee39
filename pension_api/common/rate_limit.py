# pension_api/common/rate_limit.py
"""
Fixed-window request counting with a bounded key table.

Each app keeps one limiter per bucket (``app.extensions["rate_limiters"]``);
a table holds at most ``max_keys`` clients and evicts the least recently seen one.
"""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional

from flask import current_app, request

from pension_api.common.errors import RateLimited


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: float = 0.0


class RateLimiter:
    def __init__(self, limit: int, window_seconds: float, max_keys: int = 10000,
                 clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._windows: "OrderedDict[str, _Window]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._windows)

    def hit(self, key: str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            w = self._windows.get(key)
            if w is None or w.reset_at <= now:
                w = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[key] = w
                self._windows.move_to_end(key)
                self._evict()
                return RateLimitResult(True, self.limit - 1)

            self._windows.move_to_end(key)
            w.count += 1
            if w.count > self.limit:
                return RateLimitResult(False, 0, retry_after=w.reset_at - now)
            return RateLimitResult(True, self.limit - w.count)

    def _evict(self):
        while len(self._windows) > self.max_keys:
            self._windows.popitem(last=False)

    def reset(self):
        with self._lock:
            self._windows.clear()


def init_rate_limiter(app):
    max_keys = int(app.config.get("RATE_LIMIT_MAX_KEYS", 10000))
    app.extensions["rate_limiters"] = {
        "login": RateLimiter(
            limit=int(app.config.get("RATE_LIMIT_LOGIN", 10)),
            window_seconds=float(app.config.get("RATE_LIMIT_WINDOW_SECONDS", 60)),
            max_keys=max_keys,
        ),
        "enquiry": RateLimiter(
            limit=int(app.config.get("RATE_LIMIT_ENQUIRY", 5)),
            window_seconds=float(app.config.get("RATE_LIMIT_ENQUIRY_WINDOW_SECONDS", 300)),
            max_keys=max_keys,
        ),
    }


def rate_limited(bucket: str, key_func: Optional[Callable[[], str]] = None):
    """Reject with 429 once the caller exceeds the limit of `bucket`."""
    def outer(fn):
        @wraps(fn)
        def inner(*args, **kwargs):
            limiter: Optional[RateLimiter] = current_app.extensions.get("rate_limiters", {}).get(bucket)
            if limiter is not None:
                client = key_func() if key_func else (request.remote_addr or "unknown")
                res = limiter.hit(f"{bucket}:{client}")
                if not res.allowed:
                    current_app.logger.warning("rate limit hit for %s:%s", bucket, client)
                    raise RateLimited("Too many requests",
                                      payload={"retry_after": round(res.retry_after, 1)})
            return fn(*args, **kwargs)
        return inner
    return outer
