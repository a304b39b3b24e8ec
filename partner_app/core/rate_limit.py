import logging
import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from partner_app.core.errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window request counter kept in process memory.

    Keys are free-form strings such as ``"otp-send:alice@example.com"``.
    A multi-process deployment needs a shared backend instead.
    """

    def __init__(self):
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def allow_request(self, key: str, max_requests: int, window_seconds: float) -> bool:
        now = time.monotonic()
        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= max_requests:
                return False
            hits.append(now)
            return True

    def is_limited(self, key: str, max_requests: int, window_seconds: float) -> bool:
        """True when ``key`` is over the limit; nothing is recorded."""
        now = time.monotonic()
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return False
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            return len(hits) >= max_requests

    def hit(self, key: str, max_requests: int, window_seconds: float) -> None:
        """Like allow_request, but raises RateLimitedError when over the limit."""
        if not self.allow_request(key, max_requests, window_seconds):
            logger.warning("Rate limit exceeded for %s", key)
            raise RateLimitedError()

    def reset(self, key: str = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


rate_limiter = RateLimiter()
