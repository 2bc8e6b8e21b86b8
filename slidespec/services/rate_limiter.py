"""Per-client fixed-window rate limiter."""

import asyncio
import time
from typing import Callable, Dict, List, Optional, Tuple

from slidespec.agents.config import RATE_LIMIT_PER_MINUTE
from slidespec.agents.core.interfaces import IRateLimiter
from slidespec.setup_logging_optimized import get_logger

logger = get_logger(__name__)

WINDOW_SECONDS = 60.0


class InMemoryRateLimiter(IRateLimiter):
    """Counts requests per client in one-minute windows.

    `clock` is injectable so tests can move time forward.
    """

    def __init__(
        self,
        calls_per_minute: int = RATE_LIMIT_PER_MINUTE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.calls_per_minute = calls_per_minute
        self._clock = clock
        # client -> [window start, count]
        self._windows: Dict[str, List[float]] = {}
        self._lock = asyncio.Lock()

    async def check(self, client_key: str) -> Tuple[bool, float]:
        async with self._lock:
            now = self._clock()
            window = self._windows.get(client_key)
            if window is None or now - window[0] >= WINDOW_SECONDS:
                window = [now, 0]
                self._windows[client_key] = window
                self._evict(now)

            retry_after = max(0.0, WINDOW_SECONDS - (now - window[0]))
            if window[1] >= self.calls_per_minute:
                logger.warning(f"Rate limit reached for {client_key}, retry in {retry_after:.1f}s")
                return False, retry_after
            window[1] += 1
            return True, retry_after

    def reset(self, client_key: Optional[str] = None) -> None:
        if client_key is None:
            self._windows.clear()
        else:
            self._windows.pop(client_key, None)

    def _evict(self, now: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= WINDOW_SECONDS]
        for key in expired:
            del self._windows[key]
