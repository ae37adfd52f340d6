import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass
from math import ceil
from time import monotonic


@dataclass(frozen=True, slots=True)
class RateLimitRule:
    limit: int
    window_seconds: int


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int = 0


class InMemoryRateLimiter:
    """Sliding-window limiter keyed by caller. Process-local."""

    def __init__(self) -> None:
        self._events: dict[str, deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def allow(self, key: str, rule: RateLimitRule) -> bool:
        return (await self.check(key, rule)).allowed

    async def check(self, key: str, rule: RateLimitRule) -> RateLimitDecision:
        now = monotonic()
        window_start = now - rule.window_seconds

        async with self._lock:
            events = self._events[key]
            while events and events[0] <= window_start:
                events.popleft()

            if len(events) >= rule.limit:
                retry_after = max(ceil(events[0] + rule.window_seconds - now), 1)
                return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

            events.append(now)
            return RateLimitDecision(allowed=True)
