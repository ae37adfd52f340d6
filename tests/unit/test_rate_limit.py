import asyncio

import pytest

from app.core.rate_limit import InMemoryRateLimiter, RateLimitRule


@pytest.mark.asyncio
async def test_rate_limiter_blocks_after_limit() -> None:
    limiter = InMemoryRateLimiter()
    rule = RateLimitRule(limit=2, window_seconds=60)

    assert await limiter.allow("auth:10.0.0.1", rule)
    assert await limiter.allow("auth:10.0.0.1", rule)
    assert not await limiter.allow("auth:10.0.0.1", rule)


@pytest.mark.asyncio
async def test_rate_limiter_tracks_keys_separately() -> None:
    limiter = InMemoryRateLimiter()
    rule = RateLimitRule(limit=1, window_seconds=60)

    assert await limiter.allow("auth:10.0.0.1", rule)
    assert await limiter.allow("auth:10.0.0.2", rule)
    assert not await limiter.allow("auth:10.0.0.1", rule)


@pytest.mark.asyncio
async def test_rate_limiter_resets_after_window() -> None:
    limiter = InMemoryRateLimiter()
    rule = RateLimitRule(limit=1, window_seconds=1)

    assert await limiter.allow("auth:10.0.0.3", rule)
    assert not await limiter.allow("auth:10.0.0.3", rule)

    await asyncio.sleep(1.05)
    assert await limiter.allow("auth:10.0.0.3", rule)


@pytest.mark.asyncio
async def test_rejection_reports_retry_after() -> None:
    limiter = InMemoryRateLimiter()
    rule = RateLimitRule(limit=1, window_seconds=60)

    assert (await limiter.check("auth:10.0.0.4", rule)).allowed
    decision = await limiter.check("auth:10.0.0.4", rule)

    assert not decision.allowed
    assert 1 <= decision.retry_after_seconds <= 60
