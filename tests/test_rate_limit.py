"""Tests for arena/rate_limit.py."""

import asyncio
from datetime import datetime, timedelta, timezone

from arena.rate_limit import check_rate_limit, get_usage, next_utc_midnight, usage_path
from tests.conftest import FIXED_NOW


def _clock():
    return FIXED_NOW


async def test_first_call_is_allowed(store):
    result = await check_rate_limit(store, "u1", daily_limit=3, now=_clock)
    assert result.allowed is True
    assert result.remaining == 2
    doc = await store.get(usage_path("u1", FIXED_NOW))
    assert doc["count"] == 1
    assert doc["lastUsed"] == FIXED_NOW


async def test_usage_key_is_user_and_utc_day():
    assert usage_path("u1", FIXED_NOW) == "arenaUsage/u1/days/2026-03-14"


async def test_denied_at_limit_without_mutation(store):
    for _ in range(2):
        assert (await check_rate_limit(store, "u1", daily_limit=2, now=_clock)).allowed

    denied = await check_rate_limit(store, "u1", daily_limit=2, now=_clock)
    assert denied.allowed is False
    assert denied.remaining == 0
    doc = await store.get(usage_path("u1", FIXED_NOW))
    assert doc["count"] == 2


async def test_reset_at_is_next_utc_midnight_for_both_outcomes(store):
    expected = datetime(2026, 3, 15, tzinfo=timezone.utc)
    allowed = await check_rate_limit(store, "u1", daily_limit=1, now=_clock)
    denied = await check_rate_limit(store, "u1", daily_limit=1, now=_clock)
    assert allowed.reset_at == expected
    assert denied.reset_at == expected


def test_next_utc_midnight_crosses_month_end():
    now = datetime(2026, 1, 31, 23, 59, 59, tzinfo=timezone.utc)
    assert next_utc_midnight(now) == datetime(2026, 2, 1, tzinfo=timezone.utc)


async def test_concurrent_calls_never_exceed_limit(store):
    results = await asyncio.gather(
        *(check_rate_limit(store, "u1", daily_limit=3, now=_clock) for _ in range(10))
    )
    allowed = [r for r in results if r.allowed]
    denied = [r for r in results if not r.allowed]
    assert len(allowed) == 3
    assert len(denied) == 7
    assert all(r.remaining == 0 for r in denied)
    assert sorted(r.remaining for r in allowed) == [0, 1, 2]
    doc = await store.get(usage_path("u1", FIXED_NOW))
    assert doc["count"] == 3


async def test_users_have_independent_counters(store):
    await check_rate_limit(store, "u1", daily_limit=1, now=_clock)
    result = await check_rate_limit(store, "u2", daily_limit=1, now=_clock)
    assert result.allowed is True


async def test_new_day_starts_fresh(store):
    await check_rate_limit(store, "u1", daily_limit=1, now=_clock)
    tomorrow = FIXED_NOW + timedelta(days=1)
    result = await check_rate_limit(store, "u1", daily_limit=1, now=lambda: tomorrow)
    assert result.allowed is True


async def test_get_usage_is_read_only(store):
    await check_rate_limit(store, "u1", daily_limit=5, now=_clock)
    usage = await get_usage(store, "u1", daily_limit=5, now=_clock)
    again = await get_usage(store, "u1", daily_limit=5, now=_clock)
    assert usage.to_dict() == {"used": 1, "limit": 5, "remaining": 4}
    assert again == usage


async def test_get_usage_without_counter(store):
    usage = await get_usage(store, "nobody", daily_limit=5, now=_clock)
    assert (usage.used, usage.remaining) == (0, 5)
    assert await store.get(usage_path("nobody", FIXED_NOW)) is None
