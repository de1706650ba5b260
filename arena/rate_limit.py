"""Per-user daily debate quota, enforced with a transactional counter."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from arena.models import RateLimitResult, Usage
from arena.store import DocumentStore

logger = logging.getLogger(__name__)

ARENA_USAGE_COLLECTION = "arenaUsage"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def usage_path(uid: str, now: datetime) -> str:
    return f"{ARENA_USAGE_COLLECTION}/{uid}/days/{now.date().isoformat()}"


def next_utc_midnight(now: datetime) -> datetime:
    tomorrow = now.date() + timedelta(days=1)
    return datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=timezone.utc)


async def check_rate_limit(
    store: DocumentStore,
    uid: str,
    daily_limit: int,
    now: Callable[[], datetime] = _utc_now,
) -> RateLimitResult:
    """Consume one unit of today's quota if any is left.

    The read and the increment happen inside one transaction, so concurrent
    calls for the same user cannot push the count past daily_limit. A denied
    call leaves the counter untouched.
    """
    current = now()
    path = usage_path(uid, current)

    async with store.transaction() as tx:
        doc = await tx.get(path)
        count = int((doc or {}).get("count", 0))
        if count >= daily_limit:
            allowed, remaining = False, 0
        else:
            tx.set(path, {"count": count + 1, "lastUsed": current}, merge=True)
            allowed, remaining = True, daily_limit - count - 1

    if not allowed:
        logger.warning("Daily limit reached for %s (%d/%d)", uid, count, daily_limit)

    return RateLimitResult(allowed=allowed, remaining=remaining, reset_at=next_utc_midnight(current))


async def get_usage(
    store: DocumentStore,
    uid: str,
    daily_limit: int,
    now: Callable[[], datetime] = _utc_now,
) -> Usage:
    """Read-only view of today's quota."""
    doc = await store.get(usage_path(uid, now()))
    used = int((doc or {}).get("count", 0))
    return Usage(used=used, limit=daily_limit, remaining=max(0, daily_limit - used))
