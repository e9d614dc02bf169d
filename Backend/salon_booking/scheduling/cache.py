"""
Schedule Cache

Read-through Redis cache for weekly salon hours and stylist schedules, used
only by the availability path. Booking always reads fresh data from the
providers.

Key format: schedule:{kind}:{owner_id}:{weekday}
    kind     -> "salon" (opening hours) or "stylist" (working hours)
    value    -> JSON: {"state": "open", "intervals": [[600, 960], ...]}
                      {"state": "closed"} / {"state": "unavailable"}

There is no TTL: entries live until the owner-side write path calls one of
the invalidate methods. Every server instance talks to the same Redis, so an
invalidation is seen by all of them.

Usage:
    cache = ScheduleCache(aioredis.from_url(settings.redis_url, decode_responses=True))
    hours = CachedBusinessHours(SqlBusinessHours(factory), cache)
    ...
    await cache.invalidate_salon(salon_id)
"""

import json
import logging
from typing import Optional, Union

import redis.asyncio as aioredis

from ..tenancy.context import SalonId, StylistId
from .intervals import DayInterval
from .providers import BusinessHoursProvider, StylistScheduleProvider
from .schedule import CLOSED, UNAVAILABLE, BusinessDay, ClosedDay, OpenDay, StylistDay


logger = logging.getLogger(__name__)


_SALON = "salon"
_STYLIST = "stylist"

Day = Union[BusinessDay, StylistDay]


def encode_day(day: Day) -> str:
    if isinstance(day, OpenDay):
        return json.dumps({"state": "open", "intervals": [[i.start, i.end] for i in day.intervals]})
    if isinstance(day, ClosedDay):
        return json.dumps({"state": "closed"})
    return json.dumps({"state": "unavailable"})


def decode_day(raw: Union[str, bytes]) -> Day:
    data = json.loads(raw)
    state = data["state"]
    if state == "open":
        return OpenDay(tuple(DayInterval(start, end) for start, end in data["intervals"]))
    if state == "closed":
        return CLOSED
    return UNAVAILABLE


class ScheduleCache:
    """Redis mapping of (kind, owner id, weekday) -> resolved day."""

    KEY_PREFIX = "schedule"

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis
        # Per-instance counters
        self.hits = 0
        self.misses = 0

    def _key(self, kind: str, owner_id: str, weekday: int) -> str:
        return f"{self.KEY_PREFIX}:{kind}:{owner_id}:{weekday}"

    # ── Read / write ─────────────────────────────────────────────────────

    async def get(self, kind: str, owner_id: str, weekday: int) -> Optional[Day]:
        raw = await self.redis.get(self._key(kind, owner_id, weekday))
        if raw is None:
            self.misses += 1
            return None
        self.hits += 1
        return decode_day(raw)

    async def put(self, kind: str, owner_id: str, weekday: int, day: Day) -> None:
        await self.redis.set(self._key(kind, owner_id, weekday), encode_day(day))

    # ── Delete ───────────────────────────────────────────────────────────

    async def _delete_matching(self, pattern: str) -> int:
        keys = [key async for key in self.redis.scan_iter(match=pattern)]
        if not keys:
            return 0
        return await self.redis.delete(*keys)

    async def invalidate_salon(self, salon_id: SalonId) -> int:
        """Drop the cached opening hours of one salon. Returns the number of keys removed."""
        removed = await self._delete_matching(f"{self.KEY_PREFIX}:{_SALON}:{salon_id}:*")
        logger.info("Schedule cache: dropped %d salon-hours entries for salon %s", removed, salon_id)
        return removed

    async def invalidate_stylist(self, stylist_id: StylistId) -> int:
        """Drop the cached weekly schedule of one stylist."""
        removed = await self._delete_matching(f"{self.KEY_PREFIX}:{_STYLIST}:{stylist_id}:*")
        logger.info("Schedule cache: dropped %d schedule entries for stylist %s", removed, stylist_id)
        return removed

    async def clear(self) -> int:
        removed = await self._delete_matching(f"{self.KEY_PREFIX}:*")
        logger.info("Schedule cache cleared (%d entries)", removed)
        return removed

    async def size(self) -> int:
        return len([key async for key in self.redis.scan_iter(match=f"{self.KEY_PREFIX}:*")])


class CachedBusinessHours:
    """BusinessHoursProvider reading through a ScheduleCache."""

    def __init__(self, provider: BusinessHoursProvider, cache: ScheduleCache):
        self.provider = provider
        self.cache = cache

    async def get_day(self, salon_id: SalonId, weekday: int) -> BusinessDay:
        cached = await self.cache.get(_SALON, salon_id, weekday)
        if cached is not None:
            return cached
        # ConfigurationError propagates and is not cached
        day = await self.provider.get_day(salon_id, weekday)
        await self.cache.put(_SALON, salon_id, weekday, day)
        return day


class CachedStylistSchedules:
    """StylistScheduleProvider reading through a ScheduleCache."""

    def __init__(self, provider: StylistScheduleProvider, cache: ScheduleCache):
        self.provider = provider
        self.cache = cache

    async def get_day(self, stylist_id: StylistId, weekday: int) -> StylistDay:
        cached = await self.cache.get(_STYLIST, stylist_id, weekday)
        if cached is not None:
            return cached
        day = await self.provider.get_day(stylist_id, weekday)
        await self.cache.put(_STYLIST, stylist_id, weekday, day)
        return day
