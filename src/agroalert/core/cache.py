"""
Time-bounded cache of the weather-alert feed for AgroAlert.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .interfaces import AlertSource
from .models import AlertCollection, CacheStatus

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    """Cached alert collection with its fetch time."""

    data: AlertCollection
    timestamp: datetime
    ttl: timedelta

    def age(self, now: datetime) -> timedelta:
        return now - self.timestamp

    def is_fresh(self, now: datetime) -> bool:
        return self.age(now) <= self.ttl


class AlertCache:
    """
    Serves the current alert collection from memory.

    An entry is fresh while ``now - timestamp <= ttl``. A read of a stale or
    empty cache refreshes it; if the refresh fails the previous entry is
    served regardless of its age, and only an empty cache lets the error
    reach the caller. Entries are never evicted.
    """

    def __init__(
        self,
        source: AlertSource,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utc_now,
        fetch_timeout: Optional[float] = None,
        single_flight: bool = False,
    ):
        """
        Initialize the alert cache.

        Args:
            source: Upstream alert provider
            ttl: Maximum age at which the cached collection is fresh
            clock: Returns the current time (timezone aware)
            fetch_timeout: Upper bound in seconds for one upstream fetch
            single_flight: Share one upstream fetch between concurrent refreshes
        """
        self.source = source
        self.ttl = ttl
        self.clock = clock
        self.fetch_timeout = fetch_timeout
        self.single_flight = single_flight
        self._entry: Optional[CacheEntry] = None
        self._inflight: Optional[asyncio.Future] = None

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    async def get_alerts(self) -> AlertCollection:
        """
        Return the cached alerts, refreshing them when stale or missing.

        Raises:
            Exception: The refresh error, only when nothing is cached
        """
        entry = self._entry
        if entry is not None and entry.is_fresh(self.clock()):
            logger.debug("Using cached weather alerts data")
            return entry.data

        try:
            return await self.refresh()
        except Exception as e:
            if self._entry is not None:
                logger.warning(
                    f"Returning stale cached alerts due to refresh error: {e}",
                    extra={'last_updated': self._entry.timestamp.isoformat()},
                )
                return self._entry.data
            logger.error(f"Error retrieving weather alerts with no cache to fall back on: {e}")
            raise

    async def refresh(self) -> AlertCollection:
        """
        Fetch the alert feed unconditionally and replace the cache entry.

        On failure the existing entry is left untouched and the error is
        re-raised.
        """
        if not self.single_flight:
            return await self._fetch_and_store()

        if self._inflight is None:
            task = asyncio.ensure_future(self._fetch_and_store())
            self._inflight = task
            task.add_done_callback(self._clear_inflight)
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _fetch_and_store(self) -> AlertCollection:
        logger.info("Refreshing weather alerts cache from upstream feed")
        try:
            if self.fetch_timeout is not None:
                data = await asyncio.wait_for(self.source.fetch_alerts(), timeout=self.fetch_timeout)
            else:
                data = await self.source.fetch_alerts()
        except asyncio.TimeoutError:
            logger.error(f"Weather alerts fetch timed out after {self.fetch_timeout}s")
            raise
        except Exception as e:
            logger.error(f"Failed to refresh weather alerts cache: {e}")
            raise

        self._entry = CacheEntry(data=data, timestamp=self.clock(), ttl=self.ttl)
        logger.info(f"Weather alerts cache refreshed with {len(data.features)} alerts")
        return data

    def get_cache_status(self) -> CacheStatus:
        """Read-only diagnostic view; never triggers a refresh."""
        entry = self._entry
        if entry is None:
            return CacheStatus(exists=False, age_seconds=None, is_valid=False, last_updated=None)

        now = self.clock()
        return CacheStatus(
            exists=True,
            age_seconds=entry.age(now).total_seconds(),
            is_valid=entry.is_fresh(now),
            last_updated=entry.timestamp,
        )
