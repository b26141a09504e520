"""
Backward Paginator

Serves newest-first pages of photos by scanning the store one UTC day at a time,
walking backward from today. The scanned photos are kept in a session cache
that only grows until it is reset.

Growth is single-flight: page requests that arrive while a day is being listed
wait for that same listing instead of starting another one. Every reset bumps
the cache epoch, and a growth that started in an older epoch throws its results
away when it finishes.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from catviewer.key_codec import bucket_prefix
from catviewer.photo_assembler import PhotoAssembler, merge_unique
from catviewer.photo_service import ObjectLister, list_all, utc_now
from catviewer.schemas.photo import Photo, PhotoPage

logger = logging.getLogger(__name__)


@dataclass
class PaginationCache:
    cursor: date
    horizon: date
    epoch: int
    photos: list[Photo] = field(default_factory=list)
    exhausted: bool = False


class BackwardPaginator:
    def __init__(
        self,
        lister: ObjectLister,
        assembler: PhotoAssembler,
        horizon_days: int = 730,
        page_size: int = 1000,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._lister = lister
        self._assembler = assembler
        self.horizon_days = horizon_days
        self.page_size = page_size
        self._clock = clock
        self._epoch = 0
        self._cache: PaginationCache | None = None
        self._growth: asyncio.Task | None = None

    def _new_cache(self) -> PaginationCache:
        today = self._clock().date()
        return PaginationCache(cursor=today, horizon=today - timedelta(days=self.horizon_days), epoch=self._epoch)

    def _state(self) -> PaginationCache:
        if self._cache is None:
            self._cache = self._new_cache()
        return self._cache

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def photos(self) -> tuple[Photo, ...]:
        return tuple(self._state().photos)

    @property
    def cursor(self) -> date:
        return self._state().cursor

    @property
    def exhausted(self) -> bool:
        return self._state().exhausted

    @property
    def is_growing(self) -> bool:
        return self._growth is not None

    def reset_cache(self) -> None:
        """Empty the cache and start again from today. In-flight growth becomes stale."""
        self._epoch += 1
        self._cache = self._new_cache()
        self._growth = None
        logger.info(f"Pagination cache reset (epoch {self._epoch})")

    def newest_timestamp(self) -> datetime | None:
        photos = self._state().photos
        return photos[0].timestamp if photos else None

    async def get_page(self, page_size: int, page_index: int) -> PhotoPage:
        """Return page ``page_index`` of ``page_size`` photos, newest first.

        The cache is grown one day at a time until it covers the page or the
        horizon is reached. Pages already covered cost no listing at all.

        Raises:
            ListingFailure: If listing a day fails; no partial page is returned
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        if page_index < 0:
            raise ValueError("page_index must not be negative")

        start_index = page_index * page_size
        end_index = start_index + page_size

        while True:
            cache = self._state()
            if len(cache.photos) >= end_index or cache.exhausted:
                break
            await self.grow_one_bucket()

        cache = self._state()
        photos = cache.photos[start_index:end_index]
        has_more = end_index < len(cache.photos) or not cache.exhausted
        return PhotoPage(photos=photos, has_more=has_more, page=page_index, size=page_size)

    async def grow_one_bucket(self) -> int:
        """Scan the day at the cursor and merge it into the cache.

        Concurrent callers share one in-flight scan. Returns the number of
        photos the scan added (0 when its results were discarded as stale).
        """
        cache = self._state()
        if cache.exhausted:
            return 0

        if self._growth is None:
            task = asyncio.create_task(self._grow(cache))
            task.add_done_callback(self._growth_done)
            self._growth = task
        return await asyncio.shield(self._growth)

    def _growth_done(self, task: asyncio.Task) -> None:
        if self._growth is task:
            self._growth = None
        # Waiters may all have been cancelled; mark a failure as retrieved anyway
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Growth failed: {task.exception()}")

    async def _grow(self, cache: PaginationCache) -> int:
        bucket = cache.cursor
        prefix = bucket_prefix(bucket)

        entries = await list_all(self._lister, prefix, self.page_size)
        result = await self._assembler.assemble(entries)

        if cache.epoch != self._epoch:
            logger.info(f"Discarding {len(result.photos)} photos from {prefix}: cache was reset (epoch {cache.epoch} -> {self._epoch})")
            return 0

        before = len(cache.photos)
        cache.photos = merge_unique(cache.photos, result.photos)
        cache.cursor = bucket - timedelta(days=1)
        # An empty day is not the end: the camera may just have been offline
        if cache.cursor < cache.horizon:
            cache.exhausted = True
            logger.info(f"Pagination reached horizon {cache.horizon.isoformat()} with {len(cache.photos)} photos")

        added = len(cache.photos) - before
        logger.debug(f"Scanned {prefix}: {added} new photos, {result.skipped} skipped, cache size {len(cache.photos)}")
        return added

    def merge_newer(self, photos: Iterable[Photo], epoch: int) -> int:
        """Merge refresh results into the cache unless it was reset since ``epoch``."""
        if epoch != self._epoch:
            logger.info(f"Discarding refresh results from stale epoch {epoch}")
            return 0

        cache = self._state()
        before = len(cache.photos)
        cache.photos = merge_unique(photos, cache.photos)
        return len(cache.photos) - before
