"""
Photo retrieval by time window

The store can only list keys by prefix in ascending order, so a time window is
turned into one ``cat_YYYYMMDD_`` prefix per UTC day, each day is listed to the
end of its continuation tokens, and the merged result is filtered and sorted
here.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

from catviewer.key_codec import bucket_prefix, buckets_covering, to_utc
from catviewer.photo_assembler import PhotoAssembler, sort_newest_first
from catviewer.schemas.photo import ListedObject, ListPage, Photo

logger = logging.getLogger(__name__)


class ObjectLister(Protocol):
    async def list_objects(
        self,
        prefix: str,
        max_keys: int = 1000,
        continuation_token: str | None = None,
        folder: str | None = None,
    ) -> ListPage: ...


def utc_now() -> datetime:
    return datetime.now(UTC)


async def list_all(lister: ObjectLister, prefix: str, page_size: int = 1000, folder: str | None = None) -> list[ListedObject]:
    """List every object under a prefix, following continuation tokens to the end."""
    entries: list[ListedObject] = []
    continuation_token: str | None = None
    pages = 0

    while True:
        page = await lister.list_objects(prefix, page_size, continuation_token, folder=folder)
        pages += 1
        entries.extend(page.entries)

        if not (page.is_truncated and page.next_token):
            break
        continuation_token = page.next_token

    if pages > 1:
        logger.debug(f"Listed {len(entries)} objects under {prefix} in {pages} pages")
    return entries


async def list_buckets(lister: ObjectLister, buckets: list[date], page_size: int = 1000) -> list[ListedObject]:
    """List several date buckets concurrently and merge their entries.

    Any failing bucket fails the whole call.
    """
    results = await asyncio.gather(*(list_all(lister, bucket_prefix(bucket), page_size) for bucket in buckets))
    return [entry for entries in results for entry in entries]


class PhotoService:
    """Range and incremental photo fetching on top of the object lister."""

    def __init__(
        self,
        lister: ObjectLister,
        assembler: PhotoAssembler,
        page_size: int = 1000,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._lister = lister
        self._assembler = assembler
        self.page_size = page_size
        self._clock = clock

    async def fetch_range(self, start: datetime, end: datetime) -> list[Photo]:
        """All photos with ``start <= timestamp <= end``, newest first.

        Buckets one day either side of the window are listed too, then trimmed
        away by the exact filter.

        Raises:
            ListingFailure: If listing any bucket fails
        """
        start, end = to_utc(start), to_utc(end)
        if start > end:
            raise ValueError(f"Range start {start.isoformat()} is after end {end.isoformat()}")

        buckets = buckets_covering(start, end)
        entries = await list_buckets(self._lister, buckets, self.page_size)
        result = await self._assembler.assemble(entries, window=lambda ts: start <= ts <= end)
        photos = sort_newest_first(result.photos)

        logger.info(f"Loaded {len(photos)} photos for {start.isoformat()}..{end.isoformat()} from {len(buckets)} buckets ({result.skipped} skipped)")
        return photos

    def last_24_hours(self, end: datetime | None = None) -> tuple[datetime, datetime]:
        """Default view window: the 24 hours up to ``end`` (now when omitted)."""
        end = self._clock() if end is None else to_utc(end)
        return end - timedelta(hours=24), end

    async def fetch_since(self, since: datetime, until: datetime | None = None) -> list[Photo]:
        """Photos strictly newer than ``since`` and not after ``until``, newest first.

        ``until`` defaults to now and is capped at now.

        Meant for polling. Failures raise like fetch_range; it is the caller's
        job to treat them as non-fatal.
        """
        since = to_utc(since)
        now = self._clock()
        until = now if until is None else min(to_utc(until), now)
        if since >= until:
            return []

        buckets = buckets_covering(since, until)
        entries = await list_buckets(self._lister, buckets, self.page_size)
        result = await self._assembler.assemble(entries, window=lambda ts: since < ts <= until)
        photos = sort_newest_first(result.photos)

        logger.debug(f"Found {len(photos)} new photos since {since.isoformat()}")
        return photos
