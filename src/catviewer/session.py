"""
Viewer session

Wires the retrieval layer together for one viewing session and exposes the
operations a UI drives: page through newest-first photos, poll for new ones,
switch to a date range, read sensor metadata and trends, manage favourites,
and log out. Scroll thresholds and polling timers live in the UI.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from catviewer.cache_controller import CacheController
from catviewer.exceptions import CredentialFailure, ListingFailure
from catviewer.favourites_service import FavouritesService
from catviewer.key_codec import to_utc
from catviewer.logger import events
from catviewer.metadata_service import MetadataService
from catviewer.paginator import BackwardPaginator
from catviewer.photo_assembler import PhotoAssembler, merge_unique
from catviewer.photo_service import PhotoService, utc_now
from catviewer.s3_service import AsyncS3Client
from catviewer.schemas.metadata import TrendSeries
from catviewer.schemas.photo import Photo, PhotoPage, RangeResponse, RefreshResult
from catviewer.sensor_trends import build_series
from catviewer.settings import ViewerSettings

logger = logging.getLogger(__name__)


class ViewerSession:
    def __init__(self, s3_client: AsyncS3Client, settings: ViewerSettings, clock: Callable[[], datetime] = utc_now):
        self.settings = settings
        self._clock = clock
        self.cache_controller = CacheController(
            s3_client,
            ttl_seconds=settings.url_ttl_seconds,
            batch_size=settings.url_batch_size,
            margin_seconds=settings.url_refresh_margin_seconds,
        )
        self.assembler = PhotoAssembler(self.cache_controller, settings.image_extensions)
        self.photo_service = PhotoService(s3_client, self.assembler, settings.list_page_size, clock)
        self.paginator = BackwardPaginator(
            s3_client,
            self.assembler,
            horizon_days=settings.pagination_horizon_days,
            page_size=settings.list_page_size,
            clock=clock,
        )
        self.metadata = MetadataService(s3_client, settings.metadata_extension, settings.metadata_batch_size)
        self.favourites = FavouritesService(s3_client, self.assembler, settings.metadata_extension, settings.list_page_size)

        self.range_window: tuple[datetime, datetime] | None = None
        self.range_photos: list[Photo] = []
        self.range_follows_now = False

        self.cache_controller.on_view_reset(self.paginator.reset_cache)
        self.cache_controller.on_view_reset(self._clear_range)
        self.cache_controller.on_credentials_reset(s3_client.reset_credentials)
        self.cache_controller.on_credentials_reset(self.metadata.clear_cache)
        self.cache_controller.on_credentials_reset(self.favourites.clear_cache)

    def _clear_range(self) -> None:
        self.range_window = None
        self.range_photos = []
        self.range_follows_now = False

    async def get_page(self, page_size: int, page_index: int) -> PhotoPage:
        """Newest-first page from the backward paginator. Listing failures propagate."""
        page = await self.paginator.get_page(page_size, page_index)
        events.log_event("page_served", page=page_index, size=page_size, returned=len(page.photos), has_more=page.has_more)
        return page

    async def refresh(self) -> RefreshResult:
        """Pull photos newer than the newest one on screen and merge them in.

        A listing failure leaves the view untouched and is reported as a stale
        result instead of an error. Credential failures still propagate.
        """
        if self.range_window is not None:
            return await self._refresh_range()

        since = self.paginator.newest_timestamp()
        if since is None:
            return RefreshResult()

        epoch = self.paginator.epoch
        result = await self._fetch_since(since)
        if not result.stale:
            self.paginator.merge_newer(result.new_photos, epoch)
        return result

    async def _refresh_range(self) -> RefreshResult:
        """Refresh the date-range view without ever leaving its window.

        A range selected without an end follows now and its end moves forward;
        a range with a fixed end only picks up photos up to that end.
        """
        start, end = self.range_window
        if self.range_follows_now:
            end = self._clock()
        since = self.range_photos[0].timestamp if self.range_photos else start - timedelta(microseconds=1)
        if since >= end:
            return RefreshResult()

        epoch = self.paginator.epoch
        result = await self._fetch_since(since, end)
        if result.stale:
            return result
        if epoch != self.paginator.epoch:
            logger.info(f"Discarding range refresh from stale epoch {epoch}")
            return RefreshResult()

        photos = [photo for photo in result.new_photos if photo.timestamp <= end]
        self.range_window = (start, end)
        self.range_photos = merge_unique(photos, self.range_photos)
        return RefreshResult(new_photos=photos)

    async def _fetch_since(self, since: datetime, until: datetime | None = None) -> RefreshResult:
        try:
            photos = await self.photo_service.fetch_since(since, until)
        except CredentialFailure:
            raise
        except ListingFailure as e:
            logger.warning(f"Refresh failed, keeping current photos: {e}")
            events.log_event("refresh_failed", level=logging.WARNING, since=since, error=str(e))
            return RefreshResult(stale=True, error=str(e))
        return RefreshResult(new_photos=photos)

    def refresh_from_scratch(self) -> None:
        self.cache_controller.reset_view()
        events.log_event("view_reset", reason="refresh")

    async def select_range(self, start: datetime | None = None, end: datetime | None = None) -> RangeResponse:
        """Switch the view to a date range, replacing the working set.

        A missing start means 24 hours before the end; a missing end means now,
        and the view then keeps following now on refresh. If another selection
        or reset happens while this one loads, its photos are returned but the
        working set is left to the newer view.
        """
        follows_now = end is None
        if start is None:
            start, end = self.photo_service.last_24_hours(end)
        else:
            start = to_utc(start)
            end = to_utc(end) if end is not None else self._clock()
        if start > end:
            raise ValueError(f"Range start {start.isoformat()} is after end {end.isoformat()}")

        self.cache_controller.reset_view()
        epoch = self.paginator.epoch
        events.log_event("view_reset", reason="range", start=start, end=end)

        photos = await self.photo_service.fetch_range(start, end)
        response = RangeResponse(start=start, end=end, photos=photos, total=len(photos))
        if epoch != self.paginator.epoch:
            logger.info(f"Discarding range {start.isoformat()}..{end.isoformat()}: the view changed while it loaded")
            return response

        self.range_window = (start, end)
        self.range_photos = photos
        self.range_follows_now = follows_now
        return response

    def get_range_page(self, page_size: int, page_index: int) -> PhotoPage:
        """Slice of the current date-range working set."""
        if page_size < 1 or page_index < 0:
            raise ValueError("page_size must be at least 1 and page_index not negative")
        start_index = page_index * page_size
        end_index = start_index + page_size
        return PhotoPage(
            photos=self.range_photos[start_index:end_index],
            has_more=end_index < len(self.range_photos),
            page=page_index,
            size=page_size,
        )

    def working_set(self) -> list[Photo]:
        """The photos currently on screen: the range view if one is active, else the paged cache."""
        if self.range_window is not None:
            return list(self.range_photos)
        return list(self.paginator.photos)

    async def trends(self) -> TrendSeries:
        batch = await self.metadata.fetch_many(self.working_set())
        return build_series(batch)

    def logout(self) -> None:
        self.cache_controller.invalidate_all()
        events.log_event("credentials_invalidated", reason="logout")

    def credentials_rejected(self, error: CredentialFailure) -> None:
        self.cache_controller.invalidate_all()
        events.log_event("credentials_invalidated", level=logging.WARNING, reason="rejected", error=str(error))
