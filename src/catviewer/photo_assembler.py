import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from catviewer.cache_controller import CacheController
from catviewer.exceptions import MalformedEntry
from catviewer.key_codec import file_name_of, is_photo_file_name, parse_timestamp
from catviewer.schemas.photo import ListedObject, Photo

logger = logging.getLogger(__name__)


@dataclass
class AssemblyResult:
    photos: list[Photo] = field(default_factory=list)
    # Entries that were not photos (sidecars, renamed or partial uploads)
    skipped: int = 0


class PhotoAssembler:
    """Turns raw listing entries into Photo records with access URLs.

    Entries whose file name does not parse are dropped silently: a corrupt or
    half-uploaded object must never break browsing.
    """

    def __init__(self, cache_controller: CacheController, image_extensions: tuple[str, ...] = ("jpg",)):
        self._cache = cache_controller
        self.image_extensions = image_extensions

    def parse_entry(self, entry: ListedObject) -> tuple[str, datetime]:
        """File name and capture time of a listed photo.

        Raises:
            MalformedEntry: If the entry is not a timestamped photo
        """
        file_name = file_name_of(entry.key)
        timestamp = parse_timestamp(file_name) if is_photo_file_name(file_name, self.image_extensions) else None
        if timestamp is None:
            raise MalformedEntry(entry.key)
        return file_name, timestamp

    async def assemble(
        self,
        entries: Iterable[ListedObject],
        window: Callable[[datetime], bool] | None = None,
    ) -> AssemblyResult:
        """Build photos from listed entries. Output order is unspecified.

        ``window`` filters on the parsed timestamp before any URL is signed;
        entries outside it are not counted as skipped.
        """
        result = AssemblyResult()
        accepted: list[tuple[ListedObject, str, datetime]] = []

        for entry in entries:
            try:
                file_name, timestamp = self.parse_entry(entry)
            except MalformedEntry:
                result.skipped += 1
                continue
            if window is not None and not window(timestamp):
                continue
            accepted.append((entry, file_name, timestamp))

        if result.skipped:
            logger.debug(f"Skipped {result.skipped} non-photo entries")

        urls = await self._cache.get_access_urls(entry.key for entry, _, _ in accepted)
        for (entry, file_name, timestamp), url in zip(accepted, urls, strict=True):
            result.photos.append(Photo(key=entry.key, file_name=file_name, timestamp=timestamp, url=url, size=entry.size))

        return result


def sort_newest_first(photos: Iterable[Photo]) -> list[Photo]:
    return sorted(photos, key=lambda p: p.timestamp, reverse=True)


def merge_unique(existing: Iterable[Photo], incoming: Iterable[Photo]) -> list[Photo]:
    """Merge two photo sequences keeping the first occurrence of each key, newest first."""
    seen: set[str] = set()
    merged: list[Photo] = []
    for photo in (*existing, *incoming):
        if photo.key in seen:
            continue
        seen.add(photo.key)
        merged.append(photo)
    return sort_newest_first(merged)
