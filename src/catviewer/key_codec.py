"""
Object key codec

Photo keys carry their capture time in the file name (``cat_YYYYMMDD_HHMMSS.jpg``).
The digits are UTC. Everything that orders, filters or shards photos by date goes
through this module, so local time never leaks in.
"""

import re
from datetime import UTC, date, datetime, timedelta

PHOTO_PREFIX = "cat_"

PHOTO_PATTERN = re.compile(r"^cat_(\d{8})_(\d{6})\.([A-Za-z0-9]+)$")


def file_name_of(key: str) -> str:
    """Return the basename of an object key (the part after the last '/')."""
    return key.rsplit("/", 1)[-1]


def parse_timestamp(file_name: str) -> datetime | None:
    """Parse the UTC capture time out of a photo file name.

    Example: ``cat_20251030_032811.jpg`` -> ``2025-10-30 03:28:11+00:00``.
    Returns None for anything that does not match the pattern, including
    impossible calendar values such as month 13.
    """
    match = PHOTO_PATTERN.match(file_name_of(file_name))
    if not match:
        return None

    date_str, time_str, _ = match.groups()
    try:
        return datetime(
            int(date_str[0:4]),
            int(date_str[4:6]),
            int(date_str[6:8]),
            int(time_str[0:2]),
            int(time_str[2:4]),
            int(time_str[4:6]),
            tzinfo=UTC,
        )
    except ValueError:
        return None


def extension_of(file_name: str) -> str | None:
    match = PHOTO_PATTERN.match(file_name_of(file_name))
    return match.group(3).lower() if match else None


def is_photo_file_name(file_name: str, image_extensions: tuple[str, ...] = ("jpg",)) -> bool:
    """True if the name is a parseable photo with one of the image extensions.

    Metadata sidecars share the timestamped stem, so the extension check is what
    keeps ``cat_..._.json`` out of photo collections.
    """
    ext = extension_of(file_name)
    if ext is None or ext not in {e.lower() for e in image_extensions}:
        return False
    return parse_timestamp(file_name) is not None


def build_file_name(timestamp: datetime, ext: str = "jpg") -> str:
    """Inverse of parse_timestamp: format a UTC instant as a photo file name."""
    ts = timestamp.astimezone(UTC)
    return f"{PHOTO_PREFIX}{ts:%Y%m%d}_{ts:%H%M%S}.{ext}"


def to_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def bucket_of(value: datetime) -> date:
    """The UTC calendar day a given instant falls into."""
    return to_utc(value).date()


def buckets_covering(start: datetime, end: datetime) -> list[date]:
    """Every UTC day from ``start - 1 day`` through ``end + 1 day``, oldest first.

    The extra day on each side keeps photos near midnight from being lost to an
    off-by-one bucket boundary.
    """
    first = bucket_of(start) - timedelta(days=1)
    last = bucket_of(end) + timedelta(days=1)

    buckets: list[date] = []
    current = first
    while current <= last:
        buckets.append(current)
        current += timedelta(days=1)
    return buckets


def bucket_prefix(bucket: date) -> str:
    """List prefix for a date bucket, e.g. ``cat_20251030_``."""
    return f"{PHOTO_PREFIX}{bucket:%Y%m%d}_"


def metadata_key_for(photo_key: str, metadata_extension: str = "json") -> str:
    """Key of the metadata sidecar for a photo: same stem, metadata extension."""
    head, sep, _ = photo_key.rpartition(".")
    if not sep:
        return f"{photo_key}.{metadata_extension}"
    return f"{head}.{metadata_extension}"
