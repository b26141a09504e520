from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


@dataclass(frozen=True)
class CachedUrl:
    url: str
    expires_at: datetime


class AccessUrlCache:
    """In-memory cache of presigned URLs keyed by object key.

    Entries are stored with an expiry that sits ``margin_seconds`` before the URL
    really stops working, so anything served from here is still valid.
    """

    def __init__(self, margin_seconds: int = 300):
        self.margin_seconds = margin_seconds
        self._entries: dict[str, CachedUrl] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def put(self, key: str, url: str, expires_in: int) -> CachedUrl:
        """Cache a presigned URL with expiration time"""
        lifetime = max(expires_in - self.margin_seconds, 0)
        entry = CachedUrl(url=url, expires_at=datetime.now(UTC) + timedelta(seconds=lifetime))
        self._entries[key] = entry
        return entry

    def get(self, key: str) -> str | None:
        """Get cached presigned URL if still valid"""
        cached = self._entries.get(key)
        if cached is None:
            return None
        if cached.expires_at > datetime.now(UTC):
            return cached.url

        del self._entries[key]
        return None

    def clear(self) -> None:
        self._entries.clear()
