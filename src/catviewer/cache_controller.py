"""
Cache Controller

Owns the presigned URL cache and is the single path for invalidating caches:
view caches are reset on a date filter change or manual refresh, everything
(including credential-bound caches) on logout or when the store rejects our
credentials.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from catviewer.cache_utils import AccessUrlCache

logger = logging.getLogger(__name__)


class UrlSigner(Protocol):
    def generate_presigned_url(self, key: str, expires_in: int = 3600) -> str: ...


class CacheController:
    def __init__(
        self,
        signer: UrlSigner,
        ttl_seconds: int = 3600,
        batch_size: int = 5,
        margin_seconds: int = 300,
    ):
        self._signer = signer
        self.ttl_seconds = ttl_seconds
        self.batch_size = batch_size
        self._urls = AccessUrlCache(margin_seconds=margin_seconds)
        self._view_resets: list[Callable[[], None]] = []
        self._credential_resets: list[Callable[[], None]] = []

    @property
    def cached_url_count(self) -> int:
        return len(self._urls)

    def on_view_reset(self, callback: Callable[[], None]) -> None:
        """Register a cache to clear on date filter change, manual refresh and logout."""
        self._view_resets.append(callback)

    def on_credentials_reset(self, callback: Callable[[], None]) -> None:
        """Register a credential-bound cache to clear on logout and credential errors."""
        self._credential_resets.append(callback)

    async def get_access_url(self, key: str) -> str:
        """Return a cached presigned URL for ``key`` or sign a fresh one.

        Signing runs in a worker thread since botocore's presigner is sync.
        """
        cached = self._urls.get(key)
        if cached:
            logger.debug(f"Using cached presigned URL for: {key}")
            return cached

        url = await asyncio.to_thread(self._signer.generate_presigned_url, key, self.ttl_seconds)
        self._urls.put(key, url, self.ttl_seconds)
        return url

    async def get_access_urls(self, keys: Iterable[str]) -> list[str]:
        """Presigned URLs for many keys, in input order.

        Keys are signed in batches of ``batch_size`` awaited together, which caps
        the number of concurrent signing calls.
        """
        keys = list(keys)
        urls: list[str] = []
        for i in range(0, len(keys), self.batch_size):
            batch = keys[i : i + self.batch_size]
            urls.extend(await asyncio.gather(*(self.get_access_url(key) for key in batch)))

        logger.debug(f"Resolved {len(urls)} presigned URLs ({self.cached_url_count} cached)")
        return urls

    def reset_view(self) -> None:
        """Reset view caches (the pagination cache). URLs stay valid and are kept."""
        for reset in self._view_resets:
            reset()

    def invalidate_all(self) -> None:
        """Drop every cache: URLs, credential-bound caches and view caches."""
        logger.info(f"Invalidating all caches ({self.cached_url_count} presigned URLs)")
        self._urls.clear()
        for reset in self._credential_resets:
            reset()
        self.reset_view()
