import asyncio
import json
from datetime import UTC, datetime

from catviewer.exceptions import ObjectNotFound
from catviewer.key_codec import build_file_name
from catviewer.s3_utils import S3Settings, join_key
from catviewer.schemas.photo import ListedObject, ListPage


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=UTC)


def photo_key(ts: datetime, folder: str = "photos", ext: str = "jpg") -> str:
    return join_key(folder, build_file_name(ts, ext))


def sample_metadata(**overrides) -> dict:
    payload = {
        "timestamp": "2025-10-30T03:10:00Z",
        "uptime_seconds": 1200,
        "temperature_celsius": 21.5,
        "humidity_percent": 48.0,
        "cat_present": True,
        "seconds_since_last_motion": 42,
        "blanket_on": False,
    }
    payload.update(overrides)
    return payload


class FakeObjectStore:
    """In-memory stand-in for AsyncS3Client.

    Listing is lexical, paged by ``max_keys`` with opaque continuation tokens,
    and every call is recorded so tests can assert on what was listed.
    """

    def __init__(self, settings: S3Settings | None = None):
        self.settings = settings or S3Settings(folder="photos", favourites_folder="favourites", access_key="k", secret_key="s")
        self.objects: dict[str, bytes] = {}
        self.list_calls: list[tuple[str, str | None]] = []
        self.sign_calls: list[str] = []
        self.copies: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}
        self.credential_resets = 0
        # When set, list calls wait on it before answering
        self.gate: asyncio.Event | None = None

    def add(self, key: str, body: bytes = b"jpeg") -> str:
        self.objects[key] = body
        return key

    def add_photo(self, ts: datetime, ext: str = "jpg", folder: str = "photos") -> str:
        return self.add(photo_key(ts, folder, ext))

    def add_metadata(self, ts: datetime, payload: dict | str, folder: str = "photos") -> str:
        body = payload if isinstance(payload, str) else json.dumps(payload)
        return self.add(photo_key(ts, folder, "json"), body.encode())

    def fail_on(self, prefix: str, exc: Exception) -> None:
        self.failures[prefix] = exc

    def folder_key(self, name: str, folder: str | None = None) -> str:
        return join_key(self.settings.folder if folder is None else folder, name)

    async def list_objects(self, prefix: str, max_keys: int = 1000, continuation_token: str | None = None, folder: str | None = None) -> ListPage:
        full_prefix = self.folder_key(prefix, folder)
        self.list_calls.append((full_prefix, continuation_token))
        if self.gate is not None:
            await self.gate.wait()
        for failing_prefix, exc in self.failures.items():
            if full_prefix.startswith(self.folder_key(failing_prefix, folder)):
                raise exc

        keys = sorted(key for key in self.objects if key.startswith(full_prefix))
        start = int(continuation_token.removeprefix("tok-")) if continuation_token else 0
        chunk = keys[start : start + max_keys]
        truncated = start + max_keys < len(keys)
        return ListPage(
            entries=[ListedObject(key=key, size=len(self.objects[key])) for key in chunk],
            is_truncated=truncated,
            next_token=f"tok-{start + max_keys}" if truncated else None,
        )

    def generate_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        self.sign_calls.append(key)
        return f"https://signed.example/{key}?v={len(self.sign_calls)}&ttl={expires_in}"

    async def get_object_text(self, key: str) -> str:
        if key not in self.objects:
            raise ObjectNotFound(key)
        return self.objects[key].decode()

    async def file_exists(self, key: str) -> bool:
        return key in self.objects

    async def copy_object(self, source_key: str, dest_key: str) -> None:
        if source_key not in self.objects:
            raise ObjectNotFound(source_key)
        self.objects[dest_key] = self.objects[source_key]
        self.copies.append((source_key, dest_key))

    def reset_credentials(self) -> None:
        self.credential_resets += 1

    async def close(self) -> None:
        pass

    def listed_prefixes(self) -> list[str]:
        return [prefix for prefix, _ in self.list_calls]
