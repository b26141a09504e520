import asyncio
import logging
from collections.abc import Sequence

from pydantic import ValidationError

from catviewer.exceptions import CredentialFailure, ObjectNotFound, PhotoServiceError
from catviewer.key_codec import metadata_key_for
from catviewer.s3_service import AsyncS3Client
from catviewer.schemas.metadata import MetadataBatch, MetadataItem, PhotoMetadata
from catviewer.schemas.photo import Photo

logger = logging.getLogger(__name__)


class MetadataService:
    """Reads the JSON sidecar written next to each photo.

    ``get`` never raises for a single bad key: missing, empty, malformed or
    unreadable sidecars all come back as None so a chart over many photos can
    still render what it has.
    """

    def __init__(self, s3_client: AsyncS3Client, metadata_extension: str = "json", batch_size: int = 5):
        self._s3 = s3_client
        self.metadata_extension = metadata_extension
        self.batch_size = batch_size
        self._cache: dict[str, PhotoMetadata] = {}

    async def get(self, photo_key: str) -> PhotoMetadata | None:
        if photo_key in self._cache:
            return self._cache[photo_key]

        metadata_key = metadata_key_for(photo_key, self.metadata_extension)
        try:
            body = await self._s3.get_object_text(metadata_key)
        except ObjectNotFound:
            logger.warning(f"No metadata found for: {photo_key}")
            return None
        except CredentialFailure:
            raise
        except PhotoServiceError as e:
            logger.error(f"Error fetching metadata for {photo_key}: {e}")
            return None

        if not body.strip():
            logger.warning(f"Empty metadata for: {photo_key}")
            return None

        try:
            metadata = PhotoMetadata.model_validate_json(body)
        except ValidationError as e:
            logger.error(f"Malformed metadata for {photo_key}: {e.error_count()} errors")
            logger.debug(f"Malformed metadata content: {body[:200]}")
            return None

        self._cache[photo_key] = metadata
        return metadata

    async def fetch_many(self, photos: Sequence[Photo]) -> MetadataBatch:
        """Fetch metadata for many photos in small concurrent batches.

        Failures are counted: a warning is set when some failed, an error when
        none succeeded.
        """
        batch = MetadataBatch(total=len(photos))
        for i in range(0, len(photos), self.batch_size):
            chunk = photos[i : i + self.batch_size]
            results = await asyncio.gather(*(self.get(photo.key) for photo in chunk))
            for photo, metadata in zip(chunk, results, strict=True):
                if metadata is None:
                    batch.failed += 1
                else:
                    batch.items.append(MetadataItem(photo=photo, metadata=metadata))

        if batch.failed:
            batch.warning = f"{batch.failed} of {batch.total} metadata files failed to load. Showing partial data."
        if batch.total and not batch.items:
            batch.error = "No valid metadata found. All metadata files may be corrupted or missing."
        return batch

    def clear_cache(self) -> None:
        self._cache.clear()
