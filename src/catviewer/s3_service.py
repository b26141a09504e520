"""
Asynchronous S3 Client Service

This module provides an async-first S3 client that uses aioboto3 for
non-blocking listing, reads and copies, plus a sync boto3 client for presigning.
It is the object lister the photo layer is built on: credentials, region, bucket
and the camera's upload folder are its concern, not the caller's.
"""

import logging
from typing import TYPE_CHECKING

import aioboto3
import boto3
from botocore.config import Config

from catviewer.exceptions import ObjectNotFound
from catviewer.s3_utils import NOT_FOUND_ERROR_CODES, S3Settings, error_code, get_s3_settings, join_key, translate_error
from catviewer.schemas.photo import ListPage

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


class AsyncS3Client:
    """Asynchronous S3 Client

    This client maintains a shared aioboto3.Session that is created once and
    reused for all operations. Individual S3 clients are created per operation
    using context managers to ensure proper resource cleanup.

    All network methods are async and do not block the event loop. Presigning is
    a local computation and stays sync.
    """

    def __init__(self, settings: S3Settings | None = None):
        """Initialize the AsyncS3Client with configuration from environment."""
        self.settings = settings or get_s3_settings()
        self._session: aioboto3.Session | None = None
        self._endpoint_url = self.settings.endpoint_url
        self._config = Config(
            signature_version=self.settings.signature_version,
            max_pool_connections=50,
            retries={"max_attempts": 3, "mode": "standard"},  # Retry failed requests
            connect_timeout=10,  # Connection timeout in seconds
            read_timeout=60,  # Read timeout in seconds
        )
        self._presign_client = None
        logger.info(f"AsyncS3Client initialized: endpoint={self._endpoint_url}, bucket={self.settings.bucket}, folder={self.settings.folder}")

    @property
    def session(self) -> aioboto3.Session:
        """Get or create the shared aioboto3 session.

        The session is created once and reused until credentials are reset.
        """
        if self._session is None:
            self._session = aioboto3.Session(
                aws_access_key_id=self.settings.access_key or None,
                aws_secret_access_key=self.settings.secret_key or None,
                region_name=self.settings.region,
            )
        return self._session

    def _get_s3_client(self) -> "S3Client":
        """Get configured S3 client context manager.

        Usage: async with self._get_s3_client() as s3:
        """
        return self.session.client("s3", endpoint_url=self._endpoint_url, config=self._config)

    def _get_presign_client(self):
        if self._presign_client is None:
            self._presign_client = boto3.client(
                "s3",
                endpoint_url=self._endpoint_url,
                aws_access_key_id=self.settings.access_key or None,
                aws_secret_access_key=self.settings.secret_key or None,
                region_name=self.settings.region,
                config=self._config,
            )
        return self._presign_client

    def folder_key(self, name: str, folder: str | None = None) -> str:
        """Full object key for a name inside a folder (the photo folder by default)."""
        return join_key(self.settings.folder if folder is None else folder, name)

    async def list_objects(
        self,
        prefix: str,
        max_keys: int = 1000,
        continuation_token: str | None = None,
        folder: str | None = None,
    ) -> ListPage:
        """List one page of objects under a prefix.

        Args:
            prefix: Key prefix relative to the folder (e.g. 'cat_20251030_')
            max_keys: Page size, at most 1000
            continuation_token: Token from a previous truncated page
            folder: Folder to list in (defaults to the photo folder)

        Returns:
            ListPage with entries, truncation flag and next token

        Raises:
            CredentialFailure: If the store rejects the credentials
            ListingFailure: On any other list failure
        """
        full_prefix = self.folder_key(prefix, folder)
        list_params: dict = {
            "Bucket": self.settings.bucket,
            "Prefix": full_prefix,
            "MaxKeys": max_keys,
        }
        if continuation_token:
            list_params["ContinuationToken"] = continuation_token

        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                response = await s3.list_objects_v2(**list_params)
        except Exception as e:
            logger.error(f"Failed to list objects with prefix {full_prefix}: {e}")
            raise translate_error(e, f"list {full_prefix}", target=full_prefix) from e

        page = ListPage.from_response(response)
        logger.debug(f"Listed {len(page.entries)} objects with prefix {full_prefix} (truncated={page.is_truncated})")
        return page

    def generate_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        """Generate a presigned URL for direct S3 access to an object.

        Args:
            key: S3 object key
            expires_in: URL expiration time in seconds (default: 1 hour)

        Returns:
            Presigned URL string

        Raises:
            CredentialFailure: If no usable credentials are configured
            ListingFailure: If URL generation fails otherwise
        """
        try:
            s3_client = self._get_presign_client()
            url = s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.settings.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except Exception as e:
            logger.error(f"Failed to generate presigned URL for {key}: {e}")
            raise translate_error(e, f"presign {key}") from e

        logger.debug(f"Generated presigned URL for: {key}")
        return str(url)

    async def get_object_text(self, key: str) -> str:
        """Read an object body as UTF-8 text.

        Raises:
            ObjectNotFound: If the key does not exist
            CredentialFailure / ListingFailure: On other failures
        """
        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                response = await s3.get_object(Bucket=self.settings.bucket, Key=key)
                body = response.get("Body")
                if body is None:
                    return ""
                content: bytes = await body.read()
        except Exception as e:
            if error_code(e) in NOT_FOUND_ERROR_CODES:
                raise ObjectNotFound(key) from e
            logger.error(f"Failed to get object {key}: {e}")
            raise translate_error(e, f"get {key}") from e
        return content.decode("utf-8", errors="replace")

    async def file_exists(self, key: str) -> bool:
        """Check if an object exists.

        Returns:
            True if the object exists, False otherwise
        """
        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                await s3.head_object(Bucket=self.settings.bucket, Key=key)
            return True
        except Exception as e:
            if error_code(e) in NOT_FOUND_ERROR_CODES:
                return False
            logger.error(f"Failed to check if object exists {key}: {e}")
            raise translate_error(e, f"head {key}") from e

    async def copy_object(self, source_key: str, dest_key: str) -> None:
        """Copy an object within the bucket.

        Raises:
            ObjectNotFound: If the source does not exist
            CredentialFailure / ListingFailure: On other failures
        """
        try:
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                copy_source = {"Bucket": self.settings.bucket, "Key": source_key}
                await s3.copy_object(CopySource=copy_source, Bucket=self.settings.bucket, Key=dest_key)
            logger.info(f"Successfully copied object from {source_key} to {dest_key}")
        except Exception as e:
            if error_code(e) in NOT_FOUND_ERROR_CODES:
                raise ObjectNotFound(source_key) from e
            logger.error(f"Failed to copy object from {source_key} to {dest_key}: {e}")
            raise translate_error(e, f"copy {source_key}") from e

    def reset_credentials(self) -> None:
        """Drop the session and presign client so the next call picks up fresh credentials."""
        logger.info("Resetting S3 client credentials")
        self._session = None
        self._presign_client = None

    async def close(self) -> None:
        """Close the session and clean up resources."""
        if self._session is not None:
            logger.info("Closing AsyncS3Client session")
            # Note: aioboto3 sessions don't need explicit closing in newer versions
            self._session = None
