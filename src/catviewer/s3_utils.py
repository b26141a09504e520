import logging
from functools import lru_cache

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, PartialCredentialsError
from pydantic_settings import BaseSettings, SettingsConfigDict

from catviewer.exceptions import CredentialFailure, ListingFailure, ObjectNotFound

logger = logging.getLogger(__name__)

# Error codes S3 (and S3-compatible stores) use when the caller's credentials are rejected
CREDENTIAL_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "ExpiredToken",
        "ExpiredTokenException",
        "InvalidAccessKeyId",
        "InvalidToken",
        "SignatureDoesNotMatch",
        "TokenRefreshRequired",
        "UnrecognizedClientException",
    }
)

NOT_FOUND_ERROR_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3Settings(BaseSettings):
    """Configuration for the S3 client"""

    endpoint: str = "s3.amazonaws.com"
    access_key: str = ""
    secret_key: str = ""
    bucket: str = "cat-camera"
    region: str = "us-east-1"
    use_ssl: bool = True
    signature_version: str = "s3v4"
    # Folder inside the bucket the camera uploads into
    folder: str = "photos"
    favourites_folder: str = "favourites"

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def endpoint_url(self) -> str:
        """Endpoint with protocol, added from use_ssl if missing."""
        if not self.endpoint.startswith(("http://", "https://")):
            protocol = "https" if self.use_ssl else "http"
            return f"{protocol}://{self.endpoint}"
        return self.endpoint


@lru_cache(maxsize=1)
def get_s3_settings() -> S3Settings:
    """Get cached S3 settings."""
    return S3Settings()


def join_key(folder: str | None, name: str) -> str:
    """Join a folder and a key fragment, tolerating empty folders and stray slashes."""
    folder = (folder or "").strip("/")
    return f"{folder}/{name}" if folder else name


def error_code(exc: Exception) -> str | None:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", "")) or None
    return None


def translate_error(exc: Exception, what: str, target: str | None = None) -> Exception:
    """Map a botocore exception onto the photo service error taxonomy."""
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return CredentialFailure(f"{what}: no usable credentials", prefix=target)

    code = error_code(exc)
    if code in CREDENTIAL_ERROR_CODES:
        return CredentialFailure(f"{what}: credentials rejected ({code})", prefix=target)
    if code in NOT_FOUND_ERROR_CODES and target is not None:
        return ObjectNotFound(target)
    if isinstance(exc, (ClientError, BotoCoreError)):
        return ListingFailure(f"{what}: {exc}", prefix=target)
    return ListingFailure(f"{what}: {exc!r}", prefix=target)
