class PhotoServiceError(Exception):
    """Base class for errors raised by the photo retrieval layer."""


class ObjectNotFound(PhotoServiceError):
    """The requested object does not exist in the store."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class ListingFailure(PhotoServiceError):
    """A list (or other store) call failed in transport or on the service side."""

    def __init__(self, message: str, prefix: str | None = None):
        super().__init__(message)
        self.prefix = prefix


class CredentialFailure(ListingFailure):
    """The store rejected our credentials (denied, expired or missing)."""


class MalformedEntry(PhotoServiceError):
    """A listed object does not look like a photo. Never leaves the assembler."""

    def __init__(self, key: str):
        super().__init__(f"Not a photo key: {key}")
        self.key = key
