from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ListedObject(BaseModel):
    """One entry of an object store listing."""

    key: str
    size: int | None = None

    model_config = ConfigDict(frozen=True)


class ListPage(BaseModel):
    """One page of a prefix listing, as returned by list_objects_v2."""

    entries: list[ListedObject] = Field(default_factory=list)
    is_truncated: bool = False
    next_token: str | None = None

    @classmethod
    def from_response(cls, response: dict) -> "ListPage":
        """Build a ListPage from a raw ``list_objects_v2`` response dict."""
        entries = [ListedObject(key=obj["Key"], size=obj.get("Size")) for obj in response.get("Contents", []) if obj.get("Key")]
        return cls(
            entries=entries,
            is_truncated=bool(response.get("IsTruncated")),
            next_token=response.get("NextContinuationToken"),
        )


class Photo(BaseModel):
    """A listed photo with its capture time and a temporary access URL.

    Identity is the object key: the URL rotates and is not part of equality.
    """

    key: str
    file_name: str
    timestamp: datetime
    url: str
    size: int | None = None

    model_config = ConfigDict(frozen=True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Photo):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class PhotoPage(BaseModel):
    photos: list[Photo]
    has_more: bool
    page: int
    size: int


class RefreshResult(BaseModel):
    """Outcome of an incremental refresh. ``stale`` means the listing failed and nothing changed."""

    new_photos: list[Photo] = Field(default_factory=list)
    stale: bool = False
    error: str | None = None


class RangeResponse(BaseModel):
    start: datetime
    end: datetime
    photos: list[Photo]
    total: int
