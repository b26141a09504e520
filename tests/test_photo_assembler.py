"""Tests for turning listed entries into photos."""

import pytest
from pydantic import ValidationError

from catviewer.exceptions import MalformedEntry
from catviewer.photo_assembler import PhotoAssembler, merge_unique, sort_newest_first
from catviewer.schemas.photo import ListedObject, Photo
from tests.helpers import FakeObjectStore, utc


def entry(key: str, size: int = 10) -> ListedObject:
    return ListedObject(key=key, size=size)


class TestAssemble:
    @pytest.mark.asyncio
    async def test_builds_photos_and_skips_malformed(self, store: FakeObjectStore, assembler: PhotoAssembler):
        entries = [
            entry("photos/cat_20251030_031000.jpg", 100),
            entry("photos/cat_20251030_031000.json"),
            entry("photos/cat_2025-10-30.jpg"),
            entry("photos/notes.txt"),
            entry("photos/cat_20251399_031000.jpg"),
        ]

        result = await assembler.assemble(entries)

        assert result.skipped == 4
        assert len(result.photos) == 1
        photo = result.photos[0]
        assert photo.key == "photos/cat_20251030_031000.jpg"
        assert photo.file_name == "cat_20251030_031000.jpg"
        assert photo.timestamp == utc(2025, 10, 30, 3, 10)
        assert photo.size == 100
        assert photo.url.startswith("https://signed.example/photos/cat_20251030_031000.jpg")

    @pytest.mark.asyncio
    async def test_window_filters_before_signing(self, store: FakeObjectStore, assembler: PhotoAssembler):
        entries = [entry("photos/cat_20251030_031000.jpg"), entry("photos/cat_20251030_041000.jpg")]

        result = await assembler.assemble(entries, window=lambda ts: ts.hour == 4)

        assert [p.key for p in result.photos] == ["photos/cat_20251030_041000.jpg"]
        assert result.skipped == 0
        assert store.sign_calls == ["photos/cat_20251030_041000.jpg"]

    @pytest.mark.asyncio
    async def test_empty_input(self, assembler: PhotoAssembler):
        result = await assembler.assemble([])
        assert result.photos == []
        assert result.skipped == 0

    def test_parse_entry_rejects_malformed(self, assembler: PhotoAssembler):
        assert assembler.parse_entry(entry("photos/cat_20251030_031000.jpg")) == ("cat_20251030_031000.jpg", utc(2025, 10, 30, 3, 10))
        with pytest.raises(MalformedEntry) as exc_info:
            assembler.parse_entry(entry("photos/cat_20251030_031000.json"))
        assert exc_info.value.key == "photos/cat_20251030_031000.json"


def make_photo(key: str, hour: int, url: str = "u") -> Photo:
    return Photo(key=key, file_name=key, timestamp=utc(2025, 10, 30, hour), url=url)


class TestPhotoIdentity:
    def test_equality_is_by_key(self):
        assert make_photo("a", 1, url="u1") == make_photo("a", 1, url="u2")
        assert make_photo("a", 1) != make_photo("b", 1)
        assert len({make_photo("a", 1, "x"), make_photo("a", 1, "y")}) == 1

    def test_photo_is_immutable(self):
        photo = make_photo("a", 1)
        with pytest.raises(ValidationError):
            photo.url = "other"


class TestMergeHelpers:
    def test_sort_newest_first(self):
        photos = [make_photo("a", 1), make_photo("c", 3), make_photo("b", 2)]
        assert [p.key for p in sort_newest_first(photos)] == ["c", "b", "a"]

    def test_merge_unique_keeps_first_occurrence(self):
        merged = merge_unique([make_photo("a", 1, "new")], [make_photo("a", 1, "old"), make_photo("b", 2)])
        assert [p.key for p in merged] == ["b", "a"]
        assert merged[1].url == "new"
