import pytest

from catviewer.exceptions import CredentialFailure, ListingFailure, ObjectNotFound
from catviewer.favourites_service import FavouritesService
from catviewer.photo_assembler import PhotoAssembler
from tests.helpers import FakeObjectStore, sample_metadata, utc


@pytest.fixture
def favourites(store: FakeObjectStore, assembler: PhotoAssembler) -> FavouritesService:
    return FavouritesService(store, assembler)


class TestAddToFavourites:
    @pytest.mark.asyncio
    async def test_copies_photo_and_sidecar(self, store: FakeObjectStore, favourites: FavouritesService):
        ts = utc(2025, 10, 30, 3, 10)
        key = store.add_photo(ts)
        store.add_metadata(ts, sample_metadata())

        await favourites.add_to_favourites(key)

        assert store.copies == [
            ("photos/cat_20251030_031000.jpg", "favourites/cat_20251030_031000.jpg"),
            ("photos/cat_20251030_031000.json", "favourites/cat_20251030_031000.json"),
        ]
        assert await favourites.is_favourite(key)

    @pytest.mark.asyncio
    async def test_photo_without_sidecar(self, store: FakeObjectStore, favourites: FavouritesService):
        key = store.add_photo(utc(2025, 10, 30, 3, 10))
        await favourites.add_to_favourites(key)
        assert len(store.copies) == 1

    @pytest.mark.asyncio
    async def test_is_idempotent(self, store: FakeObjectStore, favourites: FavouritesService):
        key = store.add_photo(utc(2025, 10, 30, 3, 10))

        assert await favourites.toggle_favourite(key) is True
        assert await favourites.toggle_favourite(key) is True

        assert len(store.copies) == 1

    @pytest.mark.asyncio
    async def test_missing_photo_raises(self, favourites: FavouritesService):
        with pytest.raises(ObjectNotFound):
            await favourites.add_to_favourites("photos/cat_20251030_031000.jpg")


class TestGetFavourites:
    @pytest.mark.asyncio
    async def test_newest_first(self, store: FakeObjectStore, favourites: FavouritesService):
        for hour in (2, 9, 5):
            store.add_photo(utc(2025, 10, 30, hour), folder="favourites")
        store.add("favourites/cat_20251030_050000.json", b"{}")

        photos = await favourites.get_favourites()

        assert [p.timestamp.hour for p in photos] == [9, 5, 2]
        assert all(p.key.startswith("favourites/") for p in photos)

    @pytest.mark.asyncio
    async def test_matches_by_file_name(self, store: FakeObjectStore, favourites: FavouritesService):
        store.add_photo(utc(2025, 10, 30, 2), folder="favourites")
        assert await favourites.is_favourite("photos/cat_20251030_020000.jpg")
        assert not await favourites.is_favourite("photos/cat_20251030_030000.jpg")

    @pytest.mark.asyncio
    async def test_listing_failure_yields_empty(self, store: FakeObjectStore, favourites: FavouritesService):
        store.fail_on("cat_", ListingFailure("down"))
        assert await favourites.get_favourites() == []
        assert not await favourites.is_favourite("photos/cat_20251030_020000.jpg")

    @pytest.mark.asyncio
    async def test_credential_failure_propagates(self, store: FakeObjectStore, favourites: FavouritesService):
        store.fail_on("cat_", CredentialFailure("expired"))
        with pytest.raises(CredentialFailure):
            await favourites.get_favourites()
