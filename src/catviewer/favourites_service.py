import logging

from catviewer.exceptions import CredentialFailure, PhotoServiceError
from catviewer.key_codec import PHOTO_PREFIX, file_name_of, metadata_key_for
from catviewer.photo_assembler import PhotoAssembler, sort_newest_first
from catviewer.photo_service import list_all
from catviewer.s3_service import AsyncS3Client
from catviewer.schemas.photo import Photo

logger = logging.getLogger(__name__)


class FavouritesService:
    """Favourites are copies of a photo (and its sidecar) in the favourites folder.

    Photos and favourites are matched by file name. Removing a favourite would
    need delete permissions on the bucket and is not supported.
    """

    def __init__(self, s3_client: AsyncS3Client, assembler: PhotoAssembler, metadata_extension: str = "json", page_size: int = 1000):
        self._s3 = s3_client
        self._assembler = assembler
        self.metadata_extension = metadata_extension
        self.page_size = page_size
        self._file_names: set[str] = set()
        self._loaded = False

    @property
    def folder(self) -> str:
        return self._s3.settings.favourites_folder

    def favourite_key(self, photo_key: str) -> str:
        return self._s3.folder_key(file_name_of(photo_key), self.folder)

    async def _list_favourites(self) -> list[Photo]:
        entries = await list_all(self._s3, PHOTO_PREFIX, self.page_size, folder=self.folder)
        result = await self._assembler.assemble(entries)
        return result.photos

    async def _load(self) -> None:
        if self._loaded:
            return
        try:
            photos = await self._list_favourites()
        except CredentialFailure:
            raise
        except PhotoServiceError as e:
            # Browsing keeps working without favourite markers
            logger.error(f"Error loading favourites: {e}")
            return

        self._file_names = {photo.file_name for photo in photos}
        self._loaded = True

    async def is_favourite(self, photo_key: str) -> bool:
        await self._load()
        return file_name_of(photo_key) in self._file_names

    async def add_to_favourites(self, photo_key: str) -> None:
        """Copy the photo, and its metadata sidecar if it exists, into the favourites folder.

        Raises:
            ObjectNotFound: If the photo itself does not exist
        """
        file_name = file_name_of(photo_key)
        await self._load()
        if file_name in self._file_names:
            logger.info(f"Photo already in favourites: {file_name}")
            return

        favourite_key = self.favourite_key(photo_key)
        await self._s3.copy_object(photo_key, favourite_key)

        metadata_key = metadata_key_for(photo_key, self.metadata_extension)
        if await self._s3.file_exists(metadata_key):
            await self._s3.copy_object(metadata_key, metadata_key_for(favourite_key, self.metadata_extension))

        self._file_names.add(file_name)
        logger.info(f"Added to favourites: {file_name}")

    async def toggle_favourite(self, photo_key: str) -> bool:
        """Make the photo a favourite. Returns the resulting state, which is always True."""
        if not await self.is_favourite(photo_key):
            await self.add_to_favourites(photo_key)
        return True

    async def get_favourites(self) -> list[Photo]:
        """All favourites, newest first. Listing failures yield an empty list."""
        try:
            photos = await self._list_favourites()
        except CredentialFailure:
            raise
        except PhotoServiceError as e:
            logger.error(f"Error getting favourites: {e}")
            return []

        self._file_names = {photo.file_name for photo in photos}
        self._loaded = True
        return sort_newest_first(photos)

    def clear_cache(self) -> None:
        self._file_names.clear()
        self._loaded = False
