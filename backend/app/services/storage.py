"""
Project Gallery Backend — Blob Storage Backends
=================================================

What:  Where image bytes are durably kept, behind one interface.
How:   `BlobStorage` defines store / load / delete. Two implementations:
         - FilesystemStorage: bytes written under STORAGE_ROOT, the relative
           file name kept in gallery_images.image_path
         - InlineStorage: bytes kept in gallery_images.image_data
       `build_storage()` picks one from settings once at startup; a
       deployment never mixes the two.
Who:   GalleryService and ProjectService (cascade delete).

Cleanup contract:
    delete() is best-effort. A missing file is not an error, and any other
    OS failure is logged and swallowed, because callers only delete content
    after the database change that stopped referencing it has committed.
"""

import base64
import logging
import os
import re
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import aiofiles

from app.config import Settings
from app.exceptions import FileStorageError

logger = logging.getLogger(__name__)

# Anything outside this set is replaced in the stored file name
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ImageContent(Protocol):
    """Anything shaped like a gallery row's content columns."""
    image_path: Optional[str]
    image_data: Optional[bytes]
    media_type: str


@dataclass
class StoredImage:
    """
    Locator returned by BlobStorage.store().

    Exactly one of image_path / image_data is set, matching the backend.
    """
    image_path: Optional[str]
    image_data: Optional[bytes]
    media_type: str


def sanitize_filename(filename: str) -> str:
    """
    Reduce an uploaded file name to a safe single path component.

    "../My Photo (1).PNG" → "My_Photo_1_.PNG"
    """
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "image"


def to_data_url(content: bytes, media_type: str) -> str:
    """Encode bytes as a `data:` URL using the standard base64 alphabet."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


class BlobStorage(ABC):
    """
    Contract shared by both storage strategies.

    `response_field` names the key under which load() output is returned
    by the gallery endpoints (ImagePath or ImageBase64).
    """

    name: str = ""
    response_field: str = ""

    @abstractmethod
    async def store(self, filename: str, content: bytes, media_type: str) -> StoredImage:
        """
        Persist image bytes and return the locator to save on the row.

        Raises:
            FileStorageError: the bytes could not be written.
        """
        ...

    @abstractmethod
    def load(self, image: ImageContent) -> Optional[str]:
        """Transportable text form of a stored image (URL or data URL)."""
        ...

    @abstractmethod
    async def delete(self, image: ImageContent) -> None:
        """Best-effort removal of the content behind a locator. Never raises."""
        ...


class FilesystemStorage(BlobStorage):
    """
    Stores uploads as files directly under a single directory.

    File names: <epoch-ms>-<8 hex>-<sanitized original name>, e.g.
        1718031123456-9f2c1ab0-site_photo.png
    The timestamp + random segment makes same-name uploads in one batch
    land on distinct files.
    """

    name = "filesystem"
    response_field = "ImagePath"

    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = Path(root).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("FilesystemStorage initialized with root=%s", self.root)

    def _generate_name(self, filename: str) -> str:
        stamp = int(time.time() * 1000)
        return f"{stamp}-{uuid.uuid4().hex[:8]}-{sanitize_filename(filename)}"

    def resolve(self, relative_path: str) -> Path:
        """
        Absolute path for a stored relative name.

        Raises:
            ValueError: the name escapes the storage root.
        """
        candidate = (self.root / relative_path).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise ValueError(f"Path escapes storage root: {relative_path}")
        return candidate

    async def store(self, filename: str, content: bytes, media_type: str) -> StoredImage:
        relative_path = self._generate_name(filename)
        absolute_path = self.root / relative_path

        try:
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return StoredImage(image_path=relative_path, image_data=None, media_type=media_type)

    def load(self, image: ImageContent) -> Optional[str]:
        if not image.image_path:
            return None
        return f"{self.url_prefix}/{image.image_path}"

    async def delete(self, image: ImageContent) -> None:
        if not image.image_path:
            return
        try:
            path = self.resolve(image.image_path)
            if path.exists():
                os.remove(path)
                logger.info("Deleted file: %s", image.image_path)
            else:
                logger.debug("Delete: file already gone: %s", image.image_path)
        except (OSError, ValueError) as e:
            # The row no longer references this file; it is now an untracked leak
            logger.warning("Failed to delete file %s: %s", image.image_path, str(e))


class InlineStorage(BlobStorage):
    """Keeps image bytes in the gallery row itself."""

    name = "database"
    response_field = "ImageBase64"

    async def store(self, filename: str, content: bytes, media_type: str) -> StoredImage:
        return StoredImage(image_path=None, image_data=content, media_type=media_type)

    def load(self, image: ImageContent) -> Optional[str]:
        if image.image_data is None:
            return None
        return to_data_url(image.image_data, image.media_type)

    async def delete(self, image: ImageContent) -> None:
        # Row deletion / column overwrite already removed the bytes
        return None


def build_storage(settings: Settings) -> BlobStorage:
    """Instantiate the configured backend."""
    if settings.storage_backend == "database":
        return InlineStorage()
    return FilesystemStorage(settings.storage_root, settings.uploads_url_prefix)
