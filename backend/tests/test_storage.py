"""
Project Gallery Backend — Storage Backend Tests
=================================================

What:  FilesystemStorage and InlineStorage behaviour on their own.

What we test:
    ✅ Filename sanitization (path parts, unsafe characters, empty names)
    ✅ Filesystem store → file on disk, load → URL path, delete → gone
    ✅ Deleting a missing file is silent
    ✅ Paths escaping the storage root are refused
    ✅ Inline load → data URL that decodes to the original bytes
"""

import base64
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from app.exceptions import FileStorageError
from app.services.storage import (
    FilesystemStorage,
    InlineStorage,
    StoredImage,
    build_storage,
    sanitize_filename,
    to_data_url,
)


class TestSanitizeFilename:
    def test_keeps_safe_names(self):
        """Already-safe names pass through unchanged."""
        assert sanitize_filename("site-photo_01.png") == "site-photo_01.png"

    def test_strips_directories(self):
        """Directory components (POSIX or Windows) are dropped."""
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\shot.jpg") == "shot.jpg"

    def test_replaces_unsafe_characters(self):
        """Spaces and punctuation become underscores."""
        assert sanitize_filename("My Photo (1).PNG") == "My_Photo_1_.PNG"

    def test_empty_name_falls_back(self):
        """Names with nothing usable fall back to "image"."""
        assert sanitize_filename("") == "image"
        assert sanitize_filename("...") == "image"


class TestFilesystemStorage:
    @pytest.mark.asyncio
    async def test_store_writes_file(self, fs_storage, storage_root, png_bytes):
        """store() writes the bytes under the root and returns the relative name."""
        stored = await fs_storage.store("a.png", png_bytes, "image/png")

        assert stored.image_data is None
        assert stored.image_path.endswith("-a.png")
        assert (storage_root / stored.image_path).read_bytes() == png_bytes

    @pytest.mark.asyncio
    async def test_same_name_twice_gives_distinct_files(
        self, fs_storage, storage_root, png_bytes, jpeg_bytes, stored_files
    ):
        """Two uploads with one name never overwrite each other."""
        first = await fs_storage.store("a.png", png_bytes, "image/png")
        second = await fs_storage.store("a.png", jpeg_bytes, "image/png")

        assert first.image_path != second.image_path
        assert len(stored_files(storage_root)) == 2

    def test_load_returns_url_path(self, fs_storage):
        """load() maps a stored name to its public URL path."""
        image = StoredImage(image_path="123-abc-a.png", image_data=None, media_type="image/png")
        assert fs_storage.load(image) == "/uploads/123-abc-a.png"

    def test_load_without_path(self, fs_storage):
        """A row without a path has no URL."""
        image = StoredImage(image_path=None, image_data=None, media_type="image/png")
        assert fs_storage.load(image) is None

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, fs_storage, storage_root, png_bytes, stored_files):
        """delete() removes the stored file."""
        stored = await fs_storage.store("a.png", png_bytes, "image/png")
        await fs_storage.delete(stored)
        assert stored_files(storage_root) == []

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_silent(self, fs_storage):
        """Deleting an already-missing file is not an error."""
        ghost = StoredImage(image_path="never-written.png", image_data=None, media_type="image/png")
        await fs_storage.delete(ghost)

    @pytest.mark.asyncio
    async def test_delete_os_error_is_logged(
        self, fs_storage, storage_root, png_bytes, stored_files, caplog
    ):
        """An OS error while removing a file is logged, never raised."""
        stored = await fs_storage.store("a.png", png_bytes, "image/png")

        with patch("app.services.storage.os.remove", side_effect=PermissionError("denied")):
            with caplog.at_level(logging.WARNING, logger="app.services.storage"):
                await fs_storage.delete(stored)

        assert stored_files(storage_root) == [stored.image_path]
        assert "Failed to delete file" in caplog.text

    @pytest.mark.asyncio
    async def test_delete_outside_root_is_refused(self, fs_storage, tmp_path):
        """A path escaping the root is never deleted."""
        outside = tmp_path / "keep.txt"
        outside.write_text("keep")
        escape = StoredImage(image_path="../keep.txt", image_data=None, media_type="text/plain")

        await fs_storage.delete(escape)

        assert outside.exists()

    def test_resolve_rejects_traversal(self, fs_storage):
        """resolve() raises for "../" paths."""
        with pytest.raises(ValueError):
            fs_storage.resolve("../../secret")

    @pytest.mark.asyncio
    async def test_store_failure_raises_storage_error(self, tmp_path, png_bytes):
        """An OS write error becomes FileStorageError."""
        storage = FilesystemStorage(str(tmp_path / "uploads"))
        # A directory where the file should go makes the open() fail
        storage._generate_name = lambda filename: "taken"
        (tmp_path / "uploads" / "taken").mkdir()

        with pytest.raises(FileStorageError):
            await storage.store("a.png", png_bytes, "image/png")


class TestInlineStorage:
    @pytest.mark.asyncio
    async def test_store_keeps_bytes(self, inline_storage, png_bytes):
        """Inline store() keeps the bytes and no path."""
        stored = await inline_storage.store("a.png", png_bytes, "image/png")
        assert stored.image_path is None
        assert stored.image_data == png_bytes

    @pytest.mark.asyncio
    async def test_load_returns_decodable_data_url(self, inline_storage, jpeg_bytes):
        """Inline load() returns a data URL that decodes to the original bytes."""
        stored = await inline_storage.store("b.jpg", jpeg_bytes, "image/jpeg")

        url = inline_storage.load(stored)

        prefix, encoded = url.split(",", 1)
        assert prefix == "data:image/jpeg;base64"
        assert base64.b64decode(encoded) == jpeg_bytes

    def test_data_url_uses_standard_alphabet(self):
        """The data URL uses "+" and "/", not the URL-safe alphabet."""
        # 0xfb 0xff encodes to "+/8=" in the standard alphabet
        assert to_data_url(b"\xfb\xff", "image/png") == "data:image/png;base64,+/8="


class TestBuildStorage:
    def test_filesystem_backend(self, test_settings):
        """STORAGE_BACKEND=filesystem builds FilesystemStorage at STORAGE_ROOT."""
        storage = build_storage(test_settings)
        assert isinstance(storage, FilesystemStorage)
        assert storage.root == Path(test_settings.storage_root).resolve()

    def test_database_backend(self, inline_settings):
        """STORAGE_BACKEND=database builds InlineStorage."""
        assert isinstance(build_storage(inline_settings), InlineStorage)
