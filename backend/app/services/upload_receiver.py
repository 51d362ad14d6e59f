"""
Project Gallery Backend — Upload Receiver
===========================================

What:  Turns multipart `UploadFile`s into in-memory `ReceivedFile` buffers
       and enforces count / size / type limits before the gallery service
       sees them.
How:   Each upload is read with a bound of max_file_size + 1 bytes, so an
       oversized file is detected without buffering all of it. The media
       type is detected from the bytes with libmagic (python-magic); the
       client's Content-Type header is never trusted. The UploadFile
       objects are always closed, whether or not validation passes.
Who:   Gallery route handlers.

Validation order:
    1. File count  (max_files_per_upload)
    2. Extension   (allowed_image_extensions)
    3. Size        (non-empty, at most max_file_size)
    4. Content     (detected MIME type in allowed_media_types)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import magic
from fastapi import UploadFile

from app.config import Settings
from app.exceptions import FileStorageError, UploadError

logger = logging.getLogger(__name__)


@dataclass
class ReceivedFile:
    """A validated upload held in memory until it is stored or discarded."""
    filename: str
    content: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.content)


class UploadReceiver:
    def __init__(
        self,
        max_file_size: int,
        max_files: int,
        allowed_extensions: Sequence[str],
        allowed_media_types: Sequence[str] = ("image/png", "image/jpeg", "image/gif", "image/webp"),
    ):
        self.max_file_size = max_file_size
        self.max_files = max_files
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self.allowed_media_types = {mt.lower() for mt in allowed_media_types}

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadReceiver":
        return cls(
            max_file_size=settings.max_file_size,
            max_files=settings.max_files_per_upload,
            allowed_extensions=settings.allowed_image_extensions,
            allowed_media_types=settings.allowed_image_mime_types,
        )

    def _validate_extension(self, filename: str) -> str:
        ext = Path(filename).suffix.lower()
        if ext not in self.allowed_extensions:
            raise UploadError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(self.allowed_extensions))}"
                ),
                filename=filename,
            )
        return ext

    def _validate_size(self, filename: str, content: bytes) -> None:
        if not content:
            raise UploadError(message=f"File '{filename}' is empty", filename=filename)
        if len(content) > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise UploadError(
                message=f"File '{filename}' is too large. Maximum size is {max_mb:.0f}MB.",
                filename=filename,
                context={"max_size_bytes": self.max_file_size},
            )

    def _detect_media_type(self, filename: str, content: bytes) -> str:
        """
        MIME type from the file's leading bytes.

        Raises:
            UploadError:      content is not one of the allowed image types
            FileStorageError: libmagic failed to inspect the buffer
        """
        try:
            media_type = magic.from_buffer(content[:2048], mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed for %s: %s", filename, str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if media_type not in self.allowed_media_types:
            raise UploadError(
                message=(
                    f"File content type '{media_type}' is not supported. "
                    f"'{filename}' must be a valid image."
                ),
                filename=filename,
                context={
                    "detected_mime": media_type,
                    "allowed": sorted(self.allowed_media_types),
                },
            )
        return media_type

    async def _read(self, upload: UploadFile) -> ReceivedFile:
        filename = upload.filename or "upload"
        self._validate_extension(filename)
        try:
            content = await upload.read(self.max_file_size + 1)
        except OSError as e:
            raise UploadError(
                message=f"Could not read uploaded file '{filename}'",
                filename=filename,
                context={"error": str(e)},
            )
        self._validate_size(filename, content)
        media_type = self._detect_media_type(filename, content)
        if upload.content_type and upload.content_type != media_type:
            logger.info(
                "Upload %s declared %s, detected %s", filename, upload.content_type, media_type
            )
        return ReceivedFile(filename=filename, content=content, media_type=media_type)

    async def receive(self, uploads: Optional[Sequence[UploadFile]]) -> List[ReceivedFile]:
        """
        Read and validate a batch of uploads.

        Returns an empty list when nothing was sent; the gallery service
        turns that into a ValidationError.

        Raises:
            UploadError: count, type or size limit violated.
        """
        uploads = [u for u in (uploads or []) if u is not None]
        try:
            if len(uploads) > self.max_files:
                raise UploadError(
                    message=f"Too many files. At most {self.max_files} images per upload.",
                    context={"received": len(uploads), "max_files": self.max_files},
                )
            received = [await self._read(upload) for upload in uploads]
        finally:
            for upload in uploads:
                await upload.close()

        logger.info(
            "Received %d file(s), %d bytes total",
            len(received),
            sum(f.size for f in received),
        )
        return received

    async def receive_one(self, upload: Optional[UploadFile]) -> Optional[ReceivedFile]:
        """Single-file variant for the edit route; None when no file was sent."""
        if upload is None or not upload.filename:
            if upload is not None:
                await upload.close()
            return None
        received = await self.receive([upload])
        return received[0]

    @staticmethod
    def discard(files: Iterable[ReceivedFile], reason: str) -> None:
        """Release the buffers of payloads that will not be stored."""
        dropped = 0
        for received in files:
            received.content = b""
            dropped += 1
        if dropped:
            logger.info("Discarded %d received file(s): %s", dropped, reason)
