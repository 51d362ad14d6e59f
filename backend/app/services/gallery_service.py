"""
Project Gallery Backend — Gallery Service (Reconciliation)
============================================================

What:  Create, list, delete and replace gallery images while keeping the
       database row and the stored content consistent with each other.
How:   Composes a BlobStorage backend with explicit session commits placed
       so that physical content is only removed after the row that
       referenced it has changed durably.
Who:   Gallery route handlers; ProjectService reuses `render_image`.

Invariant kept by every operation:
    A row never points at content that has been deleted. The worst case of
    a partial failure is an orphaned file with no row referencing it.

    Create:   store bytes → insert row → commit, per file. A failed file
              has its own bytes removed; files committed earlier stay.
    Delete:   delete row → commit → delete content (best-effort).
    Replace:  store new bytes → UPDATE → commit → delete old content.
              Any failure before the commit removes the new bytes.

Concurrency:
    No row locks. Two concurrent replaces of one image race; the later
    commit wins and the loser's old file may be left behind.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    GalleryAppError,
    NotFoundError,
    ValidationError,
    database_failure,
)
from app.models.gallery_image import GalleryImage
from app.models.project import Project, utcnow
from app.schemas.gallery import GalleryImageItem
from app.services.storage import BlobStorage, StoredImage
from app.services.upload_receiver import ReceivedFile, UploadReceiver

logger = logging.getLogger(__name__)


def build_image_update(
    project_id: Optional[int] = None,
    stored: Optional[StoredImage] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Column values for a single UPDATE of a gallery row.

    Only the supplied parts are included; `uploaded_at` is always
    refreshed. Values are bound as statement parameters by SQLAlchemy.

    >>> sorted(build_image_update(project_id=3))
    ['project_id', 'uploaded_at']
    """
    values: Dict[str, Any] = {}
    if project_id is not None:
        values["project_id"] = project_id
    if stored is not None:
        values["image_path"] = stored.image_path
        values["image_data"] = stored.image_data
        values["media_type"] = stored.media_type
    values["uploaded_at"] = now or utcnow()
    return values


def snapshot(image: GalleryImage) -> StoredImage:
    """Detach a row's current content locator from the ORM object."""
    return StoredImage(
        image_path=image.image_path,
        image_data=image.image_data,
        media_type=image.media_type,
    )


def render_image(
    storage: BlobStorage,
    image: GalleryImage,
    client_name: Optional[str] = None,
) -> GalleryImageItem:
    """API representation of a row: ImagePath or ImageBase64 per backend."""
    return GalleryImageItem(
        gallery_id=image.id,
        project_id=image.project_id,
        client_name=client_name,
        **{storage.response_field: storage.load(image)},
    )


class GalleryService:
    """
    Business logic for gallery images.

    Stateless apart from the storage backend; every call receives the
    request's session.
    """

    def __init__(self, storage: BlobStorage):
        self.storage = storage

    # ── Lookups ───────────────────────────────────────────────────────────

    async def _require_project(self, db: AsyncSession, project_id: int) -> Project:
        project = await db.get(Project, project_id)
        if project is None:
            raise NotFoundError(resource="project", resource_id=project_id)
        return project

    async def _require_image(self, db: AsyncSession, image_id: int) -> GalleryImage:
        result = await db.execute(
            select(GalleryImage)
            .where(GalleryImage.id == image_id)
            .execution_options(populate_existing=True)
        )
        image = result.scalar_one_or_none()
        if image is None:
            raise NotFoundError(resource="gallery image", resource_id=image_id)
        return image

    async def get_image(self, db: AsyncSession, image_id: int) -> GalleryImageItem:
        """
        Single image with its owner's client name.

        Raises:
            NotFoundError: no such image (→ 404)
            DatabaseError: query failed (→ 500)
        """
        try:
            image = await self._require_image(db, image_id)
            project = await db.get(Project, image.project_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching gallery image %s: %s", image_id, str(e))
            raise database_failure("retrieve the image", e)
        return render_image(self.storage, image, project.client_name if project else None)

    # ── Create ────────────────────────────────────────────────────────────

    async def create_images(
        self,
        db: AsyncSession,
        project_id: int,
        files: List[ReceivedFile],
    ) -> int:
        """
        Store every received file as a new gallery image of `project_id`.

        Steps:
            1. No files → ValidationError
            2. Unknown project → discard all payloads, NotFoundError
               (nothing has been written yet)
            3. Per file: store content → insert row → commit
               On failure: remove this file's content, discard the rest,
               raise. Rows committed for earlier files are kept.

        Returns:
            Number of images stored.
        """
        if not files:
            raise ValidationError(message="No images uploaded", field="images")

        try:
            await self._require_project(db, project_id)
        except NotFoundError:
            UploadReceiver.discard(files, f"project {project_id} does not exist")
            raise
        except SQLAlchemyError as e:
            UploadReceiver.discard(files, "project lookup failed")
            logger.error("Database error checking project %s: %s", project_id, str(e))
            raise database_failure("upload the images", e)

        stored_count = 0
        for index, received in enumerate(files):
            stored: Optional[StoredImage] = None
            try:
                stored = await self.storage.store(
                    received.filename, received.content, received.media_type
                )
                image = GalleryImage(
                    project_id=project_id,
                    image_path=stored.image_path,
                    image_data=stored.image_data,
                    media_type=stored.media_type,
                    uploaded_at=utcnow(),
                )
                db.add(image)
                await db.commit()
            except (GalleryAppError, SQLAlchemyError) as e:
                await db.rollback()
                if stored is not None:
                    await self.storage.delete(stored)
                UploadReceiver.discard(files[index:], "upload aborted")
                logger.error(
                    "Gallery upload for project %s failed at file %d/%d (%s): %s",
                    project_id,
                    index + 1,
                    len(files),
                    received.filename,
                    str(e),
                )
                if isinstance(e, GalleryAppError):
                    raise
                raise database_failure("upload the images", e)

            stored_count += 1
            logger.info(
                "Gallery image %s stored for project %s (%s)",
                image.id,
                project_id,
                received.filename,
            )

        return stored_count

    # ── List ──────────────────────────────────────────────────────────────

    async def list_images(self, db: AsyncSession) -> List[GalleryImageItem]:
        """All images with their owner's client name, newest first."""
        try:
            result = await db.execute(
                select(GalleryImage, Project.client_name)
                .join(Project, GalleryImage.project_id == Project.id)
                .order_by(GalleryImage.id.desc())
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing gallery: %s", str(e), exc_info=True)
            raise database_failure("retrieve the gallery", e)

        return [render_image(self.storage, image, client_name) for image, client_name in rows]

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_image(self, db: AsyncSession, image_id: int) -> None:
        """
        Delete one image: row first (committed), then its content.

        A missing row is NotFoundError with nothing mutated. A failure to
        remove the file afterwards is logged and the call still succeeds.
        """
        try:
            image = await self._require_image(db, image_id)
            previous = snapshot(image)
            await db.delete(image)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error deleting gallery image %s: %s", image_id, str(e))
            raise database_failure("delete the image", e)

        logger.info("Gallery image %s deleted", image_id)
        await self.storage.delete(previous)

    # ── Replace ───────────────────────────────────────────────────────────

    async def replace_image(
        self,
        db: AsyncSession,
        image_id: int,
        project_id: Optional[int] = None,
        file: Optional[ReceivedFile] = None,
    ) -> GalleryImageItem:
        """
        Swap an image's content and/or move it to another project.

        Steps:
            1. Fetch the row (NotFoundError; the received file is discarded)
            2. If a new owner is given, it must exist (NotFoundError)
            3. Store the new content, if any
            4. One UPDATE with the supplied fields + uploaded_at, commit
            5. Only then delete the previous content (when it was replaced)

        Any failure in 1-4 discards the received file and deletes content
        already stored for it. With neither a new owner nor a new file the
        call only refreshes uploaded_at.
        """
        new_stored: Optional[StoredImage] = None
        try:
            image = await self._require_image(db, image_id)
            previous = snapshot(image)

            if project_id is not None and project_id != image.project_id:
                await self._require_project(db, project_id)

            if file is not None:
                new_stored = await self.storage.store(file.filename, file.content, file.media_type)

            values = build_image_update(project_id=project_id, stored=new_stored)
            await db.execute(
                update(GalleryImage)
                .where(GalleryImage.id == image_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except (GalleryAppError, SQLAlchemyError) as e:
            await db.rollback()
            if new_stored is not None:
                await self.storage.delete(new_stored)
            if file is not None:
                UploadReceiver.discard([file], f"replace of image {image_id} failed")
            if isinstance(e, GalleryAppError):
                raise
            logger.error("Database error replacing gallery image %s: %s", image_id, str(e))
            raise database_failure("update the image", e)

        logger.info(
            "Gallery image %s updated (fields: %s)",
            image_id,
            ", ".join(sorted(values)),
        )

        if new_stored is not None:
            await self.storage.delete(previous)

        return await self.get_image(db, image_id)

    async def list_for_projects(
        self,
        db: AsyncSession,
        project_ids: Sequence[int],
    ) -> Dict[int, List[GalleryImageItem]]:
        """Images grouped by owner, newest first within each project."""
        grouped: Dict[int, List[GalleryImageItem]] = {pid: [] for pid in project_ids}
        if not project_ids:
            return grouped
        try:
            result = await db.execute(
                select(GalleryImage)
                .where(GalleryImage.project_id.in_(project_ids))
                .order_by(GalleryImage.id.desc())
            )
            images = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing project galleries: %s", str(e), exc_info=True)
            raise database_failure("retrieve the gallery", e)

        for image in images:
            grouped.setdefault(image.project_id, []).append(render_image(self.storage, image))
        return grouped
