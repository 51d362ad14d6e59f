"""
Project Gallery Backend — GalleryImage SQLAlchemy Model
=========================================================

What:  ORM model representing the `gallery_images` table.
How:   Image content lives in exactly one of two columns, depending on the
       deployment's storage backend:
         - image_path: relative file name under STORAGE_ROOT (filesystem)
         - image_data: the raw bytes (database/inline)
       A CHECK constraint keeps the two mutually exclusive.

Lifecycle:
    1. Inserted by GalleryService.create_images() for a known project
    2. Content and/or owner replaced by GalleryService.replace_image();
       uploaded_at refreshed on every replacement
    3. Deleted individually (GalleryService.delete_image) or with its
       project (ProjectService.delete_project); a filesystem-backed row's
       file is removed after the row
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.project import utcnow


class GalleryImage(Base):
    """An image attached to a Project."""

    __tablename__ = "gallery_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
    )

    # ── Content (exactly one populated) ───────────────────────────────────
    image_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_data: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    media_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="image/jpeg",
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        CheckConstraint(
            "(image_path IS NULL) <> (image_data IS NULL)",
            name="ck_gallery_images_single_content",
        ),
        Index("idx_gallery_images_project_id", "project_id"),
    )

    def __repr__(self) -> str:
        location = self.image_path if self.image_path is not None else "<inline>"
        return f"<GalleryImage(id={self.id}, project_id={self.project_id}, content={location})>"
