"""
Project Gallery Backend — Project SQLAlchemy Model
====================================================

What:  ORM model representing the `projects` table.
Who:   Used by ProjectService for CRUD and by GalleryService for the
       owner-exists check and the client-name join.

Lifecycle:
    1. Inserted by ProjectService.save_project() (created_at == updated_at)
    2. Updated in place; updated_at refreshed on every write, no versioning
    3. Deleted by ProjectService.delete_project() after its gallery rows
       (the cascade is done by the service, not by the database)
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    """A client engagement record; the owner of gallery images."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Required ──────────────────────────────────────────────────────────
    # Non-empty for every persisted row (enforced in ProjectService)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    # ── Optional ──────────────────────────────────────────────────────────
    end_user: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, client_name='{self.client_name}', status='{self.status}')>"
