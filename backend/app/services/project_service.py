"""
Project Gallery Backend — Project Service
===========================================

What:  CRUD over the `projects` table, plus the cascade that removes a
       project's gallery images (rows, then content) when it is deleted.
Who:   Project route handlers.

Cascade ordering (delete_project):
    1. Load the project's gallery rows and snapshot their content locators
    2. DELETE gallery rows, then DELETE the project row, commit
    3. Best-effort delete of each image's content

    The database performs no cascade itself. Deleting a project that does
    not exist succeeds, so a retried delete is harmless.
"""

import logging
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, ValidationError, database_failure
from app.models.gallery_image import GalleryImage
from app.models.project import Project, utcnow
from app.schemas.project import (
    ProjectResponse,
    ProjectSaveRequest,
    ProjectSaveResponse,
    ProjectWithGallery,
)
from app.services.gallery_service import GalleryService, snapshot
from app.services.storage import BlobStorage

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    ("client_name", "ClientName"),
    ("description", "Description"),
    ("status", "Status"),
)


def to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        project_id=project.id,
        client_name=project.client_name,
        description=project.description,
        end_user=project.end_user,
        duration=project.duration,
        status=project.status,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


class ProjectService:
    def __init__(self, storage: BlobStorage):
        self.storage = storage

    async def list_projects(self, db: AsyncSession) -> List[ProjectResponse]:
        """Every project, most recently created first. No pagination."""
        try:
            result = await db.execute(select(Project).order_by(Project.id.desc()))
            projects = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing projects: %s", str(e), exc_info=True)
            raise database_failure("retrieve projects", e)
        return [to_response(p) for p in projects]

    async def get_project(self, db: AsyncSession, project_id: int) -> ProjectResponse:
        """
        Raises:
            NotFoundError: project does not exist (→ 404)
            DatabaseError: query failed (→ 500)
        """
        try:
            project = await db.get(Project, project_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching project %s: %s", project_id, str(e))
            raise database_failure("retrieve the project", e)
        if project is None:
            raise NotFoundError(resource="project", resource_id=project_id)
        return to_response(project)

    @staticmethod
    def _validate(data: ProjectSaveRequest) -> None:
        missing = [
            wire_name
            for attr, wire_name in REQUIRED_FIELDS
            if not (getattr(data, attr) or "").strip()
        ]
        if missing:
            raise ValidationError(
                message=f"Missing required fields: {', '.join(missing)}",
                context={"missing": missing},
            )

    async def save_project(
        self,
        db: AsyncSession,
        data: ProjectSaveRequest,
    ) -> ProjectSaveResponse:
        """
        Insert (ProjectID absent or 0) or update-in-place (any other ID).

        Raises:
            ValidationError: ClientName, Description or Status missing/blank
            NotFoundError:   update of an ID that does not exist
            DatabaseError:   statement or commit failed
        """
        self._validate(data)

        try:
            now = utcnow()
            if data.project_id:
                project = await db.get(Project, data.project_id)
                if project is None:
                    raise NotFoundError(resource="project", resource_id=data.project_id)
                project.client_name = data.client_name
                project.description = data.description
                project.end_user = data.end_user
                project.duration = data.duration
                project.status = data.status
                project.updated_at = now
                message = "Project updated successfully"
            else:
                project = Project(
                    client_name=data.client_name,
                    description=data.description,
                    end_user=data.end_user,
                    duration=data.duration,
                    status=data.status,
                    created_at=now,
                    updated_at=now,
                )
                db.add(project)
                message = "Project added successfully"

            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error saving project: %s", str(e))
            raise database_failure("save the project", e)

        logger.info("%s (id=%s)", message, project.id)
        return ProjectSaveResponse(message=message, project_id=project.id)

    async def delete_project(self, db: AsyncSession, project_id: int) -> None:
        """Delete gallery rows, then the project, then the images' content."""
        try:
            result = await db.execute(
                select(GalleryImage).where(GalleryImage.project_id == project_id)
            )
            doomed = [snapshot(image) for image in result.scalars().all()]

            await db.execute(delete(GalleryImage).where(GalleryImage.project_id == project_id))
            await db.execute(delete(Project).where(Project.id == project_id))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error deleting project %s: %s", project_id, str(e))
            raise database_failure("delete the project", e)

        logger.info("Project %s deleted with %d gallery image(s)", project_id, len(doomed))
        for locator in doomed:
            await self.storage.delete(locator)

    async def list_projects_with_gallery(self, db: AsyncSession) -> List[ProjectWithGallery]:
        """Every project (newest first) with its gallery nested."""
        projects = await self.list_projects(db)
        galleries = await GalleryService(self.storage).list_for_projects(
            db, [p.project_id for p in projects]
        )
        return [
            ProjectWithGallery(
                **project.model_dump(),
                gallery=galleries.get(project.project_id, []),
            )
            for project in projects
        ]
