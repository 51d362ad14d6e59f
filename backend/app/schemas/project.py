"""
Project Gallery Backend — Project Schemas
===========================================

What:  Request and response contracts for the /projects endpoints.
How:   ProjectSaveRequest accepts PascalCase keys (as sent by the admin
       frontend) and camelCase keys. Every field is optional at the schema
       level; ProjectService decides what is missing so that the client
       receives a 400 validation_error rather than FastAPI's 422.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.gallery import GalleryImageItem


class ProjectSaveRequest(BaseModel):
    """
    Body of POST /projects.

    ProjectID absent, null or 0 → insert; any other value → update in place.
    """
    project_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("ProjectID", "projectId", "id"),
    )
    client_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ClientName", "clientName"),
    )
    description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("Description", "description"),
    )
    end_user: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("EndUser", "endUser"),
    )
    duration: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("Duration", "duration"),
    )
    status: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("Status", "status"),
    )

    model_config = {"populate_by_name": True}


class ProjectSaveResponse(BaseModel):
    message: str = Field(description="Human-readable result")
    project_id: int = Field(alias="ProjectID", description="ID of the inserted or updated project")

    model_config = {"populate_by_name": True}


class ProjectResponse(BaseModel):
    """Full representation of a project row."""
    project_id: int = Field(alias="ProjectID")
    client_name: str = Field(alias="ClientName")
    description: str = Field(alias="Description")
    end_user: Optional[str] = Field(default=None, alias="EndUser")
    duration: Optional[str] = Field(default=None, alias="Duration")
    status: str = Field(alias="Status")
    created_at: datetime = Field(alias="CreatedAt")
    updated_at: datetime = Field(alias="UpdatedAt")

    model_config = {"populate_by_name": True}


class ProjectWithGallery(ProjectResponse):
    """Project plus its images, for GET /projects-with-gallery."""
    gallery: List[GalleryImageItem] = Field(default_factory=list)
