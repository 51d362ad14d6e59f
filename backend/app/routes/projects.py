"""
Project Gallery Backend — Project Route Handlers
==================================================

What:  /projects CRUD and the combined /projects-with-gallery listing.
How:   Thin handlers: parse the request, call ProjectService, return the
       response model. Errors propagate to the global handlers.

Route Inventory:
    GET    /projects                 list, newest first
    GET    /projects/{id}            one project (404 when absent)
    POST   /projects                 insert (no/0 ProjectID) or update
    DELETE /projects/{id}            delete with its gallery images
    GET    /projects-with-gallery    projects with nested gallery[]
"""

import logging
from typing import List

from fastapi import APIRouter

from app.dependencies import DBSession, Projects
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.project import (
    ProjectResponse,
    ProjectSaveRequest,
    ProjectSaveResponse,
    ProjectWithGallery,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Projects"])


@router.get(
    "/projects",
    response_model=List[ProjectResponse],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List projects",
)
async def list_projects(db: DBSession, projects: Projects) -> List[ProjectResponse]:
    return await projects.list_projects(db)


@router.get(
    "/projects/{project_id}",
    response_model=ProjectResponse,
    responses={
        404: {"description": "Project not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a single project",
)
async def get_project(project_id: int, db: DBSession, projects: Projects) -> ProjectResponse:
    return await projects.get_project(db, project_id)


@router.post(
    "/projects",
    response_model=ProjectSaveResponse,
    responses={
        400: {"description": "Missing required fields", "model": ErrorResponse},
        404: {"description": "Project to update not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create or update a project",
    description=(
        "Inserts a new project when ProjectID is absent or 0, otherwise updates "
        "the existing project in place. ClientName, Description and Status are required."
    ),
)
async def save_project(
    payload: ProjectSaveRequest,
    db: DBSession,
    projects: Projects,
) -> ProjectSaveResponse:
    return await projects.save_project(db, payload)


@router.delete(
    "/projects/{project_id}",
    response_model=MessageResponse,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="Delete a project and its gallery images",
)
async def delete_project(project_id: int, db: DBSession, projects: Projects) -> MessageResponse:
    await projects.delete_project(db, project_id)
    return MessageResponse(message="Project and related images deleted successfully")


@router.get(
    "/projects-with-gallery",
    response_model=List[ProjectWithGallery],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List projects with their gallery images",
)
async def list_projects_with_gallery(db: DBSession, projects: Projects) -> List[ProjectWithGallery]:
    return await projects.list_projects_with_gallery(db)
