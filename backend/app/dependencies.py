"""
Project Gallery Backend — FastAPI Dependencies
================================================

What:  Providers that hand route handlers a session and the services,
       built from the handles the application factory stored on app.state.
How:   The services are cheap, stateless wrappers around the shared
       storage backend, so a fresh instance per request is fine.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.services.auth_service import AuthService
from app.services.gallery_service import GalleryService
from app.services.project_service import ProjectService
from app.services.storage import BlobStorage
from app.services.upload_receiver import UploadReceiver

DBSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_storage(request: Request) -> BlobStorage:
    return request.app.state.storage


def get_upload_receiver(request: Request) -> UploadReceiver:
    return request.app.state.upload_receiver


def get_project_service(storage: BlobStorage = Depends(get_storage)) -> ProjectService:
    return ProjectService(storage)


def get_gallery_service(storage: BlobStorage = Depends(get_storage)) -> GalleryService:
    return GalleryService(storage)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


Receiver = Annotated[UploadReceiver, Depends(get_upload_receiver)]
Projects = Annotated[ProjectService, Depends(get_project_service)]
Gallery = Annotated[GalleryService, Depends(get_gallery_service)]
Auth = Annotated[AuthService, Depends(get_auth_service)]
