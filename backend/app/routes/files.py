"""
Project Gallery Backend — Uploaded File Serving
=================================================

What:  GET {UPLOADS_URL_PREFIX}/{name} returns a stored image file.
How:   Only mounted when the filesystem backend is active. The requested
       name is resolved inside STORAGE_ROOT; anything escaping it is a 400.
"""

import mimetypes

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

from app.exceptions import NotFoundError, ValidationError
from app.services.storage import FilesystemStorage


def create_router(url_prefix: str) -> APIRouter:
    router = APIRouter(prefix=url_prefix, tags=["Files"])

    @router.get(
        "/{file_path:path}",
        summary="Serve an uploaded image file",
        responses={
            200: {"description": "Image file"},
            404: {"description": "File not found"},
        },
    )
    async def serve_file(file_path: str, request: Request) -> FileResponse:
        storage: FilesystemStorage = request.app.state.storage
        try:
            full_path = storage.resolve(file_path)
        except ValueError:
            raise ValidationError(message="Invalid file path")

        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=file_path)

        media_type, _ = mimetypes.guess_type(full_path.name)
        return FileResponse(
            path=str(full_path),
            media_type=media_type or "application/octet-stream",
            headers={"Cache-Control": "public, max-age=86400"},
        )

    return router
