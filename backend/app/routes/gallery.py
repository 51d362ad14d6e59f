"""
Project Gallery Backend — Gallery Route Handlers
==================================================

What:  Multipart upload, listing, deletion and replacement of gallery images.
How:   UploadReceiver turns the multipart parts into validated in-memory
       payloads (and closes the UploadFiles); GalleryService does the
       store/row reconciliation.

Route Inventory:
    POST   /projects/{project_id}/gallery   field `images` (one or more files) or `image`
    GET    /gallery                          all images, newest first
    DELETE /gallery/{id}                     one image
    PUT    /gallery/{id}                     optional `image` file and/or `projectId`
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile

from app.dependencies import DBSession, Gallery, Receiver
from app.exceptions import ValidationError
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.gallery import GalleryImageItem, GalleryUploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Gallery"])


def parse_project_id(raw: Optional[str]) -> Optional[int]:
    """Form value → project id; blank means "leave the owner unchanged"."""
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValidationError(message=f"Invalid project id '{raw}'", field="projectId")
    if value <= 0:
        raise ValidationError(message=f"Invalid project id '{raw}'", field="projectId")
    return value


@router.post(
    "/projects/{project_id}/gallery",
    response_model=GalleryUploadResponse,
    responses={
        400: {"description": "No files, or a file over the limits", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Upload images to a project's gallery",
)
async def upload_images(
    project_id: int,
    db: DBSession,
    gallery: Gallery,
    receiver: Receiver,
    images: Optional[List[UploadFile]] = File(
        default=None,
        description="One or more image files (max 10MB each)",
    ),
    image: Optional[UploadFile] = File(default=None, description="A single image file"),
) -> GalleryUploadResponse:
    uploads = list(images or [])
    if image is not None:
        uploads.append(image)
    files = await receiver.receive(uploads)
    logger.info("Gallery upload request: project=%s files=%d", project_id, len(files))
    count = await gallery.create_images(db, project_id, files)
    return GalleryUploadResponse(message="Images uploaded successfully", count=count)


@router.get(
    "/gallery",
    response_model=List[GalleryImageItem],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all gallery images",
    description=(
        "Each item carries ImagePath (filesystem storage) or ImageBase64, a "
        "data: URL with the image bytes (database storage)."
    ),
)
async def list_gallery(db: DBSession, gallery: Gallery) -> List[GalleryImageItem]:
    return await gallery.list_images(db)


@router.delete(
    "/gallery/{image_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Image not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Delete a gallery image",
)
async def delete_gallery_image(image_id: int, db: DBSession, gallery: Gallery) -> MessageResponse:
    await gallery.delete_image(db, image_id)
    return MessageResponse(message="Gallery image deleted successfully")


@router.put(
    "/gallery/{image_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Invalid project id or file", "model": ErrorResponse},
        404: {"description": "Image or target project not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Replace a gallery image's content and/or owner",
)
async def replace_gallery_image(
    image_id: int,
    db: DBSession,
    gallery: Gallery,
    receiver: Receiver,
    image: Optional[UploadFile] = File(default=None, description="New image file"),
    project_id: Optional[str] = Form(default=None, alias="projectId"),
) -> MessageResponse:
    new_file = await receiver.receive_one(image)
    try:
        target_project = parse_project_id(project_id)
    except ValidationError:
        if new_file is not None:
            receiver.discard([new_file], "invalid project id")
        raise
    await gallery.replace_image(db, image_id, project_id=target_project, file=new_file)
    return MessageResponse(message="Gallery image updated successfully")
