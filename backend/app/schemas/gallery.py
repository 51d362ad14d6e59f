"""
Project Gallery Backend — Gallery Schemas
===========================================

What:  Response contracts for the /gallery endpoints.
How:   An item carries either ImagePath (filesystem storage) or
       ImageBase64 (inline storage); the unused one is omitted from the
       serialized payload, as is ClientName inside nested project listings.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_serializer

# Keys dropped from the payload when they hold None
_OMIT_WHEN_EMPTY = {
    "ClientName", "client_name",
    "ImagePath", "image_path",
    "ImageBase64", "image_base64",
}


class GalleryImageItem(BaseModel):
    gallery_id: int = Field(alias="GalleryID")
    project_id: int = Field(alias="ProjectID")
    client_name: Optional[str] = Field(default=None, alias="ClientName")
    image_path: Optional[str] = Field(
        default=None,
        alias="ImagePath",
        description="URL path of the stored file (filesystem storage)",
    )
    image_base64: Optional[str] = Field(
        default=None,
        alias="ImageBase64",
        description="data:<media-type>;base64,<bytes> (inline storage)",
    )

    model_config = {"populate_by_name": True}

    @model_serializer(mode="wrap")
    def _omit_empty_content(self, handler):
        data = handler(self)
        return {k: v for k, v in data.items() if v is not None or k not in _OMIT_WHEN_EMPTY}


class GalleryUploadResponse(BaseModel):
    message: str = Field(description="Human-readable result")
    count: int = Field(alias="Count", description="Number of images stored")

    model_config = {"populate_by_name": True}
