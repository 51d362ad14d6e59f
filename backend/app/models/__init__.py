# Models package init
"""
Importing this package registers every table on `Base.metadata`.
"""

from app.models.gallery_image import GalleryImage
from app.models.project import Project
from app.models.user import User

__all__ = ["GalleryImage", "Project", "User"]
