"""Files service boundary and its bundled backends."""

from filegate.services.files.base import FilesService
from filegate.services.files.factory import get_files_service
from filegate.services.files.gcs import GCSFilesService
from filegate.services.files.local import LocalFilesService

__all__ = [
    "FilesService",
    "GCSFilesService",
    "LocalFilesService",
    "get_files_service",
]
