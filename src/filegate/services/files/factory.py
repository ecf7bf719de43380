"""Files service backend factory."""

from filegate.core.config import Settings
from filegate.services.files.base import FilesService
from filegate.services.files.gcs import GCSFilesService
from filegate.services.files.local import LocalFilesService


def get_files_service(settings: Settings) -> FilesService:
    """Build the files service selected by FILES_BACKEND.

    Raises:
        ValueError: If the backend name is unknown
    """
    if settings.FILES_BACKEND == "local":
        return LocalFilesService(settings.FILES_ROOT)
    if settings.FILES_BACKEND == "gcs":
        return GCSFilesService(
            bucket_name=settings.GCS_BUCKET_NAME,
            project_id=settings.GCP_PROJECT_ID or None,
        )
    raise ValueError(f"Unknown FILES_BACKEND: {settings.FILES_BACKEND}")
