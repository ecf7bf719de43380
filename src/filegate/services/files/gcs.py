"""Google Cloud Storage files service."""

import asyncio
import logging
import mimetypes
import posixpath
from pathlib import Path
from typing import List, Optional
from uuid import UUID

import aiofiles.os
from google.api_core.exceptions import (
    GoogleAPIError,
    InternalServerError,
    NotFound,
    PreconditionFailed,
    ServiceUnavailable,
    TooManyRequests,
)
from google.cloud import storage
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from filegate.core.exceptions import FilesServiceError
from filegate.models.files import (
    AuthUser,
    FSElement,
    InFile,
    InFileSchema,
    InFolderSchema,
    SearchFile,
)
from filegate.services.files.base import FilesService
from filegate.services.files.local import normalize_storage_path

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (InternalServerError, ServiceUnavailable, TooManyRequests)

_upload_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(_TRANSIENT_ERRORS),
    reraise=True,
)


class GCSFilesService(FilesService):
    """Keeps every storage bucket under a "<storage_id>/" prefix of one GCS bucket.

    Folders are zero-byte placeholder objects whose names end with "/".
    """

    def __init__(self, bucket_name: str, project_id: Optional[str] = None):
        self.bucket_name = bucket_name
        self.project_id = project_id
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not self.bucket_name:
                raise ValueError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=self.project_id or None)
            self._bucket = self._client.bucket(self.bucket_name)

        return self._bucket

    @staticmethod
    def _object_name(storage_id: UUID, relative: str) -> str:
        return f"{storage_id}/{relative}" if relative else f"{storage_id}/"

    async def list_dir(self, storage_id: UUID, path: str, user: AuthUser) -> List[FSElement]:
        relative = normalize_storage_path(path)
        prefix = self._object_name(storage_id, relative)
        if relative:
            prefix += "/"
        bucket = self._get_bucket()

        def _list() -> List[FSElement]:
            iterator = bucket.list_blobs(prefix=prefix, delimiter="/")
            files = [
                FSElement(
                    name=blob.name[len(prefix):],
                    path=posixpath.join(relative, blob.name[len(prefix):]),
                    size=blob.size or 0,
                    is_file=True,
                )
                for blob in iterator
                if blob.name != prefix
            ]
            folders = [
                FSElement(
                    name=folder[len(prefix):].rstrip("/"),
                    path=posixpath.join(relative, folder[len(prefix):].rstrip("/")),
                    size=0,
                    is_file=False,
                )
                for folder in sorted(iterator.prefixes)
            ]
            return folders + sorted(files, key=lambda element: element.name)

        try:
            elements = await asyncio.to_thread(_list)
            folder_exists = bool(elements) or not relative
            if not folder_exists:
                folder_exists = await asyncio.to_thread(bucket.blob(prefix).exists)
        except GoogleAPIError as e:
            raise FilesServiceError.internal(f"Failed to list folder: {e}") from e
        if not folder_exists:
            raise FilesServiceError.not_found(f"Folder not found: {relative}")
        return elements

    async def download(self, path: str, storage_id: UUID, user: AuthUser) -> bytes:
        relative = normalize_storage_path(path)
        if not relative:
            raise FilesServiceError.not_found("File not found")
        blob = self._get_bucket().blob(self._object_name(storage_id, relative))
        try:
            return await asyncio.to_thread(blob.download_as_bytes)
        except NotFound as e:
            raise FilesServiceError.not_found(f"File not found: {relative}") from e
        except GoogleAPIError as e:
            logger.error(
                "Failed to download file from GCS",
                extra={"bucket": self.bucket_name, "object_name": blob.name, "error": str(e)},
            )
            raise FilesServiceError.internal(f"Failed to download file: {e}") from e

    async def search(
        self, storage_id: UUID, root_path: str, search_path: str, user: AuthUser
    ) -> List[SearchFile]:
        relative = normalize_storage_path(root_path)
        storage_prefix = self._object_name(storage_id, "")
        prefix = storage_prefix + (relative + "/" if relative else "")
        needle = search_path.lower()
        bucket = self._get_bucket()

        def _search() -> List[SearchFile]:
            return [
                SearchFile(path=blob.name[len(storage_prefix):], size=blob.size or 0)
                for blob in bucket.list_blobs(prefix=prefix)
                if not blob.name.endswith("/")
                and needle in posixpath.basename(blob.name).lower()
            ]

        try:
            return await asyncio.to_thread(_search)
        except GoogleAPIError as e:
            raise FilesServiceError.internal(f"Failed to search: {e}") from e

    async def delete(self, path: str, storage_id: UUID, user: AuthUser) -> None:
        relative = normalize_storage_path(path)
        if not relative:
            raise FilesServiceError.bad_input("Cannot delete the storage root")
        name = self._object_name(storage_id, relative)
        bucket = self._get_bucket()

        def _delete() -> int:
            blob = bucket.blob(name)
            if blob.exists():
                blob.delete()
                return 1
            blobs = list(bucket.list_blobs(prefix=name + "/"))
            for folder_blob in blobs:
                folder_blob.delete()
            return len(blobs)

        try:
            deleted = await asyncio.to_thread(_delete)
        except GoogleAPIError as e:
            raise FilesServiceError.internal(f"Failed to delete: {e}") from e
        if not deleted:
            raise FilesServiceError.not_found(f"Not found: {relative}")

    async def create_folder(self, in_schema: InFolderSchema, user: AuthUser) -> None:
        if "/" in in_schema.folder_name or in_schema.folder_name in (".", ".."):
            raise FilesServiceError.bad_input("Folder name must be a single path segment")
        relative = normalize_storage_path(
            posixpath.join(in_schema.parent_path, in_schema.folder_name)
        )
        blob = self._get_bucket().blob(self._object_name(in_schema.storage_id, relative) + "/")
        try:
            await asyncio.to_thread(blob.upload_from_string, b"", if_generation_match=0)
        except PreconditionFailed as e:
            raise FilesServiceError.conflict(f"Already exists: {relative}") from e
        except GoogleAPIError as e:
            raise FilesServiceError.internal(f"Failed to create folder: {e}") from e

    @_upload_retry
    def _upload_blob(self, blob: storage.Blob, temp_path: Path, overwrite: bool) -> None:
        content_type = mimetypes.guess_type(blob.name)[0] or "application/octet-stream"
        if overwrite:
            blob.upload_from_filename(str(temp_path), content_type=content_type)
        else:
            blob.upload_from_filename(
                str(temp_path), content_type=content_type, if_generation_match=0
            )

    async def _place(self, storage_id: UUID, path: str, temp_path: Path, overwrite: bool) -> None:
        relative = normalize_storage_path(path)
        if not relative:
            raise FilesServiceError.bad_input("File path is required")
        blob = self._get_bucket().blob(self._object_name(storage_id, relative))

        try:
            await asyncio.to_thread(self._upload_blob, blob, temp_path, overwrite)
        except PreconditionFailed as e:
            raise FilesServiceError.conflict(f"File already exists: {relative}") from e
        except GoogleAPIError as e:
            logger.error(
                "Failed to upload file to GCS",
                extra={"bucket": self.bucket_name, "object_name": blob.name, "error": str(e)},
            )
            raise FilesServiceError.internal(f"Failed to store file: {e}") from e

        logger.info(
            "Uploaded file to GCS",
            extra={"bucket": self.bucket_name, "object_name": blob.name},
        )
        try:
            await aiofiles.os.remove(temp_path)
        except OSError as e:
            logger.warning(
                "Failed to remove uploaded temp file",
                extra={"temp_path": str(temp_path), "error": str(e)},
            )

    async def upload_anyway(self, in_file: InFile, temp_path: Path, user: AuthUser) -> None:
        await self._place(in_file.storage_id, in_file.path, temp_path, overwrite=True)

    async def upload_to(self, in_schema: InFileSchema, user: AuthUser) -> None:
        await self._place(in_schema.storage_id, in_schema.path, in_schema.temp_path, overwrite=False)

    def get_backend_name(self) -> str:
        return "gcs"
