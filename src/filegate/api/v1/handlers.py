"""File operation handlers.

Each handler turns validated input into one files service call and the
result into a response. Upload handlers own the staged temp file until the
service accepts it, and remove it on any failure.
"""

import asyncio
import logging
import mimetypes
from pathlib import PurePosixPath
from urllib.parse import quote
from uuid import UUID

from fastapi import Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from filegate.api.deps import AppState
from filegate.core.logging import staged_path_context
from filegate.models.files import AuthUser, InFile, InFileSchema, InFolderSchema, UploadParams
from filegate.services.files.base import FilesService
from filegate.storage.ingest import ingest_upload, ingest_upload_to
from filegate.storage.multipart import MultipartReader

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_NAME = "unnamed.bin"


async def tree(
    files_service: FilesService, user: AuthUser, storage_id: UUID, path: str
) -> Response:
    elements = await files_service.list_dir(storage_id, path, user)
    return JSONResponse(jsonable_encoder(elements))


def download_filename(path: str) -> str:
    name = PurePosixPath(path).name
    if not name or name == "..":
        return DEFAULT_DOWNLOAD_NAME
    return name


def content_disposition(filename: str) -> str:
    try:
        filename.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=utf-8''{quote(filename)}"
    return f'attachment; filename="{filename}"'


async def download(
    files_service: FilesService, user: AuthUser, storage_id: UUID, path: str
) -> Response:
    data = await files_service.download(path, storage_id, user)
    filename = download_filename(path)
    content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": content_disposition(filename)},
    )


async def search(
    files_service: FilesService,
    user: AuthUser,
    storage_id: UUID,
    path: str,
    search_path: str,
) -> Response:
    """Search files below path, which needs a trailing slash ("" for the root)."""
    files = await files_service.search(storage_id, path, search_path, user)
    return JSONResponse(jsonable_encoder(files))


async def delete(
    files_service: FilesService, user: AuthUser, storage_id: UUID, path: str
) -> None:
    await files_service.delete(path, storage_id, user)


async def create_folder(
    files_service: FilesService, user: AuthUser, storage_id: UUID, params: UploadParams
) -> None:
    in_schema = InFolderSchema(
        storage_id=storage_id, parent_path=params.path, folder_name=params.folder_name
    )
    await files_service.create_folder(in_schema, user)


async def upload(
    state: AppState, user: AuthUser, storage_id: UUID, reader: MultipartReader
) -> InFile:
    """Stream the upload to a temp file and hand it to the service, replacing any existing file."""
    await state.staging.ensure_scratch_dir()
    staged = state.staging.new_upload(storage_id)
    context_token = staged_path_context.set(str(staged.temp_path))
    try:
        path = await ingest_upload(reader, staged, state.settings.upload_log_interval_bytes)
        in_file = InFile(path=path, size=staged.declared_size, storage_id=storage_id)
        await state.files_service.upload_anyway(in_file, staged.temp_path, user)
    except (Exception, asyncio.CancelledError):
        await state.staging.cleanup(staged.temp_path)
        raise
    finally:
        staged_path_context.reset(context_token)

    logger.info(
        "Upload completed",
        extra={"storage_id": str(storage_id), "path": in_file.path, "size_bytes": in_file.size},
    )
    return in_file


async def upload_to(
    state: AppState, user: AuthUser, storage_id: UUID, reader: MultipartReader
) -> InFileSchema:
    """Stream the upload to a temp file and hand it to the service at its exact path."""
    await state.staging.ensure_scratch_dir()
    staged = state.staging.new_upload(storage_id)
    context_token = staged_path_context.set(str(staged.temp_path))
    try:
        path = await ingest_upload_to(reader, staged, state.settings.upload_log_interval_bytes)
        in_schema = InFileSchema(
            storage_id=storage_id,
            path=path,
            size=staged.declared_size,
            temp_path=staged.temp_path,
        )
        await state.files_service.upload_to(in_schema, user)
    except (Exception, asyncio.CancelledError):
        await state.staging.cleanup(staged.temp_path)
        raise
    finally:
        staged_path_context.reset(context_token)

    logger.info(
        "Upload completed",
        extra={"storage_id": str(storage_id), "path": in_schema.path, "size_bytes": in_schema.size},
    )
    return in_schema
