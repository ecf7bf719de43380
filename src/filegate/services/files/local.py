"""Local filesystem files service."""

import asyncio
import logging
import os
import posixpath
import shutil
from pathlib import Path
from typing import List
from uuid import UUID

import aiofiles
import aiofiles.os

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

logger = logging.getLogger(__name__)


def normalize_storage_path(path: str) -> str:
    """Normalize a storage path to a root-relative form, "" for the root.

    Raises:
        FilesServiceError: bad_input if the path escapes the storage root
    """
    relative = posixpath.normpath(path.strip("/")) if path.strip("/") else ""
    if relative == ".":
        return ""
    if relative == ".." or relative.startswith("../"):
        raise FilesServiceError.bad_input("Path must stay inside the storage")
    return relative


class LocalFilesService(FilesService):
    """Stores every storage bucket in its own directory under base_path."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)

    def _storage_root(self, storage_id: UUID) -> Path:
        return self.base_path / str(storage_id)

    def _resolve(self, storage_id: UUID, path: str) -> tuple[Path, str]:
        relative = normalize_storage_path(path)
        root = self._storage_root(storage_id)
        return (root / relative if relative else root), relative

    async def list_dir(self, storage_id: UUID, path: str, user: AuthUser) -> List[FSElement]:
        target, relative = self._resolve(storage_id, path)
        if not relative:
            await aiofiles.os.makedirs(target, exist_ok=True)
        elif not await aiofiles.os.path.isdir(target):
            raise FilesServiceError.not_found(f"Folder not found: {relative}")

        elements = []
        for entry in await aiofiles.os.scandir(target):
            is_file = entry.is_file()
            elements.append(
                FSElement(
                    name=entry.name,
                    path=posixpath.join(relative, entry.name),
                    size=entry.stat().st_size if is_file else 0,
                    is_file=is_file,
                )
            )
        elements.sort(key=lambda element: (element.is_file, element.name))
        return elements

    async def download(self, path: str, storage_id: UUID, user: AuthUser) -> bytes:
        target, relative = self._resolve(storage_id, path)
        if not relative or not await aiofiles.os.path.isfile(target):
            raise FilesServiceError.not_found(f"File not found: {relative}")

        try:
            async with aiofiles.open(target, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error(
                "Failed to read stored file",
                extra={"storage_id": str(storage_id), "path": relative, "error": str(e)},
            )
            raise FilesServiceError.internal(f"Failed to read file: {e}") from e

    async def search(
        self, storage_id: UUID, root_path: str, search_path: str, user: AuthUser
    ) -> List[SearchFile]:
        storage_root = self._storage_root(storage_id)
        target, _ = self._resolve(storage_id, root_path)
        needle = search_path.lower()

        def _walk() -> List[SearchFile]:
            matches = []
            for dirpath, _, filenames in os.walk(target):
                for filename in filenames:
                    if needle in filename.lower():
                        full_path = Path(dirpath) / filename
                        matches.append(
                            SearchFile(
                                path=full_path.relative_to(storage_root).as_posix(),
                                size=full_path.stat().st_size,
                            )
                        )
            return sorted(matches, key=lambda match: match.path)

        return await asyncio.to_thread(_walk)

    async def delete(self, path: str, storage_id: UUID, user: AuthUser) -> None:
        target, relative = self._resolve(storage_id, path)
        if not relative:
            raise FilesServiceError.bad_input("Cannot delete the storage root")

        try:
            if await aiofiles.os.path.isdir(target):
                await asyncio.to_thread(shutil.rmtree, target)
            elif await aiofiles.os.path.isfile(target):
                await aiofiles.os.remove(target)
            else:
                raise FilesServiceError.not_found(f"Not found: {relative}")
        except OSError as e:
            raise FilesServiceError.internal(f"Failed to delete: {e}") from e

        logger.info(
            "Deleted path",
            extra={"storage_id": str(storage_id), "path": relative},
        )

    async def create_folder(self, in_schema: InFolderSchema, user: AuthUser) -> None:
        if "/" in in_schema.folder_name or in_schema.folder_name in (".", ".."):
            raise FilesServiceError.bad_input("Folder name must be a single path segment")

        target, relative = self._resolve(
            in_schema.storage_id, posixpath.join(in_schema.parent_path, in_schema.folder_name)
        )
        if await aiofiles.os.path.exists(target):
            raise FilesServiceError.conflict(f"Already exists: {relative}")

        try:
            await aiofiles.os.makedirs(target)
        except (FileExistsError, NotADirectoryError) as e:
            raise FilesServiceError.conflict(f"A file exists in the path of {relative}") from e
        except OSError as e:
            raise FilesServiceError.internal(f"Failed to create folder: {e}") from e

    async def _place(self, storage_id: UUID, path: str, temp_path: Path, overwrite: bool) -> None:
        target, relative = self._resolve(storage_id, path)
        if not relative:
            raise FilesServiceError.bad_input("File path is required")
        if await aiofiles.os.path.isdir(target):
            raise FilesServiceError.conflict(f"A folder exists at {relative}")
        if not overwrite and await aiofiles.os.path.exists(target):
            raise FilesServiceError.conflict(f"File already exists: {relative}")

        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
        except (FileExistsError, NotADirectoryError) as e:
            raise FilesServiceError.conflict(f"A file exists in the path of {relative}") from e
        except OSError as e:
            raise FilesServiceError.internal(f"Failed to create folder: {e}") from e

        try:
            await asyncio.to_thread(shutil.move, str(temp_path), str(target))
        except OSError as e:
            logger.error(
                "Failed to place uploaded file",
                extra={"storage_id": str(storage_id), "path": relative, "error": str(e)},
            )
            raise FilesServiceError.internal(f"Failed to store file: {e}") from e

        logger.info(
            "Stored uploaded file",
            extra={"storage_id": str(storage_id), "path": relative},
        )

    async def upload_anyway(self, in_file: InFile, temp_path: Path, user: AuthUser) -> None:
        await self._place(in_file.storage_id, in_file.path, temp_path, overwrite=True)

    async def upload_to(self, in_schema: InFileSchema, user: AuthUser) -> None:
        await self._place(in_schema.storage_id, in_schema.path, in_schema.temp_path, overwrite=False)

    def get_backend_name(self) -> str:
        return "local"
