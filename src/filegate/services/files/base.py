"""Abstract files service interface."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List
from uuid import UUID

from filegate.models.files import (
    AuthUser,
    FSElement,
    InFile,
    InFileSchema,
    InFolderSchema,
    SearchFile,
)


class FilesService(ABC):
    """Persistent side of the file API.

    Implementations own file content and metadata. Failures are raised as
    FilesServiceError with a classification the API keeps as-is.
    """

    @abstractmethod
    async def list_dir(self, storage_id: UUID, path: str, user: AuthUser) -> List[FSElement]:
        """List the direct children of a folder.

        Args:
            storage_id: Storage bucket identifier
            path: Folder path inside the storage, "" for the root
            user: Authenticated user

        Returns:
            Folder entries, folders first
        """
        pass

    @abstractmethod
    async def download(self, path: str, storage_id: UUID, user: AuthUser) -> bytes:
        """Return the full content of the file at path."""
        pass

    @abstractmethod
    async def search(
        self, storage_id: UUID, root_path: str, search_path: str, user: AuthUser
    ) -> List[SearchFile]:
        """Find files under root_path whose name contains search_path.

        root_path is expected to carry a trailing separator ("" for the root).
        """
        pass

    @abstractmethod
    async def delete(self, path: str, storage_id: UUID, user: AuthUser) -> None:
        """Delete a file, or a folder with everything below it."""
        pass

    @abstractmethod
    async def create_folder(self, in_schema: InFolderSchema, user: AuthUser) -> None:
        pass

    @abstractmethod
    async def upload_anyway(self, in_file: InFile, temp_path: Path, user: AuthUser) -> None:
        """Store a staged file at in_file.path, replacing any existing file.

        On success the service takes ownership of temp_path.
        """
        pass

    @abstractmethod
    async def upload_to(self, in_schema: InFileSchema, user: AuthUser) -> None:
        """Store a staged file at in_schema.path, which must not exist yet.

        On success the service takes ownership of in_schema.temp_path.
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
