"""File and folder data models."""

from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AuthUser(BaseModel):
    """Authenticated user context supplied by the authentication layer."""

    id: UUID
    email: str = ""


class UploadParams(BaseModel):
    """Request body for folder creation."""

    path: str
    folder_name: str = Field(..., min_length=1)


class InFolderSchema(BaseModel):
    """Folder creation request handed to the files service."""

    storage_id: UUID
    parent_path: str
    folder_name: str


class InFile(BaseModel):
    """Upload whose destination was derived from a directory and the uploaded filename."""

    path: str
    size: int = Field(..., ge=0)
    storage_id: UUID


class InFileSchema(BaseModel):
    """Upload whose full destination path was supplied by the client."""

    storage_id: UUID
    path: str
    size: int = Field(..., ge=0)
    temp_path: Path


class SearchQuery(BaseModel):
    """Query parameters accepted by the wildcard GET route."""

    search_path: Optional[str] = None


class FSElement(BaseModel):
    """One entry of a directory listing."""

    name: str
    path: str
    size: int
    is_file: bool


class SearchFile(BaseModel):
    """One search match."""

    path: str
    size: int
