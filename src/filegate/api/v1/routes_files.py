"""Storage-scoped file API routes."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response

from filegate.api.deps import AppState, get_app_state, get_current_user
from filegate.api.v1 import handlers
from filegate.api.v1.dispatch import dispatch
from filegate.models.files import AuthUser, SearchQuery, UploadParams
from filegate.storage.multipart import MultipartReader

router = APIRouter(tags=["files"])


@router.post("/create_folder", status_code=201)
async def create_folder(
    storage_id: UUID,
    params: UploadParams,
    user: AuthUser = Depends(get_current_user),
    state: AppState = Depends(get_app_state),
) -> Response:
    """Create a folder named folder_name inside path."""
    await handlers.create_folder(state.files_service, user, storage_id, params)
    return Response(status_code=201)


@router.post("/upload", status_code=201)
async def upload(
    storage_id: UUID,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    state: AppState = Depends(get_app_state),
) -> Response:
    """Upload multipart "file" into the "path" directory under its own filename."""
    reader = MultipartReader(request.headers.get("content-type"), request.stream())
    await handlers.upload(state, user, storage_id, reader)
    return Response(status_code=201)


@router.post("/upload_to", status_code=201)
async def upload_to(
    storage_id: UUID,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    state: AppState = Depends(get_app_state),
) -> Response:
    """Upload multipart "file" to the exact destination given in "path"."""
    reader = MultipartReader(request.headers.get("content-type"), request.stream())
    await handlers.upload_to(state, user, storage_id, reader)
    return Response(status_code=201)


@router.get("/{path:path}")
async def dynamic_get(
    storage_id: UUID,
    path: str,
    search_path: Optional[str] = Query(None),
    user: AuthUser = Depends(get_current_user),
    state: AppState = Depends(get_app_state),
) -> Response:
    """Dispatch tree/<path>, download/<path> and search/<path>?search_path=..."""
    return await dispatch(
        path, SearchQuery(search_path=search_path), storage_id, user, state.files_service
    )


@router.delete("/{path:path}")
async def delete(
    storage_id: UUID,
    path: str,
    user: AuthUser = Depends(get_current_user),
    state: AppState = Depends(get_app_state),
) -> Response:
    await handlers.delete(state.files_service, user, storage_id, path)
    return Response(status_code=200)
