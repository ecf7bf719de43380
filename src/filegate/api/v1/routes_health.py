"""Health check endpoint for FileGate."""

from fastapi import APIRouter, Depends

from filegate.api.deps import AppState, get_app_state

router = APIRouter()


@router.get("/health")
async def health_check(state: AppState = Depends(get_app_state)) -> dict:
    """Health check endpoint.

    Returns service status, name, version and the files backend in use.
    No I/O is performed so the check stays fast.
    """
    return {
        "status": "ok",
        "service": state.settings.SERVICE_NAME,
        "version": state.settings.SERVICE_VERSION,
        "files_backend": state.files_service.get_backend_name(),
    }
