"""Request-scoped dependencies and the application state they read from."""

from dataclasses import dataclass

from fastapi import Request

from filegate.core.config import Settings
from filegate.core.exceptions import Unauthorized
from filegate.models.files import AuthUser
from filegate.services.files.base import FilesService
from filegate.storage.staging import TempStagingArea


@dataclass(frozen=True)
class AppState:
    """Everything a request handler needs, built once at startup."""

    settings: Settings
    staging: TempStagingArea
    files_service: FilesService


def get_app_state(request: Request) -> AppState:
    return request.app.state.filegate


def get_current_user(request: Request) -> AuthUser:
    """Return the user attached by the upstream authentication middleware.

    Raises:
        Unauthorized: If no authenticated user is attached
    """
    user = getattr(request.state, "user", None)
    if not isinstance(user, AuthUser):
        raise Unauthorized()
    return user
