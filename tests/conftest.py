"""Pytest configuration and shared fixtures."""

from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from filegate.api.deps import AppState, get_current_user
from filegate.core.config import Settings
from filegate.main import create_app
from filegate.models.files import AuthUser
from filegate.services.files.base import FilesService
from filegate.storage.staging import TempStagingArea


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every directory into the test's tmp_path."""
    return Settings(
        ENV="test",
        TEMP_DIR=tmp_path / "tmp",
        FILES_ROOT=tmp_path / "storages",
    )


@pytest.fixture
def storage_id() -> UUID:
    return UUID("6f1c1f0e-8c1d-4a52-9a3e-0d8b3f1d2c4a")


@pytest.fixture
def user() -> AuthUser:
    return AuthUser(id=uuid4(), email="alice@example.com")


@pytest.fixture
def files_service():
    """Files service mock, async methods become AsyncMock automatically."""
    service = MagicMock(spec=FilesService)
    service.get_backend_name.return_value = "mock"
    return service


@pytest.fixture
def app_state(settings, files_service) -> AppState:
    return AppState(
        settings=settings,
        staging=TempStagingArea(settings.TEMP_DIR),
        files_service=files_service,
    )


@pytest.fixture
def app(settings, files_service, user):
    """Application with the mocked files service and an authenticated user."""
    application = create_app(settings=settings, files_service=files_service)
    application.dependency_overrides[get_current_user] = lambda: user
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def files_url(storage_id) -> str:
    return f"/api/storages/{storage_id}/files"
