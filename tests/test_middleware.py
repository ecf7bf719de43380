"""Tests for HTTP error logging."""

from unittest.mock import patch


def test_client_errors_logged_as_warning(client, files_url, storage_id):
    """Test client errors logged as warning."""
    with patch("filegate.api.middleware.logger") as mock_logger:
        response = client.get(f"{files_url}/unknown/x")

    assert response.status_code == 404
    mock_logger.warning.assert_called_once()
    details = mock_logger.warning.call_args.kwargs["extra"]
    assert details["http_status"] == 404
    assert details["method"] == "GET"
    assert details["storage_id"] == str(storage_id)
    mock_logger.error.assert_not_called()


def test_success_not_logged(client, files_service, files_url):
    """Test success not logged."""
    files_service.list_dir.return_value = []

    with patch("filegate.api.middleware.logger") as mock_logger:
        response = client.get(f"{files_url}/tree/")

    assert response.status_code == 200
    mock_logger.warning.assert_not_called()
    mock_logger.error.assert_not_called()
