"""Unit tests for the GCS files service."""

from unittest.mock import Mock, patch
from uuid import UUID, uuid4

import pytest
from google.api_core.exceptions import (
    Forbidden,
    NotFound,
    PreconditionFailed,
    ServiceUnavailable,
)

from filegate.core.exceptions import FilesServiceError, ServiceErrorKind
from filegate.models.files import AuthUser, InFile, InFileSchema, InFolderSchema
from filegate.services.files.gcs import GCSFilesService

STORAGE_ID = UUID("0d7c2b1e-43c5-4a6e-9f55-bb2c3e4d5f60")
USER = AuthUser(id=uuid4())


def make_blob(name: str, size: int = 0) -> Mock:
    blob = Mock()
    blob.name = name
    blob.size = size
    return blob


class FakeBlobIterator:
    """Stands in for the HTTPIterator returned by list_blobs."""

    def __init__(self, blobs, prefixes=()):
        self._blobs = blobs
        self.prefixes = set(prefixes)

    def __iter__(self):
        return iter(self._blobs)


@pytest.fixture
def mock_storage_client():
    """Mock Google Cloud Storage client."""
    with patch("filegate.services.files.gcs.storage.Client") as mock_client:
        yield mock_client


@pytest.fixture
def bucket(mock_storage_client):
    return mock_storage_client.return_value.bucket.return_value


@pytest.fixture
def service(mock_storage_client):
    return GCSFilesService(bucket_name="test-bucket", project_id="test-project")


@pytest.fixture
def temp_path(tmp_path):
    path = tmp_path / "upload_test.tmp"
    path.write_bytes(b"hello")
    return path


def test_bucket_is_created_lazily(service, mock_storage_client):
    """Test bucket is created lazily."""
    mock_storage_client.assert_not_called()

    service._get_bucket()
    service._get_bucket()

    mock_storage_client.assert_called_once_with(project="test-project")
    mock_storage_client.return_value.bucket.assert_called_once_with("test-bucket")


def test_missing_bucket_name(mock_storage_client):
    """Test missing bucket name."""
    with pytest.raises(ValueError, match="GCS_BUCKET_NAME"):
        GCSFilesService(bucket_name="")._get_bucket()


@pytest.mark.asyncio
async def test_list_dir(service, bucket):
    """Test list dir."""
    prefix = f"{STORAGE_ID}/docs/"
    bucket.list_blobs.return_value = FakeBlobIterator(
        [make_blob(prefix), make_blob(prefix + "b.txt", 7), make_blob(prefix + "a.txt", 2)],
        prefixes=[prefix + "sub/"],
    )

    elements = await service.list_dir(STORAGE_ID, "/docs", USER)

    bucket.list_blobs.assert_called_once_with(prefix=prefix, delimiter="/")
    assert [(e.name, e.path, e.size, e.is_file) for e in elements] == [
        ("sub", "docs/sub", 0, False),
        ("a.txt", "docs/a.txt", 2, True),
        ("b.txt", "docs/b.txt", 7, True),
    ]


@pytest.mark.asyncio
async def test_list_missing_folder(service, bucket):
    """Test list missing folder."""
    bucket.list_blobs.return_value = FakeBlobIterator([])
    bucket.blob.return_value.exists.return_value = False

    with pytest.raises(FilesServiceError) as exc_info:
        await service.list_dir(STORAGE_ID, "nope", USER)

    assert exc_info.value.kind is ServiceErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_list_placeholder_lookup_failure_is_internal(service, bucket):
    """Test that a GCS fault while checking the folder placeholder is internal."""
    bucket.list_blobs.return_value = FakeBlobIterator([])
    bucket.blob.return_value.exists.side_effect = ServiceUnavailable("try again")

    with pytest.raises(FilesServiceError) as exc_info:
        await service.list_dir(STORAGE_ID, "docs", USER)

    assert exc_info.value.kind is ServiceErrorKind.INTERNAL


@pytest.mark.asyncio
async def test_download(service, bucket):
    """Test download."""
    bucket.blob.return_value.download_as_bytes.return_value = b"%PDF"

    assert await service.download("docs/report.pdf", STORAGE_ID, USER) == b"%PDF"
    bucket.blob.assert_called_once_with(f"{STORAGE_ID}/docs/report.pdf")


@pytest.mark.asyncio
async def test_download_not_found(service, bucket):
    """Test download not found."""
    bucket.blob.return_value.download_as_bytes.side_effect = NotFound("Object not found")

    with pytest.raises(FilesServiceError) as exc_info:
        await service.download("missing.txt", STORAGE_ID, USER)

    assert exc_info.value.kind is ServiceErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_search(service, bucket):
    """Test search."""
    storage_prefix = f"{STORAGE_ID}/"
    bucket.list_blobs.return_value = [
        make_blob(storage_prefix + "root/Report.txt", 3),
        make_blob(storage_prefix + "root/deep/"),
        make_blob(storage_prefix + "root/deep/notes.txt", 1),
    ]

    results = await service.search(STORAGE_ID, "root/", "report", USER)

    bucket.list_blobs.assert_called_once_with(prefix=storage_prefix + "root/")
    assert [(r.path, r.size) for r in results] == [("root/Report.txt", 3)]


@pytest.mark.asyncio
async def test_delete_single_object(service, bucket):
    """Test delete single object."""
    blob = bucket.blob.return_value
    blob.exists.return_value = True

    await service.delete("old.txt", STORAGE_ID, USER)

    blob.delete.assert_called_once_with()


@pytest.mark.asyncio
async def test_delete_folder_prefix(service, bucket):
    """Test delete folder prefix."""
    bucket.blob.return_value.exists.return_value = False
    children = [make_blob(f"{STORAGE_ID}/docs/"), make_blob(f"{STORAGE_ID}/docs/a.txt")]
    bucket.list_blobs.return_value = children

    await service.delete("docs", STORAGE_ID, USER)

    bucket.list_blobs.assert_called_once_with(prefix=f"{STORAGE_ID}/docs/")
    for child in children:
        child.delete.assert_called_once_with()


@pytest.mark.asyncio
async def test_delete_missing(service, bucket):
    """Test delete missing."""
    bucket.blob.return_value.exists.return_value = False
    bucket.list_blobs.return_value = []

    with pytest.raises(FilesServiceError) as exc_info:
        await service.delete("gone", STORAGE_ID, USER)

    assert exc_info.value.kind is ServiceErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_create_folder_placeholder(service, bucket):
    """Test create folder placeholder."""
    in_schema = InFolderSchema(storage_id=STORAGE_ID, parent_path="/docs", folder_name="reports")

    await service.create_folder(in_schema, USER)

    bucket.blob.assert_called_once_with(f"{STORAGE_ID}/docs/reports/")
    bucket.blob.return_value.upload_from_string.assert_called_once_with(
        b"", if_generation_match=0
    )


@pytest.mark.asyncio
async def test_create_existing_folder(service, bucket):
    """Test create existing folder."""
    bucket.blob.return_value.upload_from_string.side_effect = PreconditionFailed("exists")
    in_schema = InFolderSchema(storage_id=STORAGE_ID, parent_path="/", folder_name="docs")

    with pytest.raises(FilesServiceError) as exc_info:
        await service.create_folder(in_schema, USER)

    assert exc_info.value.kind is ServiceErrorKind.CONFLICT


@pytest.mark.asyncio
async def test_upload_anyway(service, bucket, temp_path):
    """Test upload anyway."""
    blob = bucket.blob.return_value
    blob.name = f"{STORAGE_ID}/docs/hello.txt"
    in_file = InFile(path="/docs/hello.txt", size=5, storage_id=STORAGE_ID)

    await service.upload_anyway(in_file, temp_path, USER)

    bucket.blob.assert_called_once_with(f"{STORAGE_ID}/docs/hello.txt")
    blob.upload_from_filename.assert_called_once_with(str(temp_path), content_type="text/plain")
    assert not temp_path.exists()


@pytest.mark.asyncio
async def test_upload_to_uses_generation_precondition(service, bucket, temp_path):
    """Test upload to uses generation precondition."""
    blob = bucket.blob.return_value
    blob.name = f"{STORAGE_ID}/data.bin"
    in_schema = InFileSchema(storage_id=STORAGE_ID, path="/data.bin", size=5, temp_path=temp_path)

    await service.upload_to(in_schema, USER)

    blob.upload_from_filename.assert_called_once_with(
        str(temp_path), content_type="application/octet-stream", if_generation_match=0
    )


@pytest.mark.asyncio
async def test_upload_to_existing_object(service, bucket, temp_path):
    """Test upload to existing object."""
    blob = bucket.blob.return_value
    blob.name = f"{STORAGE_ID}/hello.txt"
    blob.upload_from_filename.side_effect = PreconditionFailed("exists")
    in_schema = InFileSchema(storage_id=STORAGE_ID, path="/hello.txt", size=5, temp_path=temp_path)

    with pytest.raises(FilesServiceError) as exc_info:
        await service.upload_to(in_schema, USER)

    assert exc_info.value.kind is ServiceErrorKind.CONFLICT
    assert temp_path.exists()


@pytest.mark.asyncio
async def test_upload_retries_transient_errors(service, bucket, temp_path):
    """Test upload retries transient errors."""
    blob = bucket.blob.return_value
    blob.name = f"{STORAGE_ID}/hello.txt"
    blob.upload_from_filename.side_effect = [ServiceUnavailable("try again"), None]
    in_file = InFile(path="/hello.txt", size=5, storage_id=STORAGE_ID)

    with patch("tenacity.nap.time.sleep"):
        await service.upload_anyway(in_file, temp_path, USER)

    assert blob.upload_from_filename.call_count == 2


@pytest.mark.asyncio
async def test_upload_permanent_error_is_internal(service, bucket, temp_path):
    """Test upload permanent error is internal."""
    blob = bucket.blob.return_value
    blob.name = f"{STORAGE_ID}/hello.txt"
    blob.upload_from_filename.side_effect = Forbidden("denied")
    in_file = InFile(path="/hello.txt", size=5, storage_id=STORAGE_ID)

    with pytest.raises(FilesServiceError) as exc_info:
        await service.upload_anyway(in_file, temp_path, USER)

    assert exc_info.value.kind is ServiceErrorKind.INTERNAL
    assert blob.upload_from_filename.call_count == 1


def test_backend_name(service):
    """Test backend name."""
    assert service.get_backend_name() == "gcs"
