"""Configuration management for FileGate."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Instances are frozen: one is built at startup and handed to the
    application state, request handlers never mutate it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "filegate"
    SERVICE_VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Scratch directory for staged uploads
    TEMP_DIR: Path = Path("data/tmp")

    # Files backend Configuration
    FILES_BACKEND: str = "local"  # "local" or "gcs"
    FILES_ROOT: Path = Path("data/storages")

    # GCP Configuration
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""

    # Emit a progress log line every N megabytes of a streamed upload (0 = never)
    UPLOAD_CHUNK_LOG_INTERVAL_MB: int = 64

    @property
    def files_prefix(self) -> str:
        """Route prefix under which the storage-scoped file routes live."""
        return f"{self.API_PREFIX.rstrip('/')}/storages/{{storage_id}}/files"

    @property
    def upload_log_interval_bytes(self) -> int:
        """Convert UPLOAD_CHUNK_LOG_INTERVAL_MB to bytes."""
        return self.UPLOAD_CHUNK_LOG_INTERVAL_MB * 1024 * 1024
