"""Scratch directory for uploads staged before handoff to a files service."""

import logging
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID, uuid4

import aiofiles.os

from filegate.core.exceptions import InternalFailure

logger = logging.getLogger(__name__)


@dataclass
class StagedUpload:
    """A file written to local scratch storage for one upload attempt."""

    temp_path: Path
    origin_storage_id: UUID
    declared_size: int = 0


class TempStagingArea:
    """Manages the scratch directory, temp file naming and cleanup."""

    def __init__(self, temp_dir: Path):
        self.temp_dir = Path(temp_dir)

    async def ensure_scratch_dir(self) -> None:
        """Create the scratch directory and its parents if absent."""
        try:
            await aiofiles.os.makedirs(self.temp_dir, exist_ok=True)
        except OSError as e:
            logger.error(
                "Failed to create temp directory",
                extra={"temp_dir": str(self.temp_dir), "error": str(e)},
            )
            raise InternalFailure(f"Failed to create temp directory: {e}") from e

    def new_temp_path(self) -> Path:
        return self.temp_dir / f"upload_{uuid4()}.tmp"

    def new_upload(self, storage_id: UUID) -> StagedUpload:
        return StagedUpload(temp_path=self.new_temp_path(), origin_storage_id=storage_id)

    async def cleanup(self, path: Path) -> None:
        """Remove a staged file. Never raises."""
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                "Failed to remove temp file",
                extra={"temp_path": str(path), "error": str(e)},
            )
        else:
            logger.debug("Removed temp file", extra={"temp_path": str(path)})
