"""Streaming ingestion of multipart uploads into staged temp files."""

import logging
from pathlib import Path
from typing import Optional

import aiofiles

from filegate.core.exceptions import InternalFailure, InvalidEncoding, MissingField
from filegate.storage.multipart import MultipartField, MultipartReader
from filegate.storage.paths import construct_path
from filegate.storage.staging import StagedUpload

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "unnamed"


async def stream_field_to_file(
    field: MultipartField, temp_path: Path, log_interval_bytes: int = 0
) -> int:
    """Write every chunk of a field to temp_path and return the byte count.

    The file is created (or truncated) before the first chunk is read.
    """
    try:
        temp_file = await aiofiles.open(temp_path, "wb")
    except OSError as e:
        raise InternalFailure(f"Failed to create temp file: {e}") from e

    size = 0
    next_log = log_interval_bytes
    try:
        while (chunk := await field.chunk()) is not None:
            size += len(chunk)
            try:
                await temp_file.write(chunk)
            except OSError as e:
                raise InternalFailure(f"Failed to write to temp file: {e}") from e
            if log_interval_bytes and size >= next_log:
                logger.debug(
                    "Upload in progress",
                    extra={"temp_path": str(temp_path), "size_bytes": size},
                )
                next_log += log_interval_bytes

        try:
            await temp_file.flush()
        except OSError as e:
            raise InternalFailure(f"Failed to flush temp file: {e}") from e
    finally:
        await temp_file.close()

    return size


async def read_text_field(field: MultipartField) -> str:
    data = await field.read()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEncoding("Path is not valid UTF-8") from e


async def ingest_upload(
    reader: MultipartReader, staged: StagedUpload, log_interval_bytes: int = 0
) -> str:
    """Stage the "file" field and resolve its destination from the "path" directory.

    Returns:
        Destination path: the "path" directory joined with the uploaded filename

    Raises:
        MissingField: If "file" or "path" is absent
        InvalidPath: If the destination is not representable as UTF-8
    """
    filename: Optional[str] = None
    directory: Optional[str] = None

    while (field := await reader.next_field()) is not None:
        if field.name == "file":
            filename = field.filename or DEFAULT_FILENAME
            staged.declared_size = await stream_field_to_file(
                field, staged.temp_path, log_interval_bytes
            )
        elif field.name == "path":
            directory = await read_text_field(field)

    if filename is None:
        raise MissingField("file")
    if directory is None:
        raise MissingField("path")
    return construct_path(directory, filename)


async def ingest_upload_to(
    reader: MultipartReader, staged: StagedUpload, log_interval_bytes: int = 0
) -> str:
    """Stage the "file" field for an upload whose full destination is in "path".

    Raises:
        MissingField: If "path" is absent or no bytes were read for "file"
    """
    path: Optional[str] = None

    while (field := await reader.next_field()) is not None:
        if field.name == "file":
            staged.declared_size = await stream_field_to_file(
                field, staged.temp_path, log_interval_bytes
            )
        elif field.name == "path":
            path = await read_text_field(field)

    if staged.declared_size == 0:
        raise MissingField("file")
    if path is None:
        raise MissingField("path")
    return path
