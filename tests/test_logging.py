"""Tests for structured logging."""

import json
import logging
import sys

from filegate.core.logging import CloudLoggingFormatter, staged_path_context


def make_record(msg="Upload completed", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="filegate.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_single_line_json_with_extras():
    """Test formats single line json with extras."""
    record = make_record(storage_id="abc", size_bytes=3)

    output = CloudLoggingFormatter().format(record)

    assert "\n" not in output
    entry = json.loads(output)
    assert entry["severity"] == "INFO"
    assert entry["message"] == "Upload completed"
    assert entry["logger"] == "filegate.test"
    assert entry["storage_id"] == "abc"
    assert entry["size_bytes"] == 3
    assert entry["timestamp"].endswith("Z")
    assert "args" not in entry
    assert "pathname" not in entry


def test_includes_staged_path_from_context():
    """Test includes staged path from context."""
    token = staged_path_context.set("/tmp/upload_1.tmp")
    try:
        entry = json.loads(CloudLoggingFormatter().format(make_record()))
    finally:
        staged_path_context.reset(token)

    assert entry["staged_path"] == "/tmp/upload_1.tmp"


def test_staged_path_absent_outside_uploads():
    """Test staged path absent outside uploads."""
    entry = json.loads(CloudLoggingFormatter().format(make_record()))

    assert "staged_path" not in entry


def test_includes_exception():
    """Test includes exception."""
    try:
        raise OSError("disk full")
    except OSError:
        record = make_record("Failed", level=logging.ERROR, exc_info=sys.exc_info())

    entry = json.loads(CloudLoggingFormatter().format(record))

    assert entry["severity"] == "ERROR"
    assert "Traceback" in entry["exception"]
    assert "OSError: disk full" in entry["exception"]
