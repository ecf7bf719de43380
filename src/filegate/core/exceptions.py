"""Error taxonomy for FileGate.

Every error carries the HTTP status it maps to at the API boundary and a
plain human-readable message.
"""

from enum import Enum


class FileGateError(Exception):
    """Base exception for FileGate."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(FileGateError):
    """Malformed client input (multipart framing, unreadable chunks)."""

    status_code = 400


class MissingField(BadRequest):
    """A required multipart field was not supplied."""

    def __init__(self, field: str):
        super().__init__(f"{field} field is required")
        self.field = field


class InvalidEncoding(BadRequest):
    """A text field did not decode as UTF-8."""


class InvalidPath(FileGateError):
    """A destination path cannot be represented as UTF-8 text."""

    status_code = 400

    def __init__(self, message: str = "Invalid path"):
        super().__init__(message)


class UnprocessableEntity(FileGateError):
    """Request is well formed but semantically incomplete."""

    status_code = 422


class NotFound(FileGateError):
    """Unrecognized route or missing resource."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class InternalFailure(FileGateError):
    """Disk I/O or unexpected server-side fault."""

    status_code = 500


class Unauthorized(FileGateError):
    """No authenticated user is attached to the request."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ServiceErrorKind(str, Enum):
    """Classification a files service attaches to its failures."""

    BAD_INPUT = "bad_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


_SERVICE_STATUS = {
    ServiceErrorKind.BAD_INPUT: 400,
    ServiceErrorKind.NOT_FOUND: 404,
    ServiceErrorKind.CONFLICT: 409,
    ServiceErrorKind.INTERNAL: 500,
}


class FilesServiceError(FileGateError):
    """Failure raised by a files service backend."""

    def __init__(self, kind: ServiceErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return _SERVICE_STATUS[self.kind]

    @classmethod
    def bad_input(cls, message: str) -> "FilesServiceError":
        return cls(ServiceErrorKind.BAD_INPUT, message)

    @classmethod
    def not_found(cls, message: str = "Not found") -> "FilesServiceError":
        return cls(ServiceErrorKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str) -> "FilesServiceError":
        return cls(ServiceErrorKind.CONFLICT, message)

    @classmethod
    def internal(cls, message: str) -> "FilesServiceError":
        return cls(ServiceErrorKind.INTERNAL, message)
