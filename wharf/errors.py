"""Wharf error types.

Error codes are stable strings for programmatic handling; every error a
caller can observe maps to exactly one code and HTTP status.

Categories:
- validation_error / invalid_path: bad input, rejected before side effects
- unauthorized: authentication failed (single opaque message)
- forbidden: authenticated but target path not granted
- not_found: unknown managed process
- upstream_error: supervisor daemon unreachable or refused an operation
- unzip_failed / tar_extraction_failed / upload_move_failed: populate step
- internal_error: anything unexpected
"""

from __future__ import annotations

from typing import Any


class WharfError(Exception):
    """Base error for all Wharf exceptions."""

    code: str = "internal_error"
    message: str = "Internal Server Error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Serialize to the API error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "request_id": request_id,
                "details": self.details,
            }
        }


class ValidationError(WharfError):
    """Request validation error (400)."""

    code = "validation_error"
    message = "Validation error"
    status_code = 400


class InvalidPathError(ValidationError):
    """Invalid relative path (400).

    Raised when a path fails validation:
    - Empty path
    - Absolute path (starts with /)
    - Path traversal (.. component)
    - Contains null bytes
    """

    code = "invalid_path"
    message = "Invalid subdirectory path"


class UnauthorizedError(WharfError):
    """Authentication failed (401).

    Deliberately carries one fixed message regardless of the cause.
    """

    code = "unauthorized"
    message = "Authentication failed"
    status_code = 401


class ForbiddenError(WharfError):
    """Path not granted to the identity (403)."""

    code = "forbidden"
    message = "Path not authorized"
    status_code = 403


class NotFoundError(WharfError):
    """Resource not found (404)."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404


class UpstreamError(WharfError):
    """Supervisor daemon failure (502)."""

    code = "upstream_error"
    message = "Supervisor operation failed"
    status_code = 502


class ExtractionError(WharfError):
    """Populating the target directory from an archive failed (500)."""

    code = "extraction_failed"
    message = "Extraction failed"
    status_code = 500


class UnzipFailedError(ExtractionError):
    code = "unzip_failed"
    message = "Unzip failed"


class TarExtractionFailedError(ExtractionError):
    code = "tar_extraction_failed"
    message = "Tar extraction failed"


class UploadMoveFailedError(WharfError):
    """Moving a plain uploaded file into place failed (500)."""

    code = "upload_move_failed"
    message = "File upload failed"
    status_code = 500


class InternalError(WharfError):
    """Unexpected failure; never carries implementation detail (500)."""

    code = "internal_error"
    message = "Internal Server Error"
    status_code = 500
