"""Exceptions for files app.

Every error carries a stable, user-presentable ``message`` and the
``status_code`` the transport layer should answer with.
"""

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from filevault.apps.files.logic.batch_operations import BatchResult


class FilesError(Exception):
    """Base class for file manager errors."""

    status_code: ClassVar[int] = 500
    default_message: ClassVar[str] = 'An unexpected server error occurred.'

    def __init__(self, message: str | None = None) -> None:
        """Initialize FilesError.

        Args:
            message: User-facing message. Falls back to the class default.
        """
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(FilesError):
    """Raised when the request carries no authenticated user."""

    status_code = 401
    default_message = 'Not authenticated, please login again'


class ValidationError(FilesError):
    """Raised for bad input shape, size/type limits or empty names."""

    status_code = 400
    default_message = 'Invalid request.'


class NotFoundError(FilesError):
    """Raised when a record is absent or not owned by the user."""

    status_code = 404
    default_message = 'Item not found or access denied.'


class ConflictError(FilesError):
    """Raised on a name or path collision."""

    status_code = 409
    default_message = 'An item with this name already exists in this location.'


class StorageError(FilesError):
    """Raised when a content store operation fails."""

    status_code = 500
    default_message = 'Storage operation failed.'


class DatabaseError(FilesError):
    """Raised when a metadata store operation fails."""

    status_code = 500
    default_message = 'Database operation failed.'


class PartialFailure(FilesError):
    """Raised for batch operations that ended with mixed outcomes."""

    status_code = 207
    default_message = 'Batch operation partially completed.'

    def __init__(self, result: 'BatchResult') -> None:
        """Initialize PartialFailure.

        Args:
            result: Aggregated batch result with per-item outcomes.
        """
        self.result = result
        super().__init__(result.message)
