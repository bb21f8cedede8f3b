"""Exceptions for files app.

Every exception carries a stable, user-safe message and the HTTP
status code it maps to. Internal details (storage keys, tracebacks,
upstream error text) are only ever logged, never put into ``message``.
"""

from http import HTTPStatus
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from server.apps.files.logic.upload_coordinator import UploadResult


class FileShareError(Exception):
    """Base class for errors reported to the caller."""

    status_code: ClassVar[int] = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: ClassVar[str] = 'Internal server error'

    def __init__(self, message: str | None = None) -> None:
        """Initialize FileShareError.

        Args:
            message: User-safe message, defaults to the class message.
        """
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(FileShareError):
    """Raised for malformed, client-fixable input."""

    status_code = HTTPStatus.BAD_REQUEST
    default_message = 'Invalid input'


class AuthenticationRequiredError(FileShareError):
    """Raised when an operation needs an authenticated user."""

    status_code = HTTPStatus.UNAUTHORIZED
    default_message = 'Unauthorized'


class FileRecordNotFoundError(FileShareError):
    """Raised when a file does not exist or belongs to someone else."""

    status_code = HTTPStatus.NOT_FOUND
    default_message = 'File not found'


class ShareNotFoundError(FileRecordNotFoundError):
    """Raised for any share token that does not resolve to a file.

    Unknown, malformed and expired tokens all raise this one class
    with the same message.
    """


class StorageError(FileShareError):
    """Raised when the object store fails outside of an upload."""

    default_message = 'Storage operation failed'


class UploadFailedError(FileShareError):
    """Raised when an upload failed and was compensated."""

    default_message = 'Upload failed'

    def __init__(self, result: 'UploadResult') -> None:
        """Initialize UploadFailedError.

        Args:
            result: Terminal result of the upload coordinator.
        """
        self.result = result
        super().__init__()


class UploadTimeoutError(FileShareError):
    """Raised when an upload did not finish before its deadline.

    The outcome of the upload is unknown to the caller.
    """

    status_code = HTTPStatus.GATEWAY_TIMEOUT
    default_message = 'Upload timeout'

    def __init__(self, result: 'UploadResult') -> None:
        """Initialize UploadTimeoutError.

        Args:
            result: Terminal result of the upload coordinator.
        """
        self.result = result
        super().__init__()
