"""
Exception types raised by simple_gdrive.

Lookups that merely find nothing return None; these exceptions signal
conditions the caller has to branch on.
"""

from __future__ import annotations


class DriveError(Exception):
    """Base class for every simple_gdrive error."""


class NotAuthenticatedError(DriveError):
    """An operation was attempted before the Drive client was connected."""

    def __init__(self, message: str = "The Google Drive service has not been authenticated"):
        super().__init__(message)


class ResourceNotFoundError(DriveError, FileNotFoundError):
    """A lookup by id found nothing."""

    def __init__(self, resource_id: str | None):
        super().__init__(f"Resource does not exist: {resource_id}")
        self.resource_id = resource_id


class ResourceAlreadyExistsError(DriveError, FileExistsError):
    """A create found a live resource at the target path."""

    def __init__(self, resource):
        super().__init__(f"The resource {resource.name} already exists")
        self.resource = resource


class UnsupportedOperationError(DriveError):
    """The remote system does not support the requested operation."""


class FolderCannotBeCopiedError(UnsupportedOperationError):
    def __init__(self):
        super().__init__("Folders cannot be copied in Google Drive")


class ExportNotSupportedError(DriveError):
    """Only Google Workspace documents can be exported."""

    def __init__(self, resource):
        super().__init__(f"The resource {resource.name} cannot be exported")
        self.resource = resource


class ExportTooLargeError(DriveError):
    """The Drive export endpoint refuses documents above its size limit."""

    def __init__(self, resource, limit: int):
        super().__init__(
            f"The file {resource.name} is too big to be exported "
            f"({resource.size} bytes). Max size is {limit} bytes"
        )
        self.resource = resource
        self.limit = limit


class TransientError(DriveError, OSError):
    """A retryable failure that persisted after every retry attempt."""


class DriveApiError(DriveError):
    """A permanent, non-retryable error returned by the Drive API."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class OperationCancelledError(DriveError):
    """The operation's CancelToken was cancelled or its deadline passed."""
