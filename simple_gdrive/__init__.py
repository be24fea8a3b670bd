__version__ = "0.1.0"

# Public API exports
from .cancellation import CancelToken
from .config import (
    AppConfig,
    ConnectionConfig,
    GoogleDriveConfig,
    LogConfig,
    PathCacheConfig,
    load_config,
)
from .errors import (
    DriveApiError,
    DriveError,
    ExportNotSupportedError,
    ExportTooLargeError,
    FolderCannotBeCopiedError,
    NotAuthenticatedError,
    OperationCancelledError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    TransientError,
    UnsupportedOperationError,
)
from .mime import MimeType
from .path_cache import PathCache
from .query import QueryBuilder
from .resource import DriveResource


def get_drive_service():
    """Lazy loader for GoogleDriveService.

    Returns the GoogleDriveService class, importing it on first use so that
    building queries or working with a PathCache does not require
    google-api-python-client.
    """
    from .service import GoogleDriveService

    return GoogleDriveService


__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "GoogleDriveConfig",
    "PathCacheConfig",
    "ConnectionConfig",
    "LogConfig",
    "load_config",
    # Core
    "QueryBuilder",
    "PathCache",
    "DriveResource",
    "MimeType",
    "CancelToken",
    "get_drive_service",
    # Errors
    "DriveError",
    "NotAuthenticatedError",
    "ResourceNotFoundError",
    "ResourceAlreadyExistsError",
    "UnsupportedOperationError",
    "FolderCannotBeCopiedError",
    "ExportNotSupportedError",
    "ExportTooLargeError",
    "TransientError",
    "DriveApiError",
    "OperationCancelledError",
]
