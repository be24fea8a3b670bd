"""
Google Drive API v3 client.

Thin wrapper over googleapiclient that returns DriveResource objects and owns
the transient-fault retry policy. Everything path-related lives in
GoogleDriveService; this module only knows ids.
"""

import logging
import random
import threading
import time
from collections.abc import Callable
from typing import Any, BinaryIO

import httplib2
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from .cancellation import CancelToken, check
from .config import ConnectionConfig, GoogleDriveConfig
from .errors import (
    DriveApiError,
    NotAuthenticatedError,
    OperationCancelledError,
    ResourceNotFoundError,
    TransientError,
)
from .gdrive_auth import get_credentials
from .resource import DriveResource, FailureCallback, ProgressCallback

logger = logging.getLogger(__name__)

# Fields to request from the Drive API for file metadata
FILE_FIELDS = "id, name, mimeType, parents, size, trashed, properties"
LIST_FIELDS = f"nextPageToken, files({FILE_FIELDS})"

# HTTP statuses worth retrying
TRANSIENT_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

UPLOAD_CHUNK_SIZE = 5 * 1024 * 1024


class GoogleDriveClient:
    """
    Remote operations against Drive API v3.

    Requests are serialized behind a lock because the underlying httplib2
    transport is not thread-safe.
    """

    def __init__(self, gdrive_config: GoogleDriveConfig, conn_config: ConnectionConfig):
        self.gdrive_config = gdrive_config
        self.conn_config = conn_config
        self._service = None
        self._lock = threading.Lock()
        self._connected = False
        self.request_count = 0

    @classmethod
    def from_service(
        cls,
        service: Any,
        gdrive_config: GoogleDriveConfig | None = None,
        conn_config: ConnectionConfig | None = None,
    ) -> "GoogleDriveClient":
        """Create a connected client around a pre-built Drive service (useful for tests)."""
        client = cls(gdrive_config or GoogleDriveConfig(), conn_config or ConnectionConfig())
        client._service = service
        client._connected = True
        return client

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        """Load saved credentials and build the Drive API service."""
        with self._lock:
            creds = get_credentials(self.gdrive_config.token_file)
            http = AuthorizedHttp(creds, http=httplib2.Http(timeout=self.conn_config.timeout_seconds))
            try:
                self._service = build("drive", "v3", http=http, cache_discovery=False)
            except Exception as e:
                logger.error("Failed to build Google Drive service: %s", e)
                raise ConnectionError(f"Google Drive connection failed: {e}") from e
            self._connected = True
            logger.info("Connected to Google Drive")

    def disconnect(self) -> None:
        with self._lock:
            self._service = None
            self._connected = False
            logger.debug("Google Drive connection closed")

    def _files(self):
        if self._service is None:
            raise NotAuthenticatedError()
        return self._service.files()

    def _with_retry(self, operation: str, func: Callable, token: CancelToken | None = None):
        """Execute with exponential backoff and jitter for transient failures."""
        attempts = max(1, self.conn_config.retry_attempts)
        base_delay = self.conn_config.retry_delay_seconds
        last_exception: Exception | None = None

        for attempt in range(attempts):
            check(token)
            try:
                with self._lock:
                    self.request_count += 1
                    return func()
            except HttpError as e:
                status = e.resp.status
                transient = status in TRANSIENT_STATUSES or (status == 403 and _is_rate_limit(e))
                if status == 404:
                    raise ResourceNotFoundError(operation) from e
                if status == 403 and not transient:
                    raise PermissionError(f"Access denied: {operation}") from e
                if not transient:
                    raise DriveApiError(f"{operation} failed: HTTP {status}", status=status) from e
                last_exception = e
                logger.warning(
                    "%s failed (attempt %d/%d): HTTP %d",
                    operation,
                    attempt + 1,
                    attempts,
                    status,
                )
            except (OSError, httplib2.HttpLib2Error) as e:
                # Network failures, including httplib2 transport errors
                last_exception = e
                logger.warning(
                    "%s failed (attempt %d/%d): %s", operation, attempt + 1, attempts, e
                )

            if attempt < attempts - 1:
                delay = base_delay * (2**attempt) + random.uniform(0, base_delay)
                if token is not None:
                    if token.wait(delay):
                        raise OperationCancelledError(f"{operation} cancelled during retry")
                else:
                    time.sleep(delay)

        logger.error("%s failed after %d attempts", operation, attempts)
        raise TransientError(f"{operation} failed: {last_exception}") from last_exception

    # Metadata

    def get(self, file_id: str, token: CancelToken | None = None) -> DriveResource:
        meta = self._with_retry(
            f"get({file_id})",
            lambda: self._files().get(fileId=file_id, fields=FILE_FIELDS).execute(),
            token,
        )
        return DriveResource.from_metadata(meta)

    def list_files(
        self,
        query: str,
        page_token: str | None = None,
        order_by: str | None = None,
        token: CancelToken | None = None,
    ) -> tuple[list[DriveResource], str | None]:
        """Fetch one page of query results and the token of the next page."""
        kwargs = {
            "q": query,
            "fields": LIST_FIELDS,
            "pageSize": self.conn_config.page_size,
        }
        if page_token:
            kwargs["pageToken"] = page_token
        if order_by:
            kwargs["orderBy"] = order_by

        response = self._with_retry(
            "list", lambda: self._files().list(**kwargs).execute(), token
        )
        files = [DriveResource.from_metadata(meta) for meta in response.get("files", [])]
        logger.debug("Query %r returned %d entries", query, len(files))
        return files, response.get("nextPageToken")

    def create(self, metadata: dict[str, Any], token: CancelToken | None = None) -> DriveResource:
        meta = self._with_retry(
            f"create({metadata.get('name')})",
            lambda: self._files().create(body=metadata, fields=FILE_FIELDS).execute(),
            token,
        )
        return DriveResource.from_metadata(meta)

    def update(
        self, file_id: str, metadata: dict[str, Any], token: CancelToken | None = None
    ) -> DriveResource:
        meta = self._with_retry(
            f"update({file_id})",
            lambda: self._files()
            .update(fileId=file_id, body=metadata, fields=FILE_FIELDS)
            .execute(),
            token,
        )
        return DriveResource.from_metadata(meta)

    def copy(
        self, file_id: str, metadata: dict[str, Any], token: CancelToken | None = None
    ) -> DriveResource:
        meta = self._with_retry(
            f"copy({file_id})",
            lambda: self._files().copy(fileId=file_id, body=metadata, fields=FILE_FIELDS).execute(),
            token,
        )
        return DriveResource.from_metadata(meta)

    def delete(self, file_id: str, token: CancelToken | None = None) -> None:
        self._with_retry(
            f"delete({file_id})",
            lambda: self._files().delete(fileId=file_id).execute(),
            token,
        )

    # Content transfer

    def create_with_content(
        self,
        metadata: dict[str, Any],
        stream: BinaryIO,
        content_type: str,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource:
        media = MediaIoBaseUpload(
            stream, mimetype=content_type, chunksize=UPLOAD_CHUNK_SIZE, resumable=True
        )
        request = self._files().create(body=metadata, media_body=media, fields=FILE_FIELDS)
        meta = self._upload(
            f"create({metadata.get('name')})", request, on_progress, on_failure, token
        )
        return DriveResource.from_metadata(meta)

    def update_with_content(
        self,
        file_id: str,
        metadata: dict[str, Any],
        stream: BinaryIO,
        content_type: str,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource:
        media = MediaIoBaseUpload(
            stream, mimetype=content_type, chunksize=UPLOAD_CHUNK_SIZE, resumable=True
        )
        request = self._files().update(
            fileId=file_id, body=metadata, media_body=media, fields=FILE_FIELDS
        )
        meta = self._upload(f"update({file_id})", request, on_progress, on_failure, token)
        return DriveResource.from_metadata(meta)

    def download(
        self,
        file_id: str,
        stream: BinaryIO,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        total_size: int | None = None,
        token: CancelToken | None = None,
    ) -> None:
        request = self._files().get_media(fileId=file_id)
        self._download(f"download({file_id})", request, stream, on_progress, on_failure, total_size, token)

    def export(
        self,
        file_id: str,
        mime_type: str,
        stream: BinaryIO,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> None:
        request = self._files().export_media(fileId=file_id, mimeType=mime_type)
        self._download(f"export({file_id})", request, stream, on_progress, on_failure, None, token)

    def _upload(self, operation, request, on_progress, on_failure, token) -> dict:
        try:
            response = None
            while response is None:
                status, response = self._with_retry(operation, request.next_chunk, token)
                if status is not None and on_progress is not None:
                    on_progress(status.resumable_progress, status.total_size)
            logger.debug("%s: upload complete", operation)
            return response
        except Exception as e:
            if on_failure is not None and not isinstance(e, OperationCancelledError):
                on_failure(e)
            raise

    def _download(self, operation, request, stream, on_progress, on_failure, total_size, token) -> None:
        try:
            downloader = MediaIoBaseDownload(stream, request)
            done = False
            while not done:
                status, done = self._with_retry(operation, downloader.next_chunk, token)
                if on_progress is not None:
                    on_progress(status.resumable_progress, total_size or status.total_size)
            logger.debug("%s: download complete", operation)
        except Exception as e:
            if on_failure is not None and not isinstance(e, OperationCancelledError):
                on_failure(e)
            raise


def _is_rate_limit(error: HttpError) -> bool:
    """Drive reports per-user rate limits as 403 with a rateLimitExceeded reason."""
    reason = getattr(error, "reason", "") or ""
    content = getattr(error, "content", b"") or b""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return "ratelimitexceeded" in (reason + content).lower()
