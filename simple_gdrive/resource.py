"""
DriveResource: one remote file or folder, bound to the service that produced it.

The dataclass holds the metadata returned by the Drive API. Its methods are
thin forwards to GoogleDriveService so callers can work with objects instead
of passing ids around.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, BinaryIO

from .errors import FolderCannotBeCopiedError, NotAuthenticatedError
from .mime import MimeType

if TYPE_CHECKING:
    from pathlib import Path

    from .cancellation import CancelToken
    from .query import QueryBuilder
    from .service import GoogleDriveService

ProgressCallback = Callable[[int, "int | None"], None]
FailureCallback = Callable[[BaseException], None]


@dataclass
class DriveResource:
    id: str
    name: str
    mime_type: str = MimeType.UNKNOWN.value
    parent_id: str | None = None
    size: int | None = None
    is_trashed: bool = False
    properties: dict[str, str] = field(default_factory=dict)
    full_name: str | None = field(default=None, compare=False)
    _service: GoogleDriveService | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_metadata(cls, meta: dict[str, Any]) -> DriveResource:
        """Build a resource from a Drive API ``files`` resource dict."""
        mime = meta.get("mimeType") or MimeType.UNKNOWN.value
        parents = meta.get("parents") or []

        size = None
        if mime != MimeType.FOLDER.value and meta.get("size") is not None:
            size = int(meta["size"])

        return cls(
            id=meta["id"],
            name=meta.get("name", ""),
            mime_type=mime,
            parent_id=parents[0] if parents else None,
            size=size,
            is_trashed=bool(meta.get("trashed", False)),
            properties=dict(meta.get("properties") or {}),
        )

    @property
    def type(self) -> MimeType:
        return MimeType.from_string(self.mime_type)

    @property
    def is_folder(self) -> bool:
        return self.type is MimeType.FOLDER

    @property
    def service(self) -> GoogleDriveService:
        if self._service is None:
            raise NotAuthenticatedError()
        return self._service

    def bind(self, service: GoogleDriveService) -> DriveResource:
        self._service = service
        return self

    # Forwards to the owning service

    def download(
        self,
        destination: str | Path | BinaryIO,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> None:
        """Download to a local path or binary stream. Folder contents are not downloaded."""
        self.service.download_resource(self, destination, on_progress, on_failure, token=token)

    def export(
        self,
        destination: str | Path | BinaryIO,
        mime_type: MimeType | str | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> None:
        """Export a Workspace document, using its default format when none is given."""
        self.service.export_resource(
            self, destination, mime_type, on_progress, on_failure, token=token
        )

    def delete(self, token: CancelToken | None = None) -> None:
        self.service.delete_resource(self, token=token)

    def get_inner_resources(
        self,
        parameters: QueryBuilder | None = None,
        deep_search: bool = False,
        token: CancelToken | None = None,
    ) -> Iterator[DriveResource]:
        """Lazily iterate the children of this folder (all descendants if deep_search)."""
        return self.service.iter_inner_resources(self, parameters, deep_search, token=token)

    def get_full_name(self, token: CancelToken | None = None) -> str:
        return self.service.get_full_name(self, token=token)

    def get_parent(self, token: CancelToken | None = None) -> DriveResource | None:
        return self.service.get_parent(self, token=token)

    def copy(
        self,
        destination: str | DriveResource | None,
        token: CancelToken | None = None,
    ) -> DriveResource | None:
        """
        Copy this file into a folder given by path or resource.

        Raises:
            FolderCannotBeCopiedError: If this resource is a folder.
        """
        if self.is_folder:
            raise FolderCannotBeCopiedError()
        return self.service.copy_resource(self, destination, token=token)

    def update(self, token: CancelToken | None = None) -> DriveResource:
        """Push this object's name and properties to Drive."""
        return self.service.update_resource(self, token=token)

    def update_content(
        self,
        source: str | Path | BinaryIO,
        content_type: str | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource:
        """Push name, properties and new content from a local file or stream."""
        return self.service.update_resource_content(
            self, source, content_type, on_progress, on_failure, token=token
        )
