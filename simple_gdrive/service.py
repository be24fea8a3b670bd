"""
Path-oriented operations over Google Drive.

GoogleDriveService resolves slash-delimited paths ("Reports/2024/q1.pdf") to
Drive resources by walking the folder hierarchy, remembering every resolved
folder in a PathCache. It also enumerates folder trees and wraps the
create/copy/update/transfer calls of GoogleDriveClient.

Lookups return None when a path does not exist; callers treat that as
"needs to be created" rather than an error.
"""

import logging
from collections import deque
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from .cancellation import CancelToken, check
from .config import AppConfig
from .errors import (
    ExportNotSupportedError,
    ExportTooLargeError,
    FolderCannotBeCopiedError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    UnsupportedOperationError,
)
from .gdrive_client import GoogleDriveClient
from .mime import EXPORT_SIZE_LIMIT, FOLDER_MIME, GOOGLE_APPS_PREFIX, MimeType, guess_content_type
from .path_cache import PathCache, split_path
from .query import QueryBuilder
from .resource import DriveResource, FailureCallback, ProgressCallback

logger = logging.getLogger(__name__)

# Oldest resource wins when several share a (parent, name) pair
RESOLVE_ORDER = "createdTime"


def _merge(base: QueryBuilder, parameters: QueryBuilder | None) -> QueryBuilder:
    """AND caller parameters into a structural query, keeping their trashed flag."""
    if parameters is None:
        return base
    return base.and_(parameters).include_trashed(parameters.trashed_included)


@contextmanager
def _open_destination(destination: str | Path | BinaryIO):
    if hasattr(destination, "write"):
        yield destination
        return
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        yield f


@contextmanager
def _open_source(source: str | Path | BinaryIO):
    if hasattr(source, "read"):
        yield source
        return
    with open(source, "rb") as f:
        yield f


class GoogleDriveService:
    """
    Path resolver, tree enumerator and operation facade for one Drive account.

    Args:
        client: Remote operations (GoogleDriveClient or a compatible object).
        path_cache: Cache of resolved paths. A fresh in-memory cache if omitted.
        root_id: Folder that top-level paths are resolved against.
    """

    def __init__(
        self,
        client: GoogleDriveClient,
        path_cache: PathCache | None = None,
        root_id: str = "root",
    ):
        self.client = client
        self.path_cache = path_cache if path_cache is not None else PathCache()
        self.root_id = root_id
        self._resolved_root_id: str | None = None

    @classmethod
    def from_config(cls, config: AppConfig) -> "GoogleDriveService":
        client = GoogleDriveClient(config.gdrive, config.connection)
        if config.cache.persistent:
            cache = PathCache.load(config.cache.path)
        else:
            cache = PathCache()
        return cls(client, cache, root_id=config.gdrive.root_folder_id)

    def connect(self) -> None:
        self.client.connect()

    def stop(self) -> None:
        """Persist the path cache (no-op for an in-memory cache)."""
        self.path_cache.store()

    def close(self) -> None:
        try:
            self.stop()
        finally:
            self.client.disconnect()

    def __enter__(self) -> "GoogleDriveService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _bind(self, resource: DriveResource) -> DriveResource:
        return resource.bind(self)

    def _parent_id_for(self, parent_path: str | None, token: CancelToken | None) -> str:
        """Resolve a parent folder path, creating missing folders on the way."""
        if parent_path is None:
            return self.root_id
        folder = self.find_folder(parent_path, token=token)
        if folder is None:
            folder = self.create_folder(parent_path, token=token)
        return folder.id

    # Lookup

    def get_resource(self, resource_id: str, token: CancelToken | None = None) -> DriveResource:
        """
        Fetch a resource by id.

        Raises:
            ResourceNotFoundError: If no resource has this id.
        """
        return self._bind(self.client.get(resource_id, token=token))

    def get_parent(
        self, resource: DriveResource, token: CancelToken | None = None
    ) -> DriveResource | None:
        if resource.parent_id is None or self._is_root(resource.parent_id, token):
            return None
        return self.get_resource(resource.parent_id, token=token)

    def query_resources(
        self,
        query: QueryBuilder | str,
        token: CancelToken | None = None,
        order_by: str | None = None,
    ) -> Iterator[DriveResource]:
        """Lazily yield every resource matching ``query``, one page at a time."""
        q = query.build() if isinstance(query, QueryBuilder) else query
        page_token = None
        while True:
            files, page_token = self.client.list_files(
                q, page_token=page_token, order_by=order_by, token=token
            )
            for resource in files:
                yield self._bind(resource)
            if not page_token:
                break

    def find_folder(
        self,
        path: str | None,
        parameters: QueryBuilder | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource | None:
        """Find a live folder by path, consulting the path cache first."""
        if path is None:
            return None

        cached_id = self.path_cache.get_id(path)
        if cached_id is not None:
            try:
                folder = self.get_resource(cached_id, token=token)
            except ResourceNotFoundError:
                folder = None
            if folder is not None and folder.is_folder and not folder.is_trashed:
                logger.debug("Path cache hit: %s -> %s", path, cached_id)
                return folder
            logger.debug("Dropping stale path cache entry: %s -> %s", path, cached_id)
            self.path_cache.delete_by_path(path)

        query = _merge(QueryBuilder().is_type(MimeType.FOLDER), parameters)
        folder = self.find_resource(path, query, token=token)

        if folder is not None and not folder.is_trashed:
            self.path_cache.add(folder.id, path)

        return folder

    def find_file(
        self,
        path: str | None,
        parameters: QueryBuilder | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource | None:
        """Find a non-folder resource by path."""
        query = _merge(QueryBuilder().is_not_type(MimeType.FOLDER), parameters)
        return self.find_resource(path, query, token=token)

    def find_resource(
        self,
        path: str | None,
        parameters: QueryBuilder | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource | None:
        """
        Find any resource by path.

        The parent path is resolved recursively through find_folder; an
        unresolvable parent means the resource does not exist.

        Raises:
            ValueError: If the path has no components.
        """
        if path is None:
            return None

        parent_path, name = split_path(path)
        parent_id = self.root_id

        if parent_path is not None:
            parent = self.find_folder(parent_path, token=token)
            if parent is None:
                logger.debug("Parent folder not found: %s", parent_path)
                return None
            parent_id = parent.id

        query = _merge(QueryBuilder().is_name(name).and_().is_parent(parent_id), parameters)
        return next(iter(self.query_resources(query, token=token, order_by=RESOLVE_ORDER)), None)

    def get_full_name(self, resource: DriveResource, token: CancelToken | None = None) -> str:
        """
        Reconstruct the "A/B/name" path of a resource from its parent links.

        Each resolved ancestor is cached, so later calls on its descendants
        stop walking at the first cached folder.
        """
        cached = self.path_cache.get_path(resource.id)
        if cached is not None:
            full_name = cached.rstrip("/")
        elif resource.parent_id is None:
            full_name = resource.name
        else:
            parent_path = self.path_cache.get_path(resource.parent_id)
            if parent_path is not None:
                full_name = f"{parent_path.rstrip('/')}/{resource.name}"
            elif self._is_root(resource.parent_id, token):
                full_name = resource.name
            else:
                parent = self.get_resource(resource.parent_id, token=token)
                full_name = f"{self.get_full_name(parent, token=token)}/{resource.name}"

        if cached is None:
            self.path_cache.add(resource.id, full_name)
        resource.full_name = full_name
        return full_name

    def _is_root(self, folder_id: str, token: CancelToken | None) -> bool:
        if folder_id == self.root_id:
            return True
        # Drive lists the real id of "My Drive" in parents, never the "root" alias
        if self._resolved_root_id is None:
            self._resolved_root_id = self.client.get(self.root_id, token=token).id
        return folder_id == self._resolved_root_id

    # Tree traversal

    def iter_inner_resources(
        self,
        folder: DriveResource,
        parameters: QueryBuilder | None = None,
        deep_search: bool = False,
        token: CancelToken | None = None,
    ) -> Iterator[DriveResource]:
        """
        Lazily enumerate a folder's children matching ``parameters``.

        With deep_search every descendant folder is visited breadth-first.
        A non-folder resource has no children.
        """
        if not folder.is_folder:
            return iter(())
        if not deep_search:
            query = _merge(QueryBuilder().is_parent(folder.id), parameters)
            return self.query_resources(query, token=token)
        return self._iter_deep(folder, parameters, token)

    def _child_folders(self, folder: DriveResource, token: CancelToken | None) -> list[DriveResource]:
        query = QueryBuilder().is_type(MimeType.FOLDER).and_().is_parent(folder.id)
        return list(self.query_resources(query, token=token))

    def _iter_deep(
        self,
        folder: DriveResource,
        parameters: QueryBuilder | None,
        token: CancelToken | None,
    ) -> Iterator[DriveResource]:
        queue = deque([folder])
        visited = {folder.id}
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gdrive-subfolders")
        try:
            while queue:
                check(token)
                current = queue.popleft()
                # Fetch subfolders on the worker while the matching children stream out
                subfolders = executor.submit(self._child_folders, current, token)

                query = _merge(QueryBuilder().is_parent(current.id), parameters)
                yield from self.query_resources(query, token=token)

                for child in subfolders.result():
                    if child.id not in visited:
                        visited.add(child.id)
                        queue.append(child)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    # Mutation

    def create_folder(self, path: str, token: CancelToken | None = None) -> DriveResource:
        """
        Create a folder and any missing ancestors.

        Raises:
            ResourceAlreadyExistsError: If a live folder already exists at ``path``.
        """
        existing = self.find_folder(path, token=token)
        if existing is not None and not existing.is_trashed:
            raise ResourceAlreadyExistsError(existing)

        parent_path, name = split_path(path)
        metadata = {
            "name": name,
            "mimeType": FOLDER_MIME,
            "parents": [self._parent_id_for(parent_path, token)],
        }
        folder = self.client.create(metadata, token=token)
        self.path_cache.add(folder.id, path)
        logger.info("Created folder %s (%s)", path, folder.id)
        return self._bind(folder)

    def delete_resource(self, resource: DriveResource, token: CancelToken | None = None) -> None:
        """Permanently delete a resource and forget its cached path."""
        self.client.delete(resource.id, token=token)

        path = self.path_cache.get_path(resource.id)
        if path is not None and resource.is_folder:
            self.path_cache.delete_subtree(path)
        self.path_cache.delete_by_id(resource.id)
        logger.info("Deleted %s (%s)", resource.name, resource.id)

    def delete_path(
        self,
        path: str,
        parameters: QueryBuilder | None = None,
        token: CancelToken | None = None,
    ) -> bool:
        """Delete the resource at ``path``. Returns False if nothing was there."""
        resource = self.find_resource(path, parameters, token=token)
        if resource is None:
            return False
        self.delete_resource(resource, token=token)
        return True

    def update_resource(self, resource: DriveResource, token: CancelToken | None = None) -> DriveResource:
        """Push the resource's name and properties to Drive."""
        metadata = {"name": resource.name, "properties": resource.properties}
        updated = self.client.update(resource.id, metadata, token=token)
        self._forget_if_renamed(resource.id, updated.name)
        resource.full_name = None
        return self._bind(updated)

    def update_resource_content(
        self,
        resource: DriveResource,
        source: str | Path | BinaryIO,
        content_type: str | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource:
        """Push name, properties and new content from a local file or stream."""
        if resource.is_folder:
            raise UnsupportedOperationError("Folders have no content to update")
        if content_type is None:
            content_type = (
                guess_content_type(str(source)) if isinstance(source, (str, Path)) else resource.mime_type
            )

        metadata = {"name": resource.name, "properties": resource.properties}
        with _open_source(source) as stream:
            updated = self.client.update_with_content(
                resource.id, metadata, stream, content_type, on_progress, on_failure, token=token
            )
        self._forget_if_renamed(resource.id, updated.name)
        resource.full_name = None
        return self._bind(updated)

    def _forget_if_renamed(self, resource_id: str, new_name: str) -> None:
        old_path = self.path_cache.get_path(resource_id)
        if old_path is None:
            return
        _, old_name = split_path(old_path)
        if old_name != new_name:
            self.path_cache.delete_subtree(old_path)

    def copy_resource(
        self,
        resource: DriveResource,
        destination: str | DriveResource | None,
        token: CancelToken | None = None,
    ) -> DriveResource | None:
        """
        Copy a file into a folder given by path or resource (None for root).

        Returns None if the destination does not exist or is not a folder.

        Raises:
            FolderCannotBeCopiedError: If ``resource`` is a folder.
        """
        if resource.is_folder:
            raise FolderCannotBeCopiedError()

        if isinstance(destination, str):
            destination = self.find_folder(destination, token=token)
            if destination is None:
                logger.debug("Copy destination not found for %s", resource.name)
                return None
        if destination is not None and not destination.is_folder:
            return None

        metadata = {
            "name": resource.name,
            "parents": [destination.id if destination is not None else self.root_id],
        }
        return self._bind(self.client.copy(resource.id, metadata, token=token))

    # Transfer

    def create_file(
        self,
        stream: BinaryIO,
        mime_type: MimeType | str,
        destination: str,
        properties: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource:
        """
        Upload ``stream`` as a new file at ``destination``.

        Missing parent folders are created.
        """
        content_type = mime_type.value if isinstance(mime_type, MimeType) else mime_type
        parent_path, name = split_path(destination)

        metadata = {"name": name, "parents": [self._parent_id_for(parent_path, token)]}
        if properties:
            metadata["properties"] = dict(properties)

        created = self.client.create_with_content(
            metadata, stream, content_type, on_progress, on_failure, token=token
        )
        logger.info("Uploaded %s (%s)", destination, created.id)
        return self._bind(created)

    def upload_file(
        self,
        local_path: str | Path,
        destination: str,
        properties: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> DriveResource | None:
        """Upload a local file. Returns None if the local file does not exist."""
        local_path = Path(local_path)
        if not local_path.is_file():
            logger.warning("Local file not found: %s", local_path)
            return None

        with open(local_path, "rb") as stream:
            return self.create_file(
                stream,
                guess_content_type(local_path.name),
                destination,
                properties,
                on_progress,
                on_failure,
                token=token,
            )

    def download_resource(
        self,
        resource: DriveResource,
        destination: str | Path | BinaryIO,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> None:
        """
        Download a file's content to a local path or binary stream.

        Raises:
            UnsupportedOperationError: For folders and Workspace documents
                (use export_resource for the latter).
        """
        if resource.is_folder:
            raise UnsupportedOperationError("Folders cannot be downloaded")
        if resource.mime_type.startswith(GOOGLE_APPS_PREFIX):
            raise UnsupportedOperationError(
                f"{resource.name} is a Google Workspace document; export it instead"
            )

        with _open_destination(destination) as stream:
            self.client.download(
                resource.id, stream, on_progress, on_failure, total_size=resource.size, token=token
            )

    def download_path(
        self,
        path: str,
        destination: str | Path | BinaryIO,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> bool:
        """Download the resource at ``path``. Returns False if it does not exist."""
        resource = self.find_resource(path, token=token)
        if resource is None:
            return False
        self.download_resource(resource, destination, on_progress, on_failure, token=token)
        return True

    def export_resource(
        self,
        resource: DriveResource,
        destination: str | Path | BinaryIO,
        mime_type: MimeType | str | None = None,
        on_progress: ProgressCallback | None = None,
        on_failure: FailureCallback | None = None,
        token: CancelToken | None = None,
    ) -> None:
        """
        Export a Workspace document to ``mime_type`` (default: its usual office format).

        Raises:
            ExportNotSupportedError: If the resource is not an exportable document.
            ExportTooLargeError: If its reported size exceeds the export limit.
        """
        target = mime_type if mime_type is not None else resource.type.default_export
        exportable = resource.mime_type.startswith(GOOGLE_APPS_PREFIX) and resource.type not in (
            MimeType.FOLDER,
            MimeType.SHORTCUT,
        )
        if not exportable or target is None:
            raise ExportNotSupportedError(resource)
        if resource.size is not None and resource.size > EXPORT_SIZE_LIMIT:
            raise ExportTooLargeError(resource, EXPORT_SIZE_LIMIT)

        target = target.value if isinstance(target, MimeType) else target
        with _open_destination(destination) as stream:
            self.client.export(resource.id, target, stream, on_progress, on_failure, token=token)
