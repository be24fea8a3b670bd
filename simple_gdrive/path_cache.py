"""
Bidirectional path <-> id cache for Google Drive.

Google Drive is ID-based, not path-based. Resolving "A/B/notes.txt" means
walking the folder hierarchy one query at a time, so every resolved path is
remembered here together with its id. Entries never expire: they are added
when a path is resolved or created and dropped when the resource is deleted
or renamed through this library.

The cache can be persisted as a JSON snapshot of both mappings
(``[id_to_path, path_to_id]``) and reloaded on the next run.
"""

import json
import logging
import re
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

SEPARATOR = "/"
_SPLIT_RE = re.compile(r"[/\\]")


def path_components(path: str) -> list[str]:
    """Split on either separator, trimming whitespace and dropping empty parts."""
    return [part.strip() for part in _SPLIT_RE.split(path) if part.strip()]


def normalize_path(path: str) -> str:
    """
    Normalize a path to the canonical cache key.

    Both separators are accepted; the result uses "/" and always ends with a
    single trailing "/", e.g. " A\\B//c " -> "A/B/c/".
    """
    return "".join(part + SEPARATOR for part in path_components(path))


def split_path(path: str) -> tuple[str | None, str]:
    """
    Split a path into its normalized parent path and leaf name.

    Returns:
        (parent, leaf) where parent is None for root-level paths,
        e.g. "A/B/c" -> ("A/B/", "c") and "c" -> (None, "c").

    Raises:
        ValueError: If the path has no components.
    """
    parts = path_components(path)
    if not parts:
        raise ValueError(f"Path has no components: {path!r}")
    parent = "".join(part + SEPARATOR for part in parts[:-1]) or None
    return parent, parts[-1]


class PathCache:
    """
    Thread-safe bijection between normalized paths and Drive file ids.

    Each id maps to at most one path and each path to at most one id;
    adding a mapping evicts any stale pairing of either key.
    """

    def __init__(self, location: str | Path | None = None):
        """
        Args:
            location: Where store() writes the snapshot. None disables persistence.
        """
        self.location = Path(location) if location is not None else None
        self._lock = threading.RLock()
        self._id_to_path: dict[str, str] = {}
        self._path_to_id: dict[str, str] = {}

    @classmethod
    def load(cls, location: str | Path) -> "PathCache":
        """
        Create a cache hydrated from a snapshot at ``location``.

        A missing or unreadable snapshot gives an empty cache.
        """
        cache = cls(location)
        path = cache.location
        if not path.exists():
            logger.debug("No path cache snapshot at %s", path)
            return cache

        try:
            id_to_path, path_to_id = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(id_to_path, dict) or not isinstance(path_to_id, dict):
                raise ValueError("snapshot entries must be objects")
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable path cache snapshot %s: %s", path, e)
            return cache

        with cache._lock:
            cache._id_to_path = {str(k): str(v) for k, v in id_to_path.items()}
            cache._path_to_id = {str(k): str(v) for k, v in path_to_id.items()}
        logger.debug("Loaded %d cached paths from %s", len(cache), path)
        return cache

    def store(self) -> None:
        """Write both mappings to the snapshot location, if one is configured."""
        if self.location is None:
            return

        with self._lock:
            payload = json.dumps([self._id_to_path, self._path_to_id], indent=2)

        self.location.parent.mkdir(parents=True, exist_ok=True)
        self.location.write_text(payload, encoding="utf-8")
        logger.debug("Stored %d cached paths to %s", len(self), self.location)

    def get_id(self, path: str | None) -> str | None:
        if path is None:
            return None
        with self._lock:
            return self._path_to_id.get(normalize_path(path))

    def get_path(self, resource_id: str | None) -> str | None:
        if resource_id is None:
            return None
        with self._lock:
            return self._id_to_path.get(resource_id)

    def add(self, resource_id: str, path: str) -> None:
        """Store ``path <-> resource_id``, replacing earlier mappings of either key."""
        path = normalize_path(path)
        with self._lock:
            old_path = self._id_to_path.pop(resource_id, None)
            if old_path is not None and old_path != path:
                self._path_to_id.pop(old_path, None)
            old_id = self._path_to_id.pop(path, None)
            if old_id is not None and old_id != resource_id:
                self._id_to_path.pop(old_id, None)

            self._path_to_id[path] = resource_id
            self._id_to_path[resource_id] = path

    def delete_by_id(self, resource_id: str) -> None:
        with self._lock:
            path = self._id_to_path.pop(resource_id, None)
            if path is not None:
                self._path_to_id.pop(path, None)

    def delete_by_path(self, path: str) -> None:
        path = normalize_path(path)
        with self._lock:
            resource_id = self._path_to_id.pop(path, None)
            if resource_id is not None:
                self._id_to_path.pop(resource_id, None)

    def delete_subtree(self, path: str) -> None:
        """Remove a path and every cached path below it (after folder delete/rename)."""
        prefix = normalize_path(path)
        if not prefix:
            return
        with self._lock:
            to_remove = [p for p in self._path_to_id if p.startswith(prefix)]
            for p in to_remove:
                resource_id = self._path_to_id.pop(p)
                self._id_to_path.pop(resource_id, None)
        if to_remove:
            logger.debug("Invalidated %d cached paths under %s", len(to_remove), prefix)

    def clear(self) -> None:
        with self._lock:
            self._id_to_path.clear()
            self._path_to_id.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._path_to_id)

    def __contains__(self, path: str) -> bool:
        return self.get_id(path) is not None
