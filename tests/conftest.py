"""
Shared pytest fixtures for simple_gdrive tests.

FakeDriveClient stands in for GoogleDriveClient. It keeps a small in-memory
Drive and evaluates the query strings produced by QueryBuilder, so resolver
tests exercise real query text rather than canned responses.
"""

import itertools
import re
import threading
from collections import Counter
from collections.abc import Generator
from pathlib import Path

import pytest

from simple_gdrive.errors import ResourceNotFoundError
from simple_gdrive.mime import FOLDER_MIME
from simple_gdrive.path_cache import PathCache
from simple_gdrive.resource import DriveResource
from simple_gdrive.service import GoogleDriveService

# Drive reports the real id of "My Drive" in parents, never the "root" alias
ROOT_ID = "0AROOT"


def _alias(file_id):
    return ROOT_ID if file_id == "root" else file_id


_TOKEN_RE = re.compile(r"\s*(?:(?P<string>'(?:[^'\\]|\\.)*')|(?P<op>!=|=|\(|\)|\{|\})|(?P<word>\w+))")


def _tokenize(query: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    query = query.rstrip()
    while pos < len(query):
        match = _TOKEN_RE.match(query, pos)
        if match is None:
            raise ValueError(f"Malformed query at {pos}: {query!r}")
        pos = match.end()
        if match.group("string") is not None:
            tokens.append(("string", re.sub(r"\\(.)", r"\1", match.group("string")[1:-1])))
        elif match.group("op") is not None:
            tokens.append(("op", match.group("op")))
        else:
            tokens.append(("word", match.group("word")))
    return tokens


class _QueryParser:
    """Recursive-descent parser for the subset of the Drive query language we emit."""

    def __init__(self, query: str):
        self.tokens = _tokenize(query)
        self.pos = 0

    def parse(self):
        predicate = self._or()
        if self.pos != len(self.tokens):
            raise ValueError(f"Unexpected token {self.tokens[self.pos]!r}")
        return predicate

    def _peek(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else (None, None)

    def _take(self, kind=None, value=None):
        token = self._peek()
        if token[0] is None or (kind and token[0] != kind) or (value and token[1] != value):
            raise ValueError(f"Expected {value or kind}, got {token!r}")
        self.pos += 1
        return token[1]

    def _or(self):
        left = self._and()
        while self._peek() == ("word", "or"):
            self._take()
            right = self._and()
            left = (lambda a, b: lambda f: a(f) or b(f))(left, right)
        return left

    def _and(self):
        left = self._unary()
        while self._peek() == ("word", "and"):
            self._take()
            right = self._unary()
            left = (lambda a, b: lambda f: a(f) and b(f))(left, right)
        return left

    def _unary(self):
        if self._peek() == ("word", "not"):
            self._take()
            inner = self._unary()
            return lambda f: not inner(f)
        if self._peek() == ("op", "("):
            self._take()
            inner = self._or()
            self._take("op", ")")
            return inner
        return self._predicate()

    def _predicate(self):
        kind, value = self._peek()
        if kind == "string":
            self._take()
            self._take("word", "in")
            collection = self._take("word")
            if collection not in ("parents", "owners"):
                raise ValueError(f"Unknown collection {collection}")
            if collection == "parents":
                value = _alias(value)
            return lambda f: value in f[collection]

        field = self._take("word")
        if field == "properties":
            self._take("word", "has")
            self._take("op", "{")
            self._take("word", "key")
            self._take("op", "=")
            key = self._take("string")
            self._take("word", "and")
            self._take("word", "value")
            self._take("op", "=")
            expected = self._take("string")
            self._take("op", "}")
            return lambda f: f["properties"].get(key) == expected

        if field == "trashed":
            self._take("op", "=")
            flag = self._take("word") == "true"
            return lambda f: f["trashed"] == flag

        if field not in ("name", "mimeType"):
            raise ValueError(f"Unknown field {field}")
        op = self._take()
        operand = self._take("string")
        if op == "=":
            return lambda f: f[field] == operand
        if op == "!=":
            return lambda f: f[field] != operand
        if op == "contains":
            return lambda f: operand in f[field]
        raise ValueError(f"Unknown operator {op}")


class FakeDriveClient:
    """In-memory GoogleDriveClient double. ``calls`` counts remote operations by name."""

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.files: dict[str, dict] = {}
        self.content: dict[str, bytes] = {}
        self.calls: Counter = Counter()
        self.queries: list[str] = []
        self._ids = itertools.count(1)
        self._clock = itertools.count()
        self._lock = threading.Lock()
        self.connected = False
        self.root_id = ROOT_ID
        self.root = {
            "id": ROOT_ID,
            "name": "My Drive",
            "mimeType": FOLDER_MIME,
            "parents": [],
            "trashed": False,
        }

    # Test helpers

    def add(
        self,
        name,
        mime_type="text/plain",
        parent="root",
        size=None,
        trashed=False,
        properties=None,
        content=b"",
        owners=("me@example.com",),
    ) -> str:
        file_id = f"id{next(self._ids)}"
        self.files[file_id] = {
            "id": file_id,
            "name": name,
            "mimeType": mime_type,
            "parents": [_alias(parent)] if parent else [],
            "size": str(size if size is not None else len(content)),
            "trashed": trashed,
            "properties": dict(properties or {}),
            "owners": list(owners),
            "createdTime": next(self._clock),
        }
        self.content[file_id] = content
        return file_id

    def add_folder(self, name, parent="root", trashed=False) -> str:
        return self.add(name, FOLDER_MIME, parent=parent, trashed=trashed)

    def reset_calls(self):
        self.calls.clear()
        self.queries.clear()

    def _record(self, operation):
        with self._lock:
            self.calls[operation] += 1

    def _resource(self, file_id) -> DriveResource:
        return DriveResource.from_metadata(self.files[file_id])

    # GoogleDriveClient surface

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.connected = False

    def get(self, file_id, token=None):
        self._record("get")
        if _alias(file_id) == ROOT_ID:
            return DriveResource.from_metadata(self.root)
        if file_id not in self.files:
            raise ResourceNotFoundError(file_id)
        return self._resource(file_id)

    def list_files(self, query, page_token=None, order_by=None, token=None):
        self._record("list")
        with self._lock:
            self.queries.append(query)
        predicate = _QueryParser(query).parse()
        matches = [f for f in self.files.values() if predicate(f)]
        if order_by == "createdTime":
            matches.sort(key=lambda f: f["createdTime"])

        start = int(page_token or 0)
        page = matches[start : start + self.page_size]
        next_token = str(start + self.page_size) if start + self.page_size < len(matches) else None
        return [DriveResource.from_metadata(f) for f in page], next_token

    def create(self, metadata, token=None):
        self._record("create")
        file_id = self.add(
            metadata["name"],
            metadata.get("mimeType", "application/octet-stream"),
            parent=(metadata.get("parents") or ["root"])[0],
            properties=metadata.get("properties"),
        )
        return self._resource(file_id)

    def create_with_content(self, metadata, stream, content_type, on_progress=None, on_failure=None, token=None):
        self._record("create")
        data = stream.read()
        file_id = self.add(
            metadata["name"],
            content_type,
            parent=(metadata.get("parents") or ["root"])[0],
            properties=metadata.get("properties"),
            content=data,
        )
        if on_progress is not None:
            on_progress(len(data), len(data))
        return self._resource(file_id)

    def update(self, file_id, metadata, token=None):
        self._record("update")
        if file_id not in self.files:
            raise ResourceNotFoundError(file_id)
        meta = self.files[file_id]
        meta["name"] = metadata.get("name", meta["name"])
        meta["properties"] = dict(metadata.get("properties") or {})
        return self._resource(file_id)

    def update_with_content(
        self, file_id, metadata, stream, content_type, on_progress=None, on_failure=None, token=None
    ):
        resource = self.update(file_id, metadata, token=token)
        self.content[file_id] = stream.read()
        self.files[file_id]["size"] = str(len(self.content[file_id]))
        return resource

    def copy(self, file_id, metadata, token=None):
        self._record("copy")
        source = self.files[file_id]
        new_id = self.add(
            metadata.get("name", source["name"]),
            source["mimeType"],
            parent=metadata["parents"][0],
            properties=source["properties"],
            content=self.content[file_id],
        )
        return self._resource(new_id)

    def delete(self, file_id, token=None):
        self._record("delete")
        if file_id not in self.files:
            raise ResourceNotFoundError(file_id)
        children = [f["id"] for f in self.files.values() if file_id in f["parents"]]
        del self.files[file_id]
        for child in children:
            self.delete(child)

    def download(self, file_id, stream, on_progress=None, on_failure=None, total_size=None, token=None):
        self._record("download")
        data = self.content[file_id]
        stream.write(data)
        if on_progress is not None:
            on_progress(len(data), total_size)

    def export(self, file_id, mime_type, stream, on_progress=None, on_failure=None, token=None):
        self._record("export")
        stream.write(f"{self.files[file_id]['name']} as {mime_type}".encode())


@pytest.fixture
def fake_client() -> FakeDriveClient:
    return FakeDriveClient()


@pytest.fixture
def service(fake_client: FakeDriveClient) -> GoogleDriveService:
    """A GoogleDriveService over an empty in-memory drive."""
    return GoogleDriveService(fake_client, PathCache())


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[gdrive]
token_file = /tmp/token.json
root_folder_id = folder123

[cache]
persistent = true
path = /tmp/cache.json

[connection]
timeout_seconds = 45
retry_attempts = 3
retry_delay_seconds = 0.5
page_size = 200

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path
