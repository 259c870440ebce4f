import itertools
import json

import httpx
import pytest

from linkshelf import create_workspace
from linkshelf.auth import AuthSession, static_token
from linkshelf.config import TestConfig
from linkshelf.services.coordinator import SyncCoordinator
from linkshelf.services.local_store import LocalBlob, LocalStore
from linkshelf.services.remote_store import RemoteStore
from linkshelf.services.stores import StoreResolver


API_URL = TestConfig.API_BASE_URL


class FakeRemote:
    """In-memory stand-in for the bookmark service, served through MockTransport."""

    def __init__(self):
        self.bookmarks = []
        self.folders = []
        self.tags = []
        self.requests = []
        self.failures = {}
        self._ids = itertools.count(1)

    def fail(self, method, path, status=500, message="boom"):
        self.failures[(method, path)] = (status, message)

    def transport(self):
        return httpx.MockTransport(self.handler)

    def seed_bookmark(self, url, title, **extra):
        row = self._bookmark_row({"url": url, "title": title, **extra})
        self.bookmarks.append(row)
        return row

    def seed_folder(self, name, **extra):
        row = {"id": self._next_id("f"), "name": name, "sortOrder": len(self.folders), **extra}
        self.folders.append(row)
        return row

    def paths(self, method=None):
        return [path for m, path in self.requests if method is None or m == method]

    def _next_id(self, prefix):
        return f"{prefix}{next(self._ids)}"

    def _find(self, rows, row_id):
        return next((row for row in rows if row["id"] == row_id), None)

    def _tags_for(self, names):
        result = []
        for name in names or []:
            tag = next((t for t in self.tags if t["name"].lower() == name.lower()), None)
            if tag is None:
                tag = {"id": self._next_id("t"), "name": name, "color": None}
                self.tags.append(tag)
            result.append(dict(tag))
        return result

    def _folder_name(self, folder_id):
        folder = self._find(self.folders, folder_id) if folder_id else None
        return folder["name"] if folder else None

    def _bookmark_row(self, body):
        return {
            "id": self._next_id("b"),
            "url": body["url"],
            "title": body["title"],
            "description": body.get("description"),
            "favicon": body.get("favicon"),
            "isFavorite": bool(body.get("isFavorite")),
            "clickCount": 0,
            "sortOrder": len(self.bookmarks),
            "folderId": body.get("folderId"),
            "folderName": self._folder_name(body.get("folderId")),
            "tags": self._tags_for(body.get("tags")),
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-01-01T00:00:00Z",
        }

    def handler(self, request):
        path = request.url.path[len("/api"):]
        method = request.method
        self.requests.append((method, path))
        if not request.headers.get("authorization", "").startswith("Bearer "):
            return httpx.Response(401, json={"message": "Not authenticated"})
        if (method, path) in self.failures:
            status, message = self.failures[(method, path)]
            return httpx.Response(status, json={"message": message})

        body = json.loads(request.content) if request.content else None
        parts = path.strip("/").split("/")
        resource = parts[0]
        if resource == "bookmarks":
            return self._bookmarks(request, method, parts[1:], body)
        if resource == "folders":
            return self._folders(method, parts[1:], body)
        if resource == "tags":
            return self._tags(method, parts[1:], body)
        return httpx.Response(404, json={"message": "Unknown route"})

    def _bookmarks(self, request, method, rest, body):
        if not rest:
            if method == "GET":
                return httpx.Response(200, json=self.bookmarks)
            row = self._bookmark_row(body)
            self.bookmarks.append(row)
            return httpx.Response(201, json=row)

        action = rest[0]
        if action == "check-duplicate":
            url = request.url.params.get("url")
            return httpx.Response(
                200, json={"isDuplicate": any(b["url"] == url for b in self.bookmarks)}
            )
        if action == "export":
            return httpx.Response(
                200,
                json={
                    "bookmarks": self.bookmarks,
                    "folders": self.folders,
                    "tags": self.tags,
                    "exportedAt": "2024-01-01T00:00:00Z",
                },
            )
        if action == "reorder":
            for item in body["items"]:
                row = self._find(self.bookmarks, item["id"])
                if row:
                    row["sortOrder"] = item["sortOrder"]
            return httpx.Response(200, json={"success": True})
        if action == "import":
            known = {b["url"] for b in self.bookmarks}
            created = []
            for entry in body["bookmarks"]:
                if entry["url"] in known:
                    continue
                known.add(entry["url"])
                row = self._bookmark_row(entry)
                self.bookmarks.append(row)
                created.append(row)
            return httpx.Response(200, json=created)

        row = self._find(self.bookmarks, action)
        if row is None:
            return httpx.Response(404, json={"message": "Bookmark not found"})
        if len(rest) == 2 and rest[1] == "click":
            row["clickCount"] += 1
            return httpx.Response(204)
        if method == "DELETE":
            self.bookmarks.remove(row)
            return httpx.Response(204)
        for key, value in body.items():
            if key == "tags":
                row["tags"] = self._tags_for(value)
            elif key == "folderId":
                row["folderId"] = value
                row["folderName"] = self._folder_name(value)
            else:
                row[key] = value
        return httpx.Response(200, json=row)

    def _folders(self, method, rest, body):
        if not rest:
            if method == "GET":
                return httpx.Response(200, json=self.folders)
            row = {"id": self._next_id("f"), "sortOrder": len(self.folders), **body}
            self.folders.append(row)
            return httpx.Response(201, json=row)
        if rest[0] == "reorder":
            for item in body["items"]:
                row = self._find(self.folders, item["id"])
                if row:
                    row["sortOrder"] = item["sortOrder"]
            return httpx.Response(200, json={"success": True})

        row = self._find(self.folders, rest[0])
        if row is None:
            return httpx.Response(404, json={"message": "Folder not found"})
        if method == "DELETE":
            self.folders.remove(row)
            for bookmark in self.bookmarks:
                if bookmark["folderId"] == row["id"]:
                    bookmark["folderId"] = None
                    bookmark["folderName"] = None
            return httpx.Response(204)
        row.update(body)
        return httpx.Response(200, json=row)

    def _tags(self, method, rest, body):
        if not rest:
            if method == "GET":
                return httpx.Response(200, json=self.tags)
            if any(t["name"].lower() == body["name"].lower() for t in self.tags):
                return httpx.Response(409, json={"message": "Tag already exists"})
            row = {"id": self._next_id("t"), "color": None, **body}
            self.tags.append(row)
            return httpx.Response(201, json=row)

        row = self._find(self.tags, rest[0])
        if row is None:
            return httpx.Response(404, json={"message": "Tag not found"})
        if method == "DELETE":
            self.tags.remove(row)
            for bookmark in self.bookmarks:
                bookmark["tags"] = [t for t in bookmark["tags"] if t["id"] != row["id"]]
            return httpx.Response(204)
        name = body.get("name")
        if name and any(
            t["name"].lower() == name.lower() and t["id"] != row["id"] for t in self.tags
        ):
            return httpx.Response(409, json={"message": "Tag already exists"})
        row.update(body)
        return httpx.Response(200, json=row)


@pytest.fixture
def config(tmp_path):
    return type("PytestConfig", (TestConfig,), {"LOCAL_STORE_DIR": tmp_path})


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def local_store(tmp_path):
    return LocalStore(LocalBlob(tmp_path, TestConfig.LOCAL_STORE_KEY))


@pytest.fixture
def remote_store(remote):
    return RemoteStore(API_URL, static_token("secret"), transport=remote.transport())


@pytest.fixture
def local_coordinator(local_store, remote_store):
    resolver = StoreResolver(AuthSession(), local_store, remote_store)
    return SyncCoordinator(resolver)


@pytest.fixture
def remote_coordinator(local_store, remote_store):
    resolver = StoreResolver(AuthSession(static_token("secret")), local_store, remote_store)
    return SyncCoordinator(resolver)


@pytest.fixture
def workspace(config, remote):
    return create_workspace(config, transport=remote.transport())
