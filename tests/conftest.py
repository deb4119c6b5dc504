import os

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import settings
from database import Database, create_document
from main import create_app
from media import remove_local_file
from schemas import User, Video
from security import TokenService


class FakeMedia:
    """Stands in for the media host: records uploads and drops staged files."""

    def __init__(self):
        self.uploaded = []
        self.destroyed = []
        self.fail = False
        self._counter = 0

    def upload(self, local_path, resource_type="auto"):
        if not local_path:
            return None
        try:
            if self.fail:
                return None
            self._counter += 1
            public_id = f"{resource_type}-{self._counter}"
            self.uploaded.append((os.path.basename(local_path), resource_type))
            result = {
                "url": f"http://media.test/{public_id}",
                "secure_url": f"https://media.test/{public_id}",
                "public_id": public_id,
            }
            if resource_type == "video":
                result["duration"] = 12.5
            return result
        finally:
            remove_local_file(local_path)

    def destroy(self, public_id, resource_type="image"):
        if not public_id:
            return None
        self.destroyed.append(public_id)
        return {"result": "ok"}


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture
def database():
    return Database(client=mongomock.MongoClient(), name="videotube_test")


@pytest.fixture
def media():
    return FakeMedia()


@pytest.fixture
def tokens():
    return TokenService(access_secret="test-access", refresh_secret="test-refresh")


@pytest.fixture
def client(database, media, tokens):
    app = create_app(database=database, media=media, tokens=tokens)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(database, tokens):
    """Insert a user directly and return (document, auth headers)."""

    def _make(username, password_hash="not-a-real-hash"):
        user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=username.title(),
            password=password_hash,
            avatar=f"https://media.test/{username}.png",
        )
        doc = create_document(database, "users", user)
        headers = {"Authorization": f"Bearer {tokens.issue_access_token(doc)}"}
        return doc, headers

    return _make


@pytest.fixture
def make_video(database):
    def _make(owner, title="Video", views=0, is_published=True, description="About it"):
        video = Video(
            video_file="https://media.test/v.mp4",
            thumbnail="https://media.test/t.png",
            title=title,
            description=description,
            duration=10,
            views=views,
            is_published=is_published,
            owner=owner["_id"],
        )
        return create_document(database, "videos", video)

    return _make
