from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="hirelane-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["APP_ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ENFORCE_STATE_TRANSITIONS"] = "false"

import pytest
from fastapi.testclient import TestClient

from hirelane.api.app import create_app
from hirelane.api.deps import get_storage
from hirelane.core.auth import issue_token
from hirelane.core.errors import UpstreamFailureError
from hirelane.db.base import Base
from hirelane.db.repositories import Repository
from hirelane.db.session import SessionLocal, engine
from hirelane.types import StoredDocument


class FakeStorage:
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_upload: UpstreamFailureError | None = None
        self.fail_delete = False
        self.fail_resolve = False
        self._counter = 0

    def upload(self, data: bytes, filename: str, *, mime_type: str | None = None) -> StoredDocument:
        if self.fail_upload is not None:
            raise self.fail_upload
        self._counter += 1
        provider_id = f"file-{self._counter}"
        self.blobs[provider_id] = data
        return StoredDocument(provider_id=provider_id, url=f"https://files.test/{provider_id}", filename=filename)

    def resolve_download_url(self, provider_id: str) -> str | None:
        if self.fail_resolve or provider_id not in self.blobs:
            return None
        return f"https://files.test/{provider_id}?fresh=1"

    def delete(self, provider_id: str) -> bool:
        if not provider_id:
            return True
        if self.fail_delete:
            return False
        self.blobs.pop(provider_id, None)
        self.deleted.append(provider_id)
        return True


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def client(storage: FakeStorage) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_storage] = lambda: storage
    return TestClient(app)


@pytest.fixture
def make_user():
    def _make_user(email: str, *, name: str = "", surname: str = "", role: str = "candidate") -> dict:
        with SessionLocal() as db:
            user = Repository(db).create_user(name=name, surname=surname, email=email, role=role)
            return {
                "id": user.id,
                "headers": {"Authorization": f"Bearer {issue_token(user.id, 'test-secret')}"},
            }

    return _make_user


@pytest.fixture
def make_posting():
    def _make_posting(title: str = "Backend Engineer", *, status: str = "open", **fields) -> int:
        with SessionLocal() as db:
            return Repository(db).create_job_posting(title=title, status=status, **fields).id

    return _make_posting
