"""Shared fixtures: in-memory database, local object store and a fake briefing client."""

import os
import tempfile

os.environ.setdefault("THECREW_SECRET_KEY", "test-secret-key")
os.environ.setdefault("THECREW_DATABASE_URL", "sqlite://")
os.environ.setdefault("THECREW_STORAGE_PATH", tempfile.mkdtemp(prefix="thecrew-"))

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from thecrew import models  # noqa: F401
from thecrew.db import get_session, make_engine
from thecrew.dependencies import get_briefing_client, get_object_store
from thecrew.main import app
from thecrew.storage import ObjectStore

BASE_URL = "http://testserver"
PASSWORD = "secret123"


class FakeBriefingClient:
    """Stands in for the language model and summary service; records every call."""

    def __init__(self):
        self.summaries = [{"body": {"summary": "Two clips of a product demo."}}]
        self.chat_replies = [
            {"message": "Who is the video for?", "currentLayer": 1, "options": [], "isComplete": False}
        ]
        self.generated = ["# Final brief"]
        self.summarize_calls = []
        self.chat_calls = []
        self.prompts = []

    def summarize(self, files):
        self.summarize_calls.append(files)
        return self.summaries[min(len(self.summarize_calls), len(self.summaries)) - 1]

    def chat(self, summary, answers, history):
        self.chat_calls.append((summary, answers, list(history)))
        return self.chat_replies[min(len(self.chat_calls), len(self.chat_replies)) - 1]

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.generated[min(len(self.prompts), len(self.generated)) - 1]

    def close(self):
        pass


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(tmp_path):
    return ObjectStore(tmp_path / "objects", BASE_URL, "test-secret-key")


@pytest.fixture
def briefing():
    return FakeBriefingClient()


@pytest.fixture
def make_client(engine, store, briefing):
    """Return a factory of clients; each keeps its own session cookie."""

    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_briefing_client] = lambda: briefing

    def _make(**kwargs):
        return TestClient(app, base_url=BASE_URL, **kwargs)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


def register(client, email, password=PASSWORD):
    response = client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def create_workspace(client, name="Launch"):
    response = client.post("/api/workspaces", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


def create_folder(client, workspace_id, name, parent_id=None):
    response = client.post(
        f"/api/workspaces/{workspace_id}/folders",
        json={"name": name, "parentId": parent_id},
    )
    assert response.status_code == 201, response.text
    return response.json()


def add_member(client, workspace_id, email, role="member", password=PASSWORD):
    response = client.post(
        f"/api/workspaces/{workspace_id}/members",
        json={"email": email, "password": password, "role": role},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def admin(make_client):
    """A registered admin client with one workspace: ``(client, user, workspace)``."""
    c = make_client()
    user = register(c, "alice@crew.io")
    workspace = create_workspace(c)
    return c, user, workspace


@pytest.fixture
def member_client(make_client, admin):
    c, _, workspace = admin
    add_member(c, workspace["id"], "bob@crew.io", "member")
    bob = make_client()
    response = bob.post("/api/auth/login", json={"email": "bob@crew.io", "password": PASSWORD})
    assert response.status_code == 200, response.text
    return bob


@pytest.fixture
def viewer_client(make_client, admin):
    c, _, workspace = admin
    add_member(c, workspace["id"], "eve@crew.io", "viewer")
    eve = make_client()
    response = eve.post("/api/auth/login", json={"email": "eve@crew.io", "password": PASSWORD})
    assert response.status_code == 200, response.text
    return eve
