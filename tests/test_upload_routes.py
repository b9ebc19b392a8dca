"""Tests for presigned-style uploads and object reads."""

from datetime import timedelta

from sqlmodel import select

from conftest import create_folder, register
from thecrew.models import UploadGrant, utcnow


def request_url(client, name="clip.mp4", size=None, content_type="video/mp4"):
    payload = {"name": name, "contentType": content_type}
    if size is not None:
        payload["size"] = size
    response = client.post("/api/uploads/request-url", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


class TestRequestUrl:
    def test_issues_url(self, client):
        user = register(client, "alice@crew.io")

        issued = request_url(client, "my clip.mp4")

        assert issued["uploadURL"].startswith("http://testserver/api/uploads/")
        assert issued["objectKey"].startswith(f"{user['id']}/")
        assert issued["objectKey"].endswith("-my_clip.mp4")
        assert issued["objectPath"] == f"http://testserver/objects/{issued['objectKey']}"

    def test_requires_login(self, client):
        response = client.post("/api/uploads/request-url", json={"name": "clip.mp4"})

        assert response.status_code == 401

    def test_requires_name(self, client):
        register(client, "alice@crew.io")

        response = client.post("/api/uploads/request-url", json={"name": " "})

        assert response.status_code == 400


class TestUpload:
    def test_put_then_read(self, client, store):
        register(client, "alice@crew.io")
        issued = request_url(client)

        put = client.put(issued["uploadURL"], content=b"video-bytes")
        got = client.get(issued["objectPath"])

        assert put.status_code == 200
        assert put.json() == {"objectKey": issued["objectKey"], "objectPath": issued["objectPath"], "size": 11}
        assert got.status_code == 200
        assert got.content == b"video-bytes"
        assert got.headers["content-type"].startswith("video/mp4")

    def test_url_is_single_use(self, client):
        register(client, "alice@crew.io")
        issued = request_url(client)
        client.put(issued["uploadURL"], content=b"first")

        second = client.put(issued["uploadURL"], content=b"second")

        assert second.status_code == 409
        assert second.json()["message"] == "Upload URL has already been used"
        assert client.get(issued["objectPath"]).content == b"first"

    def test_expired_grant(self, client, session):
        register(client, "alice@crew.io")
        issued = request_url(client)
        row = session.exec(select(UploadGrant).where(UploadGrant.object_key == issued["objectKey"])).one()
        row.expires_at = utcnow() - timedelta(minutes=1)
        session.add(row)
        session.commit()

        response = client.put(issued["uploadURL"], content=b"late")

        assert response.status_code == 401
        assert response.json()["code"] == "not_authenticated"

    def test_forged_token(self, client):
        response = client.put("/api/uploads/not-a-token", content=b"x")

        assert response.status_code == 401

    def test_declared_size_is_enforced(self, client, store):
        register(client, "alice@crew.io")
        issued = request_url(client, size=4)

        response = client.put(issued["uploadURL"], content=b"more than four")

        assert response.status_code == 413
        assert not store.exists(issued["objectKey"])

    def test_upload_then_record(self, admin):
        c, _, workspace = admin
        raw = create_folder(c, workspace["id"], "Raw")
        issued = request_url(c)
        c.put(issued["uploadURL"], content=b"video")

        recorded = c.post(f"/api/workspaces/{workspace['id']}/files", json={
            "name": "clip.mp4", "type": "video/mp4", "objectPath": issued["objectPath"],
            "folderId": raw["id"], "size": 5,
        })

        assert recorded.status_code == 201
        assert c.get(recorded.json()["objectPath"]).content == b"video"


class TestObjects:
    def test_missing_object(self, client):
        assert client.get("/objects/u/nothing.bin").status_code == 404

    def test_guesses_type_without_grant(self, client, store):
        store.path_for("u/notes.txt").parent.mkdir(parents=True, exist_ok=True)
        store.path_for("u/notes.txt").write_bytes(b"hello")

        response = client.get("/objects/u/notes.txt")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
