"""Tests for the local object store and upload tokens."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from thecrew.exceptions import NotAuthenticated, NotFound, PayloadTooLarge
from thecrew.storage import ObjectStore, make_object_key, sanitize_name


async def chunks(*parts):
    for part in parts:
        yield part


class TestKeys:
    def test_sanitize_name(self):
        assert sanitize_name("my clip (1).mp4") == "my_clip__1_.mp4"
        assert sanitize_name("../../etc/passwd") == "_.._etc_passwd"
        assert sanitize_name("   ") == "file"

    def test_object_key_layout(self):
        key = make_object_key("user-1", "clip.mp4")

        owner, name = key.split("/")
        millis, suffix, filename = name.split("-", 2)
        assert owner == "user-1"
        assert millis.isdigit()
        assert len(suffix) == 8
        assert filename == "clip.mp4"

    def test_object_keys_are_unique(self):
        assert make_object_key("u", "a.txt") != make_object_key("u", "a.txt")


class TestUrls:
    def test_object_url_round_trip(self, store):
        url = store.object_url("u/1-abc-clip.mp4")

        assert url == "http://testserver/objects/u/1-abc-clip.mp4"
        assert store.key_from_url(url) == "u/1-abc-clip.mp4"

    def test_foreign_url_has_no_key(self, store):
        assert store.key_from_url("https://elsewhere.net/objects/x") is None


class TestUploadTokens:
    def test_round_trip(self, store):
        expires = datetime.now(timezone.utc) + timedelta(minutes=5)

        token = store.create_upload_token("grant-1", expires)

        assert store.read_upload_token(token) == "grant-1"

    def test_expired(self, store):
        expires = datetime.now(timezone.utc) - timedelta(minutes=5)
        token = store.create_upload_token("grant-1", expires)

        with pytest.raises(NotAuthenticated):
            store.read_upload_token(token)

    def test_forged(self, store, tmp_path):
        other = ObjectStore(tmp_path / "other", "http://testserver", "another-secret")
        token = other.create_upload_token("grant-1", datetime.now(timezone.utc) + timedelta(minutes=5))

        with pytest.raises(NotAuthenticated):
            store.read_upload_token(token)

    def test_garbage(self, store):
        with pytest.raises(NotAuthenticated):
            store.read_upload_token("not-a-token")


class TestObjects:
    def test_path_traversal_rejected(self, store):
        with pytest.raises(NotFound):
            store.path_for("../outside.txt")
        assert store.exists("../outside.txt") is False

    def test_write_stream(self, store):
        size = asyncio.run(store.write_stream("u/clip.bin", chunks(b"abc", b"def"), max_bytes=10))

        assert size == 6
        assert store.path_for("u/clip.bin").read_bytes() == b"abcdef"

    def test_write_stream_over_limit_removes_partial(self, store):
        with pytest.raises(PayloadTooLarge):
            asyncio.run(store.write_stream("u/big.bin", chunks(b"abc", b"def"), max_bytes=4))

        assert not store.exists("u/big.bin")

    def test_put_bytes_and_delete(self, store):
        asyncio.run(store.put_bytes("u/notes.txt", b"hello"))

        assert store.exists("u/notes.txt")
        assert store.delete_url(store.object_url("u/notes.txt")) is True
        assert not store.exists("u/notes.txt")

    def test_delete_missing_is_quiet(self, store):
        assert store.delete("u/never.txt") is False
        assert store.delete_url("https://elsewhere.net/x") is False
