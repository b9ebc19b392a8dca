# Filename: thecrew/storage.py
"""Object storage on the local filesystem with presigned-style upload URLs.

Clients never stream file bytes through the JSON API. They ask for an upload
URL, ``PUT`` the bytes to it once, and then record the file's metadata
against the returned ``objectPath``.
"""
from pathlib import Path
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Optional
from uuid import uuid4
import re
import time

import aiofiles
from jose import jwt, JWTError

from .config import settings
from .exceptions import NotAuthenticated, PayloadTooLarge, NotFound
from .logging_config import get_logger

logger = get_logger(__name__)

_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")
UPLOAD_TOKEN_TYPE = "upload"


def sanitize_name(name: str) -> str:
    cleaned = _UNSAFE.sub("_", name.strip()) or "file"
    # no hidden files / relative segments
    return cleaned.lstrip(".") or "file"


def make_object_key(owner_id: str, original_filename: str) -> str:
    millis = int(time.time() * 1000)
    return f"{sanitize_name(owner_id)}/{millis}-{uuid4().hex[:8]}-{sanitize_name(original_filename)}"


class ObjectStore:
    """Stores objects under ``root`` and serves them from ``public_base_url``."""

    def __init__(self, root: Path, public_base_url: str, secret_key: str, algorithm: str = "HS256"):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.root.mkdir(parents=True, exist_ok=True)

    # --- URLs ---

    def object_url(self, key: str) -> str:
        return f"{self.public_base_url}/objects/{key}"

    def upload_url(self, token: str) -> str:
        return f"{self.public_base_url}/api/uploads/{token}"

    def key_from_url(self, url: Optional[str]) -> Optional[str]:
        prefix = f"{self.public_base_url}/objects/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None

    # --- upload tokens ---

    def create_upload_token(self, grant_id: str, expires_at: datetime) -> str:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        payload = {"sub": grant_id, "exp": int(expires_at.timestamp()), "typ": UPLOAD_TOKEN_TYPE}
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def read_upload_token(self, token: str) -> str:
        """Return the grant id named by ``token``; expired or forged tokens raise."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError:
            raise NotAuthenticated("Upload URL is invalid or has expired")
        if payload.get("typ") != UPLOAD_TOKEN_TYPE or not payload.get("sub"):
            raise NotAuthenticated("Upload URL is invalid or has expired")
        return payload["sub"]

    # --- objects ---

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise NotFound("Object not found")
        return path

    def exists(self, key: str) -> bool:
        try:
            return self.path_for(key).is_file()
        except NotFound:
            return False

    async def write_stream(self, key: str, chunks: AsyncIterator[bytes], max_bytes: int) -> int:
        """Write ``chunks`` to ``key``; returns the size. Removes the partial object past ``max_bytes``."""
        dest_path = self.path_for(key)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        size = 0
        async with aiofiles.open(dest_path, "wb") as out_file:
            async for chunk in chunks:
                size += len(chunk)
                if size > max_bytes:
                    break
                await out_file.write(chunk)
        if size > max_bytes:
            dest_path.unlink(missing_ok=True)
            raise PayloadTooLarge()
        return size

    async def put_bytes(self, key: str, data: bytes) -> int:
        dest_path = self.path_for(key)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(dest_path, "wb") as out_file:
            await out_file.write(data)
        return len(data)

    def delete(self, key: str) -> bool:
        """Best-effort removal; a failure is logged and leaves the object behind."""
        try:
            path = self.path_for(key)
            if path.exists():
                path.unlink()
                return True
        except (OSError, NotFound) as exc:
            logger.warning("object_delete_failed", key=key, error=str(exc))
        return False

    def delete_url(self, url: str) -> bool:
        key = self.key_from_url(url)
        return self.delete(key) if key else False


def upload_expiry(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(seconds=settings.upload_url_expire_seconds)


def create_object_store() -> ObjectStore:
    return ObjectStore(
        root=settings.storage_path / "objects",
        public_base_url=settings.public_base_url,
        secret_key=settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
