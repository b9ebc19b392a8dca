# Filename: thecrew/routers/uploads.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool
from sqlmodel import Session, select
import mimetypes

from ..auth import get_current_user
from ..config import settings
from ..db import get_session
from ..dependencies import get_object_store
from ..exceptions import Conflict, NotAuthenticated, NotFound, ValidationFailed
from ..logging_config import get_logger
from ..models import UploadGrant, User, as_utc, utcnow
from ..schemas import StoredObjectOut, UploadUrlOut, UploadUrlRequest
from ..storage import ObjectStore, make_object_key, upload_expiry

router = APIRouter(tags=["uploads"])
logger = get_logger(__name__)


@router.post("/api/uploads/request-url", response_model=UploadUrlOut)
def request_upload_url(
    data: UploadUrlRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
):
    """Issue a single-use, time-limited URL the client PUTs the file bytes to."""
    if not data.name or not data.name.strip():
        raise ValidationFailed("Missing required field: name")
    if data.size is not None and data.size < 0:
        raise ValidationFailed("Size must not be negative")

    grant = UploadGrant(
        object_key=make_object_key(current_user.id, data.name),
        content_type=data.content_type or "application/octet-stream",
        size=data.size,
        created_by=current_user.id,
        expires_at=upload_expiry(),
    )
    session.add(grant)
    session.commit()
    session.refresh(grant)
    logger.info("upload_url_issued", user_id=current_user.id, object_key=grant.object_key)
    return UploadUrlOut(
        uploadURL=store.upload_url(store.create_upload_token(grant.id, grant.expires_at)),
        objectPath=store.object_url(grant.object_key),
        objectKey=grant.object_key,
        expiresAt=grant.expires_at,
    )


def claim_grant(session: Session, store: ObjectStore, token: str) -> UploadGrant:
    """Resolve ``token`` to a live grant and burn it so a retry cannot overwrite the object."""
    grant = session.get(UploadGrant, store.read_upload_token(token))
    if grant is None or as_utc(grant.expires_at) < utcnow():
        raise NotAuthenticated("Upload URL is invalid or has expired")
    if grant.consumed_at is not None:
        raise Conflict("Upload URL has already been used")
    grant.consumed_at = utcnow()
    session.add(grant)
    session.commit()
    session.refresh(grant)
    return grant


@router.put("/api/uploads/{token}", response_model=StoredObjectOut)
async def upload_object(
    token: str,
    request: Request,
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
):
    # database work stays off the event loop
    grant = await run_in_threadpool(claim_grant, session, store, token)

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if grant.size is not None:
        max_bytes = min(max_bytes, grant.size)
    size = await store.write_stream(grant.object_key, request.stream(), max_bytes)
    logger.info("object_uploaded", object_key=grant.object_key, size=size)
    return StoredObjectOut(objectKey=grant.object_key, objectPath=store.object_url(grant.object_key), size=size)


@router.get("/objects/{key:path}")
def read_object(key: str, session: Session = Depends(get_session), store: ObjectStore = Depends(get_object_store)):
    if not store.exists(key):
        raise NotFound("Object not found")
    grant = session.exec(select(UploadGrant).where(UploadGrant.object_key == key)).first()
    media_type = grant.content_type if grant else mimetypes.guess_type(key)[0] or "application/octet-stream"
    return FileResponse(store.path_for(key), media_type=media_type)
