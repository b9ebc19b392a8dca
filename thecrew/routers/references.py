# Filename: thecrew/routers/references.py
"""Reference library: videos the team wants the edit to look and feel like."""
from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select
from typing import List

from ..auth import get_current_user
from ..db import get_session
from ..exceptions import ValidationFailed
from ..logging_config import get_logger
from ..models import Reference, User
from ..permissions import Action, authorize
from ..schemas import ReferenceCreate, ReferenceOut, SuccessOut

router = APIRouter(prefix="/api/workspaces/{workspace_id}/references", tags=["references"])
logger = get_logger(__name__)


@router.get("", response_model=List[ReferenceOut])
def list_references(workspace_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    """Newest first."""
    authorize(session, workspace_id, current_user.id)
    statement = (
        select(Reference)
        .where(Reference.workspace_id == workspace_id)
        .order_by(Reference.created_at.desc())
    )
    return session.exec(statement).all()


@router.post("", response_model=ReferenceOut, status_code=status.HTTP_201_CREATED)
def create_reference(
    workspace_id: str,
    data: ReferenceCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id, Action.MANAGE_REFERENCES)
    if not data.title or not data.title.strip():
        raise ValidationFailed("Title is required")
    reference = Reference(
        workspace_id=workspace_id,
        title=data.title.strip(),
        source_url=data.source_url or None,
        source_platform=data.source_platform or None,
        video_object_path=data.video_object_path or None,
        video_url=data.video_url or None,
        created_by=current_user.id,
    )
    session.add(reference)
    session.commit()
    session.refresh(reference)
    logger.info("reference_created", workspace_id=workspace_id, reference_id=reference.id)
    return reference


@router.delete("/{reference_id}", response_model=SuccessOut)
def delete_reference(
    workspace_id: str,
    reference_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    # only the library entry goes; an uploaded video stays with its file record
    authorize(session, workspace_id, current_user.id, Action.MANAGE_REFERENCES)
    reference = session.get(Reference, reference_id)
    if reference is not None and reference.workspace_id == workspace_id:
        session.delete(reference)
        session.commit()
        logger.info("reference_deleted", workspace_id=workspace_id, reference_id=reference_id)
    return SuccessOut()
