# Filename: thecrew/routers/interrogator.py
from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import Any, Dict, List, Optional

from ..auth import get_current_user
from ..briefing import BriefingClient, build_final_prompt, extract_summary_text
from ..db import get_session
from ..dependencies import get_briefing_client, get_object_store
from ..exceptions import NotFound, ValidationFailed
from ..logging_config import get_logger
from ..models import Interrogation, InterrogationStatus, User, utcnow
from ..permissions import Action, authorize
from ..schemas import (
    BriefingChatRequest,
    FinalDocumentOut,
    GenerateFinalRequest,
    InterrogationOut,
    SaveFinalRequest,
    SuccessOut,
    SummarizeRequest,
    UploadTextOut,
    UploadTextRequest,
)
from ..storage import ObjectStore, make_object_key

router = APIRouter(tags=["interrogator"])
logger = get_logger(__name__)


def get_interrogation(session: Session, workspace_id: str, interrogation_id: str) -> Interrogation:
    interrogation = session.get(Interrogation, interrogation_id)
    if interrogation is None or interrogation.workspace_id != workspace_id:
        raise NotFound("Interrogation not found")
    return interrogation


def save_interrogation(session: Session, interrogation: Interrogation, **changes) -> Interrogation:
    for field, value in changes.items():
        setattr(interrogation, field, value)
    interrogation.updated_at = utcnow()
    session.add(interrogation)
    session.commit()
    session.refresh(interrogation)
    return interrogation


def _briefing_context(session: Session, user: User, workspace_id: Optional[str], interrogation_id: Optional[str]) -> Optional[Interrogation]:
    if not workspace_id:
        return None
    authorize(session, workspace_id, user.id, Action.RUN_BRIEFING)
    if not interrogation_id:
        return None
    return get_interrogation(session, workspace_id, interrogation_id)


@router.post("/api/interrogator/upload-text", response_model=UploadTextOut)
async def upload_text(
    data: UploadTextRequest,
    current_user: User = Depends(get_current_user),
    store: ObjectStore = Depends(get_object_store),
):
    """Store typed or dictated notes as a text object the summary service can read."""
    if not data.text or not data.text.strip():
        raise ValidationFailed("Text content is required")
    key = make_object_key(current_user.id, "brief-notes.txt")
    await store.put_bytes(key, data.text.encode("utf-8"))
    return UploadTextOut(objectPath=store.object_url(key), objectKey=key)


@router.post("/api/interrogator/summarize")
def summarize(
    data: SummarizeRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: BriefingClient = Depends(get_briefing_client),
) -> Dict[str, Any]:
    if not data.files:
        raise ValidationFailed("At least one file URL is required")
    authorize(session, data.workspace_id, current_user.id, Action.RUN_BRIEFING)

    result = client.summarize([f.model_dump(exclude_none=True) for f in data.files])
    interrogation = Interrogation(
        workspace_id=data.workspace_id,
        summary=extract_summary_text(result),
        file_urls=[f.url for f in data.files],
        created_by=current_user.id,
    )
    session.add(interrogation)
    session.commit()
    session.refresh(interrogation)
    logger.info("interrogation_created", workspace_id=data.workspace_id, interrogation_id=interrogation.id)
    response = dict(result) if isinstance(result, dict) else {"body": result}
    response["interrogationId"] = interrogation.id
    return response


@router.post("/api/interrogator/chat")
def chat(
    data: BriefingChatRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: BriefingClient = Depends(get_briefing_client),
) -> Dict[str, Any]:
    interrogation = _briefing_context(session, current_user, data.workspace_id, data.interrogation_id)
    reply = client.chat(data.summary, data.briefing_answers, data.chat_history)
    if interrogation is not None and data.briefing_answers is not None:
        status = InterrogationStatus.completed if reply.get("isComplete") else InterrogationStatus.briefing
        save_interrogation(session, interrogation, briefing_answers=data.briefing_answers, status=status)
    return reply


@router.post("/api/interrogator/generate-final", response_model=FinalDocumentOut)
def generate_final(
    data: GenerateFinalRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: BriefingClient = Depends(get_briefing_client),
):
    interrogation = _briefing_context(session, current_user, data.workspace_id, data.interrogation_id)
    prompt = build_final_prompt(data.summary, data.briefing_answers, data.file_attachments, data.chat_history)
    document = client.generate(prompt)
    if interrogation is not None:
        save_interrogation(session, interrogation, final_document=document, status=InterrogationStatus.completed)
    return FinalDocumentOut(finalDocument=document)


@router.post("/api/interrogator/save-final", response_model=SuccessOut)
def save_final(data: SaveFinalRequest, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    if not (data.interrogation_id and data.workspace_id and data.final_document):
        raise ValidationFailed("Missing required fields")
    interrogation = _briefing_context(session, current_user, data.workspace_id, data.interrogation_id)
    save_interrogation(session, interrogation, final_document=data.final_document, status=InterrogationStatus.completed)
    return SuccessOut()


@router.get("/api/workspaces/{workspace_id}/interrogations", response_model=List[InterrogationOut])
def list_interrogations(workspace_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    authorize(session, workspace_id, current_user.id)
    statement = (
        select(Interrogation)
        .where(Interrogation.workspace_id == workspace_id)
        .order_by(Interrogation.created_at.desc())
    )
    return session.exec(statement).all()
