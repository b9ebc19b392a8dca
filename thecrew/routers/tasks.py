# Filename: thecrew/routers/tasks.py
from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import List, Optional

from ..auth import get_current_user
from ..briefing import (
    BriefingClient,
    build_revision_checklist_prompt,
    build_task_chat_prompt,
    build_task_summary_prompt,
    build_tasks_prompt,
    parse_task_list,
)
from ..db import get_session
from ..dependencies import get_briefing_client
from ..exceptions import NotFound, ValidationFailed
from ..logging_config import get_logger
from ..models import (
    Interrogation,
    InterrogationStatus,
    Task,
    TaskComment,
    TaskPriority,
    TaskStatus,
    User,
    utcnow,
)
from ..permissions import Action, authorize
from ..schemas import (
    ChecklistOut,
    CommentCreate,
    CommentOut,
    GenerateTasksRequest,
    SuccessOut,
    TaskChatOut,
    TaskChatRequest,
    TaskCreate,
    TaskOut,
    TaskSummaryOut,
    TaskUpdate,
)

router = APIRouter(prefix="/api/workspaces/{workspace_id}/tasks", tags=["tasks"])
logger = get_logger(__name__)


def list_workspace_tasks(session: Session, workspace_id: str) -> List[Task]:
    statement = select(Task).where(Task.workspace_id == workspace_id).order_by(Task.created_at)
    return list(session.exec(statement).all())


def get_task(session: Session, workspace_id: str, task_id: str) -> Task:
    task = session.get(Task, task_id)
    if task is None or task.workspace_id != workspace_id:
        raise NotFound("Task not found")
    return task


def list_comments(session: Session, task_id: str) -> List[TaskComment]:
    statement = select(TaskComment).where(TaskComment.task_id == task_id).order_by(TaskComment.created_at)
    return list(session.exec(statement).all())


def _enum_or_none(enum_cls, value: Optional[str]):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def find_final_brief(session: Session, workspace_id: str, interrogation_id: Optional[str]) -> Optional[Interrogation]:
    """The given interrogation when it has a final document, else the newest completed one."""
    if interrogation_id:
        interrogation = session.get(Interrogation, interrogation_id)
        if interrogation and interrogation.workspace_id == workspace_id and interrogation.final_document:
            return interrogation
    statement = (
        select(Interrogation)
        .where(
            Interrogation.workspace_id == workspace_id,
            Interrogation.status == InterrogationStatus.completed,
            Interrogation.final_document.is_not(None),
        )
        .order_by(Interrogation.updated_at.desc())
    )
    return session.exec(statement).first()


@router.get("", response_model=List[TaskOut])
def list_tasks(workspace_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    authorize(session, workspace_id, current_user.id)
    return list_workspace_tasks(session, workspace_id)


@router.post("", response_model=TaskOut)
def create_task(
    workspace_id: str,
    data: TaskCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id, Action.MANAGE_TASKS)
    if not data.title or not data.title.strip():
        raise ValidationFailed("Title is required")
    task = Task(
        workspace_id=workspace_id,
        title=data.title.strip(),
        description=data.description or "",
        status=data.status or TaskStatus.todo,
        priority=data.priority or TaskPriority.medium,
        assignees=list(data.assignees),
        source_interrogation_id=data.source_interrogation_id,
        created_by=current_user.id,
    )
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


@router.post("/generate", response_model=List[TaskOut])
def generate_tasks(
    workspace_id: str,
    data: GenerateTasksRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: BriefingClient = Depends(get_briefing_client),
):
    """Create tasks from a final brief, skipping titles the board already has."""
    authorize(session, workspace_id, current_user.id, Action.MANAGE_TASKS)
    source = find_final_brief(session, workspace_id, data.interrogation_id)
    if source is None or not source.final_document:
        raise ValidationFailed("No completed final agenda found. Please complete the Interrogator first.")

    existing = list_workspace_tasks(session, workspace_id)
    seen = {t.title.lower().strip() for t in existing if t.title}
    suggestions = parse_task_list(client.generate(build_tasks_prompt(source.final_document, [t.title for t in existing])))

    created = []
    for item in suggestions:
        title = str(item.get("title") or "").strip()
        if not title or title.lower() in seen:
            continue
        seen.add(title.lower())
        task = Task(
            workspace_id=workspace_id,
            title=title,
            description=str(item.get("description") or ""),
            priority=_enum_or_none(TaskPriority, item.get("priority")) or TaskPriority.medium,
            source_interrogation_id=source.id,
            created_by=current_user.id,
        )
        session.add(task)
        created.append(task)
    session.commit()
    for task in created:
        session.refresh(task)
    logger.info("tasks_generated", workspace_id=workspace_id, created=len(created), suggested=len(suggestions))
    return created


@router.patch("/{task_id}", response_model=TaskOut)
def update_task(
    workspace_id: str,
    task_id: str,
    data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Apply the known fields; unknown status or priority values are ignored. Last write wins."""
    authorize(session, workspace_id, current_user.id, Action.MANAGE_TASKS)
    task = get_task(session, workspace_id, task_id)
    if data.title is not None:
        task.title = data.title
    if data.description is not None:
        task.description = data.description
    status = _enum_or_none(TaskStatus, data.status)
    if status is not None:
        task.status = status
    priority = _enum_or_none(TaskPriority, data.priority)
    if priority is not None:
        task.priority = priority
    if data.assignees is not None:
        task.assignees = list(data.assignees)
    if data.video_url is not None:
        task.video_url = data.video_url
    task.updated_at = utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


@router.delete("/{task_id}", response_model=SuccessOut)
def delete_task(
    workspace_id: str,
    task_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id, Action.MANAGE_TASKS)
    task = session.get(Task, task_id)
    if task is not None and task.workspace_id == workspace_id:
        for comment in list_comments(session, task.id):
            session.delete(comment)
        session.flush()
        session.delete(task)
        session.commit()
    return SuccessOut()


# --- comments ---

@router.get("/{task_id}/comments", response_model=List[CommentOut])
def get_comments(
    workspace_id: str,
    task_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id)
    get_task(session, workspace_id, task_id)
    return list_comments(session, task_id)


@router.post("/{task_id}/comments", response_model=CommentOut)
def add_comment(
    workspace_id: str,
    task_id: str,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id, Action.COMMENT)
    get_task(session, workspace_id, task_id)
    if not data.text or not data.text.strip():
        raise ValidationFailed("Comment text is required")
    if data.timestamp_sec is not None and data.timestamp_sec < 0:
        raise ValidationFailed("Timestamp must not be negative")
    comment = TaskComment(
        workspace_id=workspace_id,
        task_id=task_id,
        author_id=current_user.id,
        author_email=current_user.email,
        text=data.text.strip(),
        timestamp_sec=data.timestamp_sec,
    )
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return comment


@router.post("/{task_id}/summarize", response_model=TaskSummaryOut)
def summarize_task(
    workspace_id: str,
    task_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: BriefingClient = Depends(get_briefing_client),
):
    authorize(session, workspace_id, current_user.id)
    task = get_task(session, workspace_id, task_id)
    comments = list_comments(session, task_id)
    if not comments:
        raise ValidationFailed("No comments found on this task. Add timestamped feedback first.")
    summary = client.generate(build_task_summary_prompt(task.title, task.description, comments))
    return TaskSummaryOut(summary=summary)


@router.post("/revision-checklist", response_model=ChecklistOut)
def revision_checklist(
    workspace_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: BriefingClient = Depends(get_briefing_client),
):
    """One consolidated checklist from the feedback left on every task of the board."""
    authorize(session, workspace_id, current_user.id)
    feedback = [
        (task.title, comment)
        for task in list_workspace_tasks(session, workspace_id)
        for comment in list_comments(session, task.id)
    ]
    if not feedback:
        raise ValidationFailed("No comments found. Add feedback comments to tasks first.")
    checklist = client.generate(build_revision_checklist_prompt(feedback))
    logger.info("revision_checklist_generated", workspace_id=workspace_id, comments=len(feedback))
    return ChecklistOut(checklist=checklist)


@router.post("/{task_id}/chat", response_model=TaskChatOut)
def task_chat(
    workspace_id: str,
    task_id: str,
    data: TaskChatRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: BriefingClient = Depends(get_briefing_client),
):
    """Answer the editor's question about one task from its comments and the conversation so far."""
    authorize(session, workspace_id, current_user.id)
    task = get_task(session, workspace_id, task_id)
    if not data.message or not data.message.strip():
        raise ValidationFailed("Message is required")
    prompt = build_task_chat_prompt(task, list_comments(session, task_id), data.message.strip(), data.history)
    return TaskChatOut(reply=client.generate(prompt))
