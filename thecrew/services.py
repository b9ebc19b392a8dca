# Filename: thecrew/services.py
"""Workspace, member, folder and file operations.

Routers authorize the caller and then delegate here. Deletes cascade
explicitly, children before parents, so no orphan rows are left even on
backends that do not enforce foreign keys.
"""
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .auth import get_password_hash, get_user_by_email, normalize_email
from .config import settings
from .exceptions import AlreadyExists, Conflict, InvalidParent, NotFound, PermissionDenied, ValidationFailed
from .logging_config import get_logger
from .models import (
    File,
    Folder,
    Interrogation,
    Reference,
    Role,
    Task,
    TaskComment,
    User,
    Workspace,
    WorkspaceMember,
)
from .permissions import admins_of
from .tree import descendant_ids

logger = get_logger(__name__)


def require_text(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValidationFailed(message)
    return value.strip()


def check_password(password: Optional[str], message: str = None) -> str:
    if not password or len(password) < settings.min_password_length:
        raise ValidationFailed(message or f"Password must be at least {settings.min_password_length} characters")
    return password


# --- users ---

def create_user(session: Session, email: str, password: str) -> User:
    if get_user_by_email(session, email):
        raise AlreadyExists("An account with this email already exists")
    user = User(email=normalize_email(email), hashed_password=get_password_hash(password))
    session.add(user)
    try:
        session.flush()
    except IntegrityError:
        # a concurrent registration won the unique email index
        session.rollback()
        raise AlreadyExists("An account with this email already exists")
    return user


# --- workspaces ---

def list_workspaces(session: Session, user_id: str) -> List[Workspace]:
    statement = (
        select(Workspace)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.user_id == user_id)
        .order_by(Workspace.created_at)
    )
    return list(session.exec(statement).all())


def create_workspace(session: Session, user: User, name: Optional[str], description: Optional[str] = None) -> Workspace:
    workspace = Workspace(
        name=require_text(name, "Name is required"),
        description=description or None,
        created_by=user.id,
    )
    session.add(workspace)
    session.flush()
    # creator is the first admin
    session.add(WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=Role.admin))
    session.commit()
    session.refresh(workspace)
    logger.info("workspace_created", workspace_id=workspace.id, user_id=user.id)
    return workspace


def _delete_all(session: Session, rows) -> None:
    for row in rows:
        session.delete(row)
    session.flush()


def _delete_folders(session: Session, folders_by_id: dict, ordered_ids: List[str]) -> None:
    # ordered_ids lists parents first; delete leaves first
    for folder_id in reversed(ordered_ids):
        session.delete(folders_by_id[folder_id])
        session.flush()


def unreferenced(session: Session, object_paths: List[str]) -> List[str]:
    """The subset of ``object_paths`` no remaining file record points at."""
    if not object_paths:
        return []
    candidates = list(dict.fromkeys(object_paths))
    statement = select(File.object_path).where(File.object_path.in_(candidates))
    still_used = set(session.exec(statement).all())
    return [path for path in candidates if path not in still_used]


def delete_workspace(session: Session, workspace: Workspace) -> List[str]:
    """Delete the workspace and everything it owns.

    Returns the object paths of removed files that no other file record
    still references; only those objects may be removed from storage.
    """
    ws_id = workspace.id
    tasks = session.exec(select(Task).where(Task.workspace_id == ws_id)).all()
    _delete_all(session, session.exec(select(TaskComment).where(TaskComment.workspace_id == ws_id)).all())
    _delete_all(session, tasks)
    _delete_all(session, session.exec(select(Interrogation).where(Interrogation.workspace_id == ws_id)).all())
    _delete_all(session, session.exec(select(Reference).where(Reference.workspace_id == ws_id)).all())

    files = session.exec(select(File).where(File.workspace_id == ws_id)).all()
    object_paths = [f.object_path for f in files]
    _delete_all(session, files)

    folders = list_folders(session, ws_id)
    folders_by_id = {f.id: f for f in folders}
    ordered: List[str] = []
    seen = set()
    for root in (f for f in folders if f.parent_id is None or f.parent_id not in folders_by_id):
        for folder_id in descendant_ids(folders, root.id):
            if folder_id not in seen:
                seen.add(folder_id)
                ordered.append(folder_id)
    ordered.extend(f.id for f in folders if f.id not in seen)
    _delete_folders(session, folders_by_id, ordered)

    _delete_all(session, session.exec(select(WorkspaceMember).where(WorkspaceMember.workspace_id == ws_id)).all())
    session.delete(workspace)
    session.commit()
    logger.info("workspace_deleted", workspace_id=ws_id, files=len(object_paths), folders=len(folders))
    return unreferenced(session, object_paths)


# --- members ---

def list_members(session: Session, workspace_id: str) -> List[tuple]:
    statement = (
        select(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.added_at)
    )
    return list(session.exec(statement).all())


def add_member(session: Session, workspace_id: str, email: str, role: Role, password: Optional[str] = None) -> WorkspaceMember:
    user = get_user_by_email(session, email)
    if user is None:
        if not password:
            raise ValidationFailed("Password is required for new users")
        user = create_user(session, email, check_password(password))

    existing = session.exec(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user.id,
        )
    ).first()
    if existing:
        raise AlreadyExists("User is already a member")

    member = WorkspaceMember(workspace_id=workspace_id, user_id=user.id, role=Role(role))
    session.add(member)
    session.commit()
    session.refresh(member)
    logger.info("member_added", workspace_id=workspace_id, user_id=user.id, role=member.role.value)
    return member


def remove_member(session: Session, workspace_id: str, member_id: str) -> None:
    member = session.get(WorkspaceMember, member_id)
    if member is None or member.workspace_id != workspace_id:
        raise NotFound("Member not found")
    if member.role == Role.admin:
        if len(admins_of(session, workspace_id)) <= 1:
            raise Conflict("Cannot remove the only admin of a workspace")
    user_id = member.user_id
    session.delete(member)
    session.commit()
    logger.info("member_removed", workspace_id=workspace_id, user_id=user_id)


# --- folders ---

def list_folders(session: Session, workspace_id: str) -> List[Folder]:
    statement = select(Folder).where(Folder.workspace_id == workspace_id).order_by(Folder.created_at)
    return list(session.exec(statement).all())


def get_folder(session: Session, workspace_id: str, folder_id: str) -> Optional[Folder]:
    folder = session.get(Folder, folder_id)
    if folder is None or folder.workspace_id != workspace_id:
        return None
    return folder


def create_folder(session: Session, workspace_id: str, user: User, name: Optional[str], parent_id: Optional[str] = None) -> Folder:
    name = require_text(name, "Name is required")
    if parent_id and get_folder(session, workspace_id, parent_id) is None:
        raise InvalidParent()
    folder = Folder(name=name, workspace_id=workspace_id, parent_id=parent_id or None, created_by=user.id)
    session.add(folder)
    session.commit()
    session.refresh(folder)
    logger.info("folder_created", workspace_id=workspace_id, folder_id=folder.id, parent_id=folder.parent_id)
    return folder


def delete_folder(session: Session, workspace_id: str, folder_id: str) -> List[str]:
    """Delete a folder with all descendant folders and their files.

    Returns object paths of removed files that nothing else references. A
    folder that is already gone is not an error.
    """
    if get_folder(session, workspace_id, folder_id) is None:
        return []
    folders = list_folders(session, workspace_id)
    folders_by_id = {f.id: f for f in folders}
    ordered = descendant_ids(folders, folder_id)

    files = session.exec(select(File).where(File.folder_id.in_(ordered))).all()
    object_paths = [f.object_path for f in files]
    _delete_all(session, files)
    _delete_folders(session, folders_by_id, ordered)
    session.commit()
    logger.info("folder_deleted", workspace_id=workspace_id, folder_id=folder_id, folders=len(ordered), files=len(files))
    return unreferenced(session, object_paths)


# --- files ---

def list_files(session: Session, workspace_id: str, folder_id: str) -> List[File]:
    statement = (
        select(File)
        .where(File.workspace_id == workspace_id, File.folder_id == folder_id)
        .order_by(File.created_at)
    )
    return list(session.exec(statement).all())


def record_file(
    session: Session,
    workspace_id: str,
    user: User,
    name: Optional[str],
    type: Optional[str],
    object_path: Optional[str],
    folder_id: Optional[str],
    size: Optional[int] = 0,
    object_key: Optional[str] = None,
) -> File:
    """Persist metadata for an object the client has already uploaded.

    ``object_key`` is the storage key behind ``object_path`` when the path
    points into the local object store. Keys are laid out as
    ``<owner id>/...`` and the caller must be that owner.
    """
    if not (name and type and object_path and folder_id):
        raise ValidationFailed("Missing required fields")
    if get_folder(session, workspace_id, folder_id) is None:
        raise InvalidParent("Folder does not belong to this workspace")
    if object_key is not None and object_key.split("/", 1)[0] != user.id:
        raise PermissionDenied("You can only record files you uploaded")
    record = File(
        name=name,
        type=type,
        object_path=object_path,
        size=size or 0,
        folder_id=folder_id,
        workspace_id=workspace_id,
        created_by=user.id,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info("file_recorded", workspace_id=workspace_id, folder_id=folder_id, file_id=record.id)
    return record


def delete_file(session: Session, workspace_id: str, file_id: str) -> Optional[str]:
    """Delete file metadata.

    Returns its object path when no other record still uses the object, else
    None. A file that is already gone also returns None.
    """
    record = session.get(File, file_id)
    if record is None or record.workspace_id != workspace_id:
        return None
    object_path = record.object_path
    session.delete(record)
    session.commit()
    logger.info("file_deleted", workspace_id=workspace_id, file_id=file_id)
    orphaned = unreferenced(session, [object_path])
    return orphaned[0] if orphaned else None
