# Filename: thecrew/models.py
from sqlmodel import SQLModel, Field, Column, JSON, UniqueConstraint
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive value; SQLite hands stored datetimes back without tzinfo."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Role(str, Enum):
    admin = "admin"
    member = "member"
    viewer = "viewer"


class InterrogationStatus(str, Enum):
    analysed = "analysed"
    briefing = "briefing"
    completed = "completed"


class TaskStatus(str, Enum):
    todo = "todo"
    in_progress = "in_progress"
    review = "review"
    done = "done"


class TaskPriority(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, unique=True)
    hashed_password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Workspace(SQLModel, table=True):
    __tablename__ = "workspaces"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: Optional[str] = None
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)


class WorkspaceMember(SQLModel, table=True):
    __tablename__ = "workspace_members"
    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True, ondelete="CASCADE")
    user_id: str = Field(foreign_key="users.id", index=True)
    role: Role = Field(default=Role.member)
    added_at: datetime = Field(default_factory=utcnow)


class Folder(SQLModel, table=True):
    __tablename__ = "folders"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    workspace_id: str = Field(foreign_key="workspaces.id", index=True, ondelete="CASCADE")
    # must reference a folder of the same workspace; checked by the folder service
    parent_id: Optional[str] = Field(default=None, foreign_key="folders.id", index=True, ondelete="CASCADE")
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)


class File(SQLModel, table=True):
    __tablename__ = "files"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    type: str
    object_path: str
    size: int = 0
    folder_id: str = Field(foreign_key="folders.id", index=True, ondelete="CASCADE")
    workspace_id: str = Field(foreign_key="workspaces.id", index=True, ondelete="CASCADE")
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)


class UploadGrant(SQLModel, table=True):
    """A single-use permission to write one object, referenced by an upload token."""

    __tablename__ = "upload_grants"

    id: str = Field(default_factory=new_id, primary_key=True)
    object_key: str = Field(index=True, unique=True)
    content_type: str = "application/octet-stream"
    size: Optional[int] = None
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
    consumed_at: Optional[datetime] = None


class Interrogation(SQLModel, table=True):
    __tablename__ = "interrogations"

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True, ondelete="CASCADE")
    summary: str = ""
    file_urls: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    briefing_answers: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    final_document: Optional[str] = None
    status: InterrogationStatus = Field(default=InterrogationStatus.analysed)
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True, ondelete="CASCADE")
    title: str
    description: str = ""
    status: TaskStatus = Field(default=TaskStatus.todo)
    priority: TaskPriority = Field(default=TaskPriority.medium)
    assignees: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    video_url: Optional[str] = None
    source_interrogation_id: Optional[str] = None
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TaskComment(SQLModel, table=True):
    __tablename__ = "task_comments"

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True, ondelete="CASCADE")
    task_id: str = Field(foreign_key="tasks.id", index=True, ondelete="CASCADE")
    author_id: str = Field(foreign_key="users.id")
    author_email: Optional[str] = None
    text: str
    # position in the reviewed video, in seconds
    timestamp_sec: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)


class Reference(SQLModel, table=True):
    """A reference video the team wants to match, kept in the workspace library."""

    __tablename__ = "reference_videos"

    id: str = Field(default_factory=new_id, primary_key=True)
    workspace_id: str = Field(foreign_key="workspaces.id", index=True, ondelete="CASCADE")
    title: str
    source_url: Optional[str] = None
    # e.g. instagram, tiktok, youtube
    source_platform: Optional[str] = None
    video_object_path: Optional[str] = None
    video_url: Optional[str] = None
    created_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow)
