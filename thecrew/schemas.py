# Filename: thecrew/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any, Dict
from datetime import datetime

from .models import Role, InterrogationStatus, TaskStatus, TaskPriority


class CamelModel(BaseModel):
    """Wire models: camelCase on the wire, snake_case accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- auth ---

class Credentials(CamelModel):
    email: EmailStr
    password: str


class UserOut(CamelModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class PasswordChange(CamelModel):
    current_password: str
    new_password: str


class MessageOut(BaseModel):
    message: str


class SuccessOut(BaseModel):
    success: bool = True


# --- workspaces ---

class WorkspaceCreate(CamelModel):
    name: str = ""
    description: Optional[str] = None


class WorkspaceOut(CamelModel):
    id: str
    name: str
    description: Optional[str]
    created_by: str
    created_at: datetime


class MemberUser(CamelModel):
    id: str
    email: str


class MemberCreate(CamelModel):
    email: EmailStr
    password: Optional[str] = None
    role: Role = Role.member


class MemberOut(CamelModel):
    id: str
    workspace_id: str
    user_id: str
    role: Role
    added_at: datetime
    user: Optional[MemberUser] = None


# --- folders / files ---

class FolderCreate(CamelModel):
    name: str = ""
    parent_id: Optional[str] = None


class FolderOut(CamelModel):
    id: str
    name: str
    workspace_id: str
    parent_id: Optional[str]
    created_by: str
    created_at: datetime


class FolderNode(FolderOut):
    children: List["FolderNode"] = Field(default_factory=list)


FolderNode.model_rebuild()


class FileCreate(CamelModel):
    name: str = ""
    type: str = ""
    object_path: str = ""
    size: Optional[int] = 0
    folder_id: str = ""


class FileOut(CamelModel):
    id: str
    name: str
    type: str
    object_path: str
    size: int
    folder_id: str
    workspace_id: str
    created_by: str
    created_at: datetime


class UploadUrlRequest(CamelModel):
    name: str = ""
    size: Optional[int] = None
    content_type: Optional[str] = None


class UploadUrlOut(BaseModel):
    uploadURL: str
    objectPath: str
    objectKey: str
    expiresAt: datetime


class StoredObjectOut(BaseModel):
    objectKey: str
    objectPath: str
    size: int


# --- interrogator ---

class SummaryFile(CamelModel):
    url: str
    name: Optional[str] = None


class SummarizeRequest(CamelModel):
    files: List[SummaryFile] = Field(default_factory=list)
    workspace_id: str


class UploadTextRequest(CamelModel):
    text: str = ""


class UploadTextOut(BaseModel):
    objectPath: str
    objectKey: str


class ChatMessage(CamelModel):
    role: str
    text: str


class FileAttachment(CamelModel):
    name: str
    url: str
    folder_name: Optional[str] = None


class BriefingChatRequest(CamelModel):
    summary: Optional[str] = None
    chat_history: List[ChatMessage] = Field(default_factory=list)
    workspace_id: Optional[str] = None
    interrogation_id: Optional[str] = None
    briefing_answers: Optional[Dict[str, Any]] = None


class GenerateFinalRequest(BriefingChatRequest):
    file_attachments: Optional[Dict[str, List[FileAttachment]]] = None


class SaveFinalRequest(CamelModel):
    interrogation_id: str = ""
    workspace_id: str = ""
    final_document: str = ""


class FinalDocumentOut(BaseModel):
    finalDocument: str


class InterrogationOut(CamelModel):
    id: str
    workspace_id: str
    summary: str
    file_urls: List[str]
    briefing_answers: Dict[str, Any]
    final_document: Optional[str]
    status: InterrogationStatus
    created_by: str
    created_at: datetime
    updated_at: datetime


# --- tasks ---

class TaskCreate(CamelModel):
    title: str = ""
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    source_interrogation_id: Optional[str] = None
    assignees: List[str] = Field(default_factory=list)


class TaskUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    # kept as plain strings: unknown values are ignored, not rejected
    status: Optional[str] = None
    priority: Optional[str] = None
    assignees: Optional[List[str]] = None
    video_url: Optional[str] = None


class TaskOut(CamelModel):
    id: str
    workspace_id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    assignees: List[str]
    video_url: Optional[str]
    source_interrogation_id: Optional[str]
    created_by: str
    created_at: datetime
    updated_at: datetime


class GenerateTasksRequest(CamelModel):
    interrogation_id: Optional[str] = None


class CommentCreate(CamelModel):
    text: str = ""
    timestamp_sec: Optional[int] = None


class CommentOut(CamelModel):
    id: str
    task_id: str
    author_id: str
    author_email: Optional[str]
    text: str
    timestamp_sec: Optional[int]
    created_at: datetime


class TaskSummaryOut(BaseModel):
    summary: str


class ChecklistOut(BaseModel):
    checklist: str


class TaskChatTurn(CamelModel):
    role: str
    content: str = ""


class TaskChatRequest(CamelModel):
    message: str = ""
    history: List[TaskChatTurn] = Field(default_factory=list)


class TaskChatOut(BaseModel):
    reply: str


# --- references ---

class ReferenceCreate(CamelModel):
    title: str = ""
    source_url: Optional[str] = None
    source_platform: Optional[str] = None
    video_object_path: Optional[str] = None
    video_url: Optional[str] = None


class ReferenceOut(CamelModel):
    id: str
    workspace_id: str
    title: str
    source_url: Optional[str]
    source_platform: Optional[str]
    video_object_path: Optional[str]
    video_url: Optional[str]
    created_by: str
    created_at: datetime
