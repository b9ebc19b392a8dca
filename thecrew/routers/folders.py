# Filename: thecrew/routers/folders.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session
from typing import List

from ..auth import get_current_user
from ..db import get_session
from ..dependencies import get_object_store
from ..exceptions import NotFound
from ..models import User
from ..permissions import Action, authorize
from ..schemas import FileCreate, FileOut, FolderCreate, FolderNode, FolderOut
from ..storage import ObjectStore
from ..tree import breadcrumb, build_tree
from .. import services

router = APIRouter(prefix="/api/workspaces/{workspace_id}", tags=["folders"])


# --- folders ---

@router.get("/folders", response_model=List[FolderOut])
def list_folders(workspace_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    """Every folder of the workspace as a flat list; clients nest by ``parentId``."""
    authorize(session, workspace_id, current_user.id)
    return services.list_folders(session, workspace_id)


@router.get("/folders/tree", response_model=List[FolderNode])
def folder_tree(workspace_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    authorize(session, workspace_id, current_user.id)
    return build_tree(services.list_folders(session, workspace_id))


@router.get("/folders/{folder_id}/path", response_model=List[FolderOut])
def folder_path(
    workspace_id: str,
    folder_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id)
    path = breadcrumb(services.list_folders(session, workspace_id), folder_id)
    if not path:
        raise NotFound("Folder not found")
    return path


@router.post("/folders", response_model=FolderOut, status_code=status.HTTP_201_CREATED)
def create_folder(
    workspace_id: str,
    data: FolderCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id, Action.CREATE_FOLDER)
    return services.create_folder(session, workspace_id, current_user, data.name, data.parent_id)


@router.delete("/folders/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_folder(
    workspace_id: str,
    folder_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
):
    authorize(session, workspace_id, current_user.id, Action.DELETE_FOLDER)
    for object_path in services.delete_folder(session, workspace_id, folder_id):
        store.delete_url(object_path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- files ---

@router.get("/folders/{folder_id}/files", response_model=List[FileOut])
def list_files(
    workspace_id: str,
    folder_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id)
    return services.list_files(session, workspace_id, folder_id)


@router.post("/files", response_model=FileOut, status_code=status.HTTP_201_CREATED)
def record_file(
    workspace_id: str,
    data: FileCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
):
    authorize(session, workspace_id, current_user.id, Action.UPLOAD_FILE)
    return services.record_file(
        session,
        workspace_id,
        current_user,
        name=data.name,
        type=data.type,
        object_path=data.object_path,
        folder_id=data.folder_id,
        size=data.size,
        object_key=store.key_from_url(data.object_path),
    )


@router.delete("/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    workspace_id: str,
    file_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
):
    authorize(session, workspace_id, current_user.id, Action.DELETE_FILE)
    object_path = services.delete_file(session, workspace_id, file_id)
    # metadata is committed first; a failed object delete leaves an orphaned blob.
    # None also means another file record still points at the object.
    if object_path:
        store.delete_url(object_path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
