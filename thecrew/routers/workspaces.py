# Filename: thecrew/routers/workspaces.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session
from typing import List

from ..auth import get_current_user
from ..db import get_session
from ..dependencies import get_object_store
from ..models import User
from ..permissions import Action, authorize, load_workspace
from ..schemas import MemberCreate, MemberOut, MemberUser, WorkspaceCreate, WorkspaceOut
from ..storage import ObjectStore
from .. import services

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


@router.get("", response_model=List[WorkspaceOut])
def list_workspaces(current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return services.list_workspaces(session, current_user.id)


@router.post("", response_model=WorkspaceOut, status_code=status.HTTP_201_CREATED)
def create_workspace(data: WorkspaceCreate, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return services.create_workspace(session, current_user, data.name, data.description)


@router.get("/{workspace_id}", response_model=WorkspaceOut)
def get_workspace(workspace_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return load_workspace(session, workspace_id, current_user.id)


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workspace(
    workspace_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
):
    workspace = load_workspace(session, workspace_id, current_user.id, Action.DELETE_WORKSPACE)
    for object_path in services.delete_workspace(session, workspace):
        store.delete_url(object_path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- members ---

@router.get("/{workspace_id}/members", response_model=List[MemberOut])
def list_members(workspace_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    authorize(session, workspace_id, current_user.id)
    out = []
    for member, user in services.list_members(session, workspace_id):
        item = MemberOut.model_validate(member)
        item.user = MemberUser(id=user.id, email=user.email)
        out.append(item)
    return out


@router.post("/{workspace_id}/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def add_member(
    workspace_id: str,
    data: MemberCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id, Action.ADD_MEMBER)
    return services.add_member(session, workspace_id, data.email, data.role, data.password)


@router.delete("/{workspace_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    workspace_id: str,
    member_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    authorize(session, workspace_id, current_user.id, Action.REMOVE_MEMBER)
    services.remove_member(session, workspace_id, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
