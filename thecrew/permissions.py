"""Workspace authorization gate.

Every workspace-scoped operation resolves the caller's membership first and
then checks the role against the action it is about to perform.
"""

from enum import Enum
from typing import Dict, FrozenSet, List

from sqlmodel import Session, select

from .exceptions import AccessDenied, PermissionDenied
from .models import Role, Workspace, WorkspaceMember

ALL_ROLES = frozenset(Role)
EDITORS = frozenset({Role.admin, Role.member})
ADMINS = frozenset({Role.admin})


class Action(str, Enum):
    READ = "read"
    CREATE_FOLDER = "create folders"
    DELETE_FOLDER = "delete folders"
    UPLOAD_FILE = "upload files"
    DELETE_FILE = "delete files"
    MANAGE_TASKS = "manage tasks"
    MANAGE_REFERENCES = "manage references"
    COMMENT = "comment on tasks"
    RUN_BRIEFING = "run briefings"
    ADD_MEMBER = "add members"
    REMOVE_MEMBER = "remove members"
    DELETE_WORKSPACE = "delete workspaces"


POLICY: Dict[Action, FrozenSet[Role]] = {
    Action.READ: ALL_ROLES,
    Action.CREATE_FOLDER: EDITORS,
    Action.DELETE_FOLDER: EDITORS,
    Action.UPLOAD_FILE: EDITORS,
    Action.DELETE_FILE: EDITORS,
    Action.MANAGE_TASKS: EDITORS,
    Action.MANAGE_REFERENCES: EDITORS,
    # reviewers leave feedback without edit rights
    Action.COMMENT: ALL_ROLES,
    Action.RUN_BRIEFING: EDITORS,
    Action.ADD_MEMBER: ADMINS,
    Action.REMOVE_MEMBER: ADMINS,
    Action.DELETE_WORKSPACE: ADMINS,
}


def allowed_roles(action: Action) -> FrozenSet[Role]:
    try:
        return POLICY[action]
    except KeyError:
        raise ValueError(f"No policy for action {action!r}")


def is_allowed(role: Role, action: Action) -> bool:
    return Role(role) in allowed_roles(action)


def denial_message(role: Role, action: Action) -> str:
    if allowed_roles(action) == ADMINS:
        return f"Only admins can {action.value}"
    return f"{Role(role).value.capitalize()}s cannot {action.value}"


def get_membership(session: Session, workspace_id: str, user_id: str) -> WorkspaceMember:
    """Resolve ``(user, workspace)`` to a membership or raise ``AccessDenied``.

    A workspace that does not exist is reported the same way as one the
    caller does not belong to.
    """
    statement = select(WorkspaceMember).where(
        WorkspaceMember.workspace_id == workspace_id,
        WorkspaceMember.user_id == user_id,
    )
    member = session.exec(statement).first()
    if member is None:
        raise AccessDenied()
    return member


def require(member: WorkspaceMember, action: Action) -> WorkspaceMember:
    if not is_allowed(member.role, action):
        raise PermissionDenied(denial_message(member.role, action))
    return member


def authorize(session: Session, workspace_id: str, user_id: str, action: Action = Action.READ) -> WorkspaceMember:
    return require(get_membership(session, workspace_id, user_id), action)


def admins_of(session: Session, workspace_id: str) -> List[WorkspaceMember]:
    statement = select(WorkspaceMember).where(
        WorkspaceMember.workspace_id == workspace_id,
        WorkspaceMember.role == Role.admin,
    )
    return list(session.exec(statement).all())


def load_workspace(session: Session, workspace_id: str, user_id: str, action: Action = Action.READ) -> Workspace:
    authorize(session, workspace_id, user_id, action)
    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise AccessDenied()
    return workspace
