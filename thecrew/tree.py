"""Folder hierarchy helpers over a workspace's flat folder list.

Folders form a forest: each folder points at its parent by ``parent_id`` and
roots have ``parent_id = None``. All helpers take the flat list the API
returns and never hit the database.
"""

from collections import defaultdict, deque
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from .schemas import FolderNode

F = TypeVar("F")


def children_index(folders: Iterable[F]) -> Dict[Optional[str], List[F]]:
    """Map each parent id (``None`` for roots) to its direct children, in input order."""
    index: Dict[Optional[str], List[F]] = defaultdict(list)
    for folder in folders:
        index[folder.parent_id].append(folder)
    return index


def build_tree(folders: Sequence) -> List[FolderNode]:
    """Assemble nested nodes from a flat folder list in O(n).

    Folders whose parent is not in the list are treated as roots so a partial
    listing still renders.
    """
    nodes = {f.id: FolderNode.model_validate(f) for f in folders}
    roots: List[FolderNode] = []
    for folder in folders:
        node = nodes[folder.id]
        parent = nodes.get(folder.parent_id) if folder.parent_id else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


def breadcrumb(folders: Sequence[F], folder_id: str) -> List[F]:
    """Root-to-leaf path ending at ``folder_id``; empty when the id is unknown."""
    by_id = {f.id: f for f in folders}
    path: List[F] = []
    seen = set()
    current = by_id.get(folder_id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        path.append(current)
        current = by_id.get(current.parent_id) if current.parent_id else None
    path.reverse()
    return path


def descendant_ids(folders: Iterable[F], folder_id: str) -> List[str]:
    """Ids of ``folder_id`` and every folder below it, parents before children."""
    index = children_index(folders)
    ordered: List[str] = []
    seen = set()
    queue = deque([folder_id])
    while queue:
        current = queue.popleft()
        if current in seen:
            continue
        seen.add(current)
        ordered.append(current)
        queue.extend(child.id for child in index.get(current, ()))
    return ordered
