"""
Workspace-group hierarchy helpers.

Groups form a forest through parent_id. Everything here is computed on demand from
a list of WorkspaceGroup records: the parent -> children index, the dotted group
path ("Parent > Child"), the workspace -> group association derived from each
group's embedded workspace list, and the nested tree used to render a user's
group access. Ancestor walks stop at a missing parent and at a repeated group, so
a cycle in upstream data yields a truncated chain instead of a hang.
"""

import logging
from typing import Iterable, Iterator

from .models import GroupAccess, GroupNode, Workspace, WorkspaceGroup

logger = logging.getLogger(__name__)

ROOT_KEY = "root"
PATH_SEPARATOR = " > "


def index_groups(groups: Iterable[WorkspaceGroup]) -> dict[str, WorkspaceGroup]:
    return {group.id: group for group in groups}


def iter_ancestors(group_id: str, groups_by_id: dict[str, WorkspaceGroup]) -> Iterator[WorkspaceGroup]:
    """
    Yield the group itself, then its parent, up to the root.

    Stops when a parent ID is unknown or a group repeats (cycle); the latter is
    logged because it means upstream data is broken.
    """
    seen = set()
    current = group_id
    while current:
        if current in seen:
            logger.warning("Cycle in workspace group parents at %s; chain from %s truncated", current, group_id)
            return
        group = groups_by_id.get(current)
        if group is None:
            return
        seen.add(current)
        yield group
        current = group.parent_id


def group_path(group_id: str, groups_by_id: dict[str, WorkspaceGroup]) -> str:
    """Return the full path of a group, root first, e.g. "A > B > C". Empty for no group."""
    if not group_id:
        return ""
    names = [group.name for group in iter_ancestors(group_id, groups_by_id)]
    return PATH_SEPARATOR.join(reversed(names))


def group_paths(groups: Iterable[WorkspaceGroup]) -> dict[str, str]:
    groups_by_id = index_groups(groups)
    return {group_id: group_path(group_id, groups_by_id) for group_id in groups_by_id}


def children_by_parent(groups: Iterable[WorkspaceGroup]) -> dict[str, list[WorkspaceGroup]]:
    """
    Map parent group ID (ROOT_KEY for top-level groups) to its immediate children.

    Children are ordered by their declared order; ties keep upstream order.
    """
    hierarchy: dict[str, list[WorkspaceGroup]] = {}
    for group in groups:
        hierarchy.setdefault(group.parent_id or ROOT_KEY, []).append(group)
    for children in hierarchy.values():
        children.sort(key=lambda g: g.order)
    return hierarchy


def derived_workspace_groups(groups: Iterable[WorkspaceGroup]) -> dict[str, WorkspaceGroup]:
    """Map workspace ID to the group whose embedded workspace list contains it."""
    owners: dict[str, WorkspaceGroup] = {}
    for group in groups:
        for workspace in group.workspaces:
            owners[workspace.id] = group
    return owners


def annotate_workspaces(workspaces: Iterable[Workspace], groups: Iterable[WorkspaceGroup]) -> list[Workspace]:
    """
    Return copies of the workspaces with group_id/group_name filled in.

    A group annotation on the workspace record itself wins; the name is looked up
    when only the ID is present. Otherwise the group listing the workspace in its
    embedded workspaces is used. Workspaces found in neither stay ungrouped.
    """
    groups = list(groups)
    groups_by_id = index_groups(groups)
    owners = derived_workspace_groups(groups)

    annotated = []
    for workspace in workspaces:
        update = {}
        owner = owners.get(workspace.id)
        if workspace.group_id:
            if owner is not None and owner.id != workspace.group_id:
                logger.warning(
                    "Workspace %s claims group %s but is listed under group %s",
                    workspace.id, workspace.group_id, owner.id,
                )
            if not workspace.group_name and workspace.group_id in groups_by_id:
                update["group_name"] = groups_by_id[workspace.group_id].name
        elif owner is not None:
            update["group_id"] = owner.id
            update["group_name"] = owner.name
        annotated.append(workspace.model_copy(update=update, deep=True))
    return annotated


def build_group_tree(accesses: Iterable[GroupAccess]) -> list[GroupNode]:
    """
    Nest group access entries under their parents for display.

    Roots are groups without a parent in the given list. Siblings are sorted by
    name and each node carries its depth (roots are level 0).
    """
    accesses = list(accesses)
    present = {access.group.id for access in accesses}
    children: dict[str, list[GroupAccess]] = {}
    roots = []
    for access in accesses:
        parent_id = access.group.parent_id
        if parent_id and parent_id in present:
            children.setdefault(parent_id, []).append(access)
        else:
            roots.append(access)

    def attach(access: GroupAccess, level: int) -> GroupNode:
        kids = sorted(children.get(access.group.id, []), key=lambda a: a.group.name)
        return GroupNode(access=access, level=level, children=[attach(kid, level + 1) for kid in kids])

    return [attach(access, 0) for access in sorted(roots, key=lambda a: a.group.name)]
