"""
Effective permission resolution over the group/workspace hierarchy.

A user's effective permission on a group is the highest of: read (the floor), the
user's explicit grant on the group or any ancestor, and the default permission of
the group or any ancestor. On a workspace it is the highest of its explicit grant
and the effective permission on its owning group.

Two user-centric views are offered and deliberately differ:
- explicit_workspace_grants: only direct workspace grants, no inheritance.
- group_access: every group with hierarchical permissions for it and its workspaces.
"""

from typing import Iterable, Optional

from .hierarchy import group_path, index_groups, iter_ancestors
from .models import GroupAccess, Permission, UserWorkspaceAccess, Workspace, WorkspaceAccess, WorkspaceGroup


def max_permission(current: Permission, candidate: Optional[Permission]) -> Permission:
    """Return the higher of two permissions; a missing candidate never wins."""
    if candidate is not None and candidate > current:
        return candidate
    return current


class PermissionResolver:
    """Resolves permissions against one consistent set of groups and workspaces."""

    def __init__(self, groups: Iterable[WorkspaceGroup], workspaces: Iterable[Workspace]):
        """Workspaces are expected to carry their group annotation (hierarchy.annotate_workspaces)."""
        self.groups = list(groups)
        self.workspaces = list(workspaces)
        self.groups_by_id = index_groups(self.groups)

    def group_permission(self, user_id: str, group_id: str) -> Permission:
        """Effective permission of a user on a group, walking up to the root."""
        effective = Permission.READ
        for group in iter_ancestors(group_id, self.groups_by_id):
            effective = max_permission(effective, group.permissions.get(user_id))
            effective = max_permission(effective, group.default_permission)
        return effective

    def workspace_permission(self, user_id: str, workspace: Workspace) -> Permission:
        """Effective permission of a user on a workspace: explicit grant or inherited from its group."""
        effective = max_permission(Permission.READ, workspace.permissions.get(user_id))
        if workspace.group_id:
            effective = max_permission(effective, self.group_permission(user_id, workspace.group_id))
        return effective

    def group_access(self, user_id: str) -> list[GroupAccess]:
        """
        Every group with the user's effective permission, in upstream order.

        Each group lists only the workspaces it owns, annotated with the user's
        workspace-level permission (which can exceed the group's through an
        explicit workspace grant).
        """
        by_group: dict[str, list[Workspace]] = {}
        for workspace in self.workspaces:
            if workspace.group_id:
                by_group.setdefault(workspace.group_id, []).append(workspace)

        accesses = []
        for group in self.groups:
            permission = self.group_permission(user_id, group.id)
            workspaces = [
                WorkspaceAccess(workspace=ws, permission=self.workspace_permission(user_id, ws))
                for ws in by_group.get(group.id, [])
            ]
            accesses.append(GroupAccess(group=group, permission=permission, workspaces=workspaces))
        return accesses

    def explicit_workspace_grants(self, user_id: str) -> list[UserWorkspaceAccess]:
        """
        Workspaces where the user holds a direct grant, with that grant as-is.

        Sorted by group path (ungrouped last), then by workspace name.
        """
        grants = []
        for workspace in self.workspaces:
            permission = workspace.permissions.get(user_id)
            if permission is None:
                continue
            grants.append(UserWorkspaceAccess(
                workspace_id=workspace.id,
                workspace_name=workspace.name,
                permission=permission,
                group_id=workspace.group_id,
                group_name=workspace.group_name,
                group_path=group_path(workspace.group_id or "", self.groups_by_id),
            ))
        grants.sort(key=lambda g: (g.group_path == "", g.group_path, g.workspace_name))
        return grants
