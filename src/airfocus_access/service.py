"""
Query facade used by the HTTP layer.

Each operation validates its input, makes sure the snapshot cache is fresh, then
reads cached collections and runs the hierarchy/permission helpers over them.
Errors from the gateway and the cache reach the caller unchanged.
"""

import logging
from typing import Optional

from .airfocus import AirfocusGateway, resolve_workspace_names
from .cache import Snapshot, SnapshotCache
from .errors import ConfigurationError, NotFoundError
from .hierarchy import annotate_workspaces, build_group_tree, children_by_parent
from .models import (
    Field,
    GroupAccess,
    Permission,
    Role,
    RoleStats,
    TeamLicense,
    User,
    UserInfo,
    UserWorkspaceAccess,
    Workspace,
    WorkspaceGroup,
    WorkspaceRef,
    WorkspaceUser,
    WorkspaceUserStats,
)
from .permissions import PermissionResolver
from .protocol import UpstreamGateway

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"
EDITOR_PERMISSIONS = {Permission.WRITE, Permission.FULL}


def _require(value: Optional[str], what: str) -> str:
    if value is None or not value.strip():
        raise ConfigurationError(f"{what} is required")
    return value.strip()


def workspace_user_stats(users: list[WorkspaceUser]) -> WorkspaceUserStats:
    """Counts over a workspace user list: everyone, write-or-better, and full."""
    return WorkspaceUserStats(
        total_users=len(users),
        total_editors=sum(1 for u in users if u.permission in EDITOR_PERMISSIONS),
        total_admins=sum(1 for u in users if u.permission == Permission.FULL),
    )


class AirfocusService:
    """Read-only view of one Airfocus team, backed by a SnapshotCache."""

    def __init__(self, gateway: Optional[UpstreamGateway] = None, cache: Optional[SnapshotCache] = None):
        if cache is None:
            cache = SnapshotCache(gateway or AirfocusGateway())
        self.cache = cache
        self.gateway = gateway or cache.gateway

    async def _snapshot(self, api_key: str) -> Snapshot:
        await self.cache.ensure_fresh(_require(api_key, "API key"))
        return self.cache.read_snapshot()

    async def _resolver(self, api_key: str) -> PermissionResolver:
        snapshot = await self._snapshot(api_key)
        workspaces = annotate_workspaces(snapshot.workspaces, snapshot.groups)
        return PermissionResolver(snapshot.groups, workspaces)

    # ==================== COLLECTIONS ====================

    async def list_workspaces(self, api_key: str) -> list[Workspace]:
        """Cached workspaces with group ID and name filled in."""
        snapshot = await self._snapshot(api_key)
        return annotate_workspaces(snapshot.workspaces, snapshot.groups)

    async def list_workspace_groups(self, api_key: str) -> list[WorkspaceGroup]:
        snapshot = await self._snapshot(api_key)
        return list(snapshot.groups)

    async def get_workspace_hierarchy(self, api_key: str) -> dict[str, list[WorkspaceGroup]]:
        """Parent group ID ("root" for top level) -> children ordered by their order field."""
        snapshot = await self._snapshot(api_key)
        return children_by_parent(snapshot.groups)

    async def list_fields(self, api_key: str) -> list[Field]:
        """Cached fields with workspace_names resolved against the cached workspaces."""
        snapshot = await self._snapshot(api_key)
        names = {ws.id: ws.name for ws in snapshot.workspaces}
        return resolve_workspace_names(list(snapshot.fields), names)

    async def list_users(self, api_key: str) -> list[User]:
        """Cached users sorted by full name, case-insensitively."""
        snapshot = await self._snapshot(api_key)
        return sorted(snapshot.users, key=lambda u: u.full_name.lower())

    # ==================== LOOKUPS ====================

    async def get_user(self, api_key: str, user_id: str) -> User:
        user_id = _require(user_id, "user ID")
        snapshot = await self._snapshot(api_key)
        for user in snapshot.users:
            if user.user_id == user_id:
                return user
        raise NotFoundError(f"user with ID {user_id} not found", "users")

    async def get_field(self, api_key: str, name: str) -> Field:
        """Field whose name matches case-insensitively; first match wins."""
        name = _require(name, "field name")
        for field in await self.list_fields(api_key):
            if field.name.casefold() == name.casefold():
                return field
        raise NotFoundError(f"field '{name}' not found", "fields")

    async def get_workspace_by_name(self, api_key: str, name: str) -> WorkspaceRef:
        """ID and alias of the first workspace whose name contains the given text."""
        name = _require(name, "workspace name").strip('"')
        matches = await self.gateway.search_workspaces(_require(api_key, "API key"), name)
        if not matches:
            raise NotFoundError(f"no workspace found with name: {name}", "workspaces")
        return WorkspaceRef(id=matches[0].id, alias=matches[0].alias)

    # ==================== WORKSPACE USERS ====================

    async def get_workspace_users(self, api_key: str, workspace_id: str) -> list[WorkspaceUser]:
        """
        Users with an explicit grant on the workspace.

        Grants for users missing from the team list are kept and reported as
        "Unknown User" with an empty email.
        """
        workspace_id = _require(workspace_id, "workspace ID")
        api_key = _require(api_key, "API key")
        workspace = await self.gateway.fetch_workspace(api_key, workspace_id)
        if not workspace.permissions:
            return []

        users = {user.user_id: user for user in await self.list_users(api_key)}
        result = []
        for user_id, permission in workspace.permissions.items():
            user = users.get(user_id)
            if user is None:
                logger.debug("Workspace %s grants %s to unknown user %s", workspace_id, permission.value, user_id)
                result.append(WorkspaceUser(user_id=user_id, full_name=UNKNOWN_USER, permission=permission))
            else:
                result.append(WorkspaceUser(
                    user_id=user_id, full_name=user.full_name, email=user.email, permission=permission,
                ))
        result.sort(key=lambda u: (u.full_name.lower(), u.user_id))
        return result

    async def get_workspace_user_stats(self, api_key: str, workspace_id: str) -> WorkspaceUserStats:
        return workspace_user_stats(await self.get_workspace_users(api_key, workspace_id))

    # ==================== TEAM ====================

    async def get_team_license(self, api_key: str) -> TeamLicense:
        """Seat totals of the team, read straight from upstream on every call."""
        return await self.gateway.fetch_team(_require(api_key, "API key"))

    async def get_role_stats(self, api_key: str) -> RoleStats:
        """Cached team members counted by role."""
        users = await self.list_users(api_key)
        return RoleStats(
            total=len(users),
            admin=sum(1 for u in users if u.role is Role.ADMIN),
            editor=sum(1 for u in users if u.role is Role.EDITOR),
            contributor=sum(1 for u in users if u.role is Role.CONTRIBUTOR),
        )

    # ==================== USER ACCESS ====================

    async def get_user_workspaces(self, api_key: str, user_id: str) -> list[UserWorkspaceAccess]:
        """Direct workspace grants only; see get_user_group_access for inherited access."""
        user_id = _require(user_id, "user ID")
        resolver = await self._resolver(api_key)
        return resolver.explicit_workspace_grants(user_id)

    async def get_user_group_access(self, api_key: str, user_id: str) -> list[GroupAccess]:
        """Every group with the user's effective permission and per-workspace permissions."""
        user_id = _require(user_id, "user ID")
        resolver = await self._resolver(api_key)
        return resolver.group_access(user_id)

    async def get_user_info(self, api_key: str, user_id: str) -> UserInfo:
        """User record, group access as a tree, and group workspaces keyed by permission."""
        user = await self.get_user(api_key, user_id)
        accesses = await self.get_user_group_access(api_key, user.user_id)

        by_permission: dict[str, list[Workspace]] = {}
        for access in accesses:
            for ws_access in access.workspaces:
                by_permission.setdefault(ws_access.permission.value, []).append(ws_access.workspace)

        return UserInfo(user=user, groups=build_group_tree(accesses), workspaces_by_permission=by_permission)
