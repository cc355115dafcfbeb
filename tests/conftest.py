"""Pytest configuration and fixtures for airfocus_access tests."""

import asyncio
from typing import Optional

import pytest

from airfocus_access.airfocus import resolve_workspace_names
from airfocus_access.cache import SnapshotCache
from airfocus_access.errors import NotFoundError
from airfocus_access.models import Field, TeamLicense, User, Workspace, WorkspaceGroup
from airfocus_access.service import AirfocusService

API_KEY = "test-api-key"


def make_user(user_id: str, full_name: str, role: str = "editor", email: Optional[str] = None) -> User:
    return User.model_validate({
        "userId": user_id,
        "fullName": full_name,
        "email": email or f"{user_id}@example.com",
        "role": role,
    })


def make_workspace(
    ws_id: str,
    name: str,
    permissions: Optional[dict] = None,
    group_id: Optional[str] = None,
) -> Workspace:
    data = {"id": ws_id, "name": name, "alias": name.upper(), "_embedded": {"permissions": permissions or {}}}
    if group_id:
        data["groupId"] = group_id
    return Workspace.model_validate(data)


def make_group(
    group_id: str,
    name: str,
    parent_id: str = "",
    default: str = "",
    permissions: Optional[dict] = None,
    workspace_ids: tuple = (),
    order: int = 0,
) -> WorkspaceGroup:
    return WorkspaceGroup.model_validate({
        "id": group_id,
        "name": name,
        "parentId": parent_id,
        "order": order,
        "defaultPermission": default,
        "_embedded": {
            "permissions": permissions or {},
            "workspaces": [{"id": ws_id, "name": ws_id} for ws_id in workspace_ids],
        },
    })


def make_team_field(field_id: str, name: str, workspace_ids: list) -> Field:
    return Field.model_validate({
        "id": field_id,
        "name": name,
        "isTeamField": True,
        "_embedded": {"allWorkspaceIds": workspace_ids},
    })


def make_workspace_field(field_id: str, name: str, workspace_ids: list) -> Field:
    return Field.model_validate({
        "id": field_id,
        "name": name,
        "isTeamField": False,
        "_embedded": {"workspaces": [{"workspaceId": ws_id, "order": i} for i, ws_id in enumerate(workspace_ids)]},
    })


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """In-memory UpstreamGateway that records calls and can fail or block on demand."""

    def __init__(self, users=(), workspaces=(), groups=(), fields=(), team=None):
        self.users = list(users)
        self.workspaces = list(workspaces)
        self.groups = list(groups)
        self.fields = list(fields)
        self.team = team or TeamLicense()
        self.calls: dict[str, int] = {}
        self.failures: dict[str, Exception] = {}
        self.gate: Optional[asyncio.Event] = None

    async def _call(self, name: str):
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.gate is not None:
            await self.gate.wait()
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return self.calls.get(name, 0)

    async def fetch_users(self, api_key):
        await self._call("users")
        return [u.model_copy(deep=True) for u in self.users]

    async def fetch_workspaces(self, api_key):
        await self._call("workspaces")
        return [w.model_copy(deep=True) for w in self.workspaces]

    async def fetch_workspace_groups(self, api_key):
        await self._call("groups")
        return [g.model_copy(deep=True) for g in self.groups]

    async def fetch_fields(self, api_key, workspace_names=None):
        await self._call("fields")
        fields = [f.model_copy(deep=True) for f in self.fields]
        if workspace_names is not None:
            fields = resolve_workspace_names(fields, workspace_names)
        return fields

    async def fetch_workspace(self, api_key, workspace_id):
        await self._call("workspace")
        for workspace in self.workspaces:
            if workspace.id == workspace_id:
                return workspace.model_copy(deep=True)
        raise NotFoundError(f"workspace {workspace_id} not found")

    async def search_workspaces(self, api_key, name):
        await self._call("search")
        return [w for w in self.workspaces if name.lower() in w.name.lower()]

    async def fetch_team(self, api_key):
        await self._call("team")
        return self.team.model_copy(deep=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    """Team with a two-level group tree, one grouped and one ungrouped workspace."""
    return FakeGateway(
        users=[
            make_user("u1", "bob builder"),
            make_user("u2", "Alice Admin", role="admin"),
            make_user("u3", "carol", role="contributor"),
        ],
        workspaces=[
            make_workspace("w1", "Roadmap", permissions={"u1": "write", "x": "comment"}),
            make_workspace("w2", "Backlog"),
            make_workspace("w3", "Discovery", permissions={"u2": "full", "u1": "read"}, group_id="gB"),
        ],
        groups=[
            make_group("gA", "Product", default="read", order=2),
            make_group("gB", "Platform", parent_id="gA", default="comment", workspace_ids=("w2",), order=1),
            make_group("gC", "Growth", default="", permissions={"u3": "write"}, order=1),
        ],
        fields=[
            make_team_field("f1", "Priority", ["w1", "w3", "gone"]),
            make_workspace_field("f2", "Estimate", ["w2"]),
        ],
        team=TeamLicense.model_validate({
            "teamId": "t1",
            "name": "Acme",
            "state": {"seats": {"any": {"total": 10, "used": 3, "free": 7}, "admin": {"total": 2, "used": 1, "free": 1}}},
        }),
    )


@pytest.fixture
def cache(gateway, clock):
    return SnapshotCache(gateway, ttl_seconds=300, clock=clock)


@pytest.fixture
def service(gateway, cache):
    return AirfocusService(gateway=gateway, cache=cache)
