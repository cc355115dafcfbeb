"""
Typed records for the Airfocus API and the views built from them.

Upstream records (User, Workspace, WorkspaceGroup, Field) are decoded with pydantic
from camelCase JSON. Permission maps are plain dicts keyed by user ID; values the
model does not know are dropped at decode time so they can never win a comparison.
Field usage is a tagged variant keyed on isTeamField: team fields list every
workspace ID, workspace fields embed per-workspace associations.
"""

from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field as ModelField, model_validator
from pydantic.alias_generators import to_camel


class Permission(str, Enum):
    """Access level on a workspace or group, totally ordered read < comment < write < full."""

    READ = "read"
    COMMENT = "comment"
    WRITE = "write"
    FULL = "full"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Any) -> Optional["Permission"]:
        """Return the Permission for a raw value, or None for empty/unknown values."""
        if isinstance(value, Permission):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


class Role(str, Enum):
    """Team role of a user. Roles the API adds later decode as OTHER."""

    ADMIN = "admin"
    EDITOR = "editor"
    CONTRIBUTOR = "contributor"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value):
        return cls.OTHER


def _known_permissions(value: Any) -> Any:
    if value is None:
        return {}
    if not isinstance(value, dict):
        return value
    known = {}
    for user_id, raw in value.items():
        permission = Permission.parse(raw)
        if permission is not None:
            known[user_id] = permission
    return known


def _coerce_role(value: Any) -> Any:
    return value if isinstance(value, Role) else Role(value)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _null_as(default: Callable[[], Any]) -> BeforeValidator:
    """Decode JSON null as the field's empty value instead of failing the record."""

    def convert(value: Any) -> Any:
        return default() if value is None else value

    return BeforeValidator(convert)


PermissionMap = Annotated[dict[str, Permission], BeforeValidator(_known_permissions)]
OptionalPermission = Annotated[Optional[Permission], BeforeValidator(Permission.parse)]
OptionalID = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
RoleValue = Annotated[Role, BeforeValidator(_coerce_role)]
Text = Annotated[str, _null_as(str)]
Count = Annotated[int, _null_as(int)]
Flag = Annotated[bool, _null_as(bool)]
IDList = Annotated[list[str], _null_as(list)]


class AirfocusModel(BaseModel):
    """Base for every record: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _lift_embedded(data: Any, *keys: str) -> Any:
    """Move the named keys out of an `_embedded` block onto the record itself."""
    if not isinstance(data, dict) or "_embedded" not in data:
        return data
    data = dict(data)
    embedded = data.pop("_embedded") or {}
    for key in keys:
        if key in embedded and key not in data:
            data[key] = embedded[key]
    return data


# ==================== UPSTREAM RECORDS ====================


class UserState(AirfocusModel):
    pending: Flag = False
    unseated: Flag = False


class User(AirfocusModel):
    user_id: str
    team_id: Text = ""
    full_name: Text = ""
    email: Text = ""
    role: RoleValue = Role.OTHER
    state: Optional[UserState] = None
    is_team_creator: Flag = False
    disabled: Flag = False
    email_verified: Flag = False
    created_at: Text = ""
    updated_at: Text = ""


class Workspace(AirfocusModel):
    """
    A workspace and its explicit per-user grants.

    group_id/group_name may come straight from the upstream record or be filled in
    from the owning group's embedded workspace list (see hierarchy.annotate_workspaces).
    """

    id: str
    name: Text = ""
    alias: Text = ""
    archived: Flag = False
    order: Count = 0
    team_id: Text = ""
    item_type: Text = ""
    created_at: Text = ""
    last_updated_at: Text = ""
    permissions: PermissionMap = ModelField(default_factory=dict)
    group_id: OptionalID = None
    group_name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _embedded_permissions(cls, data: Any) -> Any:
        return _lift_embedded(data, "permissions")


class WorkspaceGroup(AirfocusModel):
    """A node of the group forest; parent_id None means root."""

    id: str
    name: Text = ""
    parent_id: OptionalID = None
    order: Count = 0
    default_permission: OptionalPermission = None
    team_id: Text = ""
    created_at: Text = ""
    last_updated_at: Text = ""
    permissions: PermissionMap = ModelField(default_factory=dict)
    workspaces: Annotated[list[Workspace], _null_as(list)] = ModelField(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _embedded_members(cls, data: Any) -> Any:
        return _lift_embedded(data, "permissions", "workspaces")


class FieldWorkspace(AirfocusModel):
    workspace_id: str
    order: Count = 0


class TeamFieldUsage(AirfocusModel):
    """Usage of a team-scoped field: every workspace ID it appears in."""

    kind: Literal["team"] = "team"
    all_workspace_ids: IDList = ModelField(default_factory=list)


class WorkspaceFieldUsage(AirfocusModel):
    """Usage of a workspace-scoped field: its own per-workspace associations."""

    kind: Literal["workspace"] = "workspace"
    workspaces: Annotated[list[FieldWorkspace], _null_as(list)] = ModelField(default_factory=list)


FieldUsage = Annotated[Union[TeamFieldUsage, WorkspaceFieldUsage], ModelField(discriminator="kind")]


class Field(AirfocusModel):
    id: str
    name: Text = ""
    description: Text = ""
    type: Text = ""
    created_at: Text = ""
    updated_at: Text = ""
    is_team_field: Flag = False
    usage: FieldUsage = ModelField(default_factory=WorkspaceFieldUsage)
    # Resolved from the cached workspace list at read time.
    workspace_names: list[str] = ModelField(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _tag_usage(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "usage" in data:
            return data
        data = dict(data)
        embedded = data.pop("_embedded", None) or {}
        kind = "team" if data.get("isTeamField", data.get("is_team_field")) else "workspace"
        data["usage"] = {**embedded, "kind": kind}
        return data

    @property
    def workspace_ids(self) -> list[str]:
        if isinstance(self.usage, TeamFieldUsage):
            return list(self.usage.all_workspace_ids)
        return [ws.workspace_id for ws in self.usage.workspaces]

    @property
    def workspace_count(self) -> int:
        return len(self.workspace_ids)


class SeatCount(AirfocusModel):
    total: Count = 0
    used: Count = 0
    free: Count = 0


class TeamSeats(AirfocusModel):
    """Seat usage per role; `any` covers every role together."""

    admin: Annotated[SeatCount, _null_as(SeatCount)] = ModelField(default_factory=SeatCount)
    editor: Annotated[SeatCount, _null_as(SeatCount)] = ModelField(default_factory=SeatCount)
    contributor: Annotated[SeatCount, _null_as(SeatCount)] = ModelField(default_factory=SeatCount)
    any: Annotated[SeatCount, _null_as(SeatCount)] = ModelField(default_factory=SeatCount)


class TeamSubscription(AirfocusModel):
    type: Text = ""


class TeamState(AirfocusModel):
    features: IDList = ModelField(default_factory=list)
    seats: Annotated[TeamSeats, _null_as(TeamSeats)] = ModelField(default_factory=TeamSeats)
    subscription: Annotated[TeamSubscription, _null_as(TeamSubscription)] = ModelField(
        default_factory=TeamSubscription
    )


class TeamLicense(AirfocusModel):
    """The team record from GET /team, reduced to its license state."""

    team_id: Text = ""
    slug: Text = ""
    name: Text = ""
    state: Annotated[TeamState, _null_as(TeamState)] = ModelField(default_factory=TeamState)
    created_at: Text = ""
    updated_at: Text = ""


class SearchPage(AirfocusModel):
    """Envelope of the */search endpoints."""

    items: Annotated[list[dict], _null_as(list)] = ModelField(default_factory=list)
    total_items: Count = 0


# ==================== VIEWS ====================


class WorkspaceRef(AirfocusModel):
    id: str
    alias: str = ""


class WorkspaceUser(AirfocusModel):
    user_id: str
    full_name: str
    email: str = ""
    permission: Permission


class WorkspaceUserStats(AirfocusModel):
    total_users: int = 0
    total_editors: int = 0
    total_admins: int = 0


class RoleStats(AirfocusModel):
    """Team members counted by role; roles outside the three known ones count only toward total."""

    total: int = 0
    admin: int = 0
    editor: int = 0
    contributor: int = 0


class UserWorkspaceAccess(AirfocusModel):
    """An explicit grant of a user on one workspace, with display group info."""

    workspace_id: str
    workspace_name: str
    permission: Permission
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    group_path: str = ""


class WorkspaceAccess(AirfocusModel):
    workspace: Workspace
    permission: Permission


class GroupAccess(AirfocusModel):
    """Effective permission of a user on a group plus its member workspaces."""

    group: WorkspaceGroup
    permission: Permission
    workspaces: list[WorkspaceAccess] = ModelField(default_factory=list)


class GroupNode(AirfocusModel):
    """A group access entry placed in the rendered group tree."""

    access: GroupAccess
    level: int = 0
    children: list["GroupNode"] = ModelField(default_factory=list)


class UserInfo(AirfocusModel):
    user: User
    groups: list[GroupNode] = ModelField(default_factory=list)
    workspaces_by_permission: dict[str, list[Workspace]] = ModelField(default_factory=dict)
