"""
Airfocus access layer.

Exposes the upstream gateway (AirfocusGateway), the per-key snapshot cache
(SnapshotCache), the hierarchy and permission helpers, the query facade
(AirfocusService) and the FastAPI router factory (create_api_router).
"""

from .airfocus import AirfocusGateway
from .cache import Snapshot, SnapshotCache
from .errors import (
    AirfocusError,
    ConfigurationError,
    DecodeError,
    NotFoundError,
    TransportError,
    UpstreamError,
)
from .hierarchy import annotate_workspaces, build_group_tree, children_by_parent, group_path
from .models import Field, Permission, TeamLicense, User, Workspace, WorkspaceGroup
from .permissions import PermissionResolver
from .router import ServicePool, create_api_router
from .service import AirfocusService

__all__ = [
    "AirfocusGateway",
    "AirfocusService",
    "SnapshotCache",
    "Snapshot",
    "PermissionResolver",
    "ServicePool",
    "create_api_router",
    "annotate_workspaces",
    "build_group_tree",
    "children_by_parent",
    "group_path",
    "Field",
    "Permission",
    "TeamLicense",
    "User",
    "Workspace",
    "WorkspaceGroup",
    "AirfocusError",
    "ConfigurationError",
    "DecodeError",
    "NotFoundError",
    "TransportError",
    "UpstreamError",
]
