"""
Protocol for the upstream gateway used by the snapshot cache and the service.

Implementations (e.g. AirfocusGateway) perform the authenticated calls and decode
the responses; they hold no cached state. Every call takes the caller's API key.
"""

from typing import Mapping, Optional, Protocol, runtime_checkable

from .models import Field, TeamLicense, User, Workspace, WorkspaceGroup


@runtime_checkable
class UpstreamGateway(Protocol):
    """Protocol for a read-only client of the Airfocus REST API."""

    async def fetch_users(self, api_key: str) -> list[User]:
        """GET /team/users."""
        ...

    async def fetch_workspaces(self, api_key: str) -> list[Workspace]:
        """POST /workspaces/search for every non-archived workspace."""
        ...

    async def fetch_workspace_groups(self, api_key: str) -> list[WorkspaceGroup]:
        """POST /workspaces/groups/search."""
        ...

    async def fetch_fields(
        self, api_key: str, workspace_names: Optional[Mapping[str, str]] = None
    ) -> list[Field]:
        """POST /fields/search; names are filled in when a workspace ID -> name map is given."""
        ...

    async def fetch_workspace(self, api_key: str, workspace_id: str) -> Workspace:
        """GET /workspaces/{id}, including the embedded permission map."""
        ...

    async def search_workspaces(self, api_key: str, name: str) -> list[Workspace]:
        """POST /workspaces/search filtered by a case-insensitive name fragment."""
        ...

    async def fetch_team(self, api_key: str) -> TeamLicense:
        """GET /team: team record with seat totals per role."""
        ...
