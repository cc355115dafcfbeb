"""
Airfocus REST API gateway.

Issues bearer-authenticated calls with httpx and decodes the JSON bodies into the
pydantic records from models.py. Holds no cached data and performs no retries: a
failed call raises TransportError, UpstreamError or DecodeError straight away.
Cancellation of the awaiting task aborts the in-flight request.
"""

import logging
from typing import Any, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from . import config
from .errors import ConfigurationError, DecodeError, TransportError, UpstreamError
from .models import Field, SearchPage, TeamLicense, User, Workspace, WorkspaceGroup
from .protocol import UpstreamGateway

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Search bodies the upstream expects; name-ascending, archived workspaces excluded.
WORKSPACE_SORT = {"type": "name", "name": {"direction": "asc"}}
GROUP_SORT = {"type": "name", "direction": "asc"}


def resolve_workspace_names(fields: list[Field], workspace_names: Mapping[str, str]) -> list[Field]:
    """
    Return copies of fields with workspace_names filled from an ID -> name map.

    IDs missing from the map are skipped, so a field pointing at an archived or
    deleted workspace simply lists fewer names.
    """
    named = []
    for field in fields:
        names = [workspace_names[ws_id] for ws_id in field.workspace_ids if ws_id in workspace_names]
        named.append(field.model_copy(update={"workspace_names": names}, deep=True))
    return named


def _shape_error(e: ValidationError) -> str:
    first = e.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"unexpected response shape at {location or '<root>'}: {first['msg']}"


class AirfocusGateway(UpstreamGateway):
    """Gateway that talks to the Airfocus API over HTTPS."""

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        """Use the given httpx client if provided (tests pass one with a MockTransport)."""
        self.base_url = (base_url or config.base_url()).rstrip("/")
        self._client = client

    async def _request(
        self,
        method: str,
        path: str,
        api_key: str,
        resource: str,
        body: Optional[dict] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        if not api_key:
            raise ConfigurationError("API key is required", resource)

        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}
        logger.debug("Airfocus %s %s", method, path)

        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, json=body)
            else:
                timeout = config.request_timeout_seconds() or None
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.request(method, url, headers=headers, json=body)
        except httpx.RequestError as e:
            raise TransportError(f"request to {path} failed: {e}", resource) from e

        if not response.is_success:
            raise UpstreamError(
                f"Airfocus API returned status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                body=response.text,
                resource=resource,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"response from {path} is not JSON: {e}", resource) from e

    @staticmethod
    def _decode(model: Type[M], payload: Any, resource: str) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(_shape_error(e), resource) from e

    @staticmethod
    def _decode_list(model: Type[M], payload: Any, resource: str) -> list[M]:
        try:
            return TypeAdapter(list[model]).validate_python(payload)
        except ValidationError as e:
            raise DecodeError(_shape_error(e), resource) from e

    async def _search(self, path: str, api_key: str, resource: str, body: dict) -> list[dict]:
        page = self._decode(SearchPage, await self._request("POST", path, api_key, resource, body), resource)
        return page.items

    async def fetch_users(self, api_key: str) -> list[User]:
        payload = await self._request("GET", "/team/users", api_key, "users")
        return self._decode_list(User, payload, "users")

    async def fetch_workspaces(self, api_key: str) -> list[Workspace]:
        body = {"sort": WORKSPACE_SORT, "archived": False}
        items = await self._search("/workspaces/search", api_key, "workspaces", body)
        return self._decode_list(Workspace, items, "workspaces")

    async def search_workspaces(self, api_key: str, name: str) -> list[Workspace]:
        body = {
            "sort": WORKSPACE_SORT,
            "archived": False,
            "filter": {"type": "name", "mode": "contain", "text": name, "caseSensitive": False},
        }
        items = await self._search("/workspaces/search", api_key, "workspaces", body)
        return self._decode_list(Workspace, items, "workspaces")

    async def fetch_workspace(self, api_key: str, workspace_id: str) -> Workspace:
        resource = f"workspace {workspace_id}"
        if not workspace_id:
            raise ConfigurationError("workspace ID is required", "workspace")
        payload = await self._request("GET", f"/workspaces/{workspace_id}", api_key, resource)
        return self._decode(Workspace, payload, resource)

    async def fetch_workspace_groups(self, api_key: str) -> list[WorkspaceGroup]:
        items = await self._search("/workspaces/groups/search", api_key, "workspace groups", {"sort": GROUP_SORT})
        return self._decode_list(WorkspaceGroup, items, "workspace groups")

    async def fetch_fields(
        self, api_key: str, workspace_names: Optional[Mapping[str, str]] = None
    ) -> list[Field]:
        items = await self._search("/fields/search", api_key, "fields", {})
        fields = self._decode_list(Field, items, "fields")
        if workspace_names is not None:
            fields = resolve_workspace_names(fields, workspace_names)
        return fields

    async def fetch_team(self, api_key: str) -> TeamLicense:
        payload = await self._request("GET", "/team", api_key, "team")
        return self._decode(TeamLicense, payload, "team")
