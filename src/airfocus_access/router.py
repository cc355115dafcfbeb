"""
FastAPI router exposing the query facade as JSON endpoints.

Every endpoint is a POST taking the caller's Airfocus API key in the body, the
same way the browser UI submits it with each form. Services (and their snapshot
caches) are kept per key in a small LRU pool keyed by a SHA-256 digest of the key.
Responses are {"ok": true, "data": ...} or {"ok": false, "error": ..., "kind": ...}.
"""

import asyncio
import hashlib
import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import config
from .errors import AirfocusError, ConfigurationError, NotFoundError
from .service import AirfocusService, workspace_user_stats

logger = logging.getLogger(__name__)

ERROR_STATUS = {ConfigurationError: 400, NotFoundError: 404}


class ServicePool:
    """LRU of AirfocusService instances, one per API key."""

    def __init__(self, factory: Callable[[], AirfocusService] = AirfocusService, max_size: Optional[int] = None):
        self.factory = factory
        self.max_size = max_size or config.max_cached_keys()
        self._services: "OrderedDict[str, AirfocusService]" = OrderedDict()

    @staticmethod
    def _digest(api_key: str) -> str:
        return hashlib.sha256(api_key.encode("utf-8")).hexdigest()

    def get(self, api_key: str) -> AirfocusService:
        if not api_key or not api_key.strip():
            raise ConfigurationError("API key is required")
        digest = self._digest(api_key.strip())
        service = self._services.get(digest)
        if service is None:
            service = self.factory()
            self._services[digest] = service
            while len(self._services) > self.max_size:
                self._services.popitem(last=False)
        else:
            self._services.move_to_end(digest)
        return service

    def __len__(self) -> int:
        return len(self._services)


class KeyRequest(BaseModel):
    api_key: str = ""


class WorkspaceNameRequest(KeyRequest):
    workspace_name: str = ""


class WorkspaceRequest(KeyRequest):
    workspace_id: str = ""


class FieldRequest(KeyRequest):
    field_name: str = ""


class UserRequest(KeyRequest):
    user_id: str = ""


def error_response(error: AirfocusError) -> JSONResponse:
    """Map an AirfocusError to a structured JSON error body."""
    status = 502
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status = code
    return JSONResponse({"ok": False, "error": str(error), "kind": type(error).__name__}, status_code=status)


async def respond(operation: Callable[[], Awaitable[Any]]):
    """Run an operation under the request deadline and shape its outcome."""
    timeout = config.request_timeout_seconds() or None
    try:
        async with asyncio.timeout(timeout):
            result = await operation()
    except AirfocusError as e:
        logger.warning("Request failed: %s", e)
        return error_response(e)
    except TimeoutError:
        logger.warning("Request exceeded %ss deadline", timeout)
        return JSONResponse(
            {"ok": False, "error": "Airfocus request timed out", "kind": "TimeoutError"}, status_code=504
        )
    return {"ok": True, "data": jsonable_encoder(result, by_alias=True)}


def create_api_router(pool: Optional[ServicePool] = None) -> APIRouter:
    """Create an APIRouter with the workspace, field and user endpoints."""
    pool = pool or ServicePool()
    router = APIRouter(prefix="/api")

    def service_for(api_key: str) -> AirfocusService:
        return pool.get(api_key)

    @router.post("/workspaces")
    async def list_workspaces(body: KeyRequest):
        """All non-archived workspaces with their group."""
        return await respond(lambda: service_for(body.api_key).list_workspaces(body.api_key))

    @router.post("/workspaces/hierarchy")
    async def workspace_hierarchy(body: KeyRequest):
        return await respond(lambda: service_for(body.api_key).get_workspace_hierarchy(body.api_key))

    @router.post("/workspace/id")
    async def workspace_id(body: WorkspaceNameRequest):
        """ID and alias of a workspace looked up by name."""
        return await respond(
            lambda: service_for(body.api_key).get_workspace_by_name(body.api_key, body.workspace_name)
        )

    @router.post("/workspace/users")
    async def workspace_users(body: WorkspaceRequest):
        """Users with explicit access to a workspace, plus counts."""

        async def users_and_stats():
            service = service_for(body.api_key)
            users = await service.get_workspace_users(body.api_key, body.workspace_id)
            return {"users": users, "stats": workspace_user_stats(users)}

        return await respond(users_and_stats)

    @router.post("/fields")
    async def list_fields(body: KeyRequest):
        return await respond(lambda: service_for(body.api_key).list_fields(body.api_key))

    @router.post("/field/info")
    async def field_info(body: FieldRequest):
        return await respond(lambda: service_for(body.api_key).get_field(body.api_key, body.field_name))

    @router.post("/users")
    async def list_users(body: KeyRequest):
        return await respond(lambda: service_for(body.api_key).list_users(body.api_key))

    @router.post("/users/roles")
    async def role_stats(body: KeyRequest):
        return await respond(lambda: service_for(body.api_key).get_role_stats(body.api_key))

    @router.post("/team/license")
    async def team_license(body: KeyRequest):
        """Seat totals (total, used, free) overall and per role."""
        return await respond(lambda: service_for(body.api_key).get_team_license(body.api_key))

    @router.post("/user/workspaces")
    async def user_workspaces(body: UserRequest):
        """Workspaces the user holds a direct grant on."""
        return await respond(lambda: service_for(body.api_key).get_user_workspaces(body.api_key, body.user_id))

    @router.post("/user/groups")
    async def user_groups(body: UserRequest):
        """Groups with the user's effective, inherited permission."""
        return await respond(lambda: service_for(body.api_key).get_user_group_access(body.api_key, body.user_id))

    @router.post("/user/info")
    async def user_info(body: UserRequest):
        return await respond(lambda: service_for(body.api_key).get_user_info(body.api_key, body.user_id))

    return router
