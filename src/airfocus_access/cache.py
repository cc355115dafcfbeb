"""
In-memory snapshot of the four Airfocus collections with TTL-based refresh.

The snapshot (users, workspaces, fields, workspace groups, fetch time) is replaced
wholesale and only after all four fetches succeed, so readers never see a mix of
old and new collections. Concurrent callers of ensure_fresh share one in-flight
refresh: the staleness check is repeated under the lock, the lock is released
before the fetches run, and every waiter receives the same result or error.

Readers get deep copies; nothing handed out aliases cached state.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from . import config
from .models import Field, User, Workspace, WorkspaceGroup
from .protocol import UpstreamGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    users: tuple[User, ...] = ()
    workspaces: tuple[Workspace, ...] = ()
    fields: tuple[Field, ...] = ()
    groups: tuple[WorkspaceGroup, ...] = ()
    fetched_at: Optional[float] = None


@dataclass
class CacheStats:
    refreshes: int = 0
    failed_refreshes: int = 0
    hits: int = 0
    joined: int = 0
    last_error: Optional[str] = None


class SnapshotCache:
    """TTL cache over an UpstreamGateway. One instance per API key."""

    def __init__(
        self,
        gateway: UpstreamGateway,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gateway = gateway
        self.ttl_seconds = config.cache_ttl_seconds() if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._snapshot = Snapshot()
        self._lock = asyncio.Lock()
        self._inflight: Optional[asyncio.Task] = None
        self._waiters = 0
        self.stats = CacheStats()

    @property
    def fetched_at(self) -> Optional[float]:
        return self._snapshot.fetched_at

    def is_fresh(self) -> bool:
        fetched_at = self._snapshot.fetched_at
        return fetched_at is not None and self._clock() - fetched_at <= self.ttl_seconds

    def invalidate(self) -> None:
        """Mark the snapshot stale; the data stays readable until the next refresh commits."""
        self._snapshot = Snapshot(
            users=self._snapshot.users,
            workspaces=self._snapshot.workspaces,
            fields=self._snapshot.fields,
            groups=self._snapshot.groups,
            fetched_at=None,
        )

    async def ensure_fresh(self, api_key: str) -> None:
        """
        Refresh the snapshot if it is older than the TTL.

        Raises whatever the failing fetch raised; the previous snapshot is kept and
        the next call tries again.
        """
        if self.is_fresh():
            self.stats.hits += 1
            return

        async with self._lock:
            if self.is_fresh():
                self.stats.hits += 1
                return
            if self._inflight is None:
                self._inflight = asyncio.create_task(self._refresh(api_key))
                self._inflight.add_done_callback(self._clear_inflight)
            else:
                self.stats.joined += 1
            task = self._inflight

        self._waiters += 1
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # The last waiter leaving takes the upstream calls down with it.
            if self._waiters == 1 and not task.done():
                task.cancel()
                if self._inflight is task:
                    self._inflight = None
            raise
        finally:
            self._waiters -= 1

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            self.stats.failed_refreshes += 1
            self.stats.last_error = str(task.exception())

    async def _refresh(self, api_key: str) -> None:
        logger.info("Refreshing Airfocus snapshot")
        started = self._clock()
        results = await asyncio.gather(
            self.gateway.fetch_users(api_key),
            self.gateway.fetch_workspaces(api_key),
            self.gateway.fetch_fields(api_key),
            self.gateway.fetch_workspace_groups(api_key),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.warning("Airfocus snapshot refresh failed: %s", failures[0])
            raise failures[0]

        users, workspaces, fields, groups = results
        self._snapshot = Snapshot(
            users=tuple(users),
            workspaces=tuple(workspaces),
            fields=tuple(fields),
            groups=tuple(groups),
            fetched_at=self._clock(),
        )
        self.stats.refreshes += 1
        logger.info(
            "Airfocus snapshot refreshed in %.2fs: %d users, %d workspaces, %d fields, %d groups",
            self._clock() - started, len(users), len(workspaces), len(fields), len(groups),
        )

    def read_users(self) -> list[User]:
        return [user.model_copy(deep=True) for user in self._snapshot.users]

    def read_workspaces(self) -> list[Workspace]:
        return [workspace.model_copy(deep=True) for workspace in self._snapshot.workspaces]

    def read_fields(self) -> list[Field]:
        return [f.model_copy(deep=True) for f in self._snapshot.fields]

    def read_groups(self) -> list[WorkspaceGroup]:
        return [group.model_copy(deep=True) for group in self._snapshot.groups]

    def read_snapshot(self) -> Snapshot:
        """All four collections from the same refresh, as copies."""
        snapshot = self._snapshot
        return Snapshot(
            users=tuple(u.model_copy(deep=True) for u in snapshot.users),
            workspaces=tuple(w.model_copy(deep=True) for w in snapshot.workspaces),
            fields=tuple(f.model_copy(deep=True) for f in snapshot.fields),
            groups=tuple(g.model_copy(deep=True) for g in snapshot.groups),
            fetched_at=snapshot.fetched_at,
        )

