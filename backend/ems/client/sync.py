# backend/ems/client/sync.py
"""
Client-side task reconciliation.

Keeps a local mirror of the server's tasks so a client can keep working
while the API is unreachable. Every cached record carries a `sync_state`
so callers can tell server-confirmed data from local-only writes.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ems.client.cache import TASKS_KEY, USER_DATA_KEY, LocalCache
from ems.models.task import TaskStatus, count_tasks, resolve_status, status_flags

logger = logging.getLogger(__name__)

# fields the server accepts on create/update
WRITABLE_FIELDS = ("title", "description", "due_date", "category", "assignee_id", "status")

PUSHED_TASK_EVENTS = ("task-assigned", "task-update", "task-updated", "task-update-notification")


class SyncState(str, Enum):
    CONFIRMED = "confirmed"
    PENDING_CREATE = "pending_create"
    PENDING_UPDATE = "pending_update"
    STALE = "stale"


PENDING_STATES = (SyncState.PENDING_CREATE.value, SyncState.PENDING_UPDATE.value)


class TaskRejectedError(Exception):
    """The server answered a task write with a 4xx; nothing was cached."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


@dataclass
class TaskSnapshot:
    tasks: List[Dict[str, Any]]
    counts: Dict[str, int]
    synced: bool = True
    error: Optional[str] = None


@dataclass
class FlushResult:
    confirmed: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)


def _with_flags(task: Dict[str, Any]) -> Dict[str, Any]:
    status = resolve_status(task)
    if status is None:
        return task
    return {**task, "status": status.value, **status_flags(status)}


def _rejection(exc: httpx.HTTPStatusError) -> Optional[TaskRejectedError]:
    response = exc.response
    if response.status_code >= 500:
        return None
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        detail = response.text
    return TaskRejectedError(response.status_code, str(detail))


class TaskSyncClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        cache: Optional[LocalCache] = None,
        timeout: float = 10.0,
        api_prefix: str = "/api",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.cache = cache if cache is not None else LocalCache()
        self.api_prefix = api_prefix
        # owner of the cached task list; pushed tasks for anyone else only touch userData
        self.user_id = user_id
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---------- cache access ----------

    def cached_tasks(self) -> List[Dict[str, Any]]:
        tasks = self.cache.get(TASKS_KEY, [])
        return [dict(t) for t in tasks if isinstance(t, dict)]

    def _store_tasks(self, tasks: List[Dict[str, Any]]) -> None:
        self.cache.set(TASKS_KEY, tasks)

    def _upsert(self, task: Dict[str, Any], replace_id: Optional[str] = None) -> None:
        tasks = self.cached_tasks()
        target = replace_id or task["id"]
        for i, cached in enumerate(tasks):
            if cached.get("id") == target:
                tasks[i] = task
                break
        else:
            tasks.append(task)
        if replace_id and replace_id != task["id"]:
            # a confirmed copy may already have arrived by push
            tasks = [t for t in tasks if t.get("id") != task["id"] or t is task]
        self._store_tasks(tasks)
        self._update_user_task_data(task, replace_id=replace_id)

    def _discard(self, task: Dict[str, Any]) -> None:
        tasks = [t for t in self.cached_tasks() if t.get("id") != task["id"]]
        self._store_tasks(tasks)
        self._update_user_task_data(task)

    def snapshot(self, synced: bool = True, error: Optional[str] = None) -> TaskSnapshot:
        tasks = self.cached_tasks()
        counted = [t for t in tasks if t.get("sync_state") != SyncState.STALE.value]
        return TaskSnapshot(tasks=tasks, counts=count_tasks(counted), synced=synced, error=error)

    # ---------- per-user data ----------

    def cached_users(self) -> List[Dict[str, Any]]:
        users = self.cache.get(USER_DATA_KEY, [])
        return [dict(u) for u in users if isinstance(u, dict)]

    def _update_user_task_data(self, task: Dict[str, Any], replace_id: Optional[str] = None) -> None:
        users = self.cached_users()
        if not users:
            return

        ids = {task["id"], replace_id} - {None}
        changed = False
        for user in users:
            tasks = [dict(t) for t in user.get("tasks") or []]
            kept = [t for t in tasks if t.get("id") not in ids]
            if user.get("id") == task.get("assignee_id"):
                previous = next((t for t in tasks if t.get("id") in ids), {})
                kept.append({**previous, **task})
            if len(kept) != len(tasks) or user.get("id") == task.get("assignee_id"):
                user["tasks"] = kept
                user["task_counts"] = count_tasks(kept)
                changed = True

        if changed:
            self.cache.set(USER_DATA_KEY, users)

    async def refresh_users(self) -> List[Dict[str, Any]]:
        """
        Admin view: load all users and attach their cached tasks and counts.
        """
        response = await self._http.get(f"{self.api_prefix}/users")
        response.raise_for_status()
        tasks = self.cached_tasks()

        users = []
        for user in response.json():
            own = [t for t in tasks if t.get("assignee_id") == user.get("id")]
            users.append({**user, "tasks": own, "task_counts": count_tasks(own)})
        self.cache.set(USER_DATA_KEY, users)
        return users

    # ---------- reads ----------

    async def get_tasks(self) -> TaskSnapshot:
        """
        Server tasks merged with the cache (server copy wins by id).
        Never raises: on failure the cached set comes back with synced=False.
        """
        try:
            response = await self._http.get(f"{self.api_prefix}/users/me/tasks")
            response.raise_for_status()
            api_tasks = response.json().get("tasks") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Task fetch failed, serving cache: %s", e)
            return self.snapshot(synced=False, error=str(e) or e.__class__.__name__)

        server_ids = {t["id"] for t in api_tasks}
        merged = [{**_with_flags(t), "sync_state": SyncState.CONFIRMED.value} for t in api_tasks]
        for cached in self.cached_tasks():
            if cached.get("id") in server_ids:
                continue
            if cached.get("sync_state") not in PENDING_STATES:
                cached["sync_state"] = SyncState.STALE.value
            merged.append(cached)

        self._store_tasks(merged)
        return self.snapshot()

    # ---------- writes ----------

    async def create_task(self, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = {k: data[k] for k in WRITABLE_FIELDS if data.get(k) is not None}
        try:
            response = await self._http.post(f"{self.api_prefix}/tasks", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            rejected = _rejection(e)
            if rejected is not None:
                raise rejected from e
            logger.warning("Task create failed, keeping it locally: %s", e)
            return self._create_locally(data)
        except httpx.TransportError as e:
            logger.warning("Task create failed, keeping it locally: %s", e)
            return self._create_locally(data)

        task = {**_with_flags(response.json()), "sync_state": SyncState.CONFIRMED.value}
        self._upsert(task)
        return task

    def _create_locally(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        task = _with_flags({
            "status": TaskStatus.NEW.value,
            **data,
            "id": str(int(time.time() * 1000)),
            "created_at": now,
            "updated_at": now,
            "sync_state": SyncState.PENDING_CREATE.value,
        })
        self._upsert(task)
        return task

    async def update_task(self, task_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        cached = next((t for t in self.cached_tasks() if t.get("id") == task_id), None)
        if cached is not None and cached.get("sync_state") == SyncState.PENDING_CREATE.value:
            # the server has never seen this id
            return self._update_locally(cached, task_id, data)

        payload = {k: v for k, v in data.items() if k in WRITABLE_FIELDS or k == "expected_version"}
        try:
            response = await self._http.put(f"{self.api_prefix}/tasks/{task_id}", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            rejected = _rejection(e)
            if rejected is not None:
                raise rejected from e
            logger.warning("Task update failed, keeping it locally: %s", e)
            return self._update_locally(cached, task_id, data)
        except httpx.TransportError as e:
            logger.warning("Task update failed, keeping it locally: %s", e)
            return self._update_locally(cached, task_id, data)

        task = {**(cached or {}), **_with_flags(response.json()), "sync_state": SyncState.CONFIRMED.value}
        self._upsert(task)
        return task

    def _update_locally(self, cached: Optional[Dict[str, Any]], task_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        state = SyncState.PENDING_UPDATE.value
        if cached is not None and cached.get("sync_state") == SyncState.PENDING_CREATE.value:
            state = SyncState.PENDING_CREATE.value
        patch = {k: v for k, v in data.items() if k != "expected_version"}
        task = _with_flags({
            **(cached or {}),
            **patch,
            "id": task_id,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "sync_state": state,
        })
        self._upsert(task)
        return task

    async def flush_pending(self) -> FlushResult:
        """
        Replay local-only writes. A confirmed response replaces the local
        record; a rejected one is marked stale and reported.
        """
        result = FlushResult()
        for task in self.cached_tasks():
            state = task.get("sync_state")
            if state not in PENDING_STATES:
                continue

            payload = {k: task[k] for k in WRITABLE_FIELDS if task.get(k) is not None}
            try:
                if state == SyncState.PENDING_CREATE.value:
                    response = await self._http.post(f"{self.api_prefix}/tasks", json=payload)
                else:
                    response = await self._http.put(f"{self.api_prefix}/tasks/{task['id']}", json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                rejected = _rejection(e)
                if rejected is not None:
                    self._upsert({**task, "sync_state": SyncState.STALE.value})
                    result.failed.append((task["id"], str(rejected)))
                else:
                    result.failed.append((task["id"], str(e)))
                continue
            except httpx.TransportError as e:
                result.failed.append((task["id"], str(e) or e.__class__.__name__))
                continue

            confirmed = {**_with_flags(response.json()), "sync_state": SyncState.CONFIRMED.value}
            self._upsert(confirmed, replace_id=task["id"])
            result.confirmed.append(confirmed)

        if result.failed:
            logger.warning("%d pending task writes still unsynced", len(result.failed))
        return result

    # ---------- pushed events ----------

    def apply_event(self, event: str, data: Any) -> Optional[TaskSnapshot]:
        """
        Fold a pushed realtime event into the cache. Returns the new snapshot,
        or None when the cached task list did not change.

        `task-assigned` is sent to the assignee only, so it always lands in
        the list. The broadcast events only refresh tasks already cached,
        or add ones assigned to `user_id`; a cached task reassigned to
        someone else is dropped.
        """
        if event not in PUSHED_TASK_EVENTS or not isinstance(data, dict):
            return None

        task = data.get("task") if event in ("task-update", "task-update-notification") else data
        if not isinstance(task, dict) or not task.get("id"):
            return None

        record = {**_with_flags(task), "sync_state": SyncState.CONFIRMED.value}
        cached = any(t.get("id") == task["id"] for t in self.cached_tasks())
        own = event == "task-assigned" or (
            self.user_id is not None and task.get("assignee_id") == self.user_id
        )

        if own or (cached and self.user_id is None):
            self._upsert(record)
        elif cached:
            self._discard(record)
        else:
            self._update_user_task_data(record)
            return None
        return self.snapshot()
