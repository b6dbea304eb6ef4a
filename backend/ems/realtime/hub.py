import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

# event names on the wire
USER_CONNECTED = "user-connected"
GET_ACTIVE_USERS = "get-active-users"
ACTIVE_USERS_LIST = "active-users-list"
USERS_UPDATED = "users-updated"
TASK_ASSIGNED = "task-assigned"
TASK_UPDATED = "task-updated"
TASK_UPDATE = "task-update"
TASK_UPDATE_NOTIFICATION = "task-update-notification"
EMPLOYEE_CREATED = "employee-created"
EMPLOYEE_UPDATED = "employee-updated"
EMPLOYEE_DELETED = "employee-deleted"
ERROR = "error"


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...


def envelope(event: str, data: Any) -> Dict[str, Any]:
    return {"event": event, "data": data}


class SyncHub:
    """
    Presence tracking and event fan-out for connected clients.

    Presence is indexed both ways (user -> connection, connection -> user)
    so a disconnect never has to scan. A user re-announcing from a new
    connection takes over the mapping; the old connection stays open but
    no longer owns the user. A connection re-announcing as another user
    releases the previous one, which goes offline.

    Only connections that announced with an admin token may relay
    `task-assigned` / `task-updated`; everyone else gets an error.
    """

    def __init__(self):
        self.connections: Dict[str, Connection] = {}
        self.user_connections: Dict[str, str] = {}
        self.connection_users: Dict[str, str] = {}
        self.connection_roles: Dict[str, str] = {}

    # ---------- connection lifecycle ----------

    def register(self, connection: Connection) -> str:
        connection_id = str(uuid.uuid4())
        self.connections[connection_id] = connection
        logger.info("Client connected %s (total=%d)", connection_id, len(self.connections))
        return connection_id

    async def announce(self, connection_id: str, user_id: str, role: Optional[str] = None) -> None:
        """
        Handle `user-connected`: mark the user online and hand back the snapshot.
        `role` is only passed for identities proven by a token.
        """
        if connection_id not in self.connections or not user_id:
            return

        previous_connection = self.user_connections.get(user_id)
        if previous_connection is not None and previous_connection != connection_id:
            self.connection_users.pop(previous_connection, None)
            self.connection_roles.pop(previous_connection, None)
        previous_user = self.connection_users.get(connection_id)
        released = None
        if previous_user is not None and previous_user != user_id:
            if self.user_connections.get(previous_user) == connection_id:
                del self.user_connections[previous_user]
                released = previous_user

        if role is not None:
            self.connection_roles[connection_id] = role
        elif previous_user != user_id:
            self.connection_roles.pop(connection_id, None)

        self.user_connections[user_id] = connection_id
        self.connection_users[connection_id] = user_id
        logger.info("User %s online via %s", user_id, connection_id)

        if released is not None:
            logger.info("User %s offline, %s re-announced as %s", released, connection_id, user_id)
            await self.broadcast(USERS_UPDATED, {"user_id": released, "status": "offline"})
        await self.broadcast(USERS_UPDATED, {"user_id": user_id, "status": "online"})
        await self.send_active_users(connection_id)

    async def disconnect(self, connection_id: str) -> None:
        if self.connections.pop(connection_id, None) is None:
            return
        user_id = self.connection_users.pop(connection_id, None)
        self.connection_roles.pop(connection_id, None)
        logger.info("Client disconnected %s", connection_id)
        if user_id is None:
            return

        if self.user_connections.get(user_id) == connection_id:
            del self.user_connections[user_id]
        logger.info("User %s offline", user_id)
        await self.broadcast(USERS_UPDATED, {"user_id": user_id, "status": "offline"})

    def reset(self) -> None:
        """Drop all state; called on application shutdown."""
        self.connections.clear()
        self.user_connections.clear()
        self.connection_users.clear()
        self.connection_roles.clear()

    # ---------- presence ----------

    def active_users(self) -> List[str]:
        return list(self.user_connections.keys())

    def is_online(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id in self.user_connections

    def can_relay(self, connection_id: str) -> bool:
        return self.connection_roles.get(connection_id) == "admin"

    async def send_active_users(self, connection_id: str) -> None:
        await self.send(connection_id, ACTIVE_USERS_LIST, self.active_users())

    # ---------- delivery ----------

    async def send(self, connection_id: str, event: str, data: Any) -> bool:
        connection = self.connections.get(connection_id)
        if connection is None:
            return False
        try:
            await connection.send_json(envelope(event, data))
        except Exception as e:
            logger.warning("Send of %s to %s failed: %s", event, connection_id, e)
            await self.disconnect(connection_id)
            return False
        return True

    async def send_to_user(self, user_id: str, event: str, data: Any) -> bool:
        connection_id = self.user_connections.get(user_id)
        if connection_id is None:
            return False
        return await self.send(connection_id, event, data)

    async def broadcast(self, event: str, data: Any) -> None:
        message = envelope(event, data)
        dead: List[str] = []
        for connection_id, connection in list(self.connections.items()):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning("Broadcast of %s to %s failed: %s", event, connection_id, e)
                dead.append(connection_id)

        for connection_id in dead:
            await self.disconnect(connection_id)

    # ---------- task events ----------

    async def task_assigned(self, task: Dict[str, Any], assignee_id: str) -> None:
        if await self.send_to_user(assignee_id, TASK_ASSIGNED, task):
            logger.info("Task %s delivered to online user %s", task.get("id"), assignee_id)
        else:
            logger.info("User %s offline, task %s waits for next login", assignee_id, task.get("id"))

        await self.broadcast(TASK_UPDATE, {
            "type": "new",
            "task": task,
            "assignee_id": assignee_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    async def task_updated(self, task: Dict[str, Any]) -> None:
        await self.broadcast(TASK_UPDATED, task)

        assignee_id = task.get("assignee_id")
        if self.is_online(assignee_id):
            await self.send_to_user(assignee_id, TASK_UPDATE_NOTIFICATION, {
                "message": f'Task "{task.get("title", "")}" has been updated',
                "task": task,
            })

    # ---------- inbound dispatch ----------

    async def handle(self, connection_id: str, message: Any) -> None:
        """Dispatch one `{"event": ..., "data": ...}` message from a client."""
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            await self.send(connection_id, ERROR, {"message": "Malformed message"})
            return

        event = message["event"]
        data = message.get("data")

        if event == USER_CONNECTED:
            if isinstance(data, dict):
                data = data.get("user_id")
            if not data:
                await self.send(connection_id, ERROR, {"message": "user id required"})
                return
            await self.announce(connection_id, str(data))
        elif event == GET_ACTIVE_USERS:
            await self.send_active_users(connection_id)
        elif event in (TASK_ASSIGNED, TASK_UPDATED) and not self.can_relay(connection_id):
            logger.warning("Rejected %s relay from %s", event, connection_id)
            await self.send(connection_id, ERROR, {"message": "Not authorized"})
        elif event == TASK_ASSIGNED:
            if not isinstance(data, dict) or not isinstance(data.get("task"), dict):
                await self.send(connection_id, ERROR, {"message": "task payload required"})
                return
            assignee_id = data.get("assignee_id") or data["task"].get("assignee_id")
            await self.task_assigned(data["task"], assignee_id)
        elif event == TASK_UPDATED:
            if not isinstance(data, dict):
                await self.send(connection_id, ERROR, {"message": "task payload required"})
                return
            await self.task_updated(data)
        else:
            await self.send(connection_id, ERROR, {"message": f"Unknown event: {event}"})


# Global instance
hub = SyncHub()
