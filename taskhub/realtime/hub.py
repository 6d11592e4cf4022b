"""Connection registry and broadcast hub for realtime task events.

A connection is any object with an async ``send_json(data)`` method
(a Starlette ``WebSocket`` in production). The registry is mutated only
from the event loop, so it needs no locking.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from taskhub.middleware.metrics import realtime_events_total, websocket_connections
from taskhub.schemas.realtime import TaskEvent, task_event_adapter

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps user ids to their open connections."""

    def __init__(self):
        self._by_user: Dict[str, Set[Any]] = {}
        self._user_of: Dict[Any, str] = {}
        self._joined: Dict[Any, Set[int]] = {}

    def register(self, user_id: str, conn: Any) -> None:
        """Bind ``conn`` to ``user_id``. Re-authenticating moves it to the new user."""
        previous = self._user_of.get(conn)
        if previous == user_id:
            return
        if previous is not None:
            self.unregister(conn)
        self._by_user.setdefault(user_id, set()).add(conn)
        self._user_of[conn] = user_id
        websocket_connections.set(len(self._user_of))

    def unregister(self, conn: Any) -> Optional[str]:
        """Drop ``conn``. Returns the user it belonged to, if any."""
        user_id = self._user_of.pop(conn, None)
        self._joined.pop(conn, None)
        if user_id is not None:
            conns = self._by_user.get(user_id)
            if conns is not None:
                conns.discard(conn)
                if not conns:
                    del self._by_user[user_id]
            websocket_connections.set(len(self._user_of))
        return user_id

    def connections_for(self, user_id: str) -> List[Any]:
        return list(self._by_user.get(user_id, ()))

    def user_for(self, conn: Any) -> Optional[str]:
        return self._user_of.get(conn)

    def join_task(self, conn: Any, task_id: int) -> None:
        # Recorded only; delivery is decided by the task audience.
        self._joined.setdefault(conn, set()).add(task_id)

    def joined_tasks(self, conn: Any) -> Set[int]:
        return set(self._joined.get(conn, ()))

    def connection_count(self) -> int:
        return len(self._user_of)


class BroadcastHub:
    """Delivers task events to the open connections of recipient users.

    With a ``backend`` (see ``RedisFanout``) events go through a pub/sub
    channel and every process delivers to its own connections.
    """

    def __init__(self, registry: Optional[ConnectionRegistry] = None, backend=None):
        self.registry = registry or ConnectionRegistry()
        self.backend = backend

    async def publish_to_user(self, user_id: str, payload: Dict[str, Any]) -> int:
        """Send ``payload`` to every connection of ``user_id``; returns deliveries."""
        delivered = 0
        for conn in self.registry.connections_for(user_id):
            try:
                await conn.send_json(payload)
            except Exception as e:
                logger.warning("Dropping connection of user %s after failed send: %s", user_id, e)
                self.registry.unregister(conn)
            else:
                delivered += 1
        return delivered

    async def deliver(self, payload: Dict[str, Any], recipients: Iterable[str]) -> int:
        """Local delivery to this process's connections."""
        delivered = 0
        for user_id in sorted(set(recipients)):
            delivered += await self.publish_to_user(user_id, payload)
        return delivered

    async def publish(self, event: TaskEvent, recipients: Iterable[str]) -> None:
        payload = task_event_adapter.dump_python(event, mode="json", by_alias=True)
        recipients = set(recipients)
        realtime_events_total.labels(payload["type"]).inc()

        if self.backend is not None:
            await self.backend.publish(payload, recipients)
            return

        delivered = await self.deliver(payload, recipients)
        logger.debug(
            "Event %s for task %s delivered to %d connection(s)",
            payload["type"],
            payload.get("taskId"),
            delivered,
        )
