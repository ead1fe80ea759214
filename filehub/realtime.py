"""
Change feed for FileHub real-time updates.

Connected clients receive:
- connected: Connection confirmed
- table_changed: A category, file, post, comment or notification row changed
  ({"table", "action", "id"}); clients refetch the affected view
- notification: A notification was created for the receiving profile

Notification row changes are only ever sent to the profile that owns them.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Change feed event types."""
    CONNECTED = "connected"
    TABLE_CHANGED = "table_changed"
    NOTIFICATION = "notification"
    PONG = "pong"


class ChangeAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


WATCHED_TABLES = ("categories", "files", "posts", "comments", "notifications")


@dataclass
class FeedEvent:
    """Structured change feed event."""
    event_type: EventType
    data: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_json(self) -> str:
        return json.dumps({
            "event": self.event_type.value,
            "data": self.data,
            "timestamp": self.timestamp,
        })


@dataclass
class FeedConnection:
    """A connected profile's WebSocket session."""
    websocket: WebSocket
    profile_id: str
    connected_at: datetime = field(default_factory=datetime.utcnow)


class ChangeFeedManager:
    """
    Tracks WebSocket connections per profile and fans events out to them.

    A profile may hold several connections (one per open tab). Sends are
    fire-and-forget: a failing socket is logged and skipped.
    """

    def __init__(self):
        # Map: profile_id -> List[FeedConnection]
        self.connections: Dict[str, List[FeedConnection]] = {}
        logger.info("Change feed manager initialized")

    async def connect(self, websocket: WebSocket, profile_id: str) -> FeedConnection:
        """Accept a WebSocket and send the connection confirmation."""
        await websocket.accept()

        connection = FeedConnection(websocket=websocket, profile_id=profile_id)
        self.connections.setdefault(profile_id, []).append(connection)

        logger.info(f"Change feed connected: {profile_id}")

        await self.send_personal(
            profile_id,
            FeedEvent(
                event_type=EventType.CONNECTED,
                data={"message": "Connected to FileHub real-time updates", "tables": list(WATCHED_TABLES)},
            ),
        )
        return connection

    def disconnect(self, websocket: WebSocket, profile_id: str) -> None:
        if profile_id in self.connections:
            self.connections[profile_id] = [
                conn for conn in self.connections[profile_id]
                if conn.websocket != websocket
            ]
            if not self.connections[profile_id]:
                del self.connections[profile_id]

        logger.info(f"Change feed disconnected: {profile_id}")

    async def _send(self, connection: FeedConnection, message: str) -> None:
        try:
            await connection.websocket.send_text(message)
        except Exception as e:
            logger.warning(f"Change feed send failed for {connection.profile_id}: {e}")

    async def send_personal(self, profile_id: str, event: FeedEvent) -> None:
        """Send event to every connection of one profile."""
        message = event.to_json()
        for conn in list(self.connections.get(profile_id, [])):
            await self._send(conn, message)

    async def broadcast(self, event: FeedEvent) -> None:
        """Send event to every connected profile."""
        message = event.to_json()
        for connections in list(self.connections.values()):
            for conn in list(connections):
                await self._send(conn, message)

    def get_online_profiles(self) -> List[str]:
        return list(self.connections.keys())

    def get_connection_count(self) -> int:
        return sum(len(conns) for conns in self.connections.values())


# Global change feed instance
feed = ChangeFeedManager()


# =============================================================================
# Helper functions for publishing from routers
# =============================================================================

def table_changed_event(table: str, action: ChangeAction, record_id: Optional[str]) -> FeedEvent:
    return FeedEvent(
        event_type=EventType.TABLE_CHANGED,
        data={"table": table, "action": ChangeAction(action).value, "id": record_id},
    )


async def broadcast_change(
    table: str,
    action: ChangeAction,
    record_id: Optional[str],
    audience: Optional[Iterable[str]] = None,
) -> None:
    """
    Tell clients that a shared table changed.

    audience limits the event to those profile ids; None sends it to every
    connected client.
    """
    event = table_changed_event(table, action, record_id)
    if audience is None:
        await feed.broadcast(event)
        return

    for profile_id in set(audience):
        await feed.send_personal(profile_id, event)


async def send_notification_change(profile_id: str, action: ChangeAction, record_id: Optional[str]) -> None:
    """Tell one profile that its notifications changed."""
    await feed.send_personal(profile_id, table_changed_event("notifications", action, record_id))


async def push_notifications(deliveries: Iterable[Dict[str, Any]]) -> None:
    """
    Deliver freshly created notifications to their recipients.

    Each delivery is the dict returned by the notification service. The
    recipient receives a notification event carrying it plus a
    table_changed event for the notifications table.
    """
    for delivery in deliveries:
        await feed.send_personal(
            delivery["user_id"],
            FeedEvent(event_type=EventType.NOTIFICATION, data=delivery),
        )
        await send_notification_change(delivery["user_id"], ChangeAction.INSERT, delivery["id"])
