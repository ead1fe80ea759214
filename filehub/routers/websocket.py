"""
WebSocket Router for FileHub real-time updates.

Endpoints:
- WS /ws - Change feed connection
- GET /ws/status - Change feed status
"""

import json
import logging
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_profile_from_token
from ..realtime import EventType, FeedEvent, feed

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["websocket"],
)

# Close code sent when the handshake token is rejected
AUTH_FAILED_CLOSE_CODE = 4001


def authenticate_token(token: str, db: Session) -> str:
    """
    Resolve a WebSocket token to a profile id.

    The session is closed straight away so a long-lived socket does not
    hold a pooled connection.

    Raises:
        ValueError: If the token is invalid or the profile is gone
    """
    try:
        return get_profile_from_token(token, db).id
    finally:
        db.close()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...),
    db: Session = Depends(get_db)
):
    """
    Change feed.

    Connect with: ws://host/ws?token=<jwt_token>

    Events received by client:
    - connected: Connection confirmed
    - table_changed: {"table", "action", "id"}; refetch the affected view
    - notification: A notification was created for you

    Events client can send:
    - ping: {} - Keep-alive ping
    """
    try:
        profile_id = authenticate_token(token, db)
    except ValueError:
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed")
        return

    await feed.connect(websocket, profile_id)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from {profile_id}: {data[:100]}")
                continue

            if isinstance(message, dict) and message.get("event") == "ping":
                await websocket.send_text(FeedEvent(event_type=EventType.PONG, data={}).to_json())

    except WebSocketDisconnect:
        feed.disconnect(websocket, profile_id)


@router.get("/ws/status")
async def websocket_status():
    """Connection counts for monitoring."""
    return {
        "status": "online",
        "total_connections": feed.get_connection_count(),
        "total_profiles": len(feed.get_online_profiles()),
    }
