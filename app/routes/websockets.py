# app/routes/websockets.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import Role, SocketEvent
from app.core.exceptions import BaseServiceError
from app.core.security import resolve_user
from app.dependencies import get_connection_manager, get_db, get_notification_service
from app.services.notification_service import NotificationService
from app.services.websockets.manager import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter()


def _token_from(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return None


@router.websocket("/notifications/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    db: AsyncSession = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager),
    service: NotificationService = Depends(get_notification_service),
):
    token = _token_from(websocket)
    user = await resolve_user(token, db) if token else None
    # Release the connection; the socket may stay open for hours
    await db.close()
    if user is None:
        logger.info("Rejected WebSocket handshake without a valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = user.id
    await manager.connect(websocket, user_id, Role(user.role))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.warning(f"Ignoring malformed socket message from user {user_id}")
                continue
            if not isinstance(message, dict):
                continue

            event = message.get("event")
            data = message.get("data") or {}
            if not isinstance(data, dict):
                logger.warning(f"Ignoring {event!r} with non-object data from user {user_id}")
                continue
            try:
                if event == SocketEvent.MARK_AS_READ.value:
                    notification_id = data.get("notificationId") or data.get("id")
                    notification = await service.mark_as_read(str(notification_id), user_id)
                    await manager.send_personal_message(
                        websocket, SocketEvent.NOTIFICATION_READ.value, {"notificationId": notification.id}
                    )
                elif event == SocketEvent.MARK_ALL_AS_READ.value:
                    updated = await service.mark_all_as_read(user_id)
                    await manager.send_personal_message(
                        websocket, SocketEvent.ALL_NOTIFICATIONS_READ.value, {"updated": updated}
                    )
                else:
                    logger.debug(f"Unhandled socket event {event!r} from user {user_id}")
            except BaseServiceError as e:
                await manager.send_personal_message(websocket, "error", {"event": event, "detail": e.message})
    except WebSocketDisconnect:
        logger.info(f"WebSocket client disconnected (user {user_id})")
    finally:
        manager.disconnect(websocket)
