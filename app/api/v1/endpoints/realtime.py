import asyncio
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import resolve_user_id
from app.database import get_db
from app.services import chat_room_service, realtime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["realtime"])


async def _pump(websocket: WebSocket, subscription: realtime.Subscription) -> None:
    while True:
        event = await subscription.get()
        await websocket.send_json(event.model_dump(mode="json"))


@router.websocket("/ws")
async def realtime_ws(
    websocket: WebSocket,
    db: Annotated[AsyncSession, Depends(get_db)],
    token: str | None = Query(None),
    room_id: UUID | None = Query(None),
):
    """
    Row changes for one room (``room_id``) or for every room of the user.

    Frames are ``{"event", "table", "record", "client_id"}``. Clients may send
    "ping" and get "pong" back; nothing else is read from the socket.
    """
    user_id = resolve_user_id(token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if room_id is not None:
        room = await chat_room_service.get_room_by_id(db, room_id)
        is_participant = room is not None and room.is_participant(user_id)
        # No pooled connection may stay checked out while the socket is open
        await db.close()
        if not is_participant:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        topic = realtime.room_topic(room_id)
    else:
        topic = realtime.user_topic(user_id)

    await websocket.accept()
    logger.info("Realtime subscribed (user=%s, topic=%s)", user_id, topic)

    async with realtime.broker.subscribe(topic) as subscription:
        pump = asyncio.create_task(_pump(websocket, subscription))
        try:
            while True:
                message = await websocket.receive_text()
                if message == "ping":
                    await websocket.send_text("pong")
        except WebSocketDisconnect:
            pass
        finally:
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Realtime send failed (user=%s, topic=%s)", user_id, topic)
            logger.info("Realtime unsubscribed (user=%s, topic=%s)", user_id, topic)
