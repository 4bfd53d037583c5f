"""
MODULE OVERVIEW:
The hub's WebSocket route.

WHAT IS HAPPENING HERE:
Upgrades the HTTP request, greets the client with `connected`, puts it in its restaurant
room when the handshake named one, then reads command frames until the client leaves.
Bad frames, unknown commands and invalid payloads are answered with an `error` frame.
"""
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from loguru import logger
from pydantic import ValidationError

from server.connection_manager import ConnectionManager, restaurant_room
from server.handlers import HANDLERS, CommandError, Session, now_iso
from shared.route_utils import extract_client_id, log_connection
from shared.wire import FrameError, decode_frame

router = APIRouter()


async def dispatch(manager: ConnectionManager, session: Session, text: str) -> None:
    try:
        event, data = decode_frame(text)
    except FrameError as e:
        await manager.send(session.client_id, "error", {"message": f"Malformed frame: {e}"})
        return

    handler = HANDLERS.get(event)
    if handler is None:
        await manager.send(session.client_id, "error", {"message": f"Unknown event: {event}"})
        return

    try:
        await handler(manager, session, data or {})
    except ValidationError as e:
        await manager.send(session.client_id, "error", {
            "message": f"Invalid payload for {event}",
            "details": e.errors(include_url=False, include_context=False),
        })
    except CommandError as e:
        await manager.send(session.client_id, "error", {
            "message": str(e),
            "restaurantId": session.restaurant_id,
        })


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    user_id: Optional[str] = Query(None, alias="userId"),
):
    manager: ConnectionManager = websocket.app.state.manager
    session = Session(client_id=await extract_client_id(user_id), user_id=user_id)

    await manager.connect(session.client_id, websocket)
    await log_connection("websocket:connect", session.client_id, {
        "restaurant_id": restaurant_id,
        # Auth is handled upstream; only note whether a credential came along
        "token": "yes" if websocket.headers.get("authorization") else "no",
    })

    await manager.send(session.client_id, "connected", {
        "message": "Connected to Restaurant Dashboard real-time service",
        "userId": user_id,
        "timestamp": now_iso(),
    })
    if restaurant_id:
        session.restaurant_id = restaurant_id
        manager.join(session.client_id, restaurant_room(restaurant_id))

    try:
        while True:
            text_data = await websocket.receive_text()
            logger.debug(f"WS client {session.client_id} sent: {text_data}")
            await dispatch(manager, session, text_data)
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(session.client_id)
        await log_connection("websocket:disconnect", session.client_id)
