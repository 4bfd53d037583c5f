"""
MODULE OVERVIEW:
The hub's central state registry: open sockets, rooms, and one simulator per restaurant.

WHAT IS HAPPENING HERE:
Every socket is keyed by a client id. Rooms are plain name -> client-id sets:
  restaurant:<id>              everyone working a restaurant
  feed:<id>:<feedType>         clients subscribed to one live feed stream
Broadcasting to a room serializes the frame once and sends it to every member; a socket
that fails on send is dropped from the registry.
"""

import random
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from fastapi.websockets import WebSocket
from loguru import logger

from shared.models import HubStats
from shared.wire import encode_frame
from simulator.engine import LiveOpsSimulator


def restaurant_room(restaurant_id: str) -> str:
    return f"restaurant:{restaurant_id}"


def feed_room(restaurant_id: str, feed_type: str) -> str:
    return f"feed:{restaurant_id}:{feed_type}"


class ConnectionManager:
    def __init__(self, rng: Optional[random.Random] = None):
        self.active_websockets: Dict[str, WebSocket] = {}
        self.rooms: Dict[str, Set[str]] = {}
        # restaurant id -> its running live operations
        self.feeds: Dict[str, LiveOpsSimulator] = {}
        self.rng = rng or random.Random()

        self.total_frames_sent = 0
        self.startup_time = datetime.now(timezone.utc)

    # ==========================
    # SOCKETS
    # ==========================
    async def connect(self, client_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_websockets[client_id] = websocket
        logger.info(f"client_id={client_id} protocol=websocket event=connect reason=accepted")

    def disconnect(self, client_id: str):
        if client_id in self.active_websockets:
            del self.active_websockets[client_id]
        for name in list(self.rooms):
            self.leave(client_id, name)
        logger.info(f"client_id={client_id} protocol=websocket event=disconnect reason=cleanup")

    async def send(self, client_id: str, event: str, data: dict) -> bool:
        ws = self.active_websockets.get(client_id)
        if ws is None:
            return False
        try:
            await ws.send_text(encode_frame(event, data))
        except Exception as e:
            logger.warning(f"client_id={client_id} protocol=websocket event=error reason='{e}'")
            self.disconnect(client_id)
            return False
        self.total_frames_sent += 1
        return True

    # ==========================
    # ROOMS
    # ==========================
    def join(self, client_id: str, room: str):
        self.rooms.setdefault(room, set()).add(client_id)
        logger.debug(f"client_id={client_id} event=join room={room}")

    def leave(self, client_id: str, room: str):
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(client_id)
        if not members:
            del self.rooms[room]

    def members(self, room: str) -> Set[str]:
        return set(self.rooms.get(room, ()))

    async def broadcast(self, room: str, event: str, data: dict) -> int:
        delivered = 0
        for client_id in self.members(room):
            if await self.send(client_id, event, data):
                delivered += 1
        return delivered

    # ==========================
    # LIVE FEEDS
    # ==========================
    def feed_for(self, restaurant_id: str) -> LiveOpsSimulator:
        simulator = self.feeds.get(restaurant_id)
        if simulator is None:
            simulator = LiveOpsSimulator(rng=random.Random(self.rng.random()))
            simulator.start()
            self.feeds[restaurant_id] = simulator
            logger.info(f"restaurant_id={restaurant_id} event=feed_created")
        return simulator

    def has_feed_subscribers(self, restaurant_id: str) -> bool:
        prefix = feed_room(restaurant_id, "")
        return any(name.startswith(prefix) for name in self.rooms)

    def watched_feeds(self) -> Dict[str, LiveOpsSimulator]:
        """Simulators with at least one live feed subscriber. Idle ones keep their state but do not tick."""
        return {rid: sim for rid, sim in self.feeds.items() if self.has_feed_subscribers(rid)}

    # ==========================
    # METRICS
    # ==========================
    def get_stats(self) -> HubStats:
        return HubStats(
            active_connections=len(self.active_websockets),
            rooms=len(self.rooms),
            restaurants=len(self.feeds),
            total_frames_sent=self.total_frames_sent,
            uptime_s=(datetime.now(timezone.utc) - self.startup_time).total_seconds(),
            server_time=datetime.now(timezone.utc),
        )
