"""
MODULE OVERVIEW:
The FastAPI application factory for the real-time hub.

WHAT IS HAPPENING HERE:
We use a `lifespan` context manager. On startup we spawn the live feed runner as an
`asyncio.create_task` background loop; it ticks every restaurant's simulator and pushes
`live-feed-data` frames into the matching feed rooms. On shutdown the task is cancelled
and awaited, so nothing outlives the app.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from server.connection_manager import ConnectionManager, feed_room
from server.dummy_data import live_feed_generator
from server.handlers import now_iso
from server.middleware import HubTelemetryMiddleware
from server.routes import websocket
from shared.config import settings
from shared.models import HubStats, LiveFeedSnapshot


async def feed_runner(manager: ConnectionManager, interval_s: float, feed_types: list[str]):
    """Consumes the live feed generator and fans each payload out to its feed room."""
    try:
        async for restaurant_id, feed_type, payload in live_feed_generator(manager, interval_s, feed_types):
            await manager.broadcast(feed_room(restaurant_id, feed_type), "live-feed-data", {
                "feedType": feed_type,
                "data": payload,
                "timestamp": now_iso(),
            })
    except asyncio.CancelledError:
        logger.debug("Live feed runner cancelled")
    except Exception as e:
        logger.error(f"Live feed runner error: {e}")


def create_app(
    manager: Optional[ConnectionManager] = None,
    tick_interval_ms: Optional[int] = None,
) -> FastAPI:
    manager = manager or ConnectionManager()
    interval_s = (tick_interval_ms if tick_interval_ms is not None else settings.HUB_TICK_MS) / 1000.0

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # STARTUP
        logger.info("Restaurant live feed hub starting up...")
        task = asyncio.create_task(feed_runner(manager, interval_s, list(settings.HUB_FEED_TYPES)))

        yield

        # SHUTDOWN
        logger.info("Hub shutting down. Cancelling live feed runner...")
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="Restaurant Live Feed Hub",
        description="Real-time restaurant operations over WebSocket",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.manager = manager

    app.add_middleware(HubTelemetryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(websocket.router, tags=["Real-time"])

    @app.get("/healthz", tags=["Ops"])
    async def health_check():
        return {"status": "ok"}

    @app.get("/stats", tags=["Ops"], response_model=HubStats)
    async def get_stats():
        return manager.get_stats()

    @app.get("/feed/{restaurant_id}", tags=["Feed"])
    async def get_feed(restaurant_id: str):
        simulator = manager.feeds.get(restaurant_id)
        if simulator is None:
            raise HTTPException(status_code=404, detail=f"No live feed for restaurant {restaurant_id}")
        snapshot: LiveFeedSnapshot = simulator.snapshot()
        return snapshot.to_wire()

    return app


app = create_app()
