"""
MODULE OVERVIEW:
HTTP middleware that stamps hub telemetry on every /stats, /feed and /healthz response.

WHAT IS HAPPENING HERE:
Dashboards poll the hub over plain HTTP next to their socket. Each response carries the
server-side cost of the request plus the live socket and restaurant counts, read from the
ConnectionManager on `app.state`, so a poller can tell a slow hub from a busy one without
a second request. WebSocket traffic does not pass through here.
"""

import time

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

# Requests slower than this are logged at WARNING
SLOW_REQUEST_MS = 250.0


class HubTelemetryMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        manager = getattr(request.app.state, "manager", None)
        response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.2f}"
        if manager is not None:
            response.headers["X-Live-Connections"] = str(len(manager.active_websockets))
            response.headers["X-Live-Restaurants"] = str(len(manager.feeds))

        path = request.url.path
        if elapsed_ms > SLOW_REQUEST_MS:
            logger.warning(f"path={path} status={response.status_code} event=slow_request elapsed_ms={elapsed_ms:.2f}")
        elif path != "/healthz":
            logger.debug(f"path={path} status={response.status_code} event=http_request elapsed_ms={elapsed_ms:.2f}")
        return response
