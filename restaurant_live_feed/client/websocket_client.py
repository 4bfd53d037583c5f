"""
MODULE OVERVIEW:
The low-level WebSocket channel underneath the reconnecting transport.

WHAT IS HAPPENING HERE:
We use the `websockets` library. The channel owns exactly one socket at a time and knows
nothing about retry policy: it reports what happened (opened, closed with a reason,
failed to open, frame received) to a listener and lets the transport decide. `open()` may
be called again after a close to dial the same URL; that is how a reconnect is requested.
"""
import asyncio
from typing import Any, Optional, Protocol, Set

import websockets
from loguru import logger

from shared.client_utils import build_socket_url
from shared.wire import (
    CLIENT_DISCONNECT,
    SERVER_DISCONNECT,
    TRANSPORT_CLOSE,
    FrameError,
    decode_frame,
    encode_frame,
)


class ChannelListener(Protocol):
    def on_open(self) -> None: ...
    def on_close(self, reason: str) -> None: ...
    def on_error(self, error: Exception) -> None: ...
    def on_message(self, event: str, data: Any) -> None: ...


class WebSocketChannel:
    def __init__(
        self,
        url: str,
        listener: ChannelListener,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        open_timeout_s: float = 20.0,
    ):
        self.url = build_socket_url(url, params)
        self.listener = listener
        self.headers = headers or {}
        self.open_timeout_s = open_timeout_s

        self._ws = None
        self._task: Optional[asyncio.Task] = None
        self._closing = False
        # Keep strong references to in-flight sends
        self._send_tasks: Set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    def open(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._closing = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    def close(self) -> None:
        self._closing = True
        if self._ws is not None:
            self._spawn(self._ws.close())
        elif self._task is not None and not self._task.done():
            # Still dialing
            self._task.cancel()

    def send(self, event: str, data: Any = None) -> None:
        if self._ws is None:
            logger.debug(f"protocol=websocket event=send_dropped name={event} reason=not_open")
            return
        self._spawn(self._send(self._ws, encode_frame(event, data), event))

    async def _run(self) -> None:
        try:
            ws = await websockets.connect(
                self.url,
                additional_headers=self.headers,
                open_timeout=self.open_timeout_s,
            )
        except asyncio.CancelledError:
            return
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as e:
            logger.warning(f"protocol=websocket event=connect_error url={self.url} reason='{e}'")
            self.listener.on_error(e)
            return

        self._ws = ws
        self.listener.on_open()

        reason = TRANSPORT_CLOSE
        try:
            async for message in ws:
                self._dispatch(message)
            # The iterator ends quietly on a 1000/1001 close
            reason = self._close_reason(ws.close_rcvd)
        except websockets.ConnectionClosedError as e:
            reason = self._close_reason(e.rcvd)
            if e.rcvd is None:
                logger.warning("protocol=websocket event=dropped code=1006 reason='no close frame'")
            else:
                logger.warning(f"protocol=websocket event=dropped code={e.rcvd.code} reason='{e.rcvd.reason}'")
        except asyncio.CancelledError:
            reason = CLIENT_DISCONNECT
        finally:
            self._ws = None

        self.listener.on_close(reason)

    def _close_reason(self, rcvd) -> str:
        # Who closed decides the reason, not the close code
        if self._closing:
            return CLIENT_DISCONNECT
        if rcvd is not None:
            return SERVER_DISCONNECT
        return TRANSPORT_CLOSE

    def _dispatch(self, message: str | bytes) -> None:
        try:
            event, data = decode_frame(message)
        except FrameError as e:
            logger.debug(f"protocol=websocket event=bad_frame reason='{e}'")
            return
        self.listener.on_message(event, data)

    async def _send(self, ws, frame: str, event: str) -> None:
        try:
            await ws.send(frame)
        except websockets.ConnectionClosed as e:
            logger.warning(f"protocol=websocket event=send_failed name={event} reason='{e}'")

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)
