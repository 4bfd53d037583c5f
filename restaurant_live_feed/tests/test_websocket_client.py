import asyncio

import pytest
from websockets.asyncio.server import serve

from client.transport import ReconnectingTransport
from client.websocket_client import WebSocketChannel
from shared.events import EventBus, Topic
from shared.wire import CLIENT_DISCONNECT, SERVER_DISCONNECT, TRANSPORT_CLOSE


class RecordingListener:
    def __init__(self):
        self.calls = []

    def on_open(self):
        self.calls.append(("open",))

    def on_close(self, reason):
        self.calls.append(("close", reason))

    def on_error(self, error):
        self.calls.append(("error", error))

    def on_message(self, event, data):
        self.calls.append(("message", event, data))


def test_handshake_context_lands_in_the_url():
    channel = WebSocketChannel(
        "ws://hub.test/ws",
        RecordingListener(),
        params={"restaurantId": "r1", "userId": None},
    )

    assert channel.url == "ws://hub.test/ws?restaurantId=r1"
    assert channel.is_open is False


def test_frames_are_decoded_for_the_listener():
    listener = RecordingListener()
    channel = WebSocketChannel("ws://hub.test/ws", listener)

    channel._dispatch('{"event": "pong", "data": {"timestamp": "t"}}')
    channel._dispatch("garbage")

    assert listener.calls == [("message", "pong", {"timestamp": "t"})]


def test_send_before_open_is_dropped():
    channel = WebSocketChannel("ws://hub.test/ws", RecordingListener())

    channel.send("ping", {})

    assert channel._send_tasks == set()


def test_failed_dial_reports_an_error():
    listener = RecordingListener()

    async def dial():
        # Nothing listens on the discard port
        channel = WebSocketChannel("ws://127.0.0.1:9/ws", listener, open_timeout_s=2.0)
        channel.open()
        await channel._task

    asyncio.run(dial())

    assert len(listener.calls) == 1
    assert listener.calls[0][0] == "error"


# ==========================
# CLOSE REASONS AGAINST A LIVE HUB
# ==========================
class SignallingListener(RecordingListener):
    def __init__(self):
        super().__init__()
        self.opened = asyncio.Event()
        self.closed = asyncio.Event()

    def on_open(self):
        super().on_open()
        self.opened.set()

    def on_close(self, reason):
        super().on_close(reason)
        self.closed.set()


async def run_against_hub(handler, close_locally=False):
    """Serves `handler` on a free port, connects a channel and returns its close reason."""
    listener = SignallingListener()
    async with serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        channel = WebSocketChannel(f"ws://127.0.0.1:{port}/ws", listener, open_timeout_s=5.0)
        channel.open()
        await asyncio.wait_for(listener.opened.wait(), 5)
        if close_locally:
            channel.close()
        await asyncio.wait_for(listener.closed.wait(), 5)
    return listener.calls[-1][1]


async def hold_open(ws):
    async for _ in ws:
        pass


def test_hub_normal_close_is_a_server_disconnect():
    async def handler(ws):
        await ws.close(code=1000, reason="bye")

    assert asyncio.run(run_against_hub(handler)) == SERVER_DISCONNECT


@pytest.mark.parametrize("code", [1001, 1011, 1012])
def test_hub_close_with_any_code_is_a_server_disconnect(code):
    async def handler(ws):
        await ws.close(code=code, reason="service restart")

    assert asyncio.run(run_against_hub(handler)) == SERVER_DISCONNECT


def test_dropped_link_without_close_frame_is_a_transport_close():
    async def handler(ws):
        ws.transport.abort()

    assert asyncio.run(run_against_hub(handler)) == TRANSPORT_CLOSE


def test_local_close_is_a_client_disconnect():
    assert asyncio.run(run_against_hub(hold_open, close_locally=True)) == CLIENT_DISCONNECT


def test_hub_restart_makes_the_transport_retry():
    async def scenario():
        bus = EventBus()
        lost = []
        bus.subscribe(Topic.CONNECTION_LOST, lost.append)

        async def handler(ws):
            await ws.close(code=1012, reason="service restart")

        async with serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            transport = ReconnectingTransport(
                bus=bus,
                url=f"ws://127.0.0.1:{port}/ws",
                max_reconnect_attempts=5,
                reconnect_interval_ms=60_000,
            )
            transport.connect("rest-1")
            for _ in range(100):
                if lost:
                    break
                await asyncio.sleep(0.05)
            attempts = transport.reconnect_attempts
            transport.disconnect()
        return lost, attempts

    lost, attempts = asyncio.run(scenario())

    assert lost == [SERVER_DISCONNECT]
    assert attempts == 1
