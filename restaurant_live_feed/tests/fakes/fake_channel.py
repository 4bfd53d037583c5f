# =============================================================================
# File: tests/fakes/fake_channel.py
# Description: In-memory stand-in for WebSocketChannel
# =============================================================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shared.wire import SERVER_DISCONNECT


@dataclass
class SentFrame:
    event: str
    data: Any


class FakeChannel:
    """
    Records what the transport asks of it and lets a test play the hub's part:

        channel.accept()          -> listener.on_open()
        channel.drop(reason)      -> listener.on_close(reason)
        channel.fail(error)       -> listener.on_error(error)
        channel.deliver(name, d)  -> listener.on_message(name, d)
    """

    def __init__(self, url: str, listener, params: Optional[dict] = None,
                 headers: Optional[dict] = None, open_timeout_s: float = 20.0):
        self.url = url
        self.listener = listener
        self.params = params or {}
        self.headers = headers or {}
        self.open_timeout_s = open_timeout_s
        self.open_calls = 0
        self.closed = False
        self.sent: List[SentFrame] = []

    # Channel surface
    def open(self) -> None:
        self.open_calls += 1

    def close(self) -> None:
        self.closed = True

    def send(self, event: str, data: Any = None) -> None:
        self.sent.append(SentFrame(event, data))

    # Hub side
    def accept(self) -> None:
        self.listener.on_open()

    def drop(self, reason: str = SERVER_DISCONNECT) -> None:
        self.listener.on_close(reason)

    def fail(self, error: Optional[Exception] = None) -> None:
        self.listener.on_error(error or ConnectionRefusedError("connection refused"))

    def deliver(self, event: str, data: Any) -> None:
        self.listener.on_message(event, data)


@dataclass
class FakeChannelFactory:
    channels: List[FakeChannel] = field(default_factory=list)
    calls: List[Dict[str, Any]] = field(default_factory=list)

    def __call__(self, url, listener, **kwargs) -> FakeChannel:
        self.calls.append({"url": url, **kwargs})
        channel = FakeChannel(url, listener, **kwargs)
        self.channels.append(channel)
        return channel

    @property
    def latest(self) -> FakeChannel:
        return self.channels[-1]
