import random

import pytest
from loguru import logger

from fakes.fake_channel import FakeChannelFactory
from fakes.manual_scheduler import ManualScheduler
from client.transport import ReconnectingTransport
from shared.events import EventBus
from simulator.engine import LiveOpsSimulator


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def channels():
    return FakeChannelFactory()


@pytest.fixture
def transport(bus, scheduler, channels):
    return ReconnectingTransport(
        bus=bus,
        url="ws://hub.test/ws",
        scheduler=scheduler,
        channel_factory=channels,
        max_reconnect_attempts=5,
        reconnect_interval_ms=5000,
    )


@pytest.fixture
def simulator(scheduler):
    return LiveOpsSimulator(rng=random.Random(1234), clock=scheduler.clock)


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record), level="DEBUG")
    yield messages
    logger.remove(handler_id)
