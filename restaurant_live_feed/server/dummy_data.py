"""
MODULE OVERVIEW:
The hub's live feed source.

WHAT IS HAPPENING HERE:
In a production deployment these frames would come from the POS, the kitchen display
and the reservation book. Here every restaurant that has a subscriber gets its own
LiveOpsSimulator, and this infinite async generator ticks them on a fixed period and
yields one (restaurant, feed type, payload) triple per feed per tick. Once a restaurant's
last feed subscriber leaves, its simulator keeps its state for /feed and alert
acknowledgements but is no longer ticked.
"""

import asyncio
from typing import AsyncGenerator, Iterable, Tuple, Any

from server.connection_manager import ConnectionManager
from server.handlers import feed_payload


async def live_feed_generator(
    manager: ConnectionManager,
    interval_s: float,
    feed_types: Iterable[str],
) -> AsyncGenerator[Tuple[str, str, Any], None]:
    feed_types = list(feed_types)
    while True:
        await asyncio.sleep(interval_s)
        for restaurant_id, simulator in manager.watched_feeds().items():
            simulator.tick()
            snapshot = simulator.snapshot()
            for feed_type in feed_types:
                yield restaurant_id, feed_type, feed_payload(snapshot, feed_type)
