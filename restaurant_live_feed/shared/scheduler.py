"""
MODULE OVERVIEW:
The timer seam used by everything that waits.

WHAT IS HAPPENING HERE:
The reconnection delay and the live feed tick are both "call this later" requests.
Components receive a `Scheduler` instead of touching the event loop, so the same code
runs on asyncio in production and on a hand-advanced clock in the tests.
"""
import asyncio
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio loop (or the loop given)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_s, callback)
