"""
Purpose: Cooperative fixed-interval timer for location playback and poll fallback.
What it does:
- fires an async tick every `interval` seconds, fire-and-forget
- never stacks work: if the previous tick is still running, the new one is skipped
- stop() cancels the loop and any in-flight tick, so nothing keeps writing after teardown
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[], Awaitable[None]]


class CooperativeTimer:
    def __init__(self, interval: float, tick: Tick, *, name: str = "timer", fire_immediately: bool = False):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.interval = interval
        self.tick = tick
        self.name = name
        self.fire_immediately = fire_immediately

        self.fired = 0
        self.skipped = 0

        self._loop_task: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def _run(self) -> None:
        if self.fire_immediately:
            self._fire()
        while True:
            await asyncio.sleep(self.interval)
            self._fire()

    def _fire(self) -> None:
        if self._in_flight is not None and not self._in_flight.done():
            self.skipped += 1
            logger.debug(f"{self.name}: previous tick still running, skipping")
            return
        self.fired += 1
        self._in_flight = asyncio.get_running_loop().create_task(self._run_tick())

    async def _run_tick(self) -> None:
        try:
            await self.tick()
        except asyncio.CancelledError:
            raise
        except Exception:
            # fire-and-forget: a failed tick must not kill the timer
            logger.exception(f"{self.name}: tick failed")

    def request_stop(self) -> None:
        """
        Stop scheduling new ticks. Safe to call from inside a tick: the running
        tick is allowed to finish.
        """
        if self._loop_task is not None:
            self._loop_task.cancel()

    async def stop(self) -> None:
        """
        Cancel the loop and any in-flight tick, and wait for both to unwind.
        """
        current = asyncio.current_task()
        for task in (self._loop_task, self._in_flight):
            if task is None or task is current:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._loop_task = None
        self._in_flight = None
