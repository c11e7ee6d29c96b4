"""
Purpose: Drive one partner's location source into one order on a fixed tick.
What it does:
- pulls the next fix from its LocationSource every tick
- hands it to the report callable (normally DispatchEngine.report_location)
- stops itself when the order rejects reports (NotOwner / InvalidState)
  and tells its owner through on_stop
- close() cancels the timer; nothing writes after teardown
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from dispatch.errors import DispatchError, InvalidState, NotOwner
from dispatch.timers import CooperativeTimer
from orders.models import LocationReport, Order

from .sources import LocationSource, RoutePhase, SimulatedRouteSource

logger = logging.getLogger(__name__)

ReportFn = Callable[[str, str, LocationReport], Awaitable[Order]]
StopFn = Callable[["TrackingSession"], None]


class TrackingSession:
    def __init__(
        self,
        report: ReportFn,
        order_id: str,
        partner_id: str,
        source: LocationSource,
        interval_seconds: float,
        on_stop: Optional[StopFn] = None,
    ):
        self.report = report
        self.order_id = order_id
        self.partner_id = partner_id
        self.source = source
        self.on_stop = on_stop
        self.reports_sent = 0
        self.stopped_reason: Optional[DispatchError] = None
        self._timer = CooperativeTimer(
            interval_seconds,
            self._tick,
            name=f"tracking-{order_id}-{partner_id}",
            fire_immediately=True,
        )

    @property
    def active(self) -> bool:
        return self._timer.running and self.stopped_reason is None

    def start(self) -> TrackingSession:
        logger.info(f"Tracking started for order {self.order_id} ({type(self.source).__name__})")
        self._timer.start()
        return self

    async def close(self) -> None:
        await self._timer.stop()
        logger.info(f"Tracking stopped for order {self.order_id} after {self.reports_sent} reports")

    async def __aenter__(self) -> TrackingSession:
        return self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def tick(self) -> None:
        """One step, callable directly (tests, manual stepping)."""
        await self._tick()

    async def _tick(self) -> None:
        if self.stopped_reason is not None:
            return

        fix = await self.source.next_report()
        if fix is None:
            return

        try:
            await self.report(self.order_id, self.partner_id, fix)
        except (NotOwner, InvalidState) as error:
            # the order is no longer ours to report on; stop the source
            self.stopped_reason = error
            logger.info(f"Tracking for order {self.order_id} stopping: {error}")
            self._timer.request_stop()
            if self.on_stop is not None:
                self.on_stop(self)
            return

        self.reports_sent += 1

        if isinstance(self.source, SimulatedRouteSource):
            phase = self.source.current_phase
            if phase == RoutePhase.AT_PICKUP:
                logger.info(f"Order {self.order_id}: partner at pickup, ready to mark picked up")
            elif phase == RoutePhase.AT_CUSTOMER:
                logger.info(f"Order {self.order_id}: partner at customer, ready to mark delivered")
