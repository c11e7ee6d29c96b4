"""
Purpose: Orchestrator (the "glue").
What it does:
One entry point per user action. Each call reads and writes through the
store adapter, runs the state machine / arbiter / ingestor, and then pushes
the resulting snapshot to every observer of the order.

Holds no locks. Two requests for the same order are serialised only by the
store's conditional update, so an engine can be created per request context.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Callable, DefaultDict, List, Optional, Union

from broadcast.broadcaster import Observer, StateBroadcaster, Subscription
from broadcast.snapshot import OrderSnapshot
from broadcast.transports import WebhookRelay
from orders.models import LocationReport, Order, OrderStatus, utc_now
from orders.placement import place_order
from orders.store import OrderStore
from partners.models import Partner
from routing.eta_service import EtaEstimate, EtaEstimator
from routing.osrm_client import OSRMClient
from routing.route_service import RoutedEtaEstimator
from tracking.ingestor import LocationIngestor, check_reporter
from tracking.session import TrackingSession
from tracking.sources import LocationSource, SimulatedRouteSource
from tracking.staleness import find_stuck_orders, location_age_seconds

from . import offers
from .arbiter import ClaimArbiter
from .policy import EnginePolicy, default_engine_policy

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Estimator = Union[EtaEstimator, RoutedEtaEstimator]


def build_estimator(policy: EnginePolicy) -> Estimator:
    waypoint_estimator = EtaEstimator(
        walking_speed_mps=policy.walking_speed_mps,
        detour_factor=policy.detour_factor,
    )
    if not policy.osrm_base_url:
        return waypoint_estimator

    osrm_client = OSRMClient(
        base_url=policy.osrm_base_url,
        profile="foot",
        timeout=policy.osrm_timeout_seconds,
    )
    return RoutedEtaEstimator(osrm_client, fallback=waypoint_estimator)


class DispatchEngine:
    """
    Coordinates order placement, claiming, handoff, tracking and broadcast.
    """

    def __init__(
        self,
        store: OrderStore,
        policy: Optional[EnginePolicy] = None,
        clock: Optional[Clock] = None,
        broadcaster: Optional[StateBroadcaster] = None,
        estimator: Optional[Estimator] = None,
    ):
        self.store = store
        self.policy = policy or default_engine_policy()
        self.policy.validate()
        self.clock = clock or utc_now

        self.arbiter = ClaimArbiter(store, self.clock)
        self.ingestor = LocationIngestor(store, self.clock)
        self.estimator = estimator or build_estimator(self.policy)

        if broadcaster is None:
            relays = []
            if self.policy.push_webhook_url:
                relays.append(WebhookRelay(self.policy.push_webhook_url, timeout=self.policy.push_timeout_seconds))
            broadcaster = StateBroadcaster(
                self.snapshot,
                poll_interval_seconds=self.policy.poll_interval_seconds,
                relays=relays,
            )
        self.broadcaster = broadcaster

        # partner id -> that partner's running tracking sessions
        self._sessions: DefaultDict[str, List[TrackingSession]] = defaultdict(list)

    # ---- reads ----

    async def get_order(self, order_id: str) -> Order:
        return await self.store.get_order(order_id)

    async def estimate_for_order(self, order: Order) -> Optional[EtaEstimate]:
        """Fresh ETA for the order's current position. Never cached."""
        if isinstance(self.estimator, RoutedEtaEstimator):
            return await self.estimator.estimate_for_order(order)
        return self.estimator.estimate_for_order(order)

    async def build_snapshot(self, order: Order) -> OrderSnapshot:
        return OrderSnapshot(
            order=order,
            eta=await self.estimate_for_order(order),
            location_age_seconds=location_age_seconds(order, self.clock()),
        )

    async def snapshot(self, order_id: str) -> OrderSnapshot:
        """Current full snapshot. This is also what every poll fallback calls."""
        return await self.build_snapshot(await self.store.get_order(order_id))

    async def list_offers(self, partner: Partner) -> List[Order]:
        return await offers.list_offers(self.store, partner)

    async def active_orders(self, partner_id: str) -> List[Order]:
        return await offers.active_orders(self.store, partner_id)

    async def customer_orders(self, customer_id: str) -> List[Order]:
        return await offers.customer_orders(self.store, customer_id)

    async def find_stuck_orders(self, now: Optional[datetime] = None) -> List[Order]:
        return await find_stuck_orders(
            self.store,
            now=now or self.clock(),
            threshold_seconds=self.policy.stale_location_seconds,
        )

    # ---- writes ----

    async def place_order(
        self,
        customer_id: str,
        zone_code: str,
        subtotal: Union[Decimal, str, int, float],
        pickup_point: Optional[str] = None,
        dropoff_details: Optional[str] = None,
    ) -> Order:
        kwargs = {"pickup_point": pickup_point} if pickup_point else {}
        order = await place_order(
            self.store,
            customer_id=customer_id,
            zone_code=zone_code,
            subtotal=subtotal,
            dropoff_details=dropoff_details,
            now=self.clock(),
            **kwargs,
        )
        await self._publish(order)
        return order

    async def claim(self, order_id: str, partner_id: str) -> Order:
        """
        Partner accepts an offer. Raises AlreadyClaimed if the race was lost;
        the caller should refresh its offers rather than show an error.
        """
        order = await self.arbiter.claim(order_id, partner_id)
        await self._publish(order)
        return order

    async def transition(self, order_id: str, target: OrderStatus, actor: str) -> Order:
        order = await self.arbiter.apply_transition(order_id, target, actor)
        await self._publish(order)
        if order.status.is_terminal:
            await self._close_sessions_for_order(order_id)
        return order

    async def cancel(self, order_id: str, actor: str) -> Order:
        return await self.transition(order_id, OrderStatus.CANCELLED, actor)

    async def mark_picked_up(self, order_id: str, partner_id: str) -> Order:
        return await self.transition(order_id, OrderStatus.PICKED_UP, partner_id)

    async def mark_delivered(self, order_id: str, partner_id: str) -> Order:
        return await self.transition(order_id, OrderStatus.DELIVERED, partner_id)

    async def report_location(
        self,
        order_id: str,
        partner_id: str,
        lat: float,
        lng: float,
        observed_at: Optional[datetime] = None,
    ) -> Order:
        order = await self.ingestor.report(order_id, partner_id, lat, lng, observed_at)
        await self._publish(order)
        return order

    async def _report_fix(self, order_id: str, partner_id: str, fix: LocationReport) -> Order:
        return await self.report_location(order_id, partner_id, fix.lat, fix.lng, fix.observed_at)

    # ---- observers ----

    def subscribe(self, order_id: str, observer: Observer, poll: bool = True) -> Subscription:
        return self.broadcaster.subscribe(order_id, observer, poll=poll)

    async def _publish(self, order: Order) -> None:
        await self.broadcaster.notify(await self.build_snapshot(order))

    # ---- tracking sessions ----

    async def open_tracking_session(
        self,
        order_id: str,
        partner_id: str,
        source: Optional[LocationSource] = None,
        interval_seconds: Optional[float] = None,
    ) -> TrackingSession:
        """
        Start feeding positions for order_id. Without an explicit source the
        simulated campus route is used, starting where the order's status says.
        """
        order = await self.store.get_order(order_id)
        check_reporter(order, partner_id)

        if source is None:
            source = SimulatedRouteSource.for_order(order, clock=self.clock)

        session = TrackingSession(
            self._report_fix,
            order_id,
            partner_id,
            source,
            interval_seconds or self.policy.simulation_tick_seconds,
            on_stop=self._forget_session,
        )
        self._sessions[partner_id].append(session)
        return session.start()

    def tracking_sessions(self, partner_id: str) -> List[TrackingSession]:
        return list(self._sessions.get(partner_id, []))

    def _forget_session(self, session: TrackingSession) -> None:
        # the session stopped itself; its timer is already winding down
        sessions = self._sessions.get(session.partner_id, [])
        if session in sessions:
            sessions.remove(session)
        if not sessions:
            self._sessions.pop(session.partner_id, None)

    async def partner_offline(self, partner: Partner) -> Partner:
        """
        Partner went offline: tear down every tracking session they own.
        Their orders stay assigned (no requeue); staleness will surface them.
        """
        for session in self._sessions.pop(partner.id, []):
            await session.close()
        logger.info(f"Partner {partner.id} offline")
        return partner.go_offline()

    async def _close_sessions_for_order(self, order_id: str) -> None:
        for partner_id, sessions in list(self._sessions.items()):
            for session in [s for s in sessions if s.order_id == order_id]:
                sessions.remove(session)
                await session.close()
            if not sessions:
                self._sessions.pop(partner_id, None)

    async def close(self) -> None:
        for sessions in list(self._sessions.values()):
            for session in sessions:
                await session.close()
        self._sessions.clear()
        await self.broadcaster.close()
