"""
Purpose: Accept partner position reports and fold them into the order.
What it does:
- checks the reporter is the order's partner (NotOwner) and the order is
  being delivered (InvalidState)
- overwrites partner_lat / partner_lng / last_location_update with the
  newest arrival

Ordering: last write wins by arrival time. observed_at is stored for
diagnostics but a report observed earlier than the stored one is still
applied; reports come from one device at a fixed cadence.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from orders.models import LocationReport, Order, TRACKABLE_STATUSES, utc_now
from orders.store import OrderStore
from routing.geo import is_valid_coordinate

from dispatch.errors import InvalidLocation, InvalidState, NotOwner

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def check_reporter(order: Order, partner_id: str) -> None:
    """
    Raise NotOwner / InvalidState if partner_id may not report for this order.
    """
    if order.partner_id is None or order.partner_id != partner_id:
        raise NotOwner(f"{partner_id} is not the partner on order {order.id}", order_id=order.id)
    if order.status not in TRACKABLE_STATUSES:
        raise InvalidState(
            f"Order {order.id} is {order.status.value}; location reports are closed",
            order_id=order.id,
        )


class LocationIngestor:
    def __init__(self, store: OrderStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or utc_now

    async def report(
        self,
        order_id: str,
        partner_id: str,
        lat: float,
        lng: float,
        observed_at: Optional[datetime] = None,
    ) -> Order:
        """
        Store the partner's position on the order and return the updated order.

        Raises:
            InvalidLocation: coordinates out of range
            OrderNotFound: unknown order id
            NotOwner: partner_id is not the order's partner
            InvalidState: order is not accepted / picked_up
        """
        if not is_valid_coordinate(lat, lng):
            raise InvalidLocation(f"Invalid coordinates ({lat}, {lng})", order_id=order_id)

        order = await self.store.get_order(order_id)
        check_reporter(order, partner_id)

        received_at = self.clock()
        new_fields = {
            "partner_lat": float(lat),
            "partner_lng": float(lng),
            "last_location_update": received_at,
            "location_observed_at": observed_at or received_at,
        }

        affected = await self.store.conditional_update(
            order_id,
            expected={"status": order.status, "partner_id": partner_id},
            new_fields=new_fields,
        )
        if affected == 0:
            # the order moved on (e.g. accepted -> picked_up) since we read it
            current = await self.store.get_order(order_id)
            check_reporter(current, partner_id)
            affected = await self.store.conditional_update(
                order_id,
                expected={"status": current.status, "partner_id": partner_id},
                new_fields=new_fields,
            )
            if affected == 0:
                latest = await self.store.get_order(order_id)
                check_reporter(latest, partner_id)
                # still trackable but moving under us; drop this fix, the next one will land
                logger.debug(f"Dropped location for order {order_id}: order changed twice during write")
                return latest

        logger.debug(f"Order {order_id} partner {partner_id} at ({lat:.6f}, {lng:.6f})")
        return await self.store.get_order(order_id)

    async def ingest(self, order_id: str, partner_id: str, location: LocationReport) -> Order:
        return await self.report(order_id, partner_id, location.lat, location.lng, location.observed_at)
