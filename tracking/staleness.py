"""
Purpose: Detect partners who stopped reporting mid-delivery.
What it does:
- location_age_seconds: age of the last report (or of the claim, if no report yet)
- is_stuck: age beyond a threshold while accepted / picked_up
- find_stuck_orders: scan the store and surface stuck orders to operators

Stuck orders are never reassigned automatically; this is a signal only.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from orders.models import Order, OrderStatus, utc_now
from orders.store import OrderFilter, OrderStore

logger = logging.getLogger(__name__)


def location_age_seconds(order: Order, now: Optional[datetime] = None) -> Optional[float]:
    """
    Seconds since the partner last reported. None when the order is not being delivered.
    """
    if not order.is_trackable:
        return None

    reference = order.last_location_update or order.accepted_at
    if reference is None:
        return None

    now = now or utc_now()
    return max(0.0, (now - reference).total_seconds())


def is_stuck(order: Order, now: Optional[datetime] = None, threshold_seconds: float = 120) -> bool:
    age = location_age_seconds(order, now)
    return age is not None and age > threshold_seconds


async def find_stuck_orders(
    store: OrderStore,
    now: Optional[datetime] = None,
    threshold_seconds: float = 120,
) -> List[Order]:
    """
    Every accepted / picked_up order whose partner has gone quiet, stalest first.
    """
    now = now or utc_now()
    candidates: List[Order] = []
    for status in (OrderStatus.ACCEPTED, OrderStatus.PICKED_UP):
        candidates.extend(await store.list_orders(OrderFilter(status=status)))

    stuck = [order for order in candidates if is_stuck(order, now, threshold_seconds)]
    stuck.sort(key=lambda order: location_age_seconds(order, now) or 0.0, reverse=True)

    for order in stuck:
        logger.warning(
            f"Order {order.id} looks stuck: {order.status.value}, partner {order.partner_id} "
            f"silent for {location_age_seconds(order, now):.0f}s"
        )
    return stuck
