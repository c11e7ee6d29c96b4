"""
Purpose: Create new orders in `pending`.
What it does:
- Prices the order from the zone catalog (total = subtotal + zone fee)
- Checks the pickup point exists
- Inserts through the store adapter

The total is fixed here and never recomputed afterwards.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from datetime import datetime
from typing import Optional, Union

from routing.waypoints import STUDENT_CAFE, get_pickup_point

from .errors import UnknownZone
from .models import Order, OrderStatus, to_money, utc_now
from .store import OrderStore
from .zones import get_zone

logger = logging.getLogger(__name__)

Money = Union[Decimal, str, int, float]


async def place_order(
    store: OrderStore,
    *,
    customer_id: str,
    zone_code: str,
    subtotal: Money,
    pickup_point: str = STUDENT_CAFE.code,
    dropoff_details: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Insert a new pending order for customer_id.

    Raises:
        UnknownZone: zone_code or pickup_point is not in the catalog.
        ValueError: customer_id is empty or subtotal is negative / not a number.
    """
    if not customer_id:
        raise ValueError("customer_id is required")

    zone = get_zone(zone_code)
    if zone is None:
        raise UnknownZone(f"Unknown drop-off zone {zone_code!r}")
    if get_pickup_point(pickup_point) is None:
        raise UnknownZone(f"Unknown pickup point {pickup_point!r}")

    subtotal = to_money(subtotal)
    if subtotal < 0:
        raise ValueError("subtotal must be >= 0")

    delivery_fee = to_money(zone.delivery_fee)
    details = (dropoff_details or "").strip() or None

    order = await store.insert_order({
        "customer_id": customer_id,
        "pickup_point": pickup_point,
        "dropoff_zone": zone.code,
        "dropoff_details": details,
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "total": subtotal + delivery_fee,
        "status": OrderStatus.PENDING,
        "created_at": now or utc_now(),
        "partner_id": None,
    })
    logger.info(f"Order {order.id} placed by {customer_id} for zone {zone.code} (total {order.total})")
    return order
