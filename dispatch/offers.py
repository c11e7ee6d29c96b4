"""
Purpose: Read-side views over the order store for the two kinds of users.
What it does:
- offers for a partner: pending orders, oldest first, online partners only
- a partner's active deliveries: accepted / picked_up, oldest first
- a customer's history: every order, newest first

Rule: Reads only. Claiming goes through dispatch/arbiter.py.
"""

from __future__ import annotations

from typing import List

from orders.models import Order, OrderStatus, TRACKABLE_STATUSES
from orders.store import OrderFilter, OrderStore
from partners.models import Partner
from partners.selection import is_eligible_for_offers


async def list_offers(store: OrderStore, partner: Partner) -> List[Order]:
    """
    Pending orders this partner may try to claim. Offline partners see nothing.
    """
    if not is_eligible_for_offers(partner):
        return []

    pending = await store.list_orders(OrderFilter(status=OrderStatus.PENDING))
    # a claimed row can never look pending, but a half-written one might
    pending = [order for order in pending if order.partner_id is None]
    return sorted(pending, key=lambda order: order.created_at)


async def active_orders(store: OrderStore, partner_id: str) -> List[Order]:
    """
    Orders the partner is currently delivering.
    """
    mine = await store.list_orders(OrderFilter(partner_id=partner_id))
    active = [order for order in mine if order.status in TRACKABLE_STATUSES]
    return sorted(active, key=lambda order: order.created_at)


async def customer_orders(store: OrderStore, customer_id: str) -> List[Order]:
    orders = await store.list_orders(OrderFilter(customer_id=customer_id))
    return sorted(orders, key=lambda order: order.created_at, reverse=True)
