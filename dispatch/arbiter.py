"""
Purpose: Race Condition Resolver.
What it does:
Guarantees that two partners cannot accept the same order, and that every
later status change is written only if the order still looks the way the
state machine saw it.

There is no lock and no queue. The guarantee rides entirely on the store's
conditional update: a claim writes only if the stored row is still
`pending` with no partner, and a lost compare-and-swap is reported as
AlreadyClaimed. Lost claims are never retried here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from orders.models import Order, OrderStatus, utc_now
from orders.store import OrderStore

from .errors import AlreadyClaimed, ConcurrentUpdate
from .state_machines.order_state import changed_fields, transition

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ClaimArbiter:
    """
    Applies claims and partner/customer transitions through the store's
    compare-and-swap.
    """

    def __init__(self, store: OrderStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or utc_now

    async def claim(self, order_id: str, partner_id: str) -> Order:
        """
        Called when a partner hits "Accept" on an offer.
        Returns the accepted order, or raises AlreadyClaimed if someone else got there first.
        The caller must not trust its own earlier read of the order.
        """
        order = await self.store.get_order(order_id)

        # a retried request from the partner that already won
        if order.status == OrderStatus.ACCEPTED and order.partner_id == partner_id:
            return order

        if order.partner_id is not None or order.status != OrderStatus.PENDING:
            logger.info(f"Claim by {partner_id} on order {order_id} lost: already {order.status.value}")
            raise AlreadyClaimed(f"Order {order_id} is no longer available", order_id=order_id)

        accepted = transition(order, OrderStatus.ACCEPTED, partner_id, now=self.clock())

        affected = await self.store.conditional_update(
            order_id,
            expected={"status": OrderStatus.PENDING, "partner_id": None},
            new_fields=changed_fields(order, accepted),
        )
        if affected == 0:
            # somebody else's write landed between our read and our write
            logger.info(f"Claim by {partner_id} on order {order_id} lost the conditional write")
            raise AlreadyClaimed(f"Order {order_id} is no longer available", order_id=order_id)

        logger.info(f"Order {order_id} claimed by {partner_id}")
        return await self.store.get_order(order_id)

    async def apply_transition(self, order_id: str, target: OrderStatus, actor: str) -> Order:
        """
        Run one state-machine transition and persist it only if the order's
        status and partner are unchanged since it was read.
        """
        target = OrderStatus(target)
        if target == OrderStatus.ACCEPTED:
            return await self.claim(order_id, actor)

        order = await self.store.get_order(order_id)
        updated = transition(order, target, actor, now=self.clock())
        if updated is order:
            # already there; duplicate retry
            return order

        affected = await self.store.conditional_update(
            order_id,
            expected={"status": order.status, "partner_id": order.partner_id},
            new_fields=changed_fields(order, updated),
        )
        if affected == 0:
            current = await self.store.get_order(order_id)
            if current.status == target:
                # a concurrent duplicate of this same request won; same outcome
                transition(current, target, actor)
                return current
            raise ConcurrentUpdate(
                f"Order {order_id} changed to {current.status.value} while moving to {target.value}",
                order_id=order_id,
            )

        logger.info(f"Order {order_id} moved {order.status.value} -> {target.value} by {actor}")
        return await self.store.get_order(order_id)
