"""
Order lifecycle state machine. The single source of truth for which status
changes are legal and who may make them.

    pending -> accepted -> picked_up -> delivered
    pending -> cancelled
    accepted -> cancelled

Pure functions over immutable Orders: nothing here talks to the store.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional

from orders.models import Order, OrderStatus, utc_now

from ..errors import InvalidTransition, NotAuthorized

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# which milestone field each target status stamps
MILESTONE_FIELDS: Mapping[OrderStatus, str] = {
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.PICKED_UP: "picked_up_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _deny(order: Order, target: OrderStatus, actor: str, reason: str) -> NotAuthorized:
    # repeated denials point at a broken or malicious client
    logger.warning(f"Denied {actor} moving order {order.id} to {target.value}: {reason}")
    return NotAuthorized(
        f"{actor} may not move order {order.id} to {target.value}: {reason}",
        order_id=order.id,
        actor=actor,
    )


def authorize(order: Order, target: OrderStatus, actor: str, from_status: Optional[OrderStatus] = None) -> None:
    """
    Raise NotAuthorized unless actor may drive order from from_status to target.
    - accepted: any partner may claim a pending order; once claimed only that partner
    - cancelled from pending: the customer
    - cancelled from accepted: the assigned partner
    - picked_up, delivered: the assigned partner
    """
    from_status = from_status or order.status

    if target == OrderStatus.ACCEPTED:
        if not actor:
            raise _deny(order, target, actor, "missing partner id")
        if order.partner_id is not None and order.partner_id != actor:
            raise _deny(order, target, actor, "order belongs to another partner")
        return

    if target == OrderStatus.CANCELLED and from_status == OrderStatus.PENDING:
        if actor != order.customer_id:
            raise _deny(order, target, actor, "only the customer can cancel a pending order")
        return

    if actor != order.partner_id:
        raise _deny(order, target, actor, "only the assigned partner can do this")


def _previous_milestone(order: Order) -> datetime:
    stamps = [order.created_at, order.accepted_at, order.picked_up_at]
    return max(stamp for stamp in stamps if stamp is not None)


def transition(order: Order, target: OrderStatus, actor: str, now: Optional[datetime] = None) -> Order:
    """
    Apply one status change and return the new Order.

    Re-applying a transition the order already went through is a no-op
    success (returns the order unchanged), so duplicate retries from flaky
    connections are harmless. The actor is still checked.

    Raises:
        InvalidTransition: target is not a direct successor of order.status
        NotAuthorized: actor lacks rights for this transition
    """
    target = OrderStatus(target)

    if order.status == target:
        if target == OrderStatus.CANCELLED:
            if actor not in (order.customer_id, order.partner_id):
                raise _deny(order, target, actor, "not a party to this order")
        else:
            authorize(order, target, actor, from_status=target)
        return order

    if not can_transition(order.status, target):
        raise InvalidTransition(
            f"Cannot move order {order.id} from {order.status.value} to {target.value}",
            order_id=order.id,
        )

    authorize(order, target, actor)

    now = now or utc_now()
    # milestones never go backwards, even if the caller's clock does
    stamp = max(now, _previous_milestone(order))

    changes: Dict[str, Any] = {"status": target, MILESTONE_FIELDS[target]: stamp}
    if target == OrderStatus.ACCEPTED:
        changes["partner_id"] = actor

    return replace(order, **changes)


def changed_fields(before: Order, after: Order) -> Dict[str, Any]:
    """
    The fields that differ between two versions of an order, in the shape a
    conditional update expects. The store owns `version`, so it is left out.
    """
    changes: Dict[str, Any] = {}
    for field in fields(Order):
        if field.name in ("id", "version"):
            continue
        old_value = getattr(before, field.name)
        new_value = getattr(after, field.name)
        if old_value != new_value:
            changes[field.name] = new_value
    return changes
