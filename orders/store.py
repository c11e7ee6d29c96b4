"""
Purpose: Narrow record-access interface over the external order store.
What it does:
- OrderStore: the four calls the engine is allowed to make
  (get_order, list_orders, insert_order, conditional_update)
- InMemoryOrderStore: reference adapter used by tests and scripts

Every row leaving the store goes through Order.from_record, so a partial or
inconsistent row fails here and never reaches the state machine.

Rule: No business rules. The only guarantee this layer adds is that
conditional_update is an atomic compare-and-swap.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .errors import InvalidRecord, OrderNotFound
from .models import Order, OrderStatus

logger = logging.getLogger(__name__)

# keys a conditional update may compare against
EXPECTABLE_FIELDS = frozenset({"status", "partner_id"})

# keys the caller may never write directly
PROTECTED_FIELDS = frozenset({"id", "version"})


@dataclass(frozen=True)
class OrderFilter:
    """
    Equality filter for list_orders. Unset (None) fields do not filter.
    """
    status: Optional[OrderStatus] = None
    partner_id: Optional[str] = None
    customer_id: Optional[str] = None

    def matches(self, record: Mapping[str, Any]) -> bool:
        if self.status is not None and record.get("status") != self.status.value:
            return False
        if self.partner_id is not None and record.get("partner_id") != self.partner_id:
            return False
        if self.customer_id is not None and record.get("customer_id") != self.customer_id:
            return False
        return True


class OrderStore(Protocol):
    """
    Record-access interface consumed by the engine. Implementations wrap the
    real persistent store; every call is asynchronous.
    """

    async def get_order(self, order_id: str) -> Order:
        """Return the order or raise OrderNotFound."""
        ...

    async def list_orders(self, order_filter: Optional[OrderFilter] = None) -> List[Order]:
        ...

    async def insert_order(self, fields: Mapping[str, Any]) -> Order:
        ...

    async def conditional_update(
        self,
        order_id: str,
        expected: Mapping[str, Any],
        new_fields: Mapping[str, Any],
    ) -> int:
        """
        Apply new_fields only if every key in expected still equals the stored
        value (None means "must be null"). Returns the affected row count (0 or 1).
        """
        ...


def _normalise(fields: Mapping[str, Any]) -> Dict[str, Any]:
    normalised = dict(fields)
    status = normalised.get("status")
    if isinstance(status, OrderStatus):
        normalised["status"] = status.value
    return normalised


class InMemoryOrderStore:
    """
    Dict-backed OrderStore.

    Reads copy the row and then yield to the event loop before returning, so
    two coroutines that read the same order can both act on the same stale
    view. That is exactly the race the claim arbiter must survive, so the
    compare-and-swap in conditional_update is the only thing standing between
    two winners. conditional_update itself never awaits between compare and
    write, which makes it atomic on a single event loop.
    """

    def __init__(self, records: Optional[List[Mapping[str, Any]]] = None):
        self._records: Dict[str, Dict[str, Any]] = {}
        for record in records or []:
            order = Order.from_record(record)
            self._records[order.id] = order.to_record()

    async def get_order(self, order_id: str) -> Order:
        record = self._records.get(order_id)
        if record is None:
            raise OrderNotFound(order_id)
        snapshot = dict(record)
        await asyncio.sleep(0)
        return Order.from_record(snapshot)

    async def list_orders(self, order_filter: Optional[OrderFilter] = None) -> List[Order]:
        order_filter = order_filter or OrderFilter()
        rows = [dict(record) for record in self._records.values() if order_filter.matches(record)]
        await asyncio.sleep(0)
        return [Order.from_record(row) for row in rows]

    async def insert_order(self, fields: Mapping[str, Any]) -> Order:
        record = _normalise(fields)
        record.setdefault("id", str(uuid.uuid4()))
        record["version"] = 1

        if record["id"] in self._records:
            raise InvalidRecord(f"order {record['id']} already exists", order_id=record["id"])

        # validate before it is visible to anyone
        order = Order.from_record(record)
        self._records[order.id] = order.to_record()
        logger.debug(f"Inserted order {order.id}")
        return order

    async def conditional_update(
        self,
        order_id: str,
        expected: Mapping[str, Any],
        new_fields: Mapping[str, Any],
    ) -> int:
        unknown = set(expected) - EXPECTABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot compare on fields {sorted(unknown)}")
        protected = set(new_fields) & PROTECTED_FIELDS
        if protected:
            raise ValueError(f"cannot write fields {sorted(protected)}")

        record = self._records.get(order_id)
        if record is None:
            return 0

        for key, value in _normalise(expected).items():
            if record.get(key) != value:
                return 0

        candidate = dict(record)
        candidate.update(_normalise(new_fields))
        candidate["version"] = record.get("version", 1) + 1

        # reject writes that would leave an invalid row behind
        Order.from_record(candidate)

        self._records[order_id] = candidate
        return 1
