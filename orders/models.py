"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (parties, route, commerce, lifecycle milestones, live partner position)
- LocationReport (one position fix from a partner device or the route simulator)

Defines enums/constants:
- OrderStatus = pending | accepted | picked_up | delivered | cancelled

Validates raw store records into typed Orders (Order.from_record) so partial
or inconsistent rows fail fast at the store boundary instead of leaking into
the state machine.

Rule: No store calls, no transition logic. Models only.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from routing.waypoints import get_pickup_point

from .errors import InvalidRecord
from .zones import get_zone

LatLon = Tuple[float, float]

MONEY_QUANTUM = Decimal("0.01")


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# statuses in which a partner is attached and moving
TRACKABLE_STATUSES = frozenset({OrderStatus.ACCEPTED, OrderStatus.PICKED_UP})

# statuses that require partner_id to be set
PARTNER_STATUSES = frozenset({OrderStatus.ACCEPTED, OrderStatus.PICKED_UP, OrderStatus.DELIVERED})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"not a money amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"not a money amount: {value!r}")
    return amount.quantize(MONEY_QUANTUM)


def _parse_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise InvalidRecord(f"{field_name} is not an ISO timestamp: {value!r}")
    else:
        raise InvalidRecord(f"{field_name} has unsupported type {type(value).__name__}")

    # naive timestamps from the store are treated as UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_float(value: Any, field_name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidRecord(f"{field_name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidRecord(f"{field_name} must be a number, got {value!r}")


@dataclass(frozen=True)
class LocationReport:
    """
    A single position fix. Ephemeral: folded into the Order as soon as it is ingested.
    """
    lat: float
    lng: float
    observed_at: datetime

    @property
    def coordinates(self) -> LatLon:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class Order:
    """
    One delivery request. Immutable value: every change produces a new Order
    (see dispatch/state_machines/order_state.py).
    """

    id: str
    customer_id: str
    pickup_point: str
    dropoff_zone: str

    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal

    status: OrderStatus
    created_at: datetime

    partner_id: Optional[str] = None
    dropoff_details: Optional[str] = None

    # milestones, each stamped once
    accepted_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    # live tracking
    partner_lat: Optional[float] = None
    partner_lng: Optional[float] = None
    last_location_update: Optional[datetime] = None
    location_observed_at: Optional[datetime] = None

    # maintained by the store adapter, bumped on every successful write
    version: int = 1

    @property
    def partner_location(self) -> Optional[LatLon]:
        if self.partner_lat is None or self.partner_lng is None:
            return None
        return (self.partner_lat, self.partner_lng)

    @property
    def is_trackable(self) -> bool:
        return self.status in TRACKABLE_STATUSES

    # ---- store boundary ----

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Order:
        """
        Build an Order from a raw store row, enforcing the Order invariants.
        Raises InvalidRecord on any missing field, bad type, unknown catalog code,
        or broken invariant.
        """
        if record is None:
            raise InvalidRecord("record is empty")

        for required in ("id", "customer_id", "pickup_point", "dropoff_zone",
                         "subtotal", "delivery_fee", "total", "status", "created_at"):
            if record.get(required) in (None, ""):
                raise InvalidRecord(f"record is missing '{required}'", order_id=record.get("id"))

        order_id = str(record["id"])

        try:
            status = OrderStatus(record["status"])
        except ValueError:
            raise InvalidRecord(f"unknown status {record['status']!r}", order_id=order_id)

        if get_zone(record["dropoff_zone"]) is None:
            raise InvalidRecord(f"unknown drop-off zone {record['dropoff_zone']!r}", order_id=order_id)
        if get_pickup_point(record["pickup_point"]) is None:
            raise InvalidRecord(f"unknown pickup point {record['pickup_point']!r}", order_id=order_id)

        try:
            subtotal = to_money(record["subtotal"])
            delivery_fee = to_money(record["delivery_fee"])
            total = to_money(record["total"])
        except ValueError as error:
            raise InvalidRecord(str(error), order_id=order_id)

        if total != subtotal + delivery_fee:
            raise InvalidRecord(
                f"total {total} != subtotal {subtotal} + delivery_fee {delivery_fee}",
                order_id=order_id,
            )

        partner_id = record.get("partner_id") or None
        if status in PARTNER_STATUSES and partner_id is None:
            raise InvalidRecord(f"status {status.value} requires a partner_id", order_id=order_id)
        if status == OrderStatus.PENDING and partner_id is not None:
            raise InvalidRecord("pending order cannot have a partner_id", order_id=order_id)

        version = record.get("version", 1)
        if not isinstance(version, int) or isinstance(version, bool) or version < 1:
            raise InvalidRecord(f"invalid version {version!r}", order_id=order_id)

        return cls(
            id=order_id,
            customer_id=str(record["customer_id"]),
            pickup_point=str(record["pickup_point"]),
            dropoff_zone=str(record["dropoff_zone"]),
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=total,
            status=status,
            created_at=_parse_datetime(record["created_at"], "created_at"),
            partner_id=str(partner_id) if partner_id is not None else None,
            dropoff_details=record.get("dropoff_details") or None,
            accepted_at=_parse_datetime(record.get("accepted_at"), "accepted_at"),
            picked_up_at=_parse_datetime(record.get("picked_up_at"), "picked_up_at"),
            delivered_at=_parse_datetime(record.get("delivered_at"), "delivered_at"),
            cancelled_at=_parse_datetime(record.get("cancelled_at"), "cancelled_at"),
            partner_lat=_parse_float(record.get("partner_lat"), "partner_lat"),
            partner_lng=_parse_float(record.get("partner_lng"), "partner_lng"),
            last_location_update=_parse_datetime(record.get("last_location_update"), "last_location_update"),
            location_observed_at=_parse_datetime(record.get("location_observed_at"), "location_observed_at"),
            version=version,
        )

    def to_record(self) -> Dict[str, Any]:
        """Raw row shape handed to the store (status as its string value)."""
        record = {f.name: getattr(self, f.name) for f in fields(self)}
        record["status"] = self.status.value
        return record

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly shape for push transports."""
        data = asdict(self)
        data["status"] = self.status.value
        for key, value in data.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
            elif isinstance(value, Decimal):
                data[key] = str(value)
        return data
