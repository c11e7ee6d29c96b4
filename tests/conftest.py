from datetime import datetime, timedelta, timezone

import pytest

from orders.store import InMemoryOrderStore

T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Injectable clock that only moves when a test says so."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def order_record():
    """A valid raw row for a pending order to New Asia (38.00 + 5.00)."""
    def build(**overrides):
        record = {
            "id": "order_1",
            "customer_id": "cust_1",
            "pickup_point": "STUDENT_CAFE",
            "dropoff_zone": "NA",
            "subtotal": "38.00",
            "delivery_fee": "5.00",
            "total": "43.00",
            "status": "pending",
            "created_at": T0,
            "partner_id": None,
        }
        record.update(overrides)
        return record

    return build
