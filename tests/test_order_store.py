import asyncio
from decimal import Decimal

import pytest

from orders.errors import InvalidRecord, OrderNotFound, UnknownZone
from orders.models import Order, OrderStatus
from orders.placement import place_order
from orders.store import InMemoryOrderStore, OrderFilter


def test_from_record_accepts_a_valid_row(order_record):
    order = Order.from_record(order_record(created_at="2026-03-02T12:00:00Z"))

    # 1. money parsed as Decimal and the total checked
    assert order.total == Decimal("43.00")

    # 2. ISO timestamps become aware datetimes
    assert order.created_at.tzinfo is not None
    assert order.status == OrderStatus.PENDING
    assert order.version == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"customer_id": None},
        {"status": "lost"},
        {"total": "40.00"},
        {"subtotal": "abc"},
        {"status": "accepted", "partner_id": None},
        {"status": "pending", "partner_id": "partner_p"},
        {"created_at": "yesterday"},
        {"partner_lat": "north"},
        {"version": 0},
        {"dropoff_zone": "LIBRARY"},
        {"pickup_point": "NOWHERE"},
    ],
)
def test_from_record_rejects_broken_rows(order_record, overrides):
    """
    Partial or inconsistent rows fail at the boundary instead of reaching
    the state machine.
    """
    with pytest.raises(InvalidRecord):
        Order.from_record(order_record(**overrides))


def test_store_refuses_rows_outside_the_catalog(order_record):
    with pytest.raises(InvalidRecord) as excinfo:
        InMemoryOrderStore([order_record(dropoff_zone="LIBRARY")])

    assert excinfo.value.order_id == "order_1"
    assert "LIBRARY" in str(excinfo.value)


def test_to_dict_is_json_friendly(order_record):
    data = Order.from_record(order_record()).to_dict()

    assert data["status"] == "pending"
    assert data["total"] == "43.00"
    assert isinstance(data["created_at"], str)


def test_place_order_prices_from_zone(store, clock):
    order = asyncio.run(place_order(
        store,
        customer_id="cust_1",
        zone_code="CC",
        subtotal=12.5,
        dropoff_details="   ",
        now=clock(),
    ))

    # 1. Chung Chi costs 6.00
    assert order.delivery_fee == Decimal("6.00")
    assert order.total == Decimal("18.50")

    # 2. blank details collapse to None
    assert order.dropoff_details is None
    assert order.status == OrderStatus.PENDING
    assert order.partner_id is None
    assert order.created_at == clock()


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"zone_code": "MARS"}, UnknownZone),
        ({"pickup_point": "NOWHERE"}, UnknownZone),
        ({"customer_id": ""}, ValueError),
        ({"subtotal": "-1"}, ValueError),
    ],
)
def test_place_order_validation(store, kwargs, error):
    params = {"customer_id": "cust_1", "zone_code": "NA", "subtotal": "10"}
    params.update(kwargs)

    with pytest.raises(error):
        asyncio.run(place_order(store, **params))


def test_get_missing_order(store):
    with pytest.raises(OrderNotFound) as excinfo:
        asyncio.run(store.get_order("nope"))

    assert excinfo.value.order_id == "nope"


def test_conditional_update_is_compare_and_swap(order_record):
    store = InMemoryOrderStore([order_record()])

    async def scenario():
        lost = await store.conditional_update(
            "order_1",
            expected={"status": OrderStatus.ACCEPTED},
            new_fields={"dropoff_details": "Room 101"},
        )
        won = await store.conditional_update(
            "order_1",
            expected={"status": OrderStatus.PENDING, "partner_id": None},
            new_fields={"dropoff_details": "Room 101"},
        )
        missing = await store.conditional_update("order_9", expected={}, new_fields={"dropoff_details": "x"})
        return lost, won, missing, await store.get_order("order_1")

    lost, won, missing, order = asyncio.run(scenario())

    # 1. mismatched expectation writes nothing
    assert lost == 0

    # 2. matching expectation writes and bumps the version
    assert won == 1
    assert order.dropoff_details == "Room 101"
    assert order.version == 2

    # 3. unknown id affects nothing
    assert missing == 0


def test_conditional_update_refuses_invalid_rows(order_record):
    store = InMemoryOrderStore([order_record()])

    # accepted without a partner would break the record invariant
    with pytest.raises(InvalidRecord):
        asyncio.run(store.conditional_update("order_1", expected={}, new_fields={"status": OrderStatus.ACCEPTED}))

    # 1. the stored row is untouched
    assert asyncio.run(store.get_order("order_1")).status == OrderStatus.PENDING

    # 2. the store owns id and version
    with pytest.raises(ValueError):
        asyncio.run(store.conditional_update("order_1", expected={}, new_fields={"version": 7}))


def test_list_orders_filters(order_record):
    store = InMemoryOrderStore([
        order_record(id="a"),
        order_record(id="b", customer_id="cust_2"),
        order_record(id="c", status="accepted", partner_id="partner_p"),
    ])

    async def scenario():
        return (
            await store.list_orders(),
            await store.list_orders(OrderFilter(status=OrderStatus.PENDING)),
            await store.list_orders(OrderFilter(customer_id="cust_2")),
            await store.list_orders(OrderFilter(partner_id="partner_p")),
        )

    everything, pending, customer, partner = asyncio.run(scenario())

    assert len(everything) == 3
    assert {o.id for o in pending} == {"a", "b"}
    assert [o.id for o in customer] == ["b"]
    assert [o.id for o in partner] == ["c"]
