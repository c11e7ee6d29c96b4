import asyncio
from decimal import Decimal

import pytest

from dispatch.arbiter import ClaimArbiter
from dispatch.errors import AlreadyClaimed, ConcurrentUpdate, InvalidTransition, NotAuthorized
from orders.models import OrderStatus
from orders.placement import place_order


async def _placed(store, clock, subtotal="38.00", zone="NA"):
    return await place_order(store, customer_id="cust_1", zone_code=zone, subtotal=subtotal, now=clock())


def test_first_claim_wins_second_is_rejected(store, clock):
    """
    38.00 + New Asia fee 5.00 = 43.00; partner P claims it, then partner Q
    is told it is gone.
    """
    async def scenario():
        order = await _placed(store, clock)
        arbiter = ClaimArbiter(store, clock)

        claimed = await arbiter.claim(order.id, "partner_p")
        with pytest.raises(AlreadyClaimed):
            await arbiter.claim(order.id, "partner_q")
        return order, claimed, await store.get_order(order.id)

    order, claimed, stored = asyncio.run(scenario())

    # 1. priced from the zone catalog
    assert order.total == Decimal("43.00")

    # 2. the winner owns the order
    assert claimed.status == OrderStatus.ACCEPTED
    assert claimed.partner_id == "partner_p"

    # 3. the loser changed nothing
    assert stored.partner_id == "partner_p"
    assert stored.version == 2


def test_concurrent_claims_have_exactly_one_winner(store, clock):
    """
    Many partners read the same pending order before anyone writes. The
    conditional update lets exactly one through.
    """
    async def scenario():
        order = await _placed(store, clock)
        arbiter = ClaimArbiter(store, clock)
        partners = [f"partner_{i}" for i in range(8)]

        results = await asyncio.gather(
            *(arbiter.claim(order.id, partner_id) for partner_id in partners),
            return_exceptions=True,
        )
        return results, await store.get_order(order.id)

    results, stored = asyncio.run(scenario())

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]

    # 1. exactly one winner
    assert len(winners) == 1
    assert stored.partner_id == winners[0].partner_id

    # 2. every loser saw AlreadyClaimed, nothing else
    assert len(losers) == 7
    assert all(isinstance(error, AlreadyClaimed) for error in losers)

    # 3. one write only
    assert stored.version == 2


def test_duplicate_claim_from_the_winner_is_harmless(store, clock):
    async def scenario():
        order = await _placed(store, clock)
        arbiter = ClaimArbiter(store, clock)
        first = await arbiter.claim(order.id, "partner_p")
        clock.advance(30)
        second = await arbiter.claim(order.id, "partner_p")
        return first, second

    first, second = asyncio.run(scenario())

    assert second.accepted_at == first.accepted_at
    assert second.version == first.version


def test_claiming_a_cancelled_order_fails(store, clock):
    async def scenario():
        order = await _placed(store, clock)
        arbiter = ClaimArbiter(store, clock)
        await arbiter.apply_transition(order.id, OrderStatus.CANCELLED, "cust_1")
        await arbiter.claim(order.id, "partner_p")

    with pytest.raises(AlreadyClaimed):
        asyncio.run(scenario())


def test_transitions_go_through_the_store(store, clock):
    async def scenario():
        order = await _placed(store, clock)
        arbiter = ClaimArbiter(store, clock)
        await arbiter.apply_transition(order.id, OrderStatus.ACCEPTED, "partner_p")
        clock.advance(120)
        picked = await arbiter.apply_transition(order.id, OrderStatus.PICKED_UP, "partner_p")
        clock.advance(300)
        delivered = await arbiter.apply_transition(order.id, OrderStatus.DELIVERED, "partner_p")
        again = await arbiter.apply_transition(order.id, OrderStatus.DELIVERED, "partner_p")
        return picked, delivered, again

    picked, delivered, again = asyncio.run(scenario())

    # 1. milestones persisted
    assert picked.picked_up_at is not None
    assert delivered.delivered_at > picked.picked_up_at

    # 2. a retried delivery changes nothing
    assert again.version == delivered.version


def test_wrong_partner_cannot_advance(store, clock):
    async def scenario():
        order = await _placed(store, clock)
        arbiter = ClaimArbiter(store, clock)
        await arbiter.claim(order.id, "partner_p")
        await arbiter.apply_transition(order.id, OrderStatus.PICKED_UP, "partner_q")

    with pytest.raises(NotAuthorized):
        asyncio.run(scenario())


def test_cancel_racing_pickup_reports_concurrent_update(store, clock):
    """
    The partner cancels while a pickup from another device is in flight.
    Whichever write lands second finds the order changed under it.
    """
    async def scenario():
        order = await _placed(store, clock)
        arbiter = ClaimArbiter(store, clock)
        await arbiter.claim(order.id, "partner_p")

        results = await asyncio.gather(
            arbiter.apply_transition(order.id, OrderStatus.PICKED_UP, "partner_p"),
            arbiter.apply_transition(order.id, OrderStatus.CANCELLED, "partner_p"),
            return_exceptions=True,
        )
        return results, await store.get_order(order.id)

    results, stored = asyncio.run(scenario())

    errors = [r for r in results if isinstance(r, Exception)]

    # 1. exactly one of the two won
    assert len(errors) == 1
    assert isinstance(errors[0], ConcurrentUpdate)

    # 2. ConcurrentUpdate is still an InvalidTransition to callers
    assert isinstance(errors[0], InvalidTransition)
    assert stored.status in (OrderStatus.PICKED_UP, OrderStatus.CANCELLED)
