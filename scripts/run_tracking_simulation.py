import asyncio
import logging
import os
import random
from dataclasses import replace

import pandas as pd

from dispatch.dispatcher import DispatchEngine
from dispatch.errors import AlreadyClaimed
from dispatch.policy import fast_test_policy
from orders.store import InMemoryOrderStore
from partners.models import Partner, PartnerStatus
from scripts.generate_mock_orders import generate_mock_orders

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Replay speed for the demo route. 15 waypoints at 0.2 s is a 3 second walk.
SIMULATION_TICK_SECONDS = 0.2


def load_orders(filepath="campus_orders_generated.csv", limit=20):
    """
    Raw rows from generate_mock_orders.py, in the store's record shape.
    """
    absolute_path = os.path.join(BASE_DIR, filepath)
    if not os.path.exists(absolute_path):
        generate_mock_orders(num_orders=limit, output_file=absolute_path)

    df = pd.read_csv(absolute_path, dtype={"subtotal": str, "delivery_fee": str, "total": str}).head(limit)
    df = df.rename(columns={"order_id": "id"})
    df["partner_id"] = None
    columns = ["id", "customer_id", "pickup_point", "dropoff_zone", "dropoff_details",
               "subtotal", "delivery_fee", "total", "status", "created_at", "partner_id"]
    return df[columns].to_dict(orient="records")


async def race_for_offers(engine, partners):
    """
    Every online partner hits "Accept" on every offer at the same time.
    """
    results = []
    offers = await engine.list_offers(partners[0])

    for order in offers:
        contenders = random.sample(partners, k=min(3, len(partners)))
        outcomes = await asyncio.gather(
            *(engine.claim(order.id, partner.id) for partner in contenders),
            return_exceptions=True,
        )
        winners = [o.partner_id for o in outcomes if not isinstance(o, Exception)]
        lost = sum(1 for o in outcomes if isinstance(o, AlreadyClaimed))
        results.append({
            "order_id": order.id,
            "zone": order.dropoff_zone,
            "contenders": len(contenders),
            "winner": winners[0] if winners else "NONE",
            "winners": len(winners),
            "lost_races": lost,
        })
    return pd.DataFrame(results)


async def walk_one_delivery(engine, order_id, partner_id):
    """
    Pick up and walk one order along the simulated route, recording what the
    customer's view receives.
    """
    timeline = []

    def customer_view(snapshot):
        timeline.append({
            "version": snapshot.version,
            "status": snapshot.order.status.value,
            "partner_lat": snapshot.order.partner_lat,
            "partner_lng": snapshot.order.partner_lng,
            "distance_m": None if snapshot.eta is None else round(snapshot.eta.distance_meters, 1),
            "eta_s": None if snapshot.eta is None else round(snapshot.eta.duration_seconds, 1),
        })

    engine.subscribe(order_id, customer_view)
    await engine.mark_picked_up(order_id, partner_id)

    session = await engine.open_tracking_session(order_id, partner_id)
    while session.active and not session.source.finished:
        await asyncio.sleep(SIMULATION_TICK_SECONDS)

    await engine.mark_delivered(order_id, partner_id)
    return pd.DataFrame(timeline)


async def run_simulation():
    print("=== STARTING CAMPUS TRACKING SIMULATION ===")

    # 1. Load Data
    store = InMemoryOrderStore(load_orders(limit=20))
    partners = [Partner.new(f"P-{str(i+1).zfill(2)}", PartnerStatus.ONLINE) for i in range(6)]
    print(f"Loaded {len(await store.list_orders())} orders and {len(partners)} partners.\n")

    # 2. Configure System
    policy = replace(fast_test_policy(), simulation_tick_seconds=SIMULATION_TICK_SECONDS)
    engine = DispatchEngine(store, policy=policy)

    # 3. Claim races
    claims = await race_for_offers(engine, partners)
    print("--- Claim races ---")
    print(claims.to_string(index=False))
    assert (claims["winners"] <= 1).all(), "an order was claimed twice"

    # 4. Walk the first claimed order to its customer
    first = claims[claims["winners"] == 1].iloc[0]
    timeline = await walk_one_delivery(engine, first["order_id"], first["winner"])
    await engine.close()

    output_path = os.path.join(BASE_DIR, "tracking_results.csv")
    timeline.to_csv(output_path, index=False)

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Orders claimed: {int(claims['winners'].sum())} / {len(claims)}")
    print(f"Lost races: {int(claims['lost_races'].sum())}")
    print(f"Snapshots delivered to customer: {len(timeline)}")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_simulation())
