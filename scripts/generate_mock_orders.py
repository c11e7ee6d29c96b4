import pandas as pd
import numpy as np
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from orders.zones import CAMPUS_ZONES
from routing.waypoints import STUDENT_CAFE


def generate_mock_orders(num_orders=200, num_customers=60, output_file="campus_orders_generated.csv"):
    """
    Generates a dataset of campus café orders for load-testing the claim and
    tracking paths. Every order is collected at the student café and dropped
    at one of the campus zones; nearer zones are ordered from more often.
    """
    customers = [f"c_{1000 + customer_index}" for customer_index in range(num_customers)]

    # 1. Nearer zones are busier: weight by inverse walk time
    weights = np.array([1.0 / zone.walk_time_minutes for zone in CAMPUS_ZONES])
    weights = weights / weights.sum()

    data = []
    now = datetime.now(timezone.utc)

    # 2. Generate Orders
    for order_index in range(num_orders):
        zone = CAMPUS_ZONES[np.random.choice(len(CAMPUS_ZONES), p=weights)]
        subtotal = Decimal(f"{np.random.uniform(18.0, 65.0):.1f}0")

        data.append({
            "order_id": f"o_{str(order_index+1).zfill(6)}",
            "created_at": (now - timedelta(minutes=int(np.random.randint(0, 90)))).isoformat(),
            "customer_id": np.random.choice(customers),
            "pickup_point": STUDENT_CAFE.code,
            "pickup_lat": STUDENT_CAFE.lat,
            "pickup_lon": STUDENT_CAFE.lon,
            "dropoff_zone": zone.code,
            "dropoff_lat": zone.lat,
            "dropoff_lon": zone.lon,
            "dropoff_details": f"Room {np.random.randint(100, 999)}",
            "subtotal": str(subtotal),
            "delivery_fee": str(zone.delivery_fee),
            "total": str(subtotal + zone.delivery_fee),
            "status": "pending",
        })

    # 3. Save to CSV
    df = pd.DataFrame(data)
    df.to_csv(output_file, index=False)
    print(f"Generated {num_orders} orders and saved to '{output_file}'")

    # Print a quick preview of zone demand
    print("\nOrders per zone:")
    counts = df["dropoff_zone"].value_counts()
    for code, count in counts.items():
        print(f"  {code}: {count} orders")

    return df


if __name__ == "__main__":
    generate_mock_orders(num_orders=200, num_customers=60)
