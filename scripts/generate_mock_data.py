import os
import uuid
from datetime import datetime, timezone, timedelta

import numpy as np
import pandas as pd

# Center around Lagos, Nigeria
CENTER_LAT = 6.5244
CENTER_LON = 3.3792

ZONES = ["isolo", "ikeja", "vi", "lekki", "mainland"]

ORDER_STATUSES = ["pending", "confirmed", "preparing", "ready", "picked_up", "delivered", "cancelled"]
ORDER_STATUS_WEIGHTS = [0.05, 0.15, 0.10, 0.05, 0.05, 0.55, 0.05]


def generate_marketplace_data(
    num_restaurants=25,
    num_riders=60,
    num_orders=800,
    output_dir="sampledata",
    seed=None,
):
    """
    Generates restaurants, riders and a week of orders around Lagos.
    Restaurants are kept within ~5km of the center so riders (scattered
    ~10km) land inside and outside the dispatch radius.
    """
    rng = np.random.default_rng(seed)
    now = datetime.now(timezone.utc)

    # 1. Restaurants
    restaurants = pd.DataFrame({
        "restaurant_id": [f"r_{str(uuid.uuid4())[:8]}" for _ in range(num_restaurants)],
        "name": [f"Restaurant {index + 1}" for index in range(num_restaurants)],
        "lat": np.round(CENTER_LAT + rng.uniform(-0.05, 0.05, num_restaurants), 6),
        "lon": np.round(CENTER_LON + rng.uniform(-0.05, 0.05, num_restaurants), 6),
        "delivery_fee": rng.choice([0, 400, 500, 700, 1000], num_restaurants),
        "zone": rng.choice(ZONES, num_restaurants),
    })

    # 2. Riders: 80% online, 90% active accounts
    riders = pd.DataFrame({
        "rider_id": [f"rdr_{str(index + 1).zfill(3)}" for index in range(num_riders)],
        "lat": np.round(CENTER_LAT + rng.uniform(-0.09, 0.09, num_riders), 6),
        "lon": np.round(CENTER_LON + rng.uniform(-0.09, 0.09, num_riders), 6),
        "is_online": rng.random(num_riders) < 0.8,
        "status": rng.choice(["active", "suspended"], num_riders, p=[0.9, 0.1]),
        "max_concurrent_orders": rng.integers(1, 4, num_riders),
        "zone": rng.choice(ZONES, num_riders),
        "average_rating": np.round(rng.uniform(3.0, 5.0, num_riders), 1),
    })

    # 3. Orders spread over the last 7 days, busier in the last hour
    minutes_ago = np.concatenate([
        rng.integers(0, 60, num_orders // 10),
        rng.integers(60, 7 * 24 * 60, num_orders - num_orders // 10),
    ])
    restaurant_index = rng.integers(0, num_restaurants, num_orders)
    orders = pd.DataFrame({
        "order_id": [f"o_{str(index + 1).zfill(6)}" for index in range(num_orders)],
        "restaurant_id": restaurants["restaurant_id"].to_numpy()[restaurant_index],
        "delivery_zone": restaurants["zone"].to_numpy()[restaurant_index],
        "created_at": [(now - timedelta(minutes=int(m))).isoformat() for m in minutes_ago],
        "status": rng.choice(ORDER_STATUSES, num_orders, p=ORDER_STATUS_WEIGHTS),
        "total_amount": np.round(rng.uniform(2000, 25000, num_orders), 0),
        "fulfilment_minutes": np.round(rng.normal(35, 10, num_orders).clip(10, 90), 1),
    })

    # 4. Save to CSV
    os.makedirs(output_dir, exist_ok=True)
    restaurants.to_csv(os.path.join(output_dir, "restaurants.csv"), index=False)
    riders.to_csv(os.path.join(output_dir, "riders.csv"), index=False)
    orders.to_csv(os.path.join(output_dir, "orders.csv"), index=False)
    print(f"✅ Generated {num_restaurants} restaurants, {num_riders} riders and {num_orders} orders in '{output_dir}'")

    # Print a quick preview of zone demand
    print("\nOrders per zone (last 7 days):")
    for zone, count in orders["delivery_zone"].value_counts().items():
        print(f"  {zone}: {count} orders")

    return {"restaurants": restaurants, "riders": riders, "orders": orders}


if __name__ == "__main__":
    generate_marketplace_data()
