"""
End-to-end run of the marketplace rules over the in-memory store:
price every restaurant's zone, assign riders to confirmed orders, refresh
capacity flags and write a CSV report.
"""
import logging
import os
import random
from datetime import datetime, timedelta

import pandas as pd

from capacity import CapacityService
from datastore import InMemoryStore, RecordingBroadcaster, seed_store
from dispatch import RiderAssignmentService
from orders.models import Order, OrderStatus, Restaurant
from pricing import DynamicPricingEngine
from riders.models import Rider
from scripts.generate_mock_data import generate_marketplace_data

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def load_frames(data_dir):
    paths = {name: os.path.join(data_dir, f"{name}.csv") for name in ("restaurants", "riders", "orders")}
    if not all(os.path.exists(path) for path in paths.values()):
        return generate_marketplace_data(output_dir=data_dir, seed=42)
    return {name: pd.read_csv(path) for name, path in paths.items()}


def order_from_frame_row(row):
    created_at = datetime.fromisoformat(row.created_at)
    status = OrderStatus(row.status)
    return Order(
        id=row.order_id,
        restaurant_id=row.restaurant_id,
        status=status,
        total_amount=float(row.total_amount),
        delivery_zone=row.delivery_zone,
        created_at=created_at,
        delivered_at=(
            created_at + timedelta(minutes=float(row.fulfilment_minutes))
            if status == OrderStatus.DELIVERED else None
        ),
    )


def seed_from_frames(store, frames):
    restaurants = [
        Restaurant(
            id=row.restaurant_id,
            name=row.name,
            location=(float(row.lat), float(row.lon)),
            delivery_fee=float(row.delivery_fee) or None,
        )
        for row in frames["restaurants"].itertuples(index=False)
    ]
    riders = [
        Rider.new(
            row.rider_id,
            float(row.lat),
            float(row.lon),
            is_online=bool(row.is_online),
            status=row.status,
            max_concurrent_orders=int(row.max_concurrent_orders),
            preferred_zones=[row.zone],
        )
        for row in frames["riders"].itertuples(index=False)
    ]
    orders = [order_from_frame_row(row) for row in frames["orders"].itertuples(index=False)]

    seed_store(store, restaurants=restaurants, riders=riders, orders=orders)
    for row in frames["riders"].itertuples(index=False):
        store.add_rating(row.rider_id, float(row.average_rating))


def run_simulation(data_dir=None, output_file="marketplace_results.csv"):
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print("=== STARTING MARKETPLACE RULES SIMULATION ===")

    frames = load_frames(data_dir or os.path.join(BASE_DIR, "sampledata"))
    store = InMemoryStore()
    seed_from_frames(store, frames)
    print(f"Loaded {len(frames['restaurants'])} restaurants, {len(frames['riders'])} riders, "
          f"{len(frames['orders'])} orders.\n")

    broadcaster = RecordingBroadcaster()
    pricing = DynamicPricingEngine(store, rng=random.Random(7))
    assignments = RiderAssignmentService(store)
    capacity = CapacityService(store, broadcaster=broadcaster)

    # 1. Surge per zone
    print("--- Surge status ---")
    for zone in pricing.current_surge_status():
        print(f"  {zone.zone:<10} x{zone.multiplier:.2f}  {zone.message}")

    # 2. Rider assignment for every confirmed order without a rider
    results = []
    confirmed = frames["orders"][frames["orders"]["status"] == "confirmed"]
    for row in confirmed.itertuples(index=False):
        price = pricing.calculate_dynamic_price(row.restaurant_id, row.delivery_zone, float(row.total_amount))
        result = assignments.assign_rider_to_order(row.order_id, row.restaurant_id)
        results.append({
            "order_id": row.order_id,
            "zone": row.delivery_zone,
            "multiplier": price.surge_info.multiplier,
            "delivery_fee": price.adjusted_price.delivery_fee,
            "assigned": result.success,
            "rider_id": result.assigned_rider_id,
            "candidates": len(result.candidate_riders),
            "message": result.message,
        })

    # 3. Capacity flags
    for restaurant in store.list_restaurants():
        capacity.get_capacity(restaurant.id)
    overview = capacity.capacity_overview()

    report = pd.DataFrame(results)
    output_path = os.path.join(BASE_DIR, output_file)
    report.to_csv(output_path, index=False)

    assigned = int(report["assigned"].sum()) if not report.empty else 0
    print("\n=== SIMULATION SUMMARY ===")
    print(f"Confirmed orders:       {len(report)}")
    print(f"Assigned automatically: {assigned}")
    print(f"Fallback to manual:     {len(report) - assigned}")
    print(f"Restaurants busy:       {overview.busy_restaurants}/{overview.total_restaurants}")
    print(f"Capacity broadcasts:    {len(broadcaster.messages)}")
    print(f"Results saved to '{output_path}'")
    return report


if __name__ == "__main__":
    run_simulation()
