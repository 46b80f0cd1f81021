from datetime import datetime, timedelta, timezone

import pytest

from datastore import InMemoryStore, RecordingBroadcaster
from orders.models import Order, OrderStatus, Restaurant
from riders.models import Rider

# Wednesday 10:00 in Lagos: no peak, no event, no rush pattern.
NOW = datetime(2024, 3, 6, 9, 0, tzinfo=timezone.utc)

RESTAURANT_LOCATION = (6.5244, 3.3792)

# ~111.2 km per degree of latitude
KM_PER_DEG_LAT = 111.195


def north_of(location, km):
    return (location[0] + km / KM_PER_DEG_LAT, location[1])


def make_rider(rider_id, km=1.0, **kwargs):
    lat, lon = north_of(RESTAURANT_LOCATION, km)
    return Rider.new(rider_id, lat, lon, **kwargs)


def make_order(order_id, status=OrderStatus.CONFIRMED, minutes_ago=5, **kwargs):
    kwargs.setdefault("restaurant_id", "rest_1")
    return Order(id=order_id, status=status, created_at=NOW - timedelta(minutes=minutes_ago), **kwargs)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def restaurant():
    return Restaurant(id="rest_1", name="Mama Put Isolo", location=RESTAURANT_LOCATION, delivery_fee=600)


@pytest.fixture
def store(restaurant):
    store = InMemoryStore()
    store.add_restaurant(restaurant)
    return store


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()
