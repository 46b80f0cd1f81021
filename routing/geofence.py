#Purpose: Straight-line geofencing logic.
#Builds "eligible by reachability" sets using great-circle (haversine) distance.
#Typical responsibilities:
#Given a pickup point + rider positions -> compute distances
#Apply a radius threshold (e.g. 10 km around the restaurant)
#Sorting candidates by closest first
#Output: a list of "geo-qualified candidates" with their distance.

import math
from dataclasses import dataclass
from typing import Generic, Iterable, List, Optional, Tuple, TypeVar

#internal coordinate type :(lat,lon)
LatLon = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


def haversine_km(origin: LatLon, destination: LatLon) -> float:
    """
    Great-circle distance between two (lat, lon) points in kilometres.
    """
    lat1, lon1 = origin
    lat2, lon2 = destination

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


@dataclass(frozen=True)
class GeofenceCandidate(Generic[T]):
    """
    Represents a geofence qualified candidate with its distance to the pickup.
    This is what the scoring layer will consume as input.
    """

    item: T
    distance_km: float


def geofence_candidates(
        pickup: LatLon,
        items: Iterable[T],
        location_of,
        *,
        max_distance_km: float,
) -> List[GeofenceCandidate[T]]:
    """
    Keep every item whose location lies within `max_distance_km` of `pickup`.

    Args:
        pickup: (lat, lon) of the restaurant
        items: riders (or anything else with a position)
        location_of: callable returning an item's (lat, lon), or None when unknown
        max_distance_km: inclusive radius threshold

    Returns:
        List[GeofenceCandidate], sorted by distance ascending.
    """
    candidates: List[GeofenceCandidate[T]] = []

    for item in items:
        location: Optional[LatLon] = location_of(item)
        #fail closed : an item without a position is never eligible
        if location is None:
            continue

        distance = haversine_km(pickup, location)
        if distance > max_distance_km:
            continue

        candidates.append(GeofenceCandidate(item=item, distance_km=distance))

    candidates.sort(key=lambda candidate: candidate.distance_km)
    return candidates
