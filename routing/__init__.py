#Marks routing as a package.
#Re-exports the distance helpers so other modules import from routing
#without knowing internal file names.
#No business logic.

from .geofence import GeofenceCandidate, geofence_candidates, haversine_km

__all__ = [
    "GeofenceCandidate",
    "geofence_candidates",
    "haversine_km",
]
