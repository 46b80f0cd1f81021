"""
Builds the rules services the views call.

One store per process, picked by settings.MARKETPLACE_STORE. Services are
cheap and rebuilt per request so the pricing engine always starts from the
persisted configuration.
"""
import logging

from django.conf import settings

from capacity import CapacityService
from datastore import InMemoryStore, RealtimeBroadcaster, RecordingBroadcaster, SupabaseStore
from dispatch import RiderAssignmentService
from pricing import DynamicPricingEngine

logger = logging.getLogger(__name__)

_store = None
_broadcaster = None


def get_store():
    global _store
    if _store is None:
        if settings.MARKETPLACE_STORE == "memory":
            logger.warning("Using the in-memory marketplace store; data is lost on restart")
            _store = InMemoryStore()
        else:
            _store = SupabaseStore()
    return _store


def get_broadcaster():
    global _broadcaster
    if _broadcaster is None:
        store = get_store()
        if isinstance(store, SupabaseStore):
            _broadcaster = RealtimeBroadcaster(store.client)
        else:
            _broadcaster = RecordingBroadcaster()
    return _broadcaster


def use_store(store, broadcaster=None):
    """Swap the process-wide store (tests, simulations). None resets."""
    global _store, _broadcaster
    _store = store
    _broadcaster = broadcaster


def pricing_engine() -> DynamicPricingEngine:
    return DynamicPricingEngine.from_store(get_store())


def assignment_service() -> RiderAssignmentService:
    return RiderAssignmentService(get_store())


def capacity_service() -> CapacityService:
    return CapacityService(get_store(), broadcaster=get_broadcaster())


def is_admin(user_id: str) -> bool:
    return get_store().get_user_role(user_id) == "admin"
