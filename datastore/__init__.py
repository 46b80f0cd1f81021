from .errors import StoreError
from .memory import InMemoryStore, RecordingBroadcaster, seed_store
from .supabase_client import SupabaseClient, SupabaseError
from .supabase_store import RealtimeBroadcaster, SupabaseStore

__all__ = [
    "InMemoryStore",
    "RealtimeBroadcaster",
    "RecordingBroadcaster",
    "StoreError",
    "SupabaseClient",
    "SupabaseError",
    "SupabaseStore",
    "seed_store",
]
