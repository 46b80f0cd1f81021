class StoreError(Exception):
    """Base class for data store failures (unreachable backend, bad rows...)."""
    pass
