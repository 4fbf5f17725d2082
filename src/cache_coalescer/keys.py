"""Key namespacing and shared defaults."""

NAMESPACE = "cache-coalescer"

DEFAULT_LOCK_TTL = 5.0
DEFAULT_WAIT_TIMEOUT = 5.0
DEFAULT_WAIT_SLEEP = 0.05


def lock_key_for(key: str) -> str:
    """Key guarding recomputation of ``key``."""
    return f"{NAMESPACE}:lock:{key}"


def stale_key_for(key: str) -> str:
    """Key holding the last-resort stale copy of ``key``."""
    return f"{NAMESPACE}:stale:{key}"
