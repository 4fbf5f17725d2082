"""Exceptions raised by cache_coalescer."""


class CoalescerError(Exception):
    """Base class for cache_coalescer errors."""


class ConfigurationError(CoalescerError):
    """No usable store or lock backend could be resolved."""
