"""Decorator form of the coalesced fetch."""

import hashlib
import inspect
import json
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec

from cache_coalescer.async_coalescer import fetch_async
from cache_coalescer.coalescer import fetch
from cache_coalescer.errors import ConfigurationError
from cache_coalescer.types import Duration

P = ParamSpec("P")


def make_cache_key(
    fn: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> str:
    """Generate a cache key from a function and its arguments."""
    args_hash = hashlib.sha256(
        json.dumps([args, kwargs], sort_keys=True, default=str).encode()
    ).hexdigest()[:16]
    return f"{fn.__module__}.{fn.__qualname__}:{args_hash}"


def coalesced(
    ttl: Duration,
    *,
    key: Callable[..., str] | None = None,
    store: Any = None,
    **options: Any,
) -> Callable[[Callable[P, Any]], Callable[P, Any]]:
    """Route calls of the decorated function through a coalesced fetch.

    ``key`` receives the call's arguments and returns the cache key; by
    default it is derived from the function's qualified name and a hash of
    the arguments. Coroutine functions need an explicit async ``store``.
    The wrapped function may return ``None`` when the lock is busy and no
    value or stale copy turns up in time.
    """

    def decorator(fn: Callable[P, Any]) -> Callable[P, Any]:
        def cache_key(args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
            if key is not None:
                return key(*args, **kwargs)
            return make_cache_key(fn, args, kwargs)

        if inspect.iscoroutinefunction(fn):
            if store is None:
                raise ConfigurationError(
                    f"@coalesced on coroutine {fn.__qualname__} needs store=..."
                )

            @wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                return await fetch_async(
                    cache_key(args, kwargs),
                    ttl,
                    lambda: fn(*args, **kwargs),
                    store=store,
                    **options,
                )

            return async_wrapper

        @wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
            return fetch(
                cache_key(args, kwargs),
                ttl,
                lambda: fn(*args, **kwargs),
                store=store,
                **options,
            )

        return wrapper

    return decorator
