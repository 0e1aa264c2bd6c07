"""Declarative caching decorators."""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar

from dynacache.cache.ports.outbound import CacheStore

F = TypeVar("F", bound=Callable[..., Any])


def _resolve_key(func: Callable[..., Any], key: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
    bound = inspect.signature(func).bind(*args, **kwargs)
    bound.apply_defaults()
    return key.format(**bound.arguments)


def cacheable(
    store: CacheStore,
    key: str,
    ttl_minutes: float = 60,
) -> Callable[[F], F]:
    """Cache the return value of an async function, skipping it on a hit.

    The `key` parameter supports format-string interpolation with function
    argument names. For example, `key="user:{user_id}"` will expand
    `{user_id}` from the function's arguments. A cached ``None`` is
    indistinguishable from a miss.

    Args:
        store: Cache store to use.
        key: Key template with {param} placeholders.
        ttl_minutes: Lifetime of cached entries.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            resolved_key = _resolve_key(func, key, args, kwargs)

            cached = await store.get(resolved_key)
            if cached is not None:
                return cached

            result = await func(*args, **kwargs)
            await store.put(resolved_key, result, ttl_minutes)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


def cache_evict(
    store: CacheStore,
    key: str = "",
    all_entries: bool = False,
) -> Callable[[F], F]:
    """Evict a cache entry (or all entries) after method execution.

    Args:
        store: Cache store to use.
        key: Key template with {param} placeholders. Ignored when *all_entries* is ``True``.
        all_entries: When ``True``, flush the store after execution. Stores
            that cannot flush raise ``UnsupportedOperationException``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = await func(*args, **kwargs)
            if all_entries:
                await store.flush()
            else:
                await store.forget(_resolve_key(func, key, args, kwargs))
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


def cache_put(
    store: CacheStore,
    key: str,
    ttl_minutes: float = 60,
) -> Callable[[F], F]:
    """Always execute the method and cache the result.

    Unlike :func:`cacheable`, the decorated function is always invoked.

    Args:
        store: Cache store to use.
        key: Key template with {param} placeholders.
        ttl_minutes: Lifetime of cached entries.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = await func(*args, **kwargs)
            await store.put(_resolve_key(func, key, args, kwargs), result, ttl_minutes)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
