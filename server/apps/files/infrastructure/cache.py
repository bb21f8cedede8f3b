"""Per-user file listing cache on top of the Django cache framework.

The cache is a best-effort surface: a listing may be served stale
for up to its TTL after a concurrent mutation. Failures to read,
write or invalidate are logged and never fail the calling operation.
"""

import logging
from typing import Any, Final

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

_DEFAULT_LIST_TTL: Final = 3600


def user_files_key(user_id: int) -> str:
    """Cache key of a user's file listing.

    Args:
        user_id: Owner ID.

    Returns:
        Cache key, e.g. 'user:42:files'.
    """
    return f'user:{user_id}:files'


def user_prefix(user_id: int) -> str:
    """Prefix shared by every cache key scoped to a user."""
    return f'user:{user_id}:'


def get_user_files(user_id: int) -> list[dict[str, Any]] | None:
    """Read a memoized file listing.

    Args:
        user_id: Owner ID.

    Returns:
        Cached listing, or None on a miss.
    """
    try:
        return cache.get(user_files_key(user_id))
    except Exception:
        logger.exception('Failed to read listing cache for user %d', user_id)
        return None


def set_user_files(user_id: int, listing: list[dict[str, Any]]) -> None:
    """Memoize a user's file listing.

    Args:
        user_id: Owner ID.
        listing: Serialized files.
    """
    timeout = getattr(settings, 'FILES_LIST_CACHE_TTL', _DEFAULT_LIST_TTL)
    try:
        cache.set(user_files_key(user_id), listing, timeout)
    except Exception:
        logger.exception('Failed to write listing cache for user %d', user_id)


def invalidate_user_files(user_id: int) -> None:
    """Drop a user's memoized listing.

    Idempotent: invalidating a missing key is a no-op.

    Args:
        user_id: Owner ID.
    """
    try:
        cache.delete(user_files_key(user_id))
    except Exception:
        logger.exception('Failed to invalidate cache for user %d', user_id)
    else:
        logger.debug('Invalidated listing cache for user %d', user_id)


def clear_user_cache(user_id: int) -> int:
    """Drop every cache entry scoped to a user.

    Uses ``delete_pattern`` when the backend supports it (django-redis),
    otherwise falls back to the keys this module knows about.

    Args:
        user_id: Owner ID.

    Returns:
        Number of keys removed, as reported by the backend.
    """
    delete_pattern = getattr(cache, 'delete_pattern', None)
    try:
        if delete_pattern is not None:
            return delete_pattern(f'{user_prefix(user_id)}*')
        return int(bool(cache.delete(user_files_key(user_id))))
    except Exception:
        logger.exception('Failed to clear cache for user %d', user_id)
        return 0
