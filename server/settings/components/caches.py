"""Cache configuration.

Per-user file listings are memoized here. Redis (through django-redis)
is used whenever ``REDIS_URL`` is set, otherwise a process-local
memory cache is used.
"""

from typing import Any, Final

from server.settings.components import config

_REDIS_URL: Final = config('REDIS_URL', default='')

CACHES: dict[str, dict[str, Any]]

if _REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': _REDIS_URL,
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
                # Cache is best-effort, never fail a request because of it
                'IGNORE_EXCEPTIONS': True,
            },
        },
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'file-share',
        },
    }
