"""
This file contains all the settings used in production.

This file is required and if development.py is present these
values are overridden.
"""

from typing import Any

from server.settings.components import config

# Production flags:
# https://docs.djangoproject.com/en/5.1/howto/deployment/

DEBUG = False

SECRET_KEY = config('DJANGO_SECRET_KEY')

ALLOWED_HOSTS = [
    # We use `DOMAIN_NAME` variable to allow using the same domain
    # in multiple places:
    config('DOMAIN_NAME'),
]

# Database
# https://docs.djangoproject.com/en/5.1/ref/settings/#databases

DATABASES: dict[str, dict[str, Any]] = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': config('DJANGO_DATABASE_NAME', default='file_share'),
        'USER': config('DJANGO_DATABASE_USER', default='file_share'),
        'PASSWORD': config('DJANGO_DATABASE_PASSWORD'),
        'HOST': config('DJANGO_DATABASE_HOST'),
        'PORT': config('DJANGO_DATABASE_PORT', cast=int, default=5432),
        'CONN_MAX_AGE': config('CONN_MAX_AGE', cast=int, default=60),
    },
}

# Security
# https://docs.djangoproject.com/en/5.1/topics/security/

SECURE_HSTS_SECONDS = 31536000  # the same as Caddy has
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = True

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
