"""Settings for the files app: uploads, sharing and expiry."""

from server.settings.components import config

# Deadline for a single upload (blob write + metadata write), seconds
FILES_UPLOAD_TIMEOUT = config('FILES_UPLOAD_TIMEOUT', cast=float, default=30)

# Lifetime of retrieval URLs returned by upload, listing and sharing
FILES_PRESIGNED_URL_TTL = config(
    'FILES_PRESIGNED_URL_TTL',
    cast=int,
    default=604800,  # 7 days
)

# Share resolution: 'redirect' to a presigned URL or 'stream' the bytes
FILES_SHARE_DELIVERY = config('FILES_SHARE_DELIVERY', default='redirect')
FILES_SHARE_URL_TTL = config('FILES_SHARE_URL_TTL', cast=int, default=3600)
FILES_SHARE_VERIFY_BLOB = config(
    'FILES_SHARE_VERIFY_BLOB',
    cast=bool,
    default=True,
)

# Expiry sweeper
FILES_SWEEP_INTERVAL = config('FILES_SWEEP_INTERVAL', cast=float, default=3600)
FILES_SWEEPER_AUTOSTART = config(
    'FILES_SWEEPER_AUTOSTART',
    cast=bool,
    default=False,
)
FILES_PENDING_GRACE_SECONDS = config(
    'FILES_PENDING_GRACE_SECONDS',
    cast=int,
    default=3600,
)

# Default expiry for new uploads, empty means "never expires"
FILES_DEFAULT_TTL_SECONDS = config(
    'FILES_DEFAULT_TTL_SECONDS',
    cast=lambda raw: int(raw) if raw else None,
    default='',
)

# Per-user listing cache
FILES_LIST_CACHE_TTL = config('FILES_LIST_CACHE_TTL', cast=int, default=3600)

# Object key prefix for uploads
FILES_STORAGE_PREFIX = config('FILES_STORAGE_PREFIX', default='uploads')
