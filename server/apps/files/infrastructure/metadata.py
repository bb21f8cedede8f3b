"""Metadata helpers: storage keys, share tokens and MIME types."""

import mimetypes
import re
import secrets
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

from django.utils.http import content_disposition_header

# 32 random bytes -> 256 bits of entropy, 43 URL-safe characters
_SHARE_TOKEN_BYTES: Final = 32
_SHARE_TOKEN_PATTERN: Final = re.compile(r'^[A-Za-z0-9_-]{43}$')

# Random suffix keeps keys unique for uploads within the same microsecond
_KEY_SUFFIX_BYTES: Final = 4
_MAX_EXTENSION_LENGTH: Final = 16

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'


def detect_mime_type(filename: str, declared: str | None = None) -> str:
    """Detect MIME type of an uploaded file.

    The content type declared by the uploader wins. Otherwise the type
    is guessed from the filename extension.

    Args:
        filename: Original filename with extension.
        declared: Content type sent along with the upload, if any.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    if declared:
        return declared
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = Path(filename).suffix
    return extension.lstrip('.').lower()


def generate_storage_key(
    original_name: str,
    prefix: str = 'uploads',
    now: datetime | None = None,
) -> str:
    """Derive the object storage key for a new upload.

    The key is built from the upload time and the original extension,
    plus a short random suffix, e.g.
    'uploads/2026/10/18/20261018143052123456-1a2b3c4d.pdf'.

    Args:
        original_name: Filename supplied by the uploader.
        prefix: Top-level key prefix.
        now: Upload time, defaults to the current UTC time.

    Returns:
        Storage key that is never reused for another upload.
    """
    timestamp = now or datetime.now(tz=UTC)
    extension = get_file_extension(original_name)[:_MAX_EXTENSION_LENGTH]
    suffix = f'.{extension}' if extension else ''
    random_part = secrets.token_hex(_KEY_SUFFIX_BYTES)
    return '{prefix}/{day}/{stamp}-{random}{suffix}'.format(
        prefix=prefix.strip('/'),
        day=timestamp.strftime('%Y/%m/%d'),
        stamp=timestamp.strftime('%Y%m%d%H%M%S%f'),
        random=random_part,
        suffix=suffix,
    )


def generate_share_token() -> str:
    """Generate an unguessable share token.

    Returns:
        URL-safe token carrying 256 bits of entropy.
    """
    return secrets.token_urlsafe(_SHARE_TOKEN_BYTES)


def is_well_formed_share_token(token: str) -> bool:
    """Check that a token has the shape of a generated share token.

    Args:
        token: Token taken from the request path.

    Returns:
        True if the token could have been produced by
        ``generate_share_token``.
    """
    return bool(_SHARE_TOKEN_PATTERN.fullmatch(token))


def content_disposition(original_name: str, *, inline: bool = False) -> str:
    """Build a Content-Disposition value hinting the original filename.

    Args:
        original_name: Filename supplied by the uploader.
        inline: Use 'inline' instead of 'attachment'.

    Returns:
        Header value safe for non-ASCII filenames (RFC 6266).
    """
    header = content_disposition_header(
        as_attachment=not inline,
        filename=original_name,
    )
    return header or 'attachment'
