"""Business logic for share links.

A share token is a bearer capability: whoever holds it can read the
file, no ownership check applies. Resolution therefore never tells
apart a malformed token, an unknown token, an expired file or a file
whose blob is gone. All of them raise ``ShareNotFoundError``.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Final, final

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.base import File as DjangoFile

from server.apps.files.exceptions import ShareNotFoundError
from server.apps.files.infrastructure.cache import invalidate_user_files
from server.apps.files.infrastructure.metadata import (
    generate_share_token,
    is_well_formed_share_token,
)
from server.apps.files.infrastructure.storage import get_storage
from server.apps.files.logic.file_operations import (
    get_user_file,
    remove_stale_record,
    retrieval_url,
)
from server.apps.files.models import File

User = get_user_model()
logger = logging.getLogger(__name__)

_DEFAULT_SHARE_URL_TTL: Final = 3600


@final
@dataclass(frozen=True, slots=True)
class ShareLink:
    """A file together with the URL handed out for it."""

    file: File
    url: str


def create_share_link(user: User, file_id: Any) -> ShareLink:
    """Make one of the user's files shareable.

    The share token is generated on first share and reused afterwards.

    Args:
        user: Owner of the file.
        file_id: ID of the file to share.

    Returns:
        The file (with its token) and a retrieval URL.

    Raises:
        InvalidInputError: If the ID is malformed.
        FileRecordNotFoundError: If the user has no such file.
    """
    file_instance = get_user_file(user, file_id)

    if not file_instance.share_token:
        file_instance.share_token = generate_share_token()
        file_instance.save(update_fields=['share_token', 'modified_at'])
        invalidate_user_files(user.pk)
        logger.info('Share token issued for file ID=%d', file_instance.pk)

    return ShareLink(file=file_instance, url=retrieval_url(file_instance))


def resolve_share_token(token: str | None) -> File:
    """Find the file a share token grants access to.

    Args:
        token: Token taken from the share URL.

    Returns:
        Active, unexpired file whose blob is present.

    Raises:
        ShareNotFoundError: For every token that does not resolve.
    """
    token = token or ''
    if not is_well_formed_share_token(token):
        raise ShareNotFoundError()

    file_instance = File.objects.unexpired().filter(share_token=token).first()
    if file_instance is None:
        raise ShareNotFoundError()
    if not hmac.compare_digest(
        file_instance.share_token.encode(),
        token.encode(),
    ):
        raise ShareNotFoundError()

    if getattr(settings, 'FILES_SHARE_VERIFY_BLOB', True):
        _ensure_blob_present(file_instance)

    return file_instance


def _ensure_blob_present(file_instance: File) -> None:
    """Remove the record and report not found if its blob is gone."""
    try:
        present = get_storage().blob_exists(file_instance.storage_key)
    except Exception:
        # Store unreachable: let delivery surface the error
        return
    if not present:
        remove_stale_record(file_instance)
        raise ShareNotFoundError()


def share_redirect_url(file_instance: File) -> str:
    """Short-lived download URL used when redirecting a share request."""
    expire = getattr(settings, 'FILES_SHARE_URL_TTL', _DEFAULT_SHARE_URL_TTL)
    return retrieval_url(file_instance, expire=expire)


def open_shared_file(file_instance: File) -> DjangoFile:
    """Open the blob of a shared file for streaming.

    Returns:
        Readable file object, closed by the response that streams it.
    """
    return get_storage().open(file_instance.storage_key, 'rb')
