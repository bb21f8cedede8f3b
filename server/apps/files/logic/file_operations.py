"""Business logic for file operations."""

import logging
from datetime import datetime, timedelta
from typing import Any, BinaryIO

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.base import File as DjangoFile
from django.utils import timezone

from server.apps.files.exceptions import (
    FileRecordNotFoundError,
    InvalidInputError,
    StorageError,
    UploadFailedError,
    UploadTimeoutError,
)
from server.apps.files.infrastructure.cache import (
    clear_user_cache,
    get_user_files,
    invalidate_user_files,
    set_user_files,
)
from server.apps.files.infrastructure.metadata import content_disposition
from server.apps.files.infrastructure.storage import FileStorage, get_storage
from server.apps.files.logic.upload_coordinator import (
    UploadCoordinator,
    UploadOutcome,
    UploadRequest,
    UploadResult,
)
from server.apps.files.models import File

User = get_user_model()
logger = logging.getLogger(__name__)

_DEFAULT_URL_TTL = 604800  # 7 days


def upload_file(  # noqa: WPS211
    user: User,
    file_obj: BinaryIO | DjangoFile | None,
    original_name: str | None = None,
    content_type: str | None = None,
    size_bytes: int | None = None,
    expires_at: datetime | None = None,
) -> UploadResult:
    """Upload file to storage and create its database record.

    Both writes run concurrently under a shared deadline, see
    ``upload_coordinator``. Either both become visible or neither does.

    Args:
        user: Owner of the file.
        file_obj: File-like object to upload.
        original_name: Filename supplied by the uploader, defaults to
            ``file_obj.name``.
        content_type: Declared content type, guessed when missing.
        size_bytes: Declared size, measured when missing.
        expires_at: Expiry deadline, defaults to FILES_DEFAULT_TTL_SECONDS.

    Returns:
        Committed upload result with the record and a retrieval URL.

    Raises:
        InvalidInputError: If no file is given or the expiry is in the past.
        UploadFailedError: If a write failed (partial work is undone).
        UploadTimeoutError: If the deadline elapsed, outcome unknown.
    """
    if file_obj is None:
        raise InvalidInputError('No file uploaded')

    original_name = original_name or getattr(file_obj, 'name', '') or ''
    if not original_name:
        raise InvalidInputError('File name is required')

    expires_at = _resolve_expiry(expires_at)
    request = UploadRequest(
        user_id=user.pk,
        content=file_obj,
        original_name=original_name,
        size_bytes=_get_file_size(file_obj, size_bytes),
        content_type=content_type,
        expires_at=expires_at,
    )

    result = UploadCoordinator().upload(request)
    if result.outcome == UploadOutcome.UNKNOWN:
        raise UploadTimeoutError(result)
    if result.outcome == UploadOutcome.COMPENSATED:
        raise UploadFailedError(result)
    return result


def _resolve_expiry(expires_at: datetime | None) -> datetime | None:
    """Apply the default TTL and reject deadlines in the past."""
    if expires_at is None:
        ttl = getattr(settings, 'FILES_DEFAULT_TTL_SECONDS', None)
        if ttl:
            return timezone.now() + timedelta(seconds=ttl)
        return None
    if timezone.is_naive(expires_at):
        expires_at = timezone.make_aware(expires_at)
    if expires_at <= timezone.now():
        raise InvalidInputError('Expiry must be in the future')
    return expires_at


def _get_file_size(
    file_obj: BinaryIO | DjangoFile,
    declared: int | None = None,
) -> int:
    """Get file size from file object.

    Args:
        file_obj: File-like object.
        declared: Size sent by the client, trusted when present.

    Returns:
        File size in bytes.
    """
    if declared is not None:
        return declared
    if hasattr(file_obj, 'size'):
        return file_obj.size
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size


def parse_file_id(raw_id: Any) -> int:
    """Validate a file ID taken from the request.

    Raises:
        InvalidInputError: If the ID is not a positive integer.
    """
    try:
        file_id = int(raw_id)
    except (TypeError, ValueError) as error:
        raise InvalidInputError('Invalid file ID format') from error
    if file_id <= 0:
        raise InvalidInputError('Invalid file ID format')
    return file_id


def get_user_file(user: User, file_id: Any) -> File:
    """Get a visible file owned by the user.

    Files of other users, pending uploads and expired files are all
    reported as not found.

    Raises:
        InvalidInputError: If the ID is malformed.
        FileRecordNotFoundError: If there is no such file for the user.
    """
    try:
        return File.objects.unexpired().get(
            pk=parse_file_id(file_id),
            user=user,
        )
    except File.DoesNotExist as error:
        raise FileRecordNotFoundError() from error


def retrieval_url(
    file_instance: File,
    storage: FileStorage | None = None,
    expire: int | None = None,
) -> str:
    """Get a time-limited download URL for a file."""
    storage = storage or get_storage()
    if expire is None:
        expire = getattr(settings, 'FILES_PRESIGNED_URL_TTL', _DEFAULT_URL_TTL)
    return storage.presigned_url(
        file_instance.storage_key,
        expire,
        disposition=content_disposition(file_instance.original_name),
        content_type=file_instance.mime_type,
    )


def serialize_file(
    file_instance: File,
    url: str | None = None,
    *,
    include_token: bool = True,
) -> dict[str, Any]:
    """Represent a file as a JSON-compatible dict.

    Args:
        file_instance: File to represent.
        url: Retrieval URL to include.
        include_token: Include the share token (owner-facing only).

    Returns:
        Dict with record fields, timestamps as ISO 8601 strings.
    """
    data: dict[str, Any] = {
        'id': file_instance.pk,
        'created_at': file_instance.created_at.isoformat(),
        'updated_at': file_instance.modified_at.isoformat(),
        'user_id': file_instance.user_id,
        'filename': file_instance.storage_key,
        'original_name': file_instance.original_name,
        'size': file_instance.size_bytes,
        'mime_type': file_instance.mime_type,
        'expires_at': (
            file_instance.expires_at.isoformat()
            if file_instance.expires_at else None
        ),
    }
    if include_token:
        data['share_token'] = file_instance.share_token
    if url is not None:
        data['url'] = url
    return data


def list_files(user: User) -> list[dict[str, Any]]:
    """List the user's files with fresh retrieval URLs.

    Served from the listing cache when possible. On a miss every
    record's blob is checked; records whose blob is confirmed missing
    are removed and left out of the result.

    Args:
        user: Owner of files.

    Returns:
        Serialized files, newest first.
    """
    cached = get_user_files(user.pk)
    if cached is not None:
        logger.debug('Listing cache hit for user %d', user.pk)
        return cached

    storage = get_storage()
    listing = []
    for file_instance in File.objects.unexpired().filter(user=user):
        if not _blob_present(file_instance, storage):
            remove_stale_record(file_instance)
            continue
        listing.append(
            serialize_file(
                file_instance,
                retrieval_url(file_instance, storage),
            ),
        )

    set_user_files(user.pk, listing)
    return listing


def _blob_present(file_instance: File, storage: FileStorage) -> bool:
    """Check the blob, treating an unreachable store as present."""
    try:
        return storage.blob_exists(file_instance.storage_key)
    except Exception:
        # Only a confirmed absence may remove a record
        return True


def remove_stale_record(file_instance: File) -> None:
    """Remove a record whose blob is confirmed missing.

    Args:
        file_instance: Record pointing at nonexistent storage.
    """
    logger.warning(
        'Blob missing, removing stale record: %s (ID: %d)',
        file_instance.storage_key,
        file_instance.pk,
    )
    File.all_objects.filter(pk=file_instance.pk).delete()
    invalidate_user_files(file_instance.user_id)


def search_files(user: User, query: str | None) -> list[dict[str, Any]]:
    """Search the user's files by original name.

    Args:
        user: Owner of files.
        query: Case-insensitive substring of the original name.

    Returns:
        Serialized matching files, newest first.

    Raises:
        InvalidInputError: If the query is empty.
    """
    query = (query or '').strip()
    if not query:
        raise InvalidInputError('Search query is required')

    matches = File.objects.unexpired().filter(
        user=user,
        original_name__icontains=query,
    )
    return [serialize_file(file_instance) for file_instance in matches]


def purge_file(
    file_instance: File,
    storage: FileStorage | None = None,
) -> None:
    """Delete a file from storage and database, in that order.

    The record is only removed after its blob is gone, so a record
    never points at missing storage. A failed record delete after a
    successful blob delete leaves a stale record, which listing
    removes on its next pass.

    Args:
        file_instance: File to delete.
        storage: Object store, defaults to the configured storage.

    Raises:
        StorageError: If the blob could not be deleted (record kept).
        Exception: If the database delete fails.
    """
    storage = storage or get_storage()
    storage_name = file_instance.storage_key

    try:
        storage.delete(storage_name)
    except Exception as error:
        raise StorageError() from error

    try:
        File.all_objects.filter(pk=file_instance.pk).delete()
    except Exception:
        logger.exception(
            'Failed to delete file from database: ID=%d',
            file_instance.pk,
        )
        raise
    logger.info(
        'File deleted: ID=%d, path=%s',
        file_instance.pk,
        storage_name,
    )

    clear_user_cache(file_instance.user_id)


def delete_file(user: User, file_id: Any) -> None:
    """Delete one of the user's files.

    Args:
        user: Owner of the file.
        file_id: ID of file to delete.

    Raises:
        InvalidInputError: If the ID is malformed.
        FileRecordNotFoundError: If the user has no such file.
        StorageError: If the blob could not be deleted.
    """
    file_instance = get_user_file(user, file_id)
    logger.info(
        'Deleting file: ID=%d, path=%s',
        file_instance.pk,
        file_instance.storage_key,
    )
    purge_file(file_instance)
