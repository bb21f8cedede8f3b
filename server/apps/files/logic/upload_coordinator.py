"""Upload coordination: blob write and metadata write as one unit.

An upload fans out into two concurrent sub-tasks that share a deadline:

- blob write: stream the content to object storage under a fresh key
  and produce a retrieval URL;
- metadata write: generate a share token and insert the ``File`` row
  in the ``pending`` state, invisible to readers.

The coordinator joins them with a three-way race (both succeeded,
either failed, deadline elapsed) and ends in one of three terminal
outcomes:

- ``committed``: both writes succeeded, the row is flipped to
  ``active`` and the owner's listing cache is invalidated;
- ``compensated``: a write failed, whatever the other side already
  did is undone in the background (best effort, failures are logged);
- ``unknown``: the deadline elapsed. Both sub-tasks are cancelled
  cooperatively, but the caller cannot know whether cleanup succeeded.

Cancellation is cooperative: a sub-task that completes its write after
the upload was abandoned undoes that write itself. A small lock-guarded
state decides, for each write, whether the coordinator or the sub-task
owns the undo, so every write is undone exactly once.
"""

import enum
import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Final, final

from django.conf import settings
from django.core.files.base import File as DjangoFile
from django.db import connections

from server.apps.files.infrastructure.cache import invalidate_user_files
from server.apps.files.infrastructure.metadata import (
    content_disposition,
    detect_mime_type,
    generate_share_token,
    generate_storage_key,
)
from server.apps.files.infrastructure.storage import FileStorage, get_storage
from server.apps.files.models import File, FileStatus

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT: Final = 30.0
_DEFAULT_URL_TTL: Final = 604800  # 7 days
# Two sub-tasks plus one compensation
_MAX_WORKERS: Final = 3


class UploadOutcome(enum.StrEnum):
    """Terminal outcome of an upload."""

    COMMITTED = 'committed'
    COMPENSATED = 'compensated'
    UNKNOWN = 'unknown'


class UploadCancelledError(Exception):
    """Raised inside a sub-task that noticed its upload was abandoned."""


@final
@dataclass(frozen=True, slots=True)
class UploadRequest:
    """Everything the coordinator needs to know about one upload."""

    user_id: int
    content: BinaryIO | DjangoFile
    original_name: str
    size_bytes: int
    content_type: str | None = None
    expires_at: datetime | None = None


@final
@dataclass(frozen=True, slots=True)
class UploadResult:
    """What the coordinator observed when the upload finished.

    ``background`` holds futures of work that may still be running
    when the result is returned: sub-tasks that missed the deadline
    and the compensation task, if any. Nothing ever waits on them in
    the request path.
    """

    outcome: UploadOutcome
    storage_key: str
    record: File | None = None
    url: str | None = None
    error: BaseException | None = None
    background: tuple[Future, ...] = field(default=())


class _UploadState:
    """Ownership of the undo for each write of a single upload."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.cancelled = False
        self.blob_written = False
        self.record_id: int | None = None

    def claim_blob(self) -> bool:
        """Record a finished blob write, False if already cancelled."""
        with self._lock:
            if self.cancelled:
                return False
            self.blob_written = True
            return True

    def claim_record(self, record_id: int) -> bool:
        """Record a finished metadata write, False if already cancelled."""
        with self._lock:
            if self.cancelled:
                return False
            self.record_id = record_id
            return True

    def cancel(self) -> tuple[bool, int | None]:
        """Abandon the upload.

        Returns:
            Which writes had completed; undoing them is now the
            caller's job. Later writes are undone by their sub-task.
        """
        with self._lock:
            self.cancelled = True
            return self.blob_written, self.record_id


@final
class UploadCoordinator:
    """Runs uploads as blob write + metadata write with compensation."""

    def __init__(
        self,
        storage: FileStorage | None = None,
        timeout: float | None = None,
        url_ttl: int | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            storage: Object store, defaults to the configured storage.
            timeout: Deadline in seconds shared by both sub-tasks.
            url_ttl: Lifetime of the returned retrieval URL in seconds.
        """
        self.storage = storage or get_storage()
        if timeout is None:
            timeout = getattr(settings, 'FILES_UPLOAD_TIMEOUT', _DEFAULT_TIMEOUT)
        if url_ttl is None:
            url_ttl = getattr(
                settings,
                'FILES_PRESIGNED_URL_TTL',
                _DEFAULT_URL_TTL,
            )
        self.timeout = timeout
        self.url_ttl = url_ttl

    def upload(self, request: UploadRequest) -> UploadResult:
        """Upload a file and create its record, or fail as a unit.

        Args:
            request: Upload description.

        Returns:
            Terminal result. Never raises for sub-task failures, they
            are reported through ``outcome`` and ``error``.
        """
        storage_key = generate_storage_key(
            request.original_name,
            prefix=getattr(settings, 'FILES_STORAGE_PREFIX', 'uploads'),
        )
        mime_type = detect_mime_type(
            request.original_name,
            request.content_type,
        )
        state = _UploadState()

        logger.info(
            'Starting upload for user %d: %s -> %s',
            request.user_id,
            request.original_name,
            storage_key,
        )

        executor = ThreadPoolExecutor(
            max_workers=_MAX_WORKERS,
            thread_name_prefix='upload',
        )
        try:
            blob_future = executor.submit(
                self._write_blob,
                storage_key,
                request,
                mime_type,
                state,
            )
            record_future = executor.submit(
                self._write_metadata,
                storage_key,
                request,
                mime_type,
                state,
            )
            done, not_done = wait(
                (blob_future, record_future),
                timeout=self.timeout,
                return_when=FIRST_EXCEPTION,
            )
            failed = [
                future for future in done
                if future.exception() is not None
            ]

            if failed:
                error = failed[0].exception()
                compensation = self._abandon(executor, storage_key, state)
                logger.warning(
                    'Upload failed, compensating: %s (%s)',
                    storage_key,
                    error,
                )
                return UploadResult(
                    outcome=UploadOutcome.COMPENSATED,
                    storage_key=storage_key,
                    error=error,
                    background=(*not_done, compensation),
                )

            if not_done:
                compensation = self._abandon(executor, storage_key, state)
                logger.warning(
                    'Upload timed out after %.1fs, outcome unknown: %s',
                    self.timeout,
                    storage_key,
                )
                return UploadResult(
                    outcome=UploadOutcome.UNKNOWN,
                    storage_key=storage_key,
                    error=TimeoutError(storage_key),
                    background=(*not_done, compensation),
                )

            return self._commit(
                executor,
                storage_key,
                request,
                state,
                url=blob_future.result(),
            )
        finally:
            # Stragglers keep running, the request does not wait for them
            executor.shutdown(wait=False)

    def _write_blob(
        self,
        storage_key: str,
        request: UploadRequest,
        mime_type: str,
        state: _UploadState,
    ) -> str:
        """Blob write sub-task.

        Returns:
            Retrieval URL of the written blob.

        Raises:
            UploadCancelledError: If the upload was abandoned.
        """
        if state.cancelled:
            raise UploadCancelledError(storage_key)

        blob = DjangoFile(request.content, name=request.original_name)
        blob.content_type = mime_type  # picked up by S3Storage
        saved_name = self.storage.save(storage_key, blob)
        if saved_name != storage_key:
            # Someone else owns the derived key, never touch their blob
            self.storage.rollback_upload(saved_name)
            raise RuntimeError(f'Storage key already taken: {storage_key}')

        if not state.claim_blob():
            logger.warning('Blob written after abandon: %s', storage_key)
            self.storage.rollback_upload(storage_key)
            raise UploadCancelledError(storage_key)

        return self.storage.presigned_url(
            storage_key,
            self.url_ttl,
            disposition=content_disposition(request.original_name),
            content_type=mime_type,
        )

    def _write_metadata(
        self,
        storage_key: str,
        request: UploadRequest,
        mime_type: str,
        state: _UploadState,
    ) -> int:
        """Metadata write sub-task.

        Returns:
            Primary key of the pending record.

        Raises:
            UploadCancelledError: If the upload was abandoned.
        """
        try:
            if state.cancelled:
                raise UploadCancelledError(storage_key)

            try:
                record = File.all_objects.create(
                    user_id=request.user_id,
                    file=storage_key,
                    original_name=request.original_name,
                    size_bytes=request.size_bytes,
                    mime_type=mime_type,
                    share_token=generate_share_token(),
                    expires_at=request.expires_at,
                    status=FileStatus.PENDING,
                )
            except Exception:
                logger.exception(
                    'Failed to create file record: %s',
                    storage_key,
                )
                raise

            if not state.claim_record(record.pk):
                logger.warning('Record written after abandon: %s', storage_key)
                File.all_objects.filter(pk=record.pk).delete()
                raise UploadCancelledError(storage_key)
            return record.pk
        finally:
            # Django opens one connection per thread
            connections.close_all()

    def _commit(
        self,
        executor: ThreadPoolExecutor,
        storage_key: str,
        request: UploadRequest,
        state: _UploadState,
        url: str,
    ) -> UploadResult:
        """Make the record visible once both writes succeeded."""
        try:
            File.all_objects.filter(
                pk=state.record_id,
                status=FileStatus.PENDING,
            ).update(status=FileStatus.ACTIVE)
            record = File.objects.get(pk=state.record_id)
        except Exception as error:
            logger.exception('Failed to activate record: %s', storage_key)
            compensation = self._abandon(executor, storage_key, state)
            return UploadResult(
                outcome=UploadOutcome.COMPENSATED,
                storage_key=storage_key,
                error=error,
                background=(compensation,),
            )

        invalidate_user_files(request.user_id)
        logger.info(
            'Upload committed: %s (ID: %d, user: %d)',
            storage_key,
            record.pk,
            request.user_id,
        )
        return UploadResult(
            outcome=UploadOutcome.COMMITTED,
            storage_key=storage_key,
            record=record,
            url=url,
        )

    def _abandon(
        self,
        executor: ThreadPoolExecutor,
        storage_key: str,
        state: _UploadState,
    ) -> Future:
        """Cancel the upload and undo completed writes in the background.

        Returns:
            Future of the compensation, resolving to True when every
            completed write was undone.
        """
        blob_written, record_id = state.cancel()
        return executor.submit(
            self._compensate,
            storage_key,
            blob_written,
            record_id,
        )

    def _compensate(
        self,
        storage_key: str,
        blob_written: bool,
        record_id: int | None,
    ) -> bool:
        """Undo completed writes: blob first, then the pending record.

        A pending record whose blob could not be deleted is kept, so
        the expiry sweeper retries the blob delete later.
        """
        try:
            if blob_written and not self.storage.rollback_upload(storage_key):
                return False
            if record_id is not None:
                try:
                    File.all_objects.filter(pk=record_id).delete()
                except Exception:
                    logger.exception(
                        'Failed to remove pending record %d: %s',
                        record_id,
                        storage_key,
                    )
                    return False
                logger.info('Removed pending record %d', record_id)
            return True
        finally:
            connections.close_all()
