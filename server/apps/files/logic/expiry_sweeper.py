"""Background sweep of expired and abandoned uploads.

Each pass re-queries the full state, there is no checkpoint:

1. find records whose ``expires_at`` is in the past;
2. for each of them, independently: delete the blob, then the record,
   then invalidate the owner's cache. A failed blob delete leaves the
   record in place so the next pass retries it;
3. do the same for ``pending`` records older than the grace period,
   left behind by uploads that crashed or timed out.

Passes never overlap: the next sleep starts only when a pass is done.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final, final

from django.conf import settings
from django.db import connections
from django.utils import timezone

from server.apps.files.infrastructure.storage import FileStorage, get_storage
from server.apps.files.logic.file_operations import purge_file
from server.apps.files.models import File, FileStatus

logger = logging.getLogger(__name__)

_DEFAULT_INTERVAL: Final = 3600.0
_DEFAULT_PENDING_GRACE: Final = 3600
_STOP_TIMEOUT: Final = 30.0


@final
@dataclass(slots=True)
class SweepReport:
    """Counters of a single pass."""

    expired: int = 0
    deleted: int = 0
    abandoned: int = 0
    failed: int = 0
    aborted: bool = False


@final
class ExpirySweeper:
    """Periodically purges expired files from storage and database.

    Run it in the foreground with ``run_forever`` or in a daemon
    thread with ``start``; ``stop`` interrupts the sleep between
    passes and waits for the running pass to finish.
    """

    def __init__(
        self,
        interval: float | None = None,
        pending_grace: int | None = None,
        storage: FileStorage | None = None,
    ) -> None:
        """Initialize the sweeper.

        Args:
            interval: Seconds between the end of a pass and the next one.
            pending_grace: Age in seconds after which a pending record
                is considered abandoned.
            storage: Object store, defaults to the configured storage.
        """
        if interval is None:
            interval = getattr(
                settings,
                'FILES_SWEEP_INTERVAL',
                _DEFAULT_INTERVAL,
            )
        if pending_grace is None:
            pending_grace = getattr(
                settings,
                'FILES_PENDING_GRACE_SECONDS',
                _DEFAULT_PENDING_GRACE,
            )
        self.interval = interval
        self.pending_grace = pending_grace
        self._storage = storage
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def storage(self) -> FileStorage:
        """Object store used for blob deletes."""
        return self._storage or get_storage()

    @property
    def is_running(self) -> bool:
        """Whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping in a daemon thread, once."""
        with self._lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self.run_forever,
                name='expiry-sweeper',
                daemon=True,
            )
            self._thread.start()
        logger.info('Expiry sweeper started (interval: %ss)', self.interval)

    def stop(self, timeout: float = _STOP_TIMEOUT) -> None:
        """Stop sweeping and wait for the current pass to finish.

        Args:
            timeout: Seconds to wait for the background thread.
        """
        self._stop_event.set()
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info('Expiry sweeper stopped')

    def run_forever(self) -> None:
        """Sweep until ``stop`` is called.

        Errors never end the loop: a failed pass is logged and retried
        at the next scheduled interval, not immediately.
        """
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception('Expiry sweep pass crashed')
            finally:
                # Do not keep a connection open while sleeping
                connections.close_all()
            self._stop_event.wait(self.interval)

    def run_once(self, now: datetime | None = None) -> SweepReport:
        """Run a single sweep pass.

        Args:
            now: Reference time, defaults to the current time.

        Returns:
            Counters of the pass.
        """
        now = now or timezone.now()
        report = SweepReport()

        try:
            expired = list(
                File.all_objects.expired(now).order_by('expires_at'),
            )
            abandoned = list(
                File.all_objects.filter(
                    status=FileStatus.PENDING,
                    created_at__lt=now - timedelta(seconds=self.pending_grace),
                ).exclude(pk__in=[record.pk for record in expired]),
            )
        except Exception:
            logger.exception('Failed to query expired files, skipping pass')
            report.aborted = True
            return report

        report.expired = len(expired)
        for file_instance in expired:
            if self._sweep_file(file_instance):
                report.deleted += 1
                logger.info(
                    'Deleted expired file: %s (ID: %d)',
                    file_instance.original_name,
                    file_instance.pk,
                )
            else:
                report.failed += 1

        for file_instance in abandoned:
            if self._sweep_file(file_instance):
                report.abandoned += 1
                logger.warning(
                    'Removed abandoned upload: %s (ID: %d)',
                    file_instance.storage_key,
                    file_instance.pk,
                )
            else:
                report.failed += 1

        logger.info(
            'Expiry sweep done: %d expired, %d deleted, '
            '%d abandoned removed, %d failed',
            report.expired,
            report.deleted,
            report.abandoned,
            report.failed,
        )
        return report

    def _sweep_file(self, file_instance: File) -> bool:
        """Purge one record, isolating its failure from the others."""
        try:
            purge_file(file_instance, self.storage)
        except Exception:
            logger.exception(
                'Failed to purge file %d, will retry next pass',
                file_instance.pk,
            )
            return False
        return True


_sweeper: ExpirySweeper | None = None
_sweeper_lock = threading.Lock()


def start_background_sweeper() -> ExpirySweeper:
    """Start the process-wide sweeper thread if it is not running.

    Returns:
        The process-wide sweeper.
    """
    global _sweeper  # noqa: WPS420
    with _sweeper_lock:
        if _sweeper is None:
            _sweeper = ExpirySweeper()
        _sweeper.start()
        return _sweeper


def stop_background_sweeper() -> None:
    """Stop the process-wide sweeper thread, if any."""
    with _sweeper_lock:
        if _sweeper is not None:
            _sweeper.stop()
