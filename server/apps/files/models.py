"""Database models for files app."""

from datetime import datetime
from typing import Final, final

from typing_extensions import override

from django.contrib.auth import get_user_model
from django.db import models
from django.utils import timezone

User = get_user_model()

# Constants for field max lengths
_MIME_TYPE_MAX_LENGTH: Final = 255
_ORIGINAL_NAME_MAX_LENGTH: Final = 255
_STORAGE_KEY_MAX_LENGTH: Final = 512
_SHARE_TOKEN_MAX_LENGTH: Final = 64
_STATUS_MAX_LENGTH: Final = 16


class FileStatus(models.TextChoices):
    """Visibility state of a file record.

    A record is inserted as ``PENDING`` while its blob is still being
    written and becomes ``ACTIVE`` once both writes of the upload
    have succeeded.
    """

    PENDING = 'pending', 'Pending'
    ACTIVE = 'active', 'Active'


class ActiveFileManager(models.Manager['File']):
    """Default manager: only records whose upload has committed."""

    @override
    def get_queryset(self) -> models.QuerySet['File']:
        """Hide pending records."""
        return super().get_queryset().filter(status=FileStatus.ACTIVE)


class FileQuerySet(models.QuerySet['File']):
    """Queries shared by the sweeper and the listing code."""

    def expired(self, now: datetime | None = None) -> 'FileQuerySet':
        """Records whose expiry deadline has passed."""
        return self.filter(expires_at__lt=now or timezone.now())

    def unexpired(self, now: datetime | None = None) -> 'FileQuerySet':
        """Records that never expire or expire in the future."""
        return self.filter(
            models.Q(expires_at__isnull=True)
            | models.Q(expires_at__gte=now or timezone.now()),
        )


@final
class File(models.Model):
    """File uploaded by a user and stored in S3-compatible storage.

    ``file.name`` is the storage key: it is derived once at upload
    time, is unique per upload and never reused. ``share_token`` is
    the sole credential for anonymous read access.
    """

    # Owner relationship
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    # upload_to='' means we control the full key
    file = models.FileField(
        upload_to='',
        max_length=_STORAGE_KEY_MAX_LENGTH,
        unique=True,
        help_text='Key in storage: uploads/YYYY/MM/DD/<timestamp>.<ext>',
    )

    original_name = models.CharField(
        max_length=_ORIGINAL_NAME_MAX_LENGTH,
        help_text='Filename as supplied by the uploader',
    )

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
    )

    share_token = models.CharField(
        max_length=_SHARE_TOKEN_MAX_LENGTH,
        unique=True,
        null=True,
        blank=True,
        default=None,
    )

    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text='Empty means the file never expires',
    )

    status = models.CharField(
        max_length=_STATUS_MAX_LENGTH,
        choices=FileStatus.choices,
        default=FileStatus.PENDING,
        db_index=True,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    objects = ActiveFileManager.from_queryset(FileQuerySet)()
    all_objects = models.Manager.from_queryset(FileQuerySet)()

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-created_at']
        base_manager_name = 'all_objects'

        indexes = [
            # Optimize per-user listing queries
            models.Index(
                fields=['user', '-created_at'],
                name='files_user_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.original_name}'

    @property
    def storage_key(self) -> str:
        """Key of the blob in object storage."""
        return self.file.name

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the record is in the terminal expired state.

        Args:
            now: Reference time, defaults to the current time.

        Returns:
            True if ``expires_at`` is set and in the past.
        """
        if self.expires_at is None:
            return False
        return self.expires_at < (now or timezone.now())
