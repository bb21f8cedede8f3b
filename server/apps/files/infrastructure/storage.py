"""Custom storage backend for S3-compatible storage."""

import logging
from typing import Any, final

from typing_extensions import override

from botocore.exceptions import ClientError
from django.core.files.storage import default_storage
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset(('404', 'NoSuchKey', 'NotFound'))


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for uploaded files.

    Extends django-storages S3Storage with:
    - Rollback support for uploads whose metadata write failed
    - Presigned download URLs carrying the original filename
    - An existence check that tells "missing" apart from "unreachable"
    - Enhanced error logging
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage key for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage key used (may differ from name if conflicts).

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Deleting a key that does not exist succeeds.

        Args:
            name: Storage key of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def rollback_upload(self, name: str) -> bool:
        """Delete an uploaded blob whose metadata write failed.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, as the upload failure has already
        been decided.

        Args:
            name: Storage key of file to delete.

        Returns:
            True if the blob was removed, False if it is orphaned.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
        except Exception:
            # The blob stays in storage without a record
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )
            return False
        logger.info('Successfully rolled back file upload: %s', name)
        return True

    def blob_exists(self, name: str) -> bool:
        """Check whether a blob exists.

        Unlike ``exists`` this only reports False when S3 confirms
        the key is absent.

        Args:
            name: Storage key.

        Returns:
            True if the blob exists, False if it is confirmed missing.

        Raises:
            ClientError: If the store could not answer.
        """
        try:
            self.connection.meta.client.head_object(
                Bucket=self.bucket_name,
                Key=self._normalize_name(name),
            )
        except ClientError as error:
            code = str(error.response.get('Error', {}).get('Code', ''))
            if code in _NOT_FOUND_CODES:
                return False
            logger.exception('Failed to check file in storage: %s', name)
            raise
        return True

    def presigned_url(
        self,
        name: str,
        expire: int,
        *,
        disposition: str | None = None,
        content_type: str | None = None,
    ) -> str:
        """Generate a time-limited GET URL for a blob.

        Args:
            name: Storage key.
            expire: URL lifetime in seconds.
            disposition: Content-Disposition value to serve the blob with.
            content_type: Content-Type to serve the blob with.

        Returns:
            Presigned URL.
        """
        parameters: dict[str, str] = {}
        if disposition:
            parameters['ResponseContentDisposition'] = disposition
        if content_type:
            parameters['ResponseContentType'] = content_type
        return self.url(name, parameters=parameters or None, expire=expire)


def get_storage() -> FileStorage:
    """Get the configured default storage backend.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]
