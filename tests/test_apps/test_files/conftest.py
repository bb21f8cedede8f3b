"""Shared fixtures for files app tests."""

from datetime import timedelta
from typing import Final

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.base import ContentFile
from django.core.files.storage import storages
from django.utils import timezone
from moto import mock_aws

from server.apps.files.infrastructure.metadata import (
    generate_share_token,
    generate_storage_key,
)
from server.apps.files.models import File, FileStatus

User = get_user_model()

TEST_BUCKET: Final = 'file-share'


@pytest.fixture(autouse=True)
def files_settings(settings):
    """Point storage at the mocked bucket and cache at local memory."""
    settings.STORAGES = {
        'default': {
            'BACKEND': 'server.apps.files.infrastructure.storage.FileStorage',
            'OPTIONS': {
                'bucket_name': TEST_BUCKET,
                'access_key': 'testing',
                'secret_key': 'testing',
                'region_name': 'us-east-1',
                'file_overwrite': False,
                'default_acl': None,
            },
        },
        'staticfiles': {
            'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
        },
    }
    settings.CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'file-share-tests',
        },
    }
    settings.FILES_UPLOAD_TIMEOUT = 5
    settings.FILES_PRESIGNED_URL_TTL = 604800
    settings.FILES_SHARE_DELIVERY = 'redirect'
    settings.FILES_SHARE_VERIFY_BLOB = True
    settings.FILES_DEFAULT_TTL_SECONDS = None
    settings.FILES_PENDING_GRACE_SECONDS = 3600
    settings.FILES_STORAGE_PREFIX = 'uploads'
    cache.clear()
    yield settings
    cache.clear()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3(monkeypatch):
    """Mock S3 service with file-share bucket.

    Yields:
        boto3 S3 resource with file-share bucket created.
    """
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket=TEST_BUCKET)

        yield conn


@pytest.fixture
def storage(mock_s3):
    """The configured FileStorage, backed by the mocked bucket.

    Returns:
        FileStorage instance shared with the code under test.
    """
    return storages['default']


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with 10 bytes of text.
    """
    return ContentFile(b'hello file', name='notes.txt')


@pytest.fixture
def blob_exists(mock_s3):
    """Checker looking a key up directly in the mocked bucket.

    Returns:
        Callable telling whether a key exists.
    """

    def check(key: str) -> bool:
        response = mock_s3.meta.client.list_objects_v2(
            Bucket=TEST_BUCKET,
            Prefix=key,
        )
        return any(
            item['Key'] == key for item in response.get('Contents', [])
        )

    return check


@pytest.fixture
def make_file(mock_s3):
    """Factory creating a file record, and its blob unless told otherwise.

    Returns:
        Callable building File instances.
    """

    def factory(  # noqa: WPS211
        owner,
        original_name='report.pdf',
        content=b'%PDF-1.4 test',
        *,
        with_blob=True,
        expires_in=None,
        status=FileStatus.ACTIVE,
        share_token='generate',
    ):
        storage_key = generate_storage_key(original_name)
        if with_blob:
            mock_s3.Bucket(TEST_BUCKET).put_object(
                Key=storage_key,
                Body=content,
            )
        if share_token == 'generate':
            share_token = generate_share_token()
        expires_at = None
        if expires_in is not None:
            expires_at = timezone.now() + timedelta(seconds=expires_in)
        return File.all_objects.create(
            user=owner,
            file=storage_key,
            original_name=original_name,
            size_bytes=len(content),
            mime_type='application/pdf',
            share_token=share_token,
            expires_at=expires_at,
            status=status,
        )

    return factory
