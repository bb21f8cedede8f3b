"""Tests for File model."""

from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone

from server.apps.files.models import File, FileStatus


@pytest.mark.django_db
def test_file_model_str(user, make_file):
    """Test File __str__ method."""
    file_instance = make_file(user, 'test.txt')

    assert str(file_instance) == f'{user.id}:test.txt'


@pytest.mark.django_db
def test_storage_key_is_file_name(user, make_file):
    """Test storage_key exposes the FileField name."""
    file_instance = make_file(user)

    assert file_instance.storage_key == file_instance.file.name
    assert file_instance.storage_key.startswith('uploads/')


@pytest.mark.django_db
def test_default_manager_hides_pending(user, make_file):
    """Test pending records are only visible through all_objects."""
    active = make_file(user, 'active.txt')
    pending = make_file(user, 'pending.txt', status=FileStatus.PENDING)

    assert list(File.objects.all()) == [active]
    assert set(File.all_objects.all()) == {active, pending}


@pytest.mark.django_db
def test_new_record_defaults_to_pending(user):
    """Test a record created without status is invisible."""
    File.all_objects.create(
        user=user,
        file='uploads/2026/01/01/key.txt',
        original_name='key.txt',
        size_bytes=1,
        mime_type='text/plain',
    )

    assert File.objects.count() == 0
    assert File.all_objects.get().status == FileStatus.PENDING


@pytest.mark.django_db
def test_expired_and_unexpired_querysets(user, make_file):
    """Test expiry filters split records by their deadline."""
    forever = make_file(user, 'forever.txt')
    future = make_file(user, 'future.txt', expires_in=3600)
    past = make_file(user, 'past.txt', expires_in=-60)

    assert list(File.objects.expired()) == [past]
    assert set(File.objects.unexpired()) == {forever, future}


@pytest.mark.django_db
def test_expired_with_reference_time(user, make_file):
    """Test expiry filters honour an explicit reference time."""
    future = make_file(user, 'future.txt', expires_in=3600)
    later = timezone.now() + timedelta(hours=2)

    assert list(File.objects.expired(later)) == [future]
    assert not File.objects.unexpired(later).exists()


@pytest.mark.django_db
def test_is_expired(user, make_file):
    """Test is_expired for missing, future and past deadlines."""
    assert not make_file(user, 'a.txt').is_expired()
    assert not make_file(user, 'b.txt', expires_in=3600).is_expired()
    assert make_file(user, 'c.txt', expires_in=-1).is_expired()


@pytest.mark.django_db
def test_records_ordered_newest_first(user, make_file):
    """Test default ordering is by creation time, newest first."""
    first = make_file(user, 'first.txt')
    second = make_file(user, 'second.txt')
    File.all_objects.filter(pk=first.pk).update(
        created_at=timezone.now() - timedelta(minutes=5),
    )

    assert list(File.objects.all()) == [second, first]


@pytest.mark.django_db
def test_share_token_unique(user, make_file):
    """Test two records can never share a token."""
    first = make_file(user, 'first.txt')

    with pytest.raises(IntegrityError):
        make_file(user, 'second.txt', share_token=first.share_token)


@pytest.mark.django_db
def test_records_without_token_allowed(user, make_file):
    """Test several records may have no token at all."""
    make_file(user, 'first.txt', share_token=None)
    make_file(user, 'second.txt', share_token=None)

    assert File.objects.filter(share_token__isnull=True).count() == 2


@pytest.mark.django_db
def test_files_deleted_with_owner(user, make_file):
    """Test records cascade with their owner."""
    make_file(user)

    user.delete()

    assert File.all_objects.count() == 0
