"""Tests for metadata utilities."""

import re
from datetime import UTC, datetime

import pytest

from server.apps.files.infrastructure.metadata import (
    content_disposition,
    detect_mime_type,
    generate_share_token,
    generate_storage_key,
    get_file_extension,
    is_well_formed_share_token,
)


def test_detect_mime_type():
    """Test MIME type detection from filename."""
    assert detect_mime_type('test.pdf') == 'application/pdf'
    assert detect_mime_type('test.txt') == 'text/plain'
    assert detect_mime_type('test.jpg') == 'image/jpeg'
    assert detect_mime_type('test.png') == 'image/png'


def test_detect_mime_type_unknown():
    """Test MIME type detection for unknown extension."""
    assert detect_mime_type('test.unknown') == 'application/octet-stream'
    assert detect_mime_type('no_extension') == 'application/octet-stream'


def test_detect_mime_type_declared_wins():
    """Test the uploader's content type beats the extension."""
    assert detect_mime_type('test.txt', 'text/markdown') == 'text/markdown'
    assert detect_mime_type('test.txt', '') == 'text/plain'


@pytest.mark.parametrize(('filename', 'expected'), [
    ('document.pdf', 'pdf'),
    ('image.JPG', 'jpg'),
    ('archive.tar.gz', 'gz'),
    ('no_extension', ''),
    ('.hidden', ''),
])
def test_get_file_extension(filename, expected):
    """Test extension extraction."""
    assert get_file_extension(filename) == expected


def test_generate_storage_key_format():
    """Test key layout: prefix, date path, timestamp and extension."""
    now = datetime(2026, 10, 18, 14, 30, 52, 123456, tzinfo=UTC)

    key = generate_storage_key('Report.PDF', now=now)

    assert re.fullmatch(
        r'uploads/2026/10/18/20261018143052123456-[0-9a-f]{8}\.pdf',
        key,
    )


def test_generate_storage_key_without_extension():
    """Test a name without extension gives a key without extension."""
    now = datetime(2026, 1, 2, tzinfo=UTC)

    key = generate_storage_key('README', prefix='/files/', now=now)

    assert re.fullmatch(r'files/2026/01/02/\d{20}-[0-9a-f]{8}', key)


def test_generate_storage_key_unique_for_same_instant():
    """Test two uploads in the same microsecond get distinct keys."""
    now = datetime(2026, 10, 18, tzinfo=UTC)

    keys = {generate_storage_key('a.txt', now=now) for _ in range(50)}

    assert len(keys) == 50


def test_generate_share_token():
    """Test tokens are URL-safe, long and well-formed."""
    tokens = {generate_share_token() for _ in range(50)}

    assert len(tokens) == 50
    for token in tokens:
        assert len(token) >= 32
        assert re.fullmatch(r'[A-Za-z0-9_-]+', token)
        assert is_well_formed_share_token(token)


@pytest.mark.parametrize('token', [
    '',
    'short',
    'a' * 42,
    'a' * 44,
    '{0}/'.format('a' * 42),
    '{0}='.format('a' * 42),
    '../../etc/passwd',
])
def test_malformed_share_tokens(token):
    """Test anything not shaped like a generated token is rejected."""
    assert not is_well_formed_share_token(token)


def test_content_disposition_ascii():
    """Test attachment header with a plain filename."""
    assert content_disposition('report.pdf') == (
        'attachment; filename="report.pdf"'
    )


def test_content_disposition_inline():
    """Test inline disposition."""
    assert content_disposition('a.png', inline=True) == (
        'inline; filename="a.png"'
    )


def test_content_disposition_non_ascii():
    """Test non-ASCII names are encoded as RFC 5987 filename*."""
    header = content_disposition('raport końcowy.pdf')

    assert header.startswith('attachment; filename*=utf-8\'\'')
    assert 'ko%C5%84cowy.pdf' in header
