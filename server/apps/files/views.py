"""JSON views for the files app.

Authentication is provided by Django's auth middleware; views only
read ``request.user``. Every error is answered as ``{"error": message}``
with the status code of its ``FileShareError`` class. Unexpected
errors are logged and answered with a generic 500.
"""

import functools
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from http import HTTPStatus
from typing import Any

from django.conf import settings
from django.http import (
    FileResponse,
    HttpRequest,
    HttpResponse,
    HttpResponseRedirect,
    JsonResponse,
)
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from server.apps.files.exceptions import (
    AuthenticationRequiredError,
    FileShareError,
    InvalidInputError,
)
from server.apps.files.logic import file_operations, share_operations

logger = logging.getLogger(__name__)

_View = Callable[..., HttpResponse]


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({'error': message}, status=status)


def json_errors(view: _View) -> _View:
    """Translate exceptions raised by a view into JSON error responses."""

    @functools.wraps(view)
    def wrapper(
        request: HttpRequest,
        *args: Any,
        **kwargs: Any,
    ) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except FileShareError as error:
            if error.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
                logger.warning(
                    '%s %s failed: %r',
                    request.method,
                    request.path,
                    error,
                )
            return _error(error.message, error.status_code)
        except Exception:
            logger.exception(
                'Unhandled error: %s %s',
                request.method,
                request.path,
            )
            return _error(
                'Internal server error',
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )

    return wrapper


def _require_user(request: HttpRequest) -> Any:
    if not request.user.is_authenticated:
        raise AuthenticationRequiredError()
    return request.user


def _parse_expires_in(raw: str | None) -> datetime | None:
    """Turn the optional ``expires_in`` form field into a deadline."""
    if raw in {None, ''}:
        return None
    try:
        seconds = int(raw)
    except ValueError as error:
        raise InvalidInputError('Invalid expires_in value') from error
    if seconds <= 0:
        raise InvalidInputError('Invalid expires_in value')
    return timezone.now() + timedelta(seconds=seconds)


@require_GET
def health(request: HttpRequest) -> JsonResponse:
    """Liveness probe."""
    return JsonResponse({'status': 'ok'})


@csrf_exempt
@require_http_methods(['POST'])
@json_errors
def upload(request: HttpRequest) -> JsonResponse:
    """Upload a single file from the ``file`` multipart field."""
    user = _require_user(request)
    uploaded = request.FILES.get('file')
    if uploaded is None:
        raise InvalidInputError('No file uploaded')

    result = file_operations.upload_file(
        user,
        uploaded,
        original_name=uploaded.name,
        content_type=uploaded.content_type,
        size_bytes=uploaded.size,
        expires_at=_parse_expires_in(request.POST.get('expires_in')),
    )
    return JsonResponse({
        'message': 'File uploaded successfully',
        'file': file_operations.serialize_file(result.record, result.url),
    })


@require_GET
@json_errors
def list_files(request: HttpRequest) -> JsonResponse:
    """List the current user's files."""
    user = _require_user(request)
    return JsonResponse({'files': file_operations.list_files(user)})


@require_GET
@json_errors
def search_files(request: HttpRequest) -> JsonResponse:
    """Search the current user's files by original name."""
    user = _require_user(request)
    files = file_operations.search_files(user, request.GET.get('query'))
    return JsonResponse({'files': files})


@require_GET
@json_errors
def share_file(request: HttpRequest, file_id: str) -> JsonResponse:
    """Issue (or reuse) a share link for one of the user's files."""
    user = _require_user(request)
    link = share_operations.create_share_link(user, file_id)
    share_path = reverse('files:shared', args=[link.file.share_token])
    return JsonResponse({
        'share_url': link.url,
        'share_link': request.build_absolute_uri(share_path),
        'file': file_operations.serialize_file(link.file, link.url),
    })


@csrf_exempt
@require_http_methods(['DELETE'])
@json_errors
def delete_file(request: HttpRequest, file_id: str) -> JsonResponse:
    """Delete one of the user's files."""
    user = _require_user(request)
    file_operations.delete_file(user, file_id)
    return JsonResponse({'message': 'File deleted successfully'})


@require_GET
@json_errors
def shared_file(request: HttpRequest, token: str) -> HttpResponse:
    """Deliver a shared file to anyone holding its token.

    Depending on FILES_SHARE_DELIVERY the response either redirects to
    a short-lived storage URL or streams the bytes through Django.
    """
    file_instance = share_operations.resolve_share_token(token)

    if getattr(settings, 'FILES_SHARE_DELIVERY', 'redirect') == 'stream':
        return FileResponse(
            share_operations.open_shared_file(file_instance),
            as_attachment=True,
            filename=file_instance.original_name,
            content_type=file_instance.mime_type,
        )
    return HttpResponseRedirect(
        share_operations.share_redirect_url(file_instance),
    )
