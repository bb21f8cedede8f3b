"""Django app configuration for files app."""

from typing_extensions import override

from django.apps import AppConfig
from django.conf import settings


class FilesConfig(AppConfig):
    """Configuration for files app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.files'
    verbose_name = 'Files'

    @override
    def ready(self) -> None:
        """Start the expiry sweeper when configured to run in-process."""
        if getattr(settings, 'FILES_SWEEPER_AUTOSTART', False):
            from server.apps.files.logic.expiry_sweeper import (  # noqa: WPS433
                start_background_sweeper,
            )

            start_background_sweeper()
