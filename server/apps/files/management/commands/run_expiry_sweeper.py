"""Management command to run the expiry sweeper."""

import logging
from typing import Any, final

from typing_extensions import override

from django.core.management.base import BaseCommand

from server.apps.files.logic.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


@final
class Command(BaseCommand):
    """Purge expired files from storage and database on a schedule."""

    help = 'Delete expired files every interval (or once with --once)'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--once',
            action='store_true',
            help='Run a single sweep pass and exit',
        )
        parser.add_argument(
            '--interval',
            type=float,
            default=None,
            help='Seconds between passes (default: FILES_SWEEP_INTERVAL)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the sweeper.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        sweeper = ExpirySweeper(interval=options['interval'])

        if options['once']:
            report = sweeper.run_once()
            if report.aborted:
                logger.error('Single sweep pass aborted')
                self.stderr.write('Sweep aborted: could not query files')
                return
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {report.deleted} expired files, '
                    f'{report.abandoned} abandoned uploads, '
                    f'{report.failed} failed',
                ),
            )
            return

        self.stdout.write(
            self.style.SUCCESS(
                f'Starting expiry sweeper (interval: {sweeper.interval}s)',
            ),
        )
        try:
            sweeper.run_forever()
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('\nShutting down...'))
        finally:
            sweeper.stop()
            self.stdout.write(self.style.SUCCESS('Expiry sweeper stopped'))
