"""Management command to reconcile metadata records with stored content."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from filevault.apps.files.logic.reconciliation import find_drift, repair_drift

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Report, and optionally repair, drift between the two stores."""

    help = 'Find records without content and content without records'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--user',
            type=int,
            default=None,
            help='Only sweep the given user ID',
        )
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Remove orphaned content and recreate missing directories',
        )
        parser.add_argument(
            '--prune',
            action='store_true',
            help='With --fix, also delete file records whose content is gone',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the reconciliation command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the requested user does not exist.
        """
        user = None
        if options['user'] is not None:
            user_model = get_user_model()
            try:
                user = user_model.objects.get(pk=options['user'])
            except user_model.DoesNotExist as error:
                raise CommandError(f'User {options["user"]} does not exist') from error

        report = find_drift(user)

        for folder in report.missing_folders:
            self.stdout.write(f'Missing directory for folder {folder.id}: {folder.uri}')
        for file_instance in report.missing_files:
            self.stdout.write(
                f'Missing content for file {file_instance.id}: {file_instance.uri}',
            )
        for uri in report.orphaned_paths:
            self.stdout.write(f'Orphaned content: {uri}')

        if report.is_clean:
            self.stdout.write(self.style.SUCCESS('No drift found'))
            return

        if not options['fix']:
            self.stdout.write(
                self.style.WARNING(
                    f'Found {len(report.missing_folders)} missing directories, '
                    f'{len(report.missing_files)} missing files, '
                    f'{len(report.orphaned_paths)} orphaned paths '
                    '(run with --fix to repair)',
                ),
            )
            return

        summary = repair_drift(report, prune=options['prune'])
        logger.info(
            'Reconciliation applied: %d orphans removed, %d directories '
            'recreated, %d records pruned, %d failed',
            summary.removed_orphans,
            summary.recreated_folders,
            summary.pruned_files,
            summary.failed,
        )
        self.stdout.write(
            self.style.SUCCESS(
                f'Removed {summary.removed_orphans} orphaned paths, '
                f'recreated {summary.recreated_folders} directories, '
                f'pruned {summary.pruned_files} file records, '
                f'{summary.failed} failed',
            ),
        )
