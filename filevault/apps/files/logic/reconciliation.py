"""Offline reconciliation between metadata and content stores.

Metadata is the source of truth. Drift happens when a compensation
step fails: a record whose bytes or directory are gone, or bytes and
directories nobody references.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Final

from django.db import transaction

from filevault.apps.files.infrastructure.storage import (
    ContentStorage,
    get_content_storage,
)
from filevault.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

# Scratch directories of in-flight batch downloads
TEMP_DIRECTORY_MARKER: Final = '-temp-download-'

logger = logging.getLogger(__name__)


@dataclass
class DriftReport:
    """Inconsistencies found between the two stores."""

    missing_folders: list[Folder] = field(default_factory=list)
    missing_files: list[File] = field(default_factory=list)
    orphaned_paths: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        """Whether the stores agree."""
        return not (
            self.missing_folders or self.missing_files or self.orphaned_paths
        )


@dataclass
class RepairSummary:
    """Counts of repairs applied by ``repair_drift``."""

    removed_orphans: int = 0
    recreated_folders: int = 0
    pruned_files: int = 0
    failed: int = 0


def find_drift(user: _User | None = None) -> DriftReport:
    """Compare records against the content store.

    Args:
        user: Restrict the sweep to one user, None for everyone.

    Returns:
        DriftReport listing every inconsistency.
    """
    storage = get_content_storage()
    folders = Folder.objects.order_by('uri')
    files = File.objects.order_by('uri')
    if user is not None:
        folders = folders.filter(user=user)
        files = files.filter(user=user)

    report = DriftReport()
    folder_uris = set()
    for folder in folders:
        folder_uris.add(folder.uri)
        if not storage.is_directory(folder.uri):
            report.missing_folders.append(folder)

    file_uris = set()
    for file_instance in files:
        file_uris.add(file_instance.uri)
        if not os.path.isfile(storage.path(file_instance.uri)):
            report.missing_files.append(file_instance)

    for root in _user_roots(storage, user):
        report.orphaned_paths.extend(
            _find_orphans(storage, root, folder_uris, file_uris),
        )

    logger.info(
        'Drift sweep: %d missing folders, %d missing files, %d orphaned paths',
        len(report.missing_folders),
        len(report.missing_files),
        len(report.orphaned_paths),
    )
    return report


def repair_drift(report: DriftReport, prune: bool = False) -> RepairSummary:
    """Bring the content store back in line with the records.

    Orphaned paths are removed and missing folder directories are
    recreated. File records whose bytes are lost are only deleted when
    ``prune`` is set.

    Args:
        report: Result of ``find_drift``.
        prune: Delete file records whose bytes are gone.

    Returns:
        RepairSummary with counts per repair kind.
    """
    storage = get_content_storage()
    summary = RepairSummary()

    for uri in report.orphaned_paths:
        try:
            if storage.is_directory(uri):
                storage.remove_tree(uri)
            else:
                storage.unlink(uri)
        except OSError:
            logger.exception('Failed to remove orphaned path: %s', uri)
            summary.failed += 1
        else:
            summary.removed_orphans += 1

    for folder in report.missing_folders:
        try:
            storage.ensure_directory(folder.uri)
        except OSError:
            logger.exception('Failed to recreate directory: %s', folder.uri)
            summary.failed += 1
        else:
            logger.info('Recreated missing directory: %s', folder.uri)
            summary.recreated_folders += 1

    if prune and report.missing_files:
        file_ids = [file_instance.id for file_instance in report.missing_files]
        with transaction.atomic():
            summary.pruned_files, _ = File.objects.filter(id__in=file_ids).delete()
        logger.info('Pruned %d file records without content', summary.pruned_files)

    return summary


def _user_roots(storage: ContentStorage, user: _User | None) -> list[str]:
    """Top-level user directories to sweep."""
    if user is not None:
        return [str(user.pk)]
    if not os.path.isdir(storage.location):
        return []
    return sorted(
        entry.name
        for entry in os.scandir(storage.location)
        if entry.is_dir() and TEMP_DIRECTORY_MARKER not in entry.name
    )


def _find_orphans(
    storage: ContentStorage,
    root: str,
    folder_uris: set[str],
    file_uris: set[str],
) -> list[str]:
    """Paths under ``root`` with no record, topmost orphans only."""
    orphans: list[str] = []
    root_path = storage.path(root)
    for dirpath, dirnames, filenames in os.walk(root_path):
        relative = os.path.relpath(dirpath, storage.location)
        base_uri = relative.replace(os.sep, '/')

        kept = []
        for dirname in sorted(dirnames):
            uri = f'{base_uri}/{dirname}'
            if uri in folder_uris:
                kept.append(dirname)
            else:
                orphans.append(uri)
        # Orphaned directories are removed as a whole, do not descend
        dirnames[:] = kept

        orphans.extend(
            f'{base_uri}/{filename}'
            for filename in sorted(filenames)
            if f'{base_uri}/{filename}' not in file_uris
        )
    return orphans
