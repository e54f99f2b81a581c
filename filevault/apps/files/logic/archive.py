"""Zip archive building for batch downloads."""

import base64
import logging
import os
import posixpath
import shutil
import zipfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Final, assert_never

from django.conf import settings

from filevault.apps.files.exceptions import StorageError, ValidationError
from filevault.apps.files.infrastructure.storage import (
    ContentStorage,
    get_content_storage,
)
from filevault.apps.files.logic.results import ItemKind

ARCHIVE_NAME: Final = 'download.zip'

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """Stored item and the name it gets inside the archive."""

    uri: str
    kind: ItemKind
    entry_name: str


@dataclass(frozen=True)
class Archive:
    """Finished zip archive."""

    content: bytes
    file_name: str
    entries_added: int

    @property
    def base64_content(self) -> str:
        """Content encoded for the JSON transport."""
        return base64.b64encode(self.content).decode('ascii')


@contextmanager
def scoped_temp_directory(storage: ContentStorage, prefix: str) -> Iterator[str]:
    """Create a scratch directory under the storage root, removed on exit.

    Args:
        storage: Content storage whose root hosts the directory.
        prefix: Directory name prefix.

    Yields:
        Absolute path of the directory.
    """
    temp_dir = storage.create_temp_directory(prefix)
    try:
        yield temp_dir
    finally:
        logger.info('Cleaning up temporary directory: %s', temp_dir)
        try:
            shutil.rmtree(temp_dir)
        except OSError:
            logger.exception('Error cleaning up temporary directory: %s', temp_dir)


def build_archive(
    entries: Sequence[ArchiveEntry],
    temp_prefix: str = 'archive-',
) -> Archive:
    """Zip files and directories into a single archive.

    Entries whose source is missing or unreadable are skipped with a
    warning, as are members already written by an earlier entry (a
    file selected together with its folder). The archive is written into a scratch directory that is
    always removed, whatever the outcome.

    Args:
        entries: Sources to add, in order.
        temp_prefix: Prefix for the scratch directory name.

    Returns:
        Archive named ``download.zip``.

    Raises:
        ValidationError: If no entry could be added.
        StorageError: If writing or reading the archive fails.
    """
    storage = get_content_storage()
    compression_level = settings.FILES_ARCHIVE_COMPRESSION_LEVEL

    with scoped_temp_directory(storage, temp_prefix) as temp_dir:
        zip_path = os.path.join(temp_dir, ARCHIVE_NAME)
        try:
            with zipfile.ZipFile(
                zip_path,
                'w',
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=compression_level,
            ) as zip_file:
                written: set[str] = set()
                entries_added = sum(
                    _add_entry(zip_file, storage, entry, written)
                    for entry in entries
                )
                if entries_added == 0:
                    raise ValidationError(
                        'Could not find any valid items to download.',
                    )
            # Archive is closed and flushed here, safe to read back
            with open(zip_path, 'rb') as handle:
                content = handle.read()
        except (OSError, zipfile.LargeZipFile) as error:
            logger.exception('Error creating zip archive: %s', zip_path)
            raise StorageError(
                'A server error occurred while creating the download.',
            ) from error

    logger.info(
        'Archive created with %d entries (%d bytes)',
        entries_added,
        len(content),
    )
    return Archive(
        content=content,
        file_name=ARCHIVE_NAME,
        entries_added=entries_added,
    )


def _add_entry(
    zip_file: zipfile.ZipFile,
    storage: ContentStorage,
    entry: ArchiveEntry,
    written: set[str],
) -> bool:
    """Add one entry, returning False when nothing new was written."""
    if not storage.is_readable(entry.uri):
        logger.warning('Not accessible or not found, skipping: %s', entry.uri)
        return False

    source = storage.path(entry.uri)
    match entry.kind:
        case ItemKind.FILE:
            if not os.path.isfile(source):
                logger.warning('Not a file, skipping: %s', entry.uri)
                return False
            added = _write_member(zip_file, source, entry.entry_name, written)
        case ItemKind.FOLDER:
            if not os.path.isdir(source):
                logger.warning('Not a directory, skipping: %s', entry.uri)
                return False
            added = _add_directory(zip_file, source, entry.entry_name, written)
        case _:
            assert_never(entry.kind)

    if added:
        logger.debug('Added to zip: %s (source: %s)', entry.entry_name, entry.uri)
    return added


def _add_directory(
    zip_file: zipfile.ZipFile,
    root: str,
    entry_name: str,
    written: set[str],
) -> bool:
    """Mirror a directory tree under ``entry_name``."""
    added = False
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        relative = os.path.relpath(dirpath, root)
        if relative == os.curdir:
            arc_dir = entry_name
        else:
            arc_dir = posixpath.join(entry_name, *relative.split(os.sep))
        # Directory entry keeps empty folders in the archive
        added |= _write_member(zip_file, dirpath, arc_dir, written)
        for filename in sorted(filenames):
            added |= _write_member(
                zip_file,
                os.path.join(dirpath, filename),
                posixpath.join(arc_dir, filename),
                written,
            )
    return added


def _write_member(
    zip_file: zipfile.ZipFile,
    source: str,
    arcname: str,
    written: set[str],
) -> bool:
    """Write one member unless an earlier entry already wrote it."""
    # Same name normalization ZipFile.write applies ('docs' -> 'docs/')
    member = zipfile.ZipInfo.from_file(source, arcname).filename
    if member in written:
        logger.warning('Already in archive, skipping duplicate: %s', member)
        return False
    zip_file.write(source, arcname=arcname)
    written.add(member)
    return True
