"""Filesystem storage backend for user content."""

import logging
import os
import shutil
import tempfile
from typing import Any, final, override

from django.core.files.storage import FileSystemStorage, default_storage

logger = logging.getLogger(__name__)


def get_content_storage() -> 'ContentStorage':
    """Get the configured default storage backend.

    Returns:
        ContentStorage rooted at the configured storage root.
    """
    return default_storage  # type: ignore[return-value]


@final
class ContentStorage(FileSystemStorage):
    """Hierarchical byte store for user files and folders.

    Extends Django's FileSystemStorage with:
    - No-overwrite saves (the exact name or an error, never a renamed copy)
    - Directory create/remove primitives mirroring folder records
    - Best-effort rollback helpers for failed metadata writes
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to storage under exactly ``name``.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Storage path used, always equal to ``name``.

        Raises:
            FileExistsError: If ``name`` is already taken.
            OSError: If the write fails.
        """
        try:
            logger.info('Writing file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
        except Exception:
            logger.exception('Failed to write file to storage: %s', name)
            raise

        if saved_name != name:
            # Parent class picked an alternative name, the target was taken
            logger.warning(
                'Storage path taken, discarding renamed copy: %s -> %s',
                name,
                saved_name,
            )
            self.rollback_upload(saved_name)
            raise FileExistsError(name)

        logger.info('Successfully wrote file: %s', saved_name)
        return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from storage with error handling and logging.

        Args:
            name: Storage path of file to delete.

        Raises:
            OSError: If the delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def unlink(self, name: str) -> bool:
        """Remove a single file.

        Args:
            name: Storage path of file to remove.

        Returns:
            True if the file was removed, False if it was already absent.

        Raises:
            OSError: If removal fails for a reason other than absence.
        """
        try:
            os.remove(self.path(name))
        except FileNotFoundError:
            logger.warning('File not found in storage (already deleted?): %s', name)
            return False
        logger.info('File deleted from storage: %s', name)
        return True

    def rollback_upload(self, name: str) -> None:
        """Delete written file after a failed metadata insert.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, the caller reports the primary error.

        Args:
            name: Storage path of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back file upload: %s', name)
        except Exception:
            # The file will remain in storage but not in database
            # reconcile_storage can handle orphaned files
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )

    def make_directory(self, name: str) -> None:
        """Create the final directory of ``name``.

        Missing intermediate directories are created, the final one must
        not exist yet.

        Args:
            name: Storage path of the directory.

        Raises:
            FileExistsError: If anything already exists at ``name``.
            OSError: If creation fails.
        """
        full_path = self.path(name)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        os.mkdir(full_path)
        if self.directory_permissions_mode is not None:
            os.chmod(full_path, self.directory_permissions_mode)
        logger.info('Directory created: %s', name)

    def ensure_directory(self, name: str) -> None:
        """Create directory ``name`` and its parents if missing.

        Args:
            name: Storage path of the directory.

        Raises:
            OSError: If creation fails.
        """
        os.makedirs(self.path(name), exist_ok=True)

    def remove_directory(self, name: str) -> None:
        """Remove an empty directory.

        Args:
            name: Storage path of the directory.

        Raises:
            OSError: If the directory is missing, not empty or unremovable.
        """
        os.rmdir(self.path(name))
        logger.info('Directory removed: %s', name)

    def remove_tree(self, name: str) -> bool:
        """Recursively remove a directory and everything below it.

        Args:
            name: Storage path of the directory.

        Returns:
            True if the tree was removed, False if it was already absent.

        Raises:
            OSError: If removal fails for a reason other than absence.
        """
        try:
            shutil.rmtree(self.path(name))
        except FileNotFoundError:
            logger.warning('Directory not found in storage (already deleted?): %s', name)
            return False
        logger.info('Directory tree removed from storage: %s', name)
        return True

    def is_directory(self, name: str) -> bool:
        """Check whether ``name`` is an existing directory."""
        return os.path.isdir(self.path(name))

    def is_readable(self, name: str) -> bool:
        """Check existence and read permission for ``name``."""
        return os.access(self.path(name), os.R_OK)

    def create_temp_directory(self, prefix: str) -> str:
        """Create a unique scratch directory directly under the storage root.

        Args:
            prefix: Directory name prefix.

        Returns:
            Absolute path of the new directory.
        """
        os.makedirs(self.location, exist_ok=True)
        return tempfile.mkdtemp(prefix=prefix, dir=self.location)
