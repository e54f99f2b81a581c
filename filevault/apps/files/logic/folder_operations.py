"""Business logic for folder operations."""

import logging
from dataclasses import dataclass, field
from typing import Any

from django.db import DatabaseError as DjangoDatabaseError
from django.db import IntegrityError, transaction

from filevault.apps.files.exceptions import ConflictError, DatabaseError, StorageError
from filevault.apps.files.infrastructure.storage import (
    ContentStorage,
    get_content_storage,
)
from filevault.apps.files.logic.access import (
    get_owned_folder,
    metadata_errors,
    require_user,
)
from filevault.apps.files.logic.paths import ResolvedPath, path_exists, resolve_path
from filevault.apps.files.logic.results import DeletionResult, ItemKind
from filevault.apps.files.models import Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)

_FOLDER_EXISTS_MESSAGE = 'A folder with this name already exists in this location.'


@dataclass(frozen=True)
class FolderContext:
    """Folder currently being browsed, with its breadcrumb trail."""

    folder: Folder | None
    ancestors: list[Folder] = field(default_factory=list)


def create_folder(
    user: _User,
    parent_id: object | None,
    name: str,
) -> Folder:
    """Create folder directory in storage and its database record.

    Transaction safety: create the directory first, then insert the
    record. If the insert fails, the directory is removed again (rollback).

    Args:
        user: Owner of the folder.
        parent_id: Parent folder id, None for the user's root.
        name: Folder name as typed by the user.

    Returns:
        Created Folder instance.

    Raises:
        AuthError: If there is no authenticated user.
        ValidationError: If the name is empty after sanitization.
        NotFoundError: If the parent folder is not found.
        ConflictError: If a sibling folder or a disk entry already exists.
        StorageError: If the directory cannot be created.
        DatabaseError: If the record cannot be saved.
    """
    require_user(user)
    resolved = resolve_path(user, name, parent_id)
    storage = get_content_storage()

    # Step 1: Reject sibling name collisions in metadata
    with metadata_errors('Server error checking folder name.'):
        sibling_exists = Folder.objects.filter(
            user=user,
            parent=resolved.parent,
            name=resolved.name,
        ).exists()
    if sibling_exists:
        raise ConflictError(_FOLDER_EXISTS_MESSAGE)

    # Step 2: Reject orphaned entries on disk
    if path_exists(resolved.absolute_path):
        raise ConflictError(
            'A file or folder already exists at the target location on disk.',
        )

    # Step 3: Create the directory in storage
    try:
        storage.make_directory(resolved.uri)
    except FileExistsError as error:
        raise ConflictError(
            'A file or folder already exists at the target location on disk.',
        ) from error
    except OSError as error:
        logger.exception('Failed to create directory: %s', resolved.uri)
        raise StorageError(
            'Failed to create folder directory on server.',
        ) from error

    # Step 4: Create database record (in transaction)
    return _insert_folder(user, resolved, storage)


def _insert_folder(
    user: _User,
    resolved: ResolvedPath,
    storage: ContentStorage,
) -> Folder:
    try:
        with transaction.atomic():
            folder = Folder.objects.create(
                user=user,
                name=resolved.name,
                parent=resolved.parent,
                uri=resolved.uri,
            )
    except IntegrityError as error:
        logger.exception(
            'Folder record conflicts, rolling back directory: %s',
            resolved.uri,
        )
        _rollback_directory(storage, resolved.uri)
        raise ConflictError(_FOLDER_EXISTS_MESSAGE) from error
    except DjangoDatabaseError as error:
        logger.exception(
            'Database transaction failed, rolling back directory: %s',
            resolved.uri,
        )
        _rollback_directory(storage, resolved.uri)
        raise DatabaseError('Failed to save folder record.') from error

    logger.info(
        'Folder record created in database: %s (ID: %d)',
        folder.uri,
        folder.id,
    )
    return folder


def _rollback_directory(storage: ContentStorage, uri: str) -> None:
    """Remove a just-created directory, best effort."""
    try:
        storage.remove_directory(uri)
        logger.info('Cleaned up directory after DB error: %s', uri)
    except OSError:
        # Directory stays orphaned, reconcile_storage picks it up
        logger.exception('Failed to cleanup directory after DB error: %s', uri)


def delete_folder(user: _User, folder_id: object) -> DeletionResult:
    """Delete folder, its descendants, and its storage subtree.

    Args:
        user: Owner of the folder.
        folder_id: ID of folder to delete.

    Returns:
        Deletion outcome. ``cleanup_error`` is set when the records are
        gone but the directory could not be removed.

    Raises:
        AuthError: If there is no authenticated user.
        NotFoundError: If the folder is not found.
        DatabaseError: If the records cannot be deleted.
    """
    require_user(user)
    return remove_folder(get_owned_folder(user, folder_id))


def remove_folder(folder: Folder) -> DeletionResult:
    """Delete an already resolved folder from both stores.

    Transaction safety: delete DB records first (cascading to every
    descendant folder and file), then remove the directory tree. A
    directory that is already gone counts as removed.

    Args:
        folder: Folder to delete.

    Returns:
        Deletion outcome.

    Raises:
        DatabaseError: If the records cannot be deleted.
    """
    folder_id = folder.id
    uri = folder.uri
    logger.info('Deleting folder: ID=%d, path=%s', folder_id, uri)

    try:
        with transaction.atomic():
            folder.delete()
    except DjangoDatabaseError as error:
        logger.exception('Failed to delete folder from database: ID=%d', folder_id)
        raise DatabaseError(f'Database error deleting folder: {error}') from error
    logger.info('Deleted folder record (ID: %d) and its descendants', folder_id)

    try:
        removed = get_content_storage().remove_tree(uri)
    except OSError as error:
        logger.exception('Failed to delete directory from storage (orphaned): %s', uri)
        return DeletionResult(
            kind=ItemKind.FOLDER,
            item_id=folder_id,
            name=folder.name,
            storage_removed=False,
            cleanup_error=str(error),
        )

    return DeletionResult(
        kind=ItemKind.FOLDER,
        item_id=folder_id,
        name=folder.name,
        storage_removed=removed,
    )


def get_folder_context(user: _User, folder_id: object | None) -> FolderContext:
    """Get the folder being browsed and its ancestors.

    Args:
        user: Owner of the folder.
        folder_id: Folder id, None for the user's root.

    Returns:
        FolderContext for breadcrumbs.

    Raises:
        AuthError: If there is no authenticated user.
        NotFoundError: If the folder is not found.
    """
    require_user(user)
    if folder_id is None:
        return FolderContext(folder=None)
    folder = get_owned_folder(user, folder_id)
    with metadata_errors('Server error loading folder.'):
        ancestors = folder.get_ancestors()
    return FolderContext(folder=folder, ancestors=ancestors)
