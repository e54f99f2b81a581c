"""Session boundary and ownership lookups."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from django.db import DatabaseError as DjangoDatabaseError

from filevault.apps.files.exceptions import AuthError, DatabaseError, NotFoundError
from filevault.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def require_user(user: _User | None) -> None:
    """Ensure the request carries an authenticated user.

    Args:
        user: User supplied by the session provider.

    Raises:
        AuthError: If there is no user or the user is anonymous.
    """
    if user is None or not user.is_authenticated or user.pk is None:
        raise AuthError()


@contextmanager
def metadata_errors(message: str) -> Iterator[None]:
    """Translate metadata store failures into DatabaseError.

    Args:
        message: User-facing message for the raised error.

    Yields:
        Nothing, wraps the block.

    Raises:
        DatabaseError: If the block raised a Django database error.
    """
    try:
        yield
    except DjangoDatabaseError as error:
        logger.exception('Metadata store failure: %s', message)
        raise DatabaseError(message) from error


def get_owned_folder(user: _User, folder_id: object) -> Folder:
    """Get a folder owned by ``user``.

    Args:
        user: Folder owner.
        folder_id: Folder primary key.

    Returns:
        Folder instance.

    Raises:
        NotFoundError: If the folder is absent or owned by someone else.
    """
    with metadata_errors('Server error looking up folder.'):
        try:
            return Folder.objects.select_related('parent').get(
                pk=folder_id,
                user=user,
            )
        except (Folder.DoesNotExist, ValueError, TypeError) as error:
            raise NotFoundError('Folder not found or access denied.') from error


def get_owned_file(user: _User, file_id: object) -> File:
    """Get a file owned by ``user``.

    Args:
        user: File owner.
        file_id: File primary key.

    Returns:
        File instance.

    Raises:
        NotFoundError: If the file is absent or owned by someone else.
    """
    with metadata_errors('Server error looking up file.'):
        try:
            return File.objects.get(pk=file_id, user=user)
        except (File.DoesNotExist, ValueError, TypeError) as error:
            raise NotFoundError('File not found or access denied.') from error
