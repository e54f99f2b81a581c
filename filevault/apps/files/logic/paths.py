"""Path resolution: (user, parent folder, name) -> storage uri."""

import os
from dataclasses import dataclass
from typing import Any

from filevault.apps.files.infrastructure.metadata import (
    sanitize_name,
    validate_storage_path,
)
from filevault.apps.files.infrastructure.storage import get_content_storage
from filevault.apps.files.logic.access import get_owned_folder
from filevault.apps.files.models import Folder

# User type for Django's dynamic user model
_User = Any


@dataclass(frozen=True, slots=True)
class ResolvedPath:
    """Candidate location for a new folder or file."""

    name: str
    uri: str
    absolute_path: str
    parent: Folder | None


def user_root_uri(user: _User) -> str:
    """Storage uri of the user's root directory."""
    return str(user.pk)


def join_uri(base_uri: str, name: str) -> str:
    """Append one path segment to a storage uri."""
    return f'{base_uri}/{name}'


def resolve_directory(
    user: _User,
    parent_id: object | None,
) -> tuple[Folder | None, str]:
    """Resolve the directory new items are placed in.

    Args:
        user: Owner of the directory.
        parent_id: Parent folder id, None for the user's root.

    Returns:
        Parent folder (None for root) and its storage uri.

    Raises:
        NotFoundError: If the parent is absent or not owned by the user.
    """
    if parent_id is None:
        return None, user_root_uri(user)
    parent = get_owned_folder(user, parent_id)
    return parent, parent.uri


def resolve_path(
    user: _User,
    name: str,
    parent_id: object | None = None,
) -> ResolvedPath:
    """Resolve the candidate uri and absolute path for ``name``.

    Collisions are not checked here, see ``path_exists``.

    Args:
        user: Owner of the new item.
        name: Raw name as supplied by the user.
        parent_id: Parent folder id, None for the user's root.

    Returns:
        Resolved candidate location.

    Raises:
        ValidationError: If the name is empty after sanitization.
        NotFoundError: If the parent is absent or not owned by the user.
    """
    sanitized = sanitize_name(name)
    parent, base_uri = resolve_directory(user, parent_id)
    uri = join_uri(base_uri, sanitized)
    validate_storage_path(user.pk, uri)
    return ResolvedPath(
        name=sanitized,
        uri=uri,
        absolute_path=get_content_storage().path(uri),
        parent=parent,
    )


def path_exists(absolute_path: str) -> bool:
    """Check whether anything (file, directory, link) exists at a path."""
    return os.path.lexists(absolute_path)


def archive_entry_name(user: _User, uri: str) -> str:
    """Path of ``uri`` relative to the user's root, used inside archives.

    Example: '7/docs/report.pdf' -> 'docs/report.pdf'
    """
    prefix = f'{user_root_uri(user)}/'
    if uri.startswith(prefix):
        return uri[len(prefix):]
    return uri
