"""Database models for files app."""

from typing import Final, final, override

from django.contrib.auth import get_user_model
from django.db import models
from django.utils import timezone

User = get_user_model()

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_URI_MAX_LENGTH: Final = 1024
_MIME_TYPE_MAX_LENGTH: Final = 255
_EXTENSION_MAX_LENGTH: Final = 32


@final
class Folder(models.Model):
    """Folder owned by a single user.

    The ``uri`` mirrors the ancestor chain relative to the storage root:
    {user_id}/parent/child/name. A directory with that path exists in the
    content store for as long as the record exists.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    # Deleting a folder cascades to every descendant folder and file
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        related_name='children',
        null=True,
        blank=True,
    )

    uri = models.CharField(
        max_length=_URI_MAX_LENGTH,
        help_text='Path in storage: {user_id}/folder/subfolder',
    )

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['name']

        indexes = [
            # Optimize directory listing queries
            models.Index(
                fields=['user', 'parent', 'name'],
                name='folders_user_parent_name_idx',
            ),
        ]

        constraints = [
            # Sibling folders never share a name
            models.UniqueConstraint(
                fields=['user', 'parent', 'name'],
                condition=models.Q(parent__isnull=False),
                name='folders_user_parent_name_unique',
            ),
            models.UniqueConstraint(
                fields=['user', 'name'],
                condition=models.Q(parent__isnull=True),
                name='folders_user_root_name_unique',
            ),
            models.UniqueConstraint(
                fields=['user', 'uri'],
                name='folders_user_uri_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.uri}'

    def get_ancestors(self) -> list['Folder']:
        """Collect the ancestor chain of this folder.

        Returns:
            Folders from the root-level ancestor down to the direct parent.
        """
        ancestors: list[Folder] = []
        current = self.parent
        while current is not None:
            ancestors.append(current)
            current = current.parent
        ancestors.reverse()
        return ancestors


@final
class File(models.Model):
    """File stored in the content store.

    The ``uri`` is the parent folder's uri (or the bare user id for the
    root) joined with ``filename``.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    folder = models.ForeignKey(
        Folder,
        on_delete=models.CASCADE,
        related_name='files',
        null=True,
        blank=True,
    )

    filename = models.CharField(max_length=_NAME_MAX_LENGTH)

    extension = models.CharField(
        max_length=_EXTENSION_MAX_LENGTH,
        blank=True,
        default='',
    )

    mimetype = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='Declared MIME type, checked against the upload allow-list',
    )

    file_size = models.BigIntegerField(help_text='File size in bytes')

    uploaded_at = models.DateTimeField(default=timezone.now)

    uri = models.CharField(
        max_length=_URI_MAX_LENGTH,
        help_text='Path in storage: {user_id}/folder/file.ext',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['filename']

        indexes = [
            models.Index(
                fields=['user', 'folder', 'filename'],
                name='files_user_folder_name_idx',
            ),
            # Optimize date range filters
            models.Index(
                fields=['user', '-uploaded_at'],
                name='files_user_recent_idx',
            ),
        ]

        constraints = [
            models.UniqueConstraint(
                fields=['user', 'folder', 'filename'],
                condition=models.Q(folder__isnull=False),
                name='files_user_folder_name_unique',
            ),
            models.UniqueConstraint(
                fields=['user', 'filename'],
                condition=models.Q(folder__isnull=True),
                name='files_user_root_name_unique',
            ),
            # Prevent duplicate storage paths for the same user
            models.UniqueConstraint(
                fields=['user', 'uri'],
                name='files_user_uri_unique',
            ),
            models.CheckConstraint(
                condition=models.Q(file_size__gte=0),
                name='files_size_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.uri}'
