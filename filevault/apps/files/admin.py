"""Django admin configuration for files app."""

from typing import Any

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest

from filevault.apps.files.logic.file_operations import remove_file
from filevault.apps.files.logic.folder_operations import remove_folder
from filevault.apps.files.logic.results import DeletionResult
from filevault.apps.files.models import File, Folder


def format_size(size_bytes: int) -> str:
    """Format a byte count in human-readable form.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


def _report_deletion(
    model_admin: admin.ModelAdmin[Any],
    request: HttpRequest,
    result: DeletionResult,
) -> None:
    """Surface a failed content cleanup to the admin user."""
    if not result.ok:
        model_admin.message_user(
            request,
            result.message,
            messages.WARNING,
            fail_silently=True,
        )


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model.

    Records are read-only here: creating them outside the file manager
    would leave the content store out of sync. Deletes go through the
    file manager so the directory subtree is removed as well.
    """

    list_display = ['name', 'user', 'uri', 'created_at']
    list_filter = ['created_at', 'user']
    search_fields = ['name', 'uri']
    readonly_fields = ['user', 'name', 'parent', 'uri', 'created_at']

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Folders are created through the file manager only."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'parent')

    def delete_model(self, request: HttpRequest, obj: Folder) -> None:
        """Delete folder records and the directory subtree."""
        _report_deletion(self, request, remove_folder(obj))

    def delete_queryset(
        self,
        request: HttpRequest,
        queryset: QuerySet[Folder],
    ) -> None:
        """Delete selected folders through the file manager.

        Ancestors sort before their descendants, so a folder already
        removed by a cascade is skipped.
        """
        for folder in queryset.order_by('uri'):
            if Folder.objects.filter(pk=folder.pk).exists():
                _report_deletion(self, request, remove_folder(folder))


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'filename',
        'user',
        'uri',
        'size_display',
        'mimetype',
        'uploaded_at',
    ]

    list_filter = [
        'mimetype',
        'uploaded_at',
        'user',
    ]

    search_fields = [
        'filename',
        'uri',
    ]

    readonly_fields = [
        'user',
        'folder',
        'filename',
        'extension',
        'mimetype',
        'file_size',
        'uploaded_at',
        'uri',
    ]

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string.
        """
        return format_size(obj.file_size)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Files are uploaded through the file manager only."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'folder')

    def delete_model(self, request: HttpRequest, obj: File) -> None:
        """Delete the file record and its stored bytes."""
        _report_deletion(self, request, remove_file(obj))

    def delete_queryset(
        self,
        request: HttpRequest,
        queryset: QuerySet[File],
    ) -> None:
        """Delete selected files through the file manager."""
        for file_instance in queryset:
            _report_deletion(self, request, remove_file(file_instance))
