"""Combined, paginated listing of folders and files.

Folders and files live in separate tables but are browsed as one
sequence: every folder (by name) comes before every file (by filename).
A page is cut from that combined sequence with two independent queries.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Final

from django.conf import settings
from django.db.models import QuerySet
from django.utils import timezone

from filevault.apps.files.logic.access import (
    get_owned_folder,
    metadata_errors,
    require_user,
)
from filevault.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)

# Mimetype filter value selecting folders only
FOLDER_TYPE_FILTER: Final = 'folder'


@dataclass(frozen=True)
class ListingQuery:
    """One listing request.

    ``page_size`` is part of the request, never ambient state; invalid
    values fall back to the configured default.
    """

    parent_id: object | None = None
    page: object = 1
    page_size: object = None
    search: str | None = None
    mimetype: str | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True)
class ListingPage:
    """One page of the combined folder and file sequence."""

    folders: list[Folder]
    files: list[File]
    total_items: int
    page: int
    page_size: int


def resolve_page_size(page_size: object) -> int:
    """Coerce a requested page size into the accepted range.

    Args:
        page_size: Requested page size, possibly missing or malformed.

    Returns:
        Positive page size, at most ``FILES_MAX_PAGE_SIZE``.
    """
    try:
        size = int(page_size)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return settings.FILES_DEFAULT_PAGE_SIZE
    if size <= 0:
        return settings.FILES_DEFAULT_PAGE_SIZE
    return min(size, settings.FILES_MAX_PAGE_SIZE)


def resolve_page_number(page: object) -> int:
    """Coerce a requested 1-based page number, defaulting to 1."""
    try:
        number = int(page)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 1
    return max(number, 1)


def list_items(user: _User, query: ListingQuery) -> ListingPage:
    """Produce one page of folders followed by files.

    Args:
        user: Owner of the items.
        query: Parent, paging and filter parameters.

    Returns:
        ListingPage whose ``total_items`` counts every match.

    Raises:
        AuthError: If there is no authenticated user.
        NotFoundError: If the parent folder is not found.
        DatabaseError: If a query fails.
    """
    require_user(user)
    if query.parent_id is not None:
        get_owned_folder(user, query.parent_id)

    page = resolve_page_number(query.page)
    page_size = resolve_page_size(query.page_size)
    include_folders, include_files = _selected_kinds(query.mimetype)
    folder_qs = _folder_queryset(user, query)
    file_qs = _file_queryset(user, query)

    with metadata_errors('Server error processing request'):
        total_folders = folder_qs.count() if include_folders else 0
        total_files = file_qs.count() if include_files else 0
        total_items = total_folders + total_files

        offset = (page - 1) * page_size

        folders: list[Folder] = []
        if offset < total_folders:
            # Only fetch folders if the offset is within the folder range
            folders = list(folder_qs[offset:offset + page_size])

        files: list[File] = []
        files_needed = page_size - len(folders)
        if files_needed > 0 and offset + len(folders) < total_items:
            file_offset = max(0, offset - total_folders)
            files = list(file_qs[file_offset:file_offset + files_needed])

    logger.debug(
        'Listed page %d (size %d) for user %s: %d folders, %d files of %d',
        page,
        page_size,
        user.pk,
        len(folders),
        len(files),
        total_items,
    )
    return ListingPage(
        folders=folders,
        files=files,
        total_items=total_items,
        page=page,
        page_size=page_size,
    )


def list_file_types(user: _User) -> list[str]:
    """List the distinct mimetypes among the user's files.

    Args:
        user: Owner of the files.

    Returns:
        Sorted mimetypes, used to offer type filters.
    """
    require_user(user)
    with metadata_errors('Failed to read from database!'):
        return list(
            File.objects.filter(user=user)
            .order_by('mimetype')
            .values_list('mimetype', flat=True)
            .distinct(),
        )


def _selected_kinds(mimetype: str | None) -> tuple[bool, bool]:
    """Which kinds a mimetype filter keeps, as (folders, files)."""
    if not mimetype:
        return True, True
    if mimetype.strip().lower() == FOLDER_TYPE_FILTER:
        return True, False
    return False, True


def _folder_queryset(user: _User, query: ListingQuery) -> QuerySet[Folder]:
    queryset = Folder.objects.filter(user=user, parent_id=query.parent_id)
    search = (query.search or '').strip()
    if search:
        queryset = queryset.filter(name__icontains=search)
    bounds = _date_bounds(query.start_date, query.end_date)
    if bounds is not None:
        queryset = queryset.filter(created_at__range=bounds)
    return queryset.order_by('name', 'id')


def _file_queryset(user: _User, query: ListingQuery) -> QuerySet[File]:
    queryset = File.objects.filter(user=user, folder_id=query.parent_id)
    search = (query.search or '').strip()
    if search:
        queryset = queryset.filter(filename__icontains=search)
    mimetype = (query.mimetype or '').strip()
    if mimetype and mimetype.lower() != FOLDER_TYPE_FILTER:
        if '/' in mimetype:
            queryset = queryset.filter(mimetype=mimetype)
        else:
            # Family filter: 'image' matches every image/* type
            queryset = queryset.filter(mimetype__startswith=f'{mimetype}/')
    bounds = _date_bounds(query.start_date, query.end_date)
    if bounds is not None:
        queryset = queryset.filter(uploaded_at__range=bounds)
    return queryset.order_by('filename', 'id')


def _date_bounds(
    start_date: date | None,
    end_date: date | None,
) -> tuple[datetime, datetime] | None:
    """Inclusive datetime range covering whole days, None to skip."""
    if start_date is None or end_date is None:
        return None
    if start_date > end_date:
        logger.warning(
            'Start date %s is after end date %s, ignoring date filter',
            start_date,
            end_date,
        )
        return None
    tz = timezone.get_current_timezone()
    return (
        datetime.combine(start_date, time.min, tzinfo=tz),
        datetime.combine(end_date, time.max, tzinfo=tz),
    )
