"""Batch delete and batch download over mixed files and folders.

Items are processed one at a time in request order. A failing item
never stops the batch; the overall outcome is decided once every item
has been handled.
"""

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, assert_never

from filevault.apps.files.exceptions import (
    FilesError,
    NotFoundError,
    PartialFailure,
    StorageError,
    ValidationError,
)
from filevault.apps.files.logic.access import (
    get_owned_file,
    get_owned_folder,
    require_user,
)
from filevault.apps.files.logic.archive import Archive, ArchiveEntry, build_archive
from filevault.apps.files.logic.file_operations import remove_file
from filevault.apps.files.logic.folder_operations import remove_folder
from filevault.apps.files.logic.paths import archive_entry_name, user_root_uri
from filevault.apps.files.logic.results import DeletionResult, ItemKind

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BatchItem:
    """A file or folder selected by the user."""

    id: int
    kind: ItemKind
    name: str = ''

    def to_payload(self) -> dict[str, object]:
        """Transport representation, mirrors the request shape."""
        return {'id': self.id, 'type': self.kind.value, 'name': self.name}


class BatchStatus(enum.Enum):
    """Overall outcome of a batch."""

    SUCCESS = 'success'
    FAILURE = 'failure'
    PARTIAL = 'partial'


@dataclass(frozen=True, slots=True)
class ItemSuccess:
    """Item that was processed."""

    item: BatchItem
    message: str


@dataclass(frozen=True, slots=True)
class ItemError:
    """Item that failed, with the reason."""

    item: BatchItem
    error: str
    error_class: type[FilesError] = FilesError


@dataclass
class BatchResult:
    """Per-item outcomes of a batch delete."""

    successes: list[ItemSuccess] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)

    @property
    def status(self) -> BatchStatus:
        """Classify the batch once every item is processed."""
        if not self.errors:
            return BatchStatus.SUCCESS
        if not self.successes:
            return BatchStatus.FAILURE
        return BatchStatus.PARTIAL

    @property
    def message(self) -> str:
        """User-facing summary with counts."""
        match self.status:
            case BatchStatus.SUCCESS:
                return f'Successfully deleted {len(self.successes)} item(s).'
            case BatchStatus.FAILURE:
                if self._all_not_found():
                    return (
                        'Could not find or access any of the selected '
                        'items for deletion.'
                    )
                return 'Failed to delete the selected item(s).'
            case BatchStatus.PARTIAL:
                return (
                    f'Partially completed: Deleted {len(self.successes)} '
                    f'item(s), failed to delete {len(self.errors)} item(s).'
                )
            case _:
                assert_never(self.status)

    def raise_for_status(self) -> None:
        """Raise unless every item succeeded.

        Raises:
            PartialFailure: If some items failed.
            FilesError: If every item failed, using the shared error
                class of the failures where there is one.
        """
        match self.status:
            case BatchStatus.SUCCESS:
                return
            case BatchStatus.PARTIAL:
                raise PartialFailure(self)
            case BatchStatus.FAILURE:
                error_classes = {error.error_class for error in self.errors}
                error_class = FilesError
                if len(error_classes) == 1:
                    error_class = error_classes.pop()
                raise error_class(self.message)
            case _:
                assert_never(self.status)

    def _all_not_found(self) -> bool:
        return all(
            issubclass(error.error_class, NotFoundError)
            for error in self.errors
        )


@dataclass(frozen=True)
class ArchiveDownload:
    """Batch download result: the archive plus the items left out."""

    archive: Archive
    skipped: list[ItemError] = field(default_factory=list)


def parse_batch_items(raw_items: object) -> list[BatchItem]:
    """Parse transport dicts ``{id, type, name}`` into batch items.

    Args:
        raw_items: Decoded request body value.

    Returns:
        Batch items in request order.

    Raises:
        ValidationError: If the value is not a non-empty list of valid
            items.
    """
    if not isinstance(raw_items, list):
        raise ValidationError('Invalid request body: "items" array not found.')
    if not raw_items:
        raise ValidationError('No items specified.')

    items = []
    for raw_item in raw_items:
        if not isinstance(raw_item, dict):
            raise ValidationError('Invalid item in request body.')
        try:
            kind = ItemKind(raw_item.get('type'))
        except ValueError as error:
            raise ValidationError(
                f'Unknown item type "{raw_item.get("type")}"',
            ) from error
        try:
            item_id = int(raw_item['id'])
        except (KeyError, TypeError, ValueError) as error:
            raise ValidationError('Invalid item id in request body.') from error
        items.append(
            BatchItem(id=item_id, kind=kind, name=str(raw_item.get('name', ''))),
        )
    return items


def delete_items(user: _User, items: Sequence[BatchItem]) -> BatchResult:
    """Delete a list of files and folders, collecting per-item outcomes.

    Args:
        user: Owner of the items.
        items: Items to delete, processed in order.

    Returns:
        BatchResult classifying the batch as success, failure or partial.

    Raises:
        AuthError: If there is no authenticated user.
        ValidationError: If no items are given.
    """
    require_user(user)
    if not items:
        raise ValidationError('No items specified for deletion.')

    result = BatchResult()
    for item in items:
        try:
            deletion = _delete_item(user, item)
        except FilesError as error:
            logger.warning(
                'Failed to delete %s %s (ID: %d): %s',
                item.kind.value,
                item.name,
                item.id,
                error.message,
            )
            result.errors.append(ItemError(item, error.message, type(error)))
            continue

        if deletion.ok:
            result.successes.append(ItemSuccess(item, deletion.message))
        else:
            result.errors.append(ItemError(item, deletion.message, StorageError))

    logger.info(
        'Batch delete for user %s: %d succeeded, %d failed',
        user.pk,
        len(result.successes),
        len(result.errors),
    )
    return result


def _delete_item(user: _User, item: BatchItem) -> DeletionResult:
    match item.kind:
        case ItemKind.FILE:
            return remove_file(get_owned_file(user, item.id))
        case ItemKind.FOLDER:
            return remove_folder(get_owned_folder(user, item.id))
        case _:
            assert_never(item.kind)


def download_items(user: _User, items: Sequence[BatchItem]) -> ArchiveDownload:
    """Collect files and folders into a zip archive.

    Items that cannot be resolved are skipped with a warning.

    Args:
        user: Owner of the items.
        items: Items to include, processed in order.

    Returns:
        ArchiveDownload with the archive and the skipped items.

    Raises:
        AuthError: If there is no authenticated user.
        ValidationError: If no items are given or none could be added.
        StorageError: If the archive cannot be written.
    """
    require_user(user)
    if not items:
        raise ValidationError('No items specified for download.')

    entries: list[ArchiveEntry] = []
    skipped: list[ItemError] = []
    for item in items:
        try:
            entries.append(_archive_entry(user, item))
        except FilesError as error:
            logger.warning(
                'Skipping %s %s (ID: %d) in download: %s',
                item.kind.value,
                item.name,
                item.id,
                error.message,
            )
            skipped.append(ItemError(item, error.message, type(error)))

    archive = build_archive(
        entries,
        temp_prefix=f'{user_root_uri(user)}-temp-download-',
    )
    return ArchiveDownload(archive=archive, skipped=skipped)


def _archive_entry(user: _User, item: BatchItem) -> ArchiveEntry:
    match item.kind:
        case ItemKind.FILE:
            uri = get_owned_file(user, item.id).uri
        case ItemKind.FOLDER:
            uri = get_owned_folder(user, item.id).uri
        case _:
            assert_never(item.kind)
    return ArchiveEntry(
        uri=uri,
        kind=item.kind,
        entry_name=archive_entry_name(user, uri),
    )
