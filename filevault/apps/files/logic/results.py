"""Value objects shared by the file and folder operations."""

import enum
from dataclasses import dataclass


class ItemKind(enum.Enum):
    """Kind of item a user can select in the file manager."""

    FILE = 'file'
    FOLDER = 'folder'


@dataclass(frozen=True, slots=True)
class DeletionResult:
    """Outcome of deleting one file or folder.

    The metadata record is always gone when a result exists. Content
    removal is reported separately because it can fail independently.
    """

    kind: ItemKind
    item_id: int
    name: str
    storage_removed: bool
    cleanup_error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether both stores were cleaned up."""
        return self.cleanup_error is None

    @property
    def message(self) -> str:
        """User-facing summary of the deletion."""
        noun = self.kind.value
        if self.cleanup_error is not None:
            return (
                f'DB record deleted, but failed to delete {noun} '
                f'from storage: {self.cleanup_error}'
            )
        if not self.storage_removed:
            return f'Deleted {noun} {self.name} (storage path already removed)'
        if self.kind is ItemKind.FOLDER:
            return f'Deleted folder {self.name} and its contents'
        return f'Deleted file {self.name}'
