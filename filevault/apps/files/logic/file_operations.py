"""Business logic for file operations."""

import base64
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, BinaryIO

from django.conf import settings
from django.core.files.uploadedfile import UploadedFile
from django.db import DatabaseError as DjangoDatabaseError
from django.db import IntegrityError, transaction

from filevault.apps.files.exceptions import (
    ConflictError,
    DatabaseError,
    FilesError,
    StorageError,
    ValidationError,
)
from filevault.apps.files.infrastructure.metadata import (
    get_file_extension,
    get_file_size,
    sanitize_upload_name,
    split_filename,
    validate_file_size,
    validate_mime_type,
)
from filevault.apps.files.infrastructure.storage import (
    ContentStorage,
    get_content_storage,
)
from filevault.apps.files.logic.access import (
    get_owned_file,
    metadata_errors,
    require_user,
)
from filevault.apps.files.logic.paths import join_uri, resolve_directory
from filevault.apps.files.logic.results import DeletionResult, ItemKind
from filevault.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)

_FILE_EXISTS_MESSAGE = 'File already exists, please alter file name'


@dataclass(frozen=True)
class UploadItem:
    """One file in an upload request."""

    stream: BinaryIO
    name: str
    mimetype: str | None
    size: int | None = None

    @classmethod
    def from_uploaded_file(cls, uploaded: UploadedFile) -> 'UploadItem':
        """Build an upload item from a Django request file."""
        return cls(
            stream=uploaded,  # type: ignore[arg-type]
            name=uploaded.name or '',
            mimetype=uploaded.content_type,
            size=uploaded.size,
        )


@dataclass(frozen=True)
class FileDownload:
    """Content of a single downloaded file."""

    content: bytes
    file_name: str
    file_id: int

    @property
    def base64_content(self) -> str:
        """Content encoded for the JSON transport."""
        return base64.b64encode(self.content).decode('ascii')


@dataclass(frozen=True)
class _PreparedUpload:
    item: UploadItem
    filename: str
    mimetype: str
    size: int


def upload_file(
    user: _User,
    parent_id: object | None,
    upload: UploadItem,
) -> File:
    """Upload a single file, see ``upload_files``.

    Returns:
        Created File instance.
    """
    return upload_files(user, parent_id, [upload])[0]


def upload_files(
    user: _User,
    parent_id: object | None,
    uploads: Sequence[UploadItem],
) -> list[File]:
    """Write uploaded files to storage and create their database records.

    Transaction safety: every file is validated before anything is
    written. Files are written one at a time, then all records are
    inserted in a single transaction. If any write or the insert fails,
    the files already written by this call are deleted (rollback).

    A name already used under the same parent (compared on the base
    name, extension ignored) gets a numeric suffix: report.pdf ->
    report-1.pdf.

    Args:
        user: Owner of the files.
        parent_id: Target folder id, None for the user's root.
        uploads: Files to upload.

    Returns:
        Created File instances, in upload order.

    Raises:
        AuthError: If there is no authenticated user.
        ValidationError: If a file is too large, of a disallowed type,
            or has an empty name after sanitization.
        NotFoundError: If the target folder is not found.
        ConflictError: If the final storage path is already taken.
        StorageError: If writing to storage fails.
        DatabaseError: If the records cannot be saved.
    """
    require_user(user)
    if not uploads:
        raise ValidationError('No file uploaded')

    prepared = [_prepare_upload(upload) for upload in uploads]
    parent, base_uri = resolve_directory(user, parent_id)
    storage = get_content_storage()

    try:
        storage.ensure_directory(base_uri)
    except OSError as error:
        logger.exception('Failed to create directory: %s', base_uri)
        raise StorageError('Failed to create directory') from error

    pending: list[File] = []
    try:
        for upload in prepared:
            pending.append(
                _write_upload(user, parent, base_uri, upload, pending, storage),
            )
    except FilesError:
        _rollback_uploads(storage, pending)
        raise

    return _insert_files(pending, storage)


def _prepare_upload(upload: UploadItem) -> _PreparedUpload:
    size = upload.size
    if size is None:
        size = get_file_size(upload.stream)
    validate_file_size(size, settings.FILES_MAX_UPLOAD_BYTES)
    mimetype = validate_mime_type(upload.mimetype)
    return _PreparedUpload(
        item=upload,
        filename=sanitize_upload_name(upload.name),
        mimetype=mimetype,
        size=size,
    )


def _write_upload(  # noqa: WPS211
    user: _User,
    parent: Folder | None,
    base_uri: str,
    upload: _PreparedUpload,
    pending: list[File],
    storage: ContentStorage,
) -> File:
    pending_names = {file_instance.filename for file_instance in pending}
    filename = next_available_filename(user, parent, upload.filename, pending_names)
    uri = join_uri(base_uri, filename)

    # In case name change resulted in duplicate file name
    if storage.exists(uri):
        raise ConflictError(_FILE_EXISTS_MESSAGE)

    try:
        storage.save(uri, upload.item.stream)
    except FileExistsError as error:
        raise ConflictError(_FILE_EXISTS_MESSAGE) from error
    except OSError as error:
        # A stream failing mid-write leaves a partial file behind
        storage.rollback_upload(uri)
        raise StorageError('Failed to write file') from error

    return File(
        user=user,
        folder=parent,
        filename=filename,
        extension=get_file_extension(filename),
        mimetype=upload.mimetype,
        file_size=upload.size,
        uri=uri,
    )


def next_available_filename(
    user: _User,
    parent: Folder | None,
    filename: str,
    reserved: set[str] | None = None,
) -> str:
    """Pick the stored filename for an upload.

    Counts sibling files whose base name equals the upload's base name
    and appends that count, moving on to the next free suffix if the
    result is itself taken.

    Args:
        user: Owner of the files.
        parent: Target folder, None for the user's root.
        filename: Sanitized upload filename.
        reserved: Names already claimed by the same upload call.

    Returns:
        Filename that no sibling uses.
    """
    base_name, suffix = split_filename(filename)
    with metadata_errors('Server error determining upload location.'):
        siblings = set(
            File.objects.filter(
                user=user,
                folder=parent,
                filename__startswith=base_name,
            ).values_list('filename', flat=True),
        )
    taken = siblings | (reserved or set())

    matches = sum(
        1 for name in taken if split_filename(name)[0] == base_name
    )
    if matches == 0:
        return filename

    counter = matches
    candidate = f'{base_name}-{counter}{suffix}'
    while candidate in taken:
        counter += 1
        candidate = f'{base_name}-{counter}{suffix}'
    return candidate


def _insert_files(pending: list[File], storage: ContentStorage) -> list[File]:
    try:
        with transaction.atomic():
            created = File.objects.bulk_create(pending)
    except IntegrityError as error:
        logger.exception('File records conflict, rolling back storage writes')
        _rollback_uploads(storage, pending)
        raise ConflictError(_FILE_EXISTS_MESSAGE) from error
    except DjangoDatabaseError as error:
        logger.exception('Database transaction failed, rolling back storage writes')
        _rollback_uploads(storage, pending)
        raise DatabaseError('Failed to save file records.') from error

    for file_instance in created:
        logger.info(
            'File record created in database: %s (ID: %s)',
            file_instance.uri,
            file_instance.id,
        )
    return created


def _rollback_uploads(storage: ContentStorage, pending: list[File]) -> None:
    for file_instance in pending:
        storage.rollback_upload(file_instance.uri)


def delete_file(user: _User, file_id: object) -> DeletionResult:
    """Delete file from database and storage.

    Args:
        user: Owner of the file.
        file_id: ID of file to delete.

    Returns:
        Deletion outcome. ``cleanup_error`` is set when the record is
        gone but the stored bytes could not be removed.

    Raises:
        AuthError: If there is no authenticated user.
        NotFoundError: If the file is not found.
        DatabaseError: If the record cannot be deleted.
    """
    require_user(user)
    return remove_file(get_owned_file(user, file_id))


def remove_file(file_instance: File) -> DeletionResult:
    """Delete an already resolved file from both stores.

    Transaction safety: delete DB record first, then the stored bytes.
    Bytes that are already gone count as removed.

    Args:
        file_instance: File to delete.

    Returns:
        Deletion outcome.

    Raises:
        DatabaseError: If the record cannot be deleted.
    """
    file_id = file_instance.id
    uri = file_instance.uri
    logger.info('Deleting file: ID=%d, path=%s', file_id, uri)

    try:
        with transaction.atomic():
            file_instance.delete()
    except DjangoDatabaseError as error:
        logger.exception('Failed to delete file from database: ID=%d', file_id)
        raise DatabaseError(f'Database error deleting file: {error}') from error
    logger.info('File record deleted from database: ID=%d', file_id)

    try:
        removed = get_content_storage().unlink(uri)
    except OSError as error:
        logger.exception('Failed to delete file from storage (orphaned): %s', uri)
        return DeletionResult(
            kind=ItemKind.FILE,
            item_id=file_id,
            name=file_instance.filename,
            storage_removed=False,
            cleanup_error=str(error),
        )

    return DeletionResult(
        kind=ItemKind.FILE,
        item_id=file_id,
        name=file_instance.filename,
        storage_removed=removed,
    )


def download_file(user: _User, file_id: object) -> FileDownload:
    """Read the stored bytes of a file.

    Args:
        user: Owner of the file.
        file_id: ID of file to download.

    Returns:
        FileDownload with content and original filename.

    Raises:
        AuthError: If there is no authenticated user.
        NotFoundError: If the file is not found.
        StorageError: If the stored bytes cannot be read.
    """
    require_user(user)
    file_instance = get_owned_file(user, file_id)
    storage = get_content_storage()

    try:
        with storage.open(file_instance.uri, 'rb') as handle:
            content = handle.read()
    except FileNotFoundError as error:
        logger.exception('File missing from storage: %s', file_instance.uri)
        raise StorageError('File not found on server during read.') from error
    except OSError as error:
        logger.exception('Failed to read file: %s', file_instance.uri)
        raise StorageError('Failed to process file download.') from error

    return FileDownload(
        content=content,
        file_name=file_instance.filename,
        file_id=file_instance.id,
    )
