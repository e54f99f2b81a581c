"""Response payloads handed to the transport layer.

Keys are camelCase, matching what the browser client consumes.
"""

from typing import Any

from filevault.apps.files.exceptions import FilesError, PartialFailure
from filevault.apps.files.logic.batch_operations import (
    ArchiveDownload,
    BatchResult,
    BatchStatus,
    ItemError,
    ItemSuccess,
)
from filevault.apps.files.logic.file_operations import FileDownload
from filevault.apps.files.logic.listing import ListingPage
from filevault.apps.files.logic.results import DeletionResult
from filevault.apps.files.models import File, Folder

_Payload = dict[str, Any]


def serialize_folder(folder: Folder) -> _Payload:
    """Folder record as sent to the client."""
    return {
        'id': folder.id,
        'userId': str(folder.user_id),
        'name': folder.name,
        'parentFolderId': folder.parent_id,
        'uri': folder.uri,
        'createdAt': folder.created_at.isoformat(),
    }


def serialize_file(file_instance: File) -> _Payload:
    """File record as sent to the client."""
    return {
        'id': file_instance.id,
        'userId': str(file_instance.user_id),
        'folderId': file_instance.folder_id,
        'filename': file_instance.filename,
        'extension': file_instance.extension,
        'mimetype': file_instance.mimetype,
        'fileSize': file_instance.file_size,
        'uploadedAt': file_instance.uploaded_at.isoformat(),
        'uri': file_instance.uri,
    }


def operation_payload(message: str) -> _Payload:
    """Successful create or upload."""
    return {'success': True, 'message': message}


def deletion_payload(result: DeletionResult) -> _Payload:
    """Single delete. The record is gone even when storage cleanup failed."""
    payload = {'success': True, 'message': result.message}
    if result.cleanup_error is not None:
        payload['warning'] = 'Storage cleanup failed.'
    return payload


def listing_payload(page: ListingPage) -> _Payload:
    """One page of the combined listing."""
    return {
        'folders': [serialize_folder(folder) for folder in page.folders],
        'files': [serialize_file(file_instance) for file_instance in page.files],
        'totalItems': page.total_items,
    }


def file_download_payload(download: FileDownload) -> _Payload:
    """Single file download."""
    return {
        'fileContent': download.base64_content,
        'fileName': download.file_name,
        'fileId': download.file_id,
    }


def archive_payload(download: ArchiveDownload) -> _Payload:
    """Batch download as a zip archive."""
    return {
        'fileContent': download.archive.base64_content,
        'fileName': download.archive.file_name,
    }


def batch_delete_payload(result: BatchResult) -> _Payload:
    """Batch delete summary with per-item detail when something failed."""
    payload: _Payload = {'message': result.message}
    if result.status is BatchStatus.PARTIAL:
        payload['successes'] = [_success_entry(entry) for entry in result.successes]
    if result.status is not BatchStatus.SUCCESS:
        payload['errors'] = [_error_entry(entry) for entry in result.errors]
    return payload


def error_payload(error: FilesError) -> _Payload:
    """Any failure, with batch detail for partial failures."""
    if isinstance(error, PartialFailure):
        return {'success': False, **batch_delete_payload(error.result)}
    return {'success': False, 'message': error.message}


def _success_entry(entry: ItemSuccess) -> _Payload:
    return {'item': entry.item.to_payload(), 'message': entry.message}


def _error_entry(entry: ItemError) -> _Payload:
    return {'item': entry.item.to_payload(), 'error': entry.error}
