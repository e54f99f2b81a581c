"""Name and upload metadata utilities for files."""

import re
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Final

from filevault.apps.files.exceptions import ValidationError

_WHITESPACE_RE: Final = re.compile(r'\s+')
_DISALLOWED_CHARS_RE: Final = re.compile(r'[^A-Za-z0-9._-]')
_RESERVED_NAMES: Final = frozenset(('.', '..'))

# Declared MIME types accepted for upload
ALLOWED_MIME_TYPES: Final = frozenset((
    'application/zip',
    'application/x-rar-compressed',
    'application/x-tar',
    'application/gzip',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/msword',
    'application/pdf',
    'audio/mpeg',
    'audio/wav',
    'audio/ogg',
    'audio/opus',
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/bmp',
    'image/tiff',
    'image/svg+xml',
    'image/webp',
    'text/css',
    'text/html',
    'application/x-httpd-php',
    'text/x-c',
    'text/x-c++',
    'text/x-h',
    'text/x-h++',
    'application/javascript',
    'text/x-java-source',
    'text/x-python',
    'text/plain',
    'video/webm',
    'video/mp4',
    'video/3gpp',
    'video/quicktime',
    'video/x-msvideo',
    'video/mpeg',
    'video/x-ms-wmv',
    'video/x-flv',
    'video/ogg',
))


def sanitize_name(raw_name: str) -> str:
    """Turn a user supplied name into a safe path segment.

    Trims surrounding whitespace, replaces inner whitespace runs with
    ``_`` and strips every character outside ``[A-Za-z0-9._-]``.

    Args:
        raw_name: Name as typed by the user.

    Returns:
        Sanitized name (e.g., ' my report!.pdf ' -> 'my_report.pdf').

    Raises:
        ValidationError: If nothing usable is left.
    """
    collapsed = _WHITESPACE_RE.sub('_', raw_name.strip())
    sanitized = _DISALLOWED_CHARS_RE.sub('', collapsed)
    if not sanitized or sanitized in _RESERVED_NAMES:
        raise ValidationError(
            'Name contains invalid characters or is empty after sanitization.',
        )
    return sanitized


def sanitize_upload_name(declared_name: str) -> str:
    """Sanitize a declared upload filename.

    Browsers may send a client side path, only its last segment is kept.

    Args:
        declared_name: Filename declared by the client.

    Returns:
        Sanitized filename.
    """
    basename = PurePosixPath(declared_name.replace('\\', '/')).name
    return sanitize_name(basename)


def validate_mime_type(mimetype: str | None) -> str:
    """Check a declared MIME type against the allow-list.

    Args:
        mimetype: Declared MIME type.

    Returns:
        The MIME type, unchanged.

    Raises:
        ValidationError: If the type is missing or not allowed.
    """
    if not mimetype or mimetype not in ALLOWED_MIME_TYPES:
        raise ValidationError('Invalid file type')
    return mimetype


def validate_file_size(size_bytes: int, max_bytes: int) -> None:
    """Reject uploads above the size limit.

    Args:
        size_bytes: Upload size in bytes.
        max_bytes: Largest accepted size in bytes.

    Raises:
        ValidationError: If the upload is too large.
    """
    if size_bytes > max_bytes:
        limit_mib = max_bytes // (1024 * 1024)
        raise ValidationError(f'File size exceeds the limit of {limit_mib}MB')


def get_file_size(file_obj: BinaryIO) -> int:
    """Get file size from file object.

    Args:
        file_obj: File-like object.

    Returns:
        File size in bytes.
    """
    size = getattr(file_obj, 'size', None)
    if size is not None:
        return size
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size


def split_filename(filename: str) -> tuple[str, str]:
    """Split filename into base name and suffix.

    Example: 'report.pdf' -> ('report', '.pdf')

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Base name and suffix including the dot ('' if none).
    """
    path = Path(filename)
    return path.stem, path.suffix


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = Path(filename).suffix
    return extension.lstrip('.').lower()


def validate_storage_path(user_id: object, storage_path: str) -> None:
    """Validate storage path follows user isolation rules.

    Ensures the storage path starts with the user's ID to maintain
    multi-user isolation. This is a critical security check.

    Args:
        user_id: Owner's user ID.
        storage_path: Proposed storage path.

    Raises:
        ValidationError: If path doesn't start with user_id or is invalid.
    """
    path_parts = PurePosixPath(storage_path).parts
    if not path_parts:
        raise ValidationError('Storage path cannot be empty')

    if '..' in path_parts or PurePosixPath(storage_path).is_absolute():
        raise ValidationError('Storage path must be relative to the user root')

    if path_parts[0] != str(user_id):
        raise ValidationError(
            f'Storage path owner ({path_parts[0]}) does not match '
            f'user ({user_id})',
        )
