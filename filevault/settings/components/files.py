"""File manager settings."""

from filevault.settings.components import config

# Uploads above this size are rejected (100 MiB)
FILES_MAX_UPLOAD_BYTES = config(
    'FILES_MAX_UPLOAD_BYTES',
    cast=int,
    default=100 * 1024 * 1024,
)

# Listing pagination
FILES_DEFAULT_PAGE_SIZE = config('FILES_DEFAULT_PAGE_SIZE', cast=int, default=15)
FILES_MAX_PAGE_SIZE = config('FILES_MAX_PAGE_SIZE', cast=int, default=100)

# Batch download archives
FILES_ARCHIVE_COMPRESSION_LEVEL = config(
    'FILES_ARCHIVE_COMPRESSION_LEVEL',
    cast=int,
    default=3,
)
