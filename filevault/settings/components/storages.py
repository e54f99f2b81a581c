"""Django storage configuration for the content store.

User content lives on a local (or mounted) filesystem under a single
storage root. Every user owns the ``<root>/<user_id>/`` subtree.
"""

from typing import Any, Final

from filevault.settings.components import BASE_DIR, config

CONTENT_STORAGE_ROOT = config(
    'CONTENT_STORAGE_ROOT',
    default=str(BASE_DIR.joinpath('storage')),
)

# Storage configuration dictionary
# Filesystem storage for user content, default storage for static files
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'filevault.apps.files.infrastructure.storage.ContentStorage',
        'OPTIONS': {
            'location': CONTENT_STORAGE_ROOT,
            'file_permissions_mode': 0o640,
            'directory_permissions_mode': 0o750,
        },
    },
    'staticfiles': {
        # Keep static files separate from user files
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
