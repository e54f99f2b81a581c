"""Shared fixtures for files app tests."""

import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile

from filevault.apps.files.infrastructure.storage import get_content_storage
from filevault.apps.files.logic.file_operations import UploadItem

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture(autouse=True)
def content_root(settings, tmp_path):
    """Point the content store at a fresh temporary directory.

    Returns:
        Path of the storage root.
    """
    root = tmp_path / 'storage'
    root.mkdir()
    settings.STORAGES = {
        **settings.STORAGES,
        'default': {
            'BACKEND': 'filevault.apps.files.infrastructure.storage.ContentStorage',
            'OPTIONS': {'location': str(root)},
        },
    }
    return root


@pytest.fixture
def storage(content_root):
    """Content storage rooted at ``content_root``.

    Returns:
        ContentStorage instance.
    """
    return get_content_storage()


@pytest.fixture
def make_upload():
    """Factory for upload items.

    Returns:
        Callable building an UploadItem from bytes.
    """
    def factory(
        content: bytes = b'test file content',
        name: str = 'test.txt',
        mimetype: str = 'text/plain',
    ) -> UploadItem:
        return UploadItem(
            stream=ContentFile(content, name=name),
            name=name,
            mimetype=mimetype,
            size=len(content),
        )
    return factory
