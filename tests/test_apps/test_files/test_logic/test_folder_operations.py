"""Tests for folder operations business logic."""

from unittest import mock

import pytest
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError as DjangoDatabaseError
from django.db import IntegrityError

from filevault.apps.files.exceptions import (
    AuthError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from filevault.apps.files.infrastructure.storage import ContentStorage
from filevault.apps.files.logic.file_operations import upload_file
from filevault.apps.files.logic.folder_operations import (
    create_folder,
    delete_folder,
    get_folder_context,
)
from filevault.apps.files.models import File, Folder


@pytest.mark.django_db
def test_create_folder_at_root(user, content_root):
    """Test create_folder writes both the directory and the record."""
    folder = create_folder(user, None, 'Projects')

    assert folder.name == 'Projects'
    assert folder.parent is None
    assert folder.uri == f'{user.pk}/Projects'
    assert (content_root / str(user.pk) / 'Projects').is_dir()


@pytest.mark.django_db
def test_create_nested_folder(user, content_root):
    """Test nested folders live below their parent's directory."""
    parent = create_folder(user, None, 'a')

    child = create_folder(user, parent.id, 'b')

    assert child.parent == parent
    assert child.uri == f'{user.pk}/a/b'
    assert (content_root / str(user.pk) / 'a' / 'b').is_dir()


@pytest.mark.django_db
def test_create_folder_sanitizes_name(user):
    """Test the stored name is the sanitized one."""
    folder = create_folder(user, None, ' Tax  Docs 2024! ')

    assert folder.name == 'Tax_Docs_2024'


@pytest.mark.django_db
def test_create_folder_rejects_sibling_duplicate(user):
    """Test a second folder with the same name is a conflict."""
    create_folder(user, None, 'docs')

    with pytest.raises(ConflictError) as exc_info:
        create_folder(user, None, 'docs')

    assert exc_info.value.message == (
        'A folder with this name already exists in this location.'
    )
    assert Folder.objects.count() == 1


@pytest.mark.django_db
def test_create_folder_rejects_orphaned_directory(user, storage):
    """Test an untracked directory on disk blocks the create."""
    storage.ensure_directory(f'{user.pk}/stale')

    with pytest.raises(ConflictError) as exc_info:
        create_folder(user, None, 'stale')

    assert 'already exists at the target location on disk' in (
        exc_info.value.message
    )
    assert not Folder.objects.exists()


@pytest.mark.django_db
def test_create_folder_rejects_empty_name(user):
    """Test names empty after sanitization are rejected."""
    with pytest.raises(ValidationError):
        create_folder(user, None, '%%%')

    assert not Folder.objects.exists()


@pytest.mark.django_db
def test_create_folder_requires_user():
    """Test anonymous requests are rejected."""
    with pytest.raises(AuthError):
        create_folder(AnonymousUser(), None, 'docs')


@pytest.mark.django_db
def test_create_folder_foreign_parent(user, other_user):
    """Test a parent owned by someone else is not found."""
    foreign = create_folder(other_user, None, 'private')

    with pytest.raises(NotFoundError):
        create_folder(user, foreign.id, 'x')


@pytest.mark.django_db
def test_create_folder_storage_failure(user):
    """Test a directory failure is a StorageError and leaves no record."""
    with mock.patch.object(
        ContentStorage,
        'make_directory',
        side_effect=PermissionError('denied'),
    ):
        with pytest.raises(StorageError) as exc_info:
            create_folder(user, None, 'docs')

    assert exc_info.value.message == 'Failed to create folder directory on server.'
    assert not Folder.objects.exists()


@pytest.mark.django_db
def test_create_folder_rolls_back_directory(user, content_root):
    """Test a failed insert removes the just-created directory."""
    with mock.patch.object(
        Folder.objects,
        'create',
        side_effect=DjangoDatabaseError('insert failed'),
    ):
        with pytest.raises(DatabaseError) as exc_info:
            create_folder(user, None, 'docs')

    assert exc_info.value.message == 'Failed to save folder record.'
    assert not (content_root / str(user.pk) / 'docs').exists()


@pytest.mark.django_db
def test_delete_folder_cascades(user, content_root, make_upload):
    """Test deleting a folder removes descendants from both stores."""
    top = create_folder(user, None, 'top')
    child = create_folder(user, top.id, 'child')
    upload_file(user, child.id, make_upload(name='a.txt'))
    upload_file(user, top.id, make_upload(name='b.txt'))

    result = delete_folder(user, top.id)

    assert result.ok
    assert result.storage_removed
    assert result.message == 'Deleted folder top and its contents'
    assert not Folder.objects.filter(user=user).exists()
    assert not File.objects.filter(user=user).exists()
    assert not (content_root / str(user.pk) / 'top').exists()


@pytest.mark.django_db
def test_delete_folder_twice(user):
    """Test a second delete of the same folder is not found."""
    folder = create_folder(user, None, 'docs')
    delete_folder(user, folder.id)

    with pytest.raises(NotFoundError):
        delete_folder(user, folder.id)


@pytest.mark.django_db
def test_delete_folder_missing_directory(user, storage):
    """Test a record whose directory is gone still deletes."""
    folder = create_folder(user, None, 'docs')
    storage.remove_tree(folder.uri)

    result = delete_folder(user, folder.id)

    assert result.ok
    assert not result.storage_removed
    assert result.message == 'Deleted folder docs (storage path already removed)'
    assert not Folder.objects.exists()


@pytest.mark.django_db
def test_delete_folder_storage_failure(user):
    """Test a failed directory removal is reported after the record is gone."""
    folder = create_folder(user, None, 'docs')

    with mock.patch.object(
        ContentStorage,
        'remove_tree',
        side_effect=PermissionError('denied'),
    ):
        result = delete_folder(user, folder.id)

    assert not result.ok
    assert result.cleanup_error == 'denied'
    assert result.message.startswith(
        'DB record deleted, but failed to delete folder from storage',
    )
    assert not Folder.objects.exists()


@pytest.mark.django_db
def test_delete_folder_of_other_user(user, other_user, content_root):
    """Test users cannot delete each other's folders."""
    folder = create_folder(other_user, None, 'private')

    with pytest.raises(NotFoundError):
        delete_folder(user, folder.id)

    assert Folder.objects.filter(pk=folder.pk).exists()
    assert (content_root / str(other_user.pk) / 'private').is_dir()


@pytest.mark.django_db
def test_get_folder_context(user):
    """Test the breadcrumb trail of a nested folder."""
    top = create_folder(user, None, 'a')
    middle = create_folder(user, top.id, 'b')
    leaf = create_folder(user, middle.id, 'c')

    context = get_folder_context(user, leaf.id)

    assert context.folder == leaf
    assert context.ancestors == [top, middle]


@pytest.mark.django_db
def test_get_folder_context_root(user):
    """Test the root has no folder and no ancestors."""
    context = get_folder_context(user, None)

    assert context.folder is None
    assert context.ancestors == []


@pytest.mark.django_db
def test_create_folder_racing_insert_is_conflict(user, content_root):
    """Test a unique violation on insert is a conflict and removes the directory."""
    with mock.patch.object(
        Folder.objects,
        'create',
        side_effect=IntegrityError('folders_user_root_name_unique'),
    ):
        with pytest.raises(ConflictError) as exc_info:
            create_folder(user, None, 'docs')

    assert exc_info.value.message == (
        'A folder with this name already exists in this location.'
    )
    assert not (content_root / str(user.pk) / 'docs').exists()
    assert not Folder.objects.exists()
