"""Tests for path resolution."""

import os

import pytest

from filevault.apps.files.exceptions import NotFoundError, ValidationError
from filevault.apps.files.logic.paths import (
    archive_entry_name,
    path_exists,
    resolve_directory,
    resolve_path,
)
from filevault.apps.files.models import Folder


@pytest.mark.django_db
def test_resolve_path_at_root(user, content_root):
    """Test a root item resolves under the user's directory."""
    resolved = resolve_path(user, ' My Docs ')

    assert resolved.name == 'My_Docs'
    assert resolved.uri == f'{user.pk}/My_Docs'
    assert resolved.parent is None
    assert resolved.absolute_path == os.path.join(
        str(content_root), str(user.pk), 'My_Docs',
    )


@pytest.mark.django_db
def test_resolve_path_under_parent(user):
    """Test a nested item resolves under the parent's uri."""
    parent = Folder.objects.create(user=user, name='docs', uri=f'{user.pk}/docs')

    resolved = resolve_path(user, 'reports', parent.id)

    assert resolved.uri == f'{user.pk}/docs/reports'
    assert resolved.parent == parent


@pytest.mark.django_db
def test_resolve_path_rejects_foreign_parent(user, other_user):
    """Test a parent owned by someone else is reported as not found."""
    foreign = Folder.objects.create(
        user=other_user,
        name='private',
        uri=f'{other_user.pk}/private',
    )

    with pytest.raises(NotFoundError):
        resolve_path(user, 'x', foreign.id)


@pytest.mark.django_db
def test_resolve_path_rejects_unusable_name(user):
    """Test names that sanitize to nothing are rejected."""
    with pytest.raises(ValidationError):
        resolve_path(user, '***')


@pytest.mark.django_db
def test_resolve_directory_root(user):
    """Test the root directory has no parent folder."""
    assert resolve_directory(user, None) == (None, str(user.pk))


@pytest.mark.django_db
def test_resolve_directory_malformed_id(user):
    """Test a malformed parent id is reported as not found."""
    with pytest.raises(NotFoundError):
        resolve_directory(user, 'abc')


def test_path_exists(tmp_path):
    """Test path_exists sees files and directories."""
    target = tmp_path / 'entry'
    assert not path_exists(str(target))

    target.mkdir()
    assert path_exists(str(target))


@pytest.mark.django_db
def test_archive_entry_name_strips_user_prefix(user):
    """Test archive names are relative to the user's root."""
    assert archive_entry_name(user, f'{user.pk}/docs/a.txt') == 'docs/a.txt'
    assert archive_entry_name(user, 'other/a.txt') == 'other/a.txt'
