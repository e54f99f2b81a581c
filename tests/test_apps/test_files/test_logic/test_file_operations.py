"""Tests for file operations business logic."""

import base64
import io
from unittest import mock

import pytest
from django.core.files.base import ContentFile
from django.core.files.uploadedfile import SimpleUploadedFile
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
from filevault.apps.files.logic.file_operations import (
    UploadItem,
    delete_file,
    download_file,
    next_available_filename,
    upload_file,
    upload_files,
)
from filevault.apps.files.logic.folder_operations import create_folder
from filevault.apps.files.models import File


class _BrokenStream(io.BytesIO):
    """Stream that fails while being written to storage."""

    def read(self, *args, **kwargs):
        raise OSError('device not ready')


@pytest.mark.django_db
def test_upload_file_at_root(user, content_root, make_upload):
    """Test upload_file writes bytes and creates the record."""
    file_instance = upload_file(
        user,
        None,
        make_upload(content=b'%PDF', name='report.pdf', mimetype='application/pdf'),
    )

    assert file_instance.pk is not None
    assert file_instance.filename == 'report.pdf'
    assert file_instance.extension == 'pdf'
    assert file_instance.mimetype == 'application/pdf'
    assert file_instance.file_size == 4
    assert file_instance.folder is None
    assert file_instance.uri == f'{user.pk}/report.pdf'
    assert (content_root / str(user.pk) / 'report.pdf').read_bytes() == b'%PDF'


@pytest.mark.django_db
def test_upload_into_folder(user, content_root, make_upload):
    """Test uploads land in the folder's directory."""
    folder = create_folder(user, None, 'docs')

    file_instance = upload_file(user, folder.id, make_upload(name='a.txt'))

    assert file_instance.folder == folder
    assert file_instance.uri == f'{user.pk}/docs/a.txt'
    assert (content_root / str(user.pk) / 'docs' / 'a.txt').is_file()


@pytest.mark.django_db
def test_upload_download_round_trip(user, make_upload):
    """Test downloaded bytes equal uploaded bytes."""
    content = bytes(range(256)) * 4
    file_instance = upload_file(
        user,
        None,
        make_upload(content=content, name='blob.zip', mimetype='application/zip'),
    )

    download = download_file(user, file_instance.id)

    assert download.content == content
    assert download.file_name == 'blob.zip'
    assert download.file_id == file_instance.id
    assert base64.b64decode(download.base64_content) == content


@pytest.mark.django_db
def test_upload_duplicate_name_gets_suffix(user, make_upload):
    """Test a taken name gets the next numeric suffix."""
    pdf = {'mimetype': 'application/pdf', 'name': 'report.pdf'}
    upload_file(user, None, make_upload(**pdf))

    second = upload_file(user, None, make_upload(**pdf))
    third = upload_file(user, None, make_upload(**pdf))

    assert second.filename == 'report-1.pdf'
    assert third.filename == 'report-2.pdf'
    assert File.objects.filter(user=user).count() == 3


@pytest.mark.django_db
def test_upload_same_name_twice_in_one_call(user, make_upload):
    """Test names claimed earlier in the same call are not reused."""
    created = upload_files(
        user,
        None,
        [make_upload(name='a.txt'), make_upload(name='a.txt')],
    )

    assert [file_instance.filename for file_instance in created] == [
        'a.txt',
        'a-1.txt',
    ]


@pytest.mark.django_db
def test_upload_suffix_ignores_prefix_matches(user, make_upload):
    """Test only equal base names count as collisions."""
    upload_file(user, None, make_upload(name='report-final.txt'))

    file_instance = upload_file(user, None, make_upload(name='report.txt'))

    assert file_instance.filename == 'report.txt'


@pytest.mark.django_db
def test_upload_same_name_other_user(user, other_user, make_upload):
    """Test suffixing is scoped to the owner."""
    upload_file(other_user, None, make_upload(name='a.txt'))

    file_instance = upload_file(user, None, make_upload(name='a.txt'))

    assert file_instance.filename == 'a.txt'


@pytest.mark.django_db
def test_upload_sanitizes_name(user, make_upload):
    """Test declared names are sanitized before storing."""
    file_instance = upload_file(user, None, make_upload(name='my notes (1).txt'))

    assert file_instance.filename == 'my_notes_1.txt'


@pytest.mark.django_db
def test_upload_rejects_disallowed_type(user, content_root, make_upload):
    """Test disallowed MIME types are rejected before writing."""
    with pytest.raises(ValidationError) as exc_info:
        upload_file(
            user,
            None,
            make_upload(name='tool.exe', mimetype='application/x-msdownload'),
        )

    assert exc_info.value.message == 'Invalid file type'
    assert not File.objects.exists()
    assert not (content_root / str(user.pk)).exists()


@pytest.mark.django_db
def test_upload_rejects_oversized_file(user, settings, make_upload):
    """Test files above the size limit are rejected."""
    settings.FILES_MAX_UPLOAD_BYTES = 1024 * 1024

    with pytest.raises(ValidationError) as exc_info:
        upload_file(user, None, make_upload(content=b'x' * (1024 * 1024 + 1)))

    assert exc_info.value.message == 'File size exceeds the limit of 1MB'


@pytest.mark.django_db
def test_upload_validates_every_file_first(user, content_root, make_upload):
    """Test one invalid file stops the whole call before any write."""
    uploads = [
        make_upload(name='good.txt'),
        make_upload(name='bad.bin', mimetype='application/octet-stream'),
    ]

    with pytest.raises(ValidationError):
        upload_files(user, None, uploads)

    assert not File.objects.exists()
    assert not (content_root / str(user.pk)).exists()


@pytest.mark.django_db
def test_upload_requires_files(user):
    """Test an empty upload is rejected."""
    with pytest.raises(ValidationError) as exc_info:
        upload_files(user, None, [])

    assert exc_info.value.message == 'No file uploaded'


@pytest.mark.django_db
def test_upload_requires_user(make_upload):
    """Test uploads need an authenticated user."""
    with pytest.raises(AuthError):
        upload_file(None, None, make_upload())


@pytest.mark.django_db
def test_upload_into_foreign_folder(user, other_user, make_upload):
    """Test uploading into someone else's folder is not found."""
    foreign = create_folder(other_user, None, 'private')

    with pytest.raises(NotFoundError):
        upload_file(user, foreign.id, make_upload())


@pytest.mark.django_db
def test_upload_write_failure_rolls_back(user, content_root, make_upload):
    """Test a failed write removes the files already written by the call."""
    broken = UploadItem(
        stream=_BrokenStream(b'never read'),
        name='broken.txt',
        mimetype='text/plain',
        size=10,
    )

    with pytest.raises(StorageError) as exc_info:
        upload_files(user, None, [make_upload(name='first.txt'), broken])

    assert exc_info.value.message == 'Failed to write file'
    assert not File.objects.exists()
    assert list((content_root / str(user.pk)).iterdir()) == []


@pytest.mark.django_db
def test_upload_insert_failure_rolls_back(user, content_root, make_upload):
    """Test a failed insert removes every written file."""
    with mock.patch.object(
        File.objects,
        'bulk_create',
        side_effect=DjangoDatabaseError('insert failed'),
    ):
        with pytest.raises(DatabaseError) as exc_info:
            upload_files(
                user,
                None,
                [make_upload(name='a.txt'), make_upload(name='b.txt')],
            )

    assert exc_info.value.message == 'Failed to save file records.'
    assert list((content_root / str(user.pk)).iterdir()) == []


@pytest.mark.django_db
def test_upload_from_django_uploaded_file(user):
    """Test request files convert into upload items."""
    uploaded = SimpleUploadedFile(
        'photo.png',
        b'\x89PNG',
        content_type='image/png',
    )

    file_instance = upload_file(user, None, UploadItem.from_uploaded_file(uploaded))

    assert file_instance.filename == 'photo.png'
    assert file_instance.mimetype == 'image/png'
    assert file_instance.file_size == 4


@pytest.mark.django_db
def test_next_available_filename_free(user):
    """Test a free name is returned unchanged."""
    assert next_available_filename(user, None, 'report.pdf') == 'report.pdf'


@pytest.mark.django_db
def test_next_available_filename_skips_taken_suffix(user, make_upload):
    """Test the counter moves past suffixes that are already used."""
    upload_file(user, None, make_upload(name='a.txt'))
    upload_file(user, None, make_upload(name='a-1.txt'))

    # One sibling shares the base name 'a', so 'a-1.txt' is tried first
    assert next_available_filename(user, None, 'a.txt') == 'a-2.txt'


@pytest.mark.django_db
def test_delete_file(user, content_root, make_upload):
    """Test delete_file removes both the record and the bytes."""
    file_instance = upload_file(user, None, make_upload(name='a.txt'))

    result = delete_file(user, file_instance.id)

    assert result.ok
    assert result.message == 'Deleted file a.txt'
    assert not File.objects.exists()
    assert not (content_root / str(user.pk) / 'a.txt').exists()


@pytest.mark.django_db
def test_delete_file_twice(user, make_upload):
    """Test a second delete is not found and changes nothing."""
    file_instance = upload_file(user, None, make_upload())
    delete_file(user, file_instance.id)

    with pytest.raises(NotFoundError):
        delete_file(user, file_instance.id)


@pytest.mark.django_db
def test_delete_file_missing_bytes(user, storage, make_upload):
    """Test a record whose bytes are gone still deletes."""
    file_instance = upload_file(user, None, make_upload(name='a.txt'))
    storage.unlink(file_instance.uri)

    result = delete_file(user, file_instance.id)

    assert result.ok
    assert not result.storage_removed
    assert result.message == 'Deleted file a.txt (storage path already removed)'


@pytest.mark.django_db
def test_delete_file_storage_failure(user, make_upload):
    """Test a failed unlink is reported once the record is gone."""
    file_instance = upload_file(user, None, make_upload())

    with mock.patch.object(
        ContentStorage,
        'unlink',
        side_effect=PermissionError('denied'),
    ):
        result = delete_file(user, file_instance.id)

    assert not result.ok
    assert result.cleanup_error == 'denied'
    assert not File.objects.exists()


@pytest.mark.django_db
def test_delete_file_of_other_user(user, other_user, make_upload):
    """Test users cannot delete each other's files."""
    file_instance = upload_file(other_user, None, make_upload())

    with pytest.raises(NotFoundError):
        delete_file(user, file_instance.id)

    assert File.objects.filter(pk=file_instance.pk).exists()


@pytest.mark.django_db
def test_download_missing_bytes(user, storage, make_upload):
    """Test a record without bytes fails the download."""
    file_instance = upload_file(user, None, make_upload())
    storage.unlink(file_instance.uri)

    with pytest.raises(StorageError) as exc_info:
        download_file(user, file_instance.id)

    assert exc_info.value.message == 'File not found on server during read.'


@pytest.mark.django_db
def test_download_of_other_user(user, other_user, make_upload):
    """Test users cannot download each other's files."""
    file_instance = upload_file(other_user, None, make_upload())

    with pytest.raises(NotFoundError):
        download_file(user, file_instance.id)


@pytest.mark.django_db
def test_upload_racing_insert_is_conflict(user, content_root, make_upload):
    """Test a unique violation on insert is a conflict and removes the bytes."""
    with mock.patch.object(
        File.objects,
        'bulk_create',
        side_effect=IntegrityError('files_user_root_name_unique'),
    ):
        with pytest.raises(ConflictError) as exc_info:
            upload_file(user, None, make_upload(name='a.txt'))

    assert exc_info.value.message == 'File already exists, please alter file name'
    assert list((content_root / str(user.pk)).iterdir()) == []


@pytest.mark.django_db
def test_upload_onto_untracked_file_is_conflict(user, storage, make_upload):
    """Test bytes on disk without a record are never overwritten."""
    storage.save(f'{user.pk}/a.txt', ContentFile(b'untracked'))

    with pytest.raises(ConflictError) as exc_info:
        upload_file(user, None, make_upload(content=b'new', name='a.txt'))

    assert exc_info.value.message == 'File already exists, please alter file name'
    assert not File.objects.exists()
    with storage.open(f'{user.pk}/a.txt', 'rb') as handle:
        assert handle.read() == b'untracked'
