"""Tests for the local thumbnail and remote upload pipelines."""

import logging
import os

import pytest
from botocore.exceptions import EndpointConnectionError
from PIL import Image

from server.apps.uploads.exceptions import (
    StoreError,
    TransformError,
    UploadError,
    UploadValidationError,
)
from server.apps.uploads.infrastructure.thumbnails import generate_thumbnail
from server.apps.uploads.infrastructure.uploader import RemoteObjectUploader
from server.apps.uploads.logic.intake import UploadedFile
from server.apps.uploads.logic.pipelines import (
    LocalThumbnailPipeline,
    RemoteUploadPipeline,
)
from server.apps.uploads.logic.repository import DjangoFileRecordRepository
from server.apps.uploads.logic.state import PipelineState
from server.apps.uploads.models import FileRecord


class _FailingRepository:
    def store(self, record):
        raise StoreError('database unavailable')


class _VanishingUploader:
    """Uploader whose staging file disappears right after upload."""

    def __init__(self, uploader):
        self.uploader = uploader

    def upload(self, local_path, public_id, tags=None, quality=60):
        descriptor = self.uploader.upload(local_path, public_id, tags, quality)
        os.remove(local_path)
        return descriptor


class _RaisingUploader:
    def __init__(self, error):
        self.error = error

    def upload(self, local_path, public_id, tags=None, quality=60):
        raise self.error


@pytest.fixture
def local_pipeline(ingestion_config):
    """Local pipeline with real thumbnails and ORM gateway.

    Returns:
        LocalThumbnailPipeline instance.
    """
    return LocalThumbnailPipeline(
        ingestion_config,
        DjangoFileRecordRepository(),
        generate_thumbnail,
    )


@pytest.fixture
def remote_pipeline(ingestion_config, remote_storage):
    """Remote pipeline bound to the mocked bucket.

    Returns:
        RemoteUploadPipeline instance.
    """
    return RemoteUploadPipeline(
        ingestion_config,
        DjangoFileRecordRepository(),
        RemoteObjectUploader(remote_storage),
    )


@pytest.mark.django_db
def test_local_pipeline_scenario(local_pipeline, staged_upload, upload_dir):
    """Test 800x600 cat.png for owner 42 gets a 317x262 thumbnail."""
    run = local_pipeline.run(staged_upload, owner_id=42)

    record = run.record
    assert run.state == PipelineState.DONE
    assert record.pk is not None
    assert record.origin_url.endswith('/image/cat.png')
    assert record.origin_url == 'http://testserver/image/cat.png'
    assert record.thumb_url == '262x317-cat.png'
    assert record.owner_id == 42
    assert record.provider_public_id == ''
    assert (record.width, record.height) == (800, 600)
    assert record.size_bytes == (upload_dir / 'cat.png').stat().st_size

    with Image.open(upload_dir / '262x317-cat.png') as thumbnail:
        assert thumbnail.size == (317, 262)


@pytest.mark.django_db
def test_local_pipeline_anonymous_upload(local_pipeline, staged_upload):
    """Test uploads without an owner are stored."""
    record = local_pipeline.run(staged_upload).record

    assert record.owner_id is None
    assert FileRecord.objects.get(pk=record.pk).owner_id is None


@pytest.mark.django_db
def test_local_pipeline_transform_failure(local_pipeline, upload_dir):
    """Test failed thumbnail stores nothing and keeps the staging file."""
    staging = upload_dir / 'broken.png'
    staging.write_bytes(b'not an image')

    with pytest.raises(TransformError) as exc_info:
        local_pipeline.run(UploadedFile.from_path(staging), owner_id=42)

    assert exc_info.value.cause is not None
    assert exc_info.value.status_code == 400
    assert FileRecord.objects.count() == 0
    assert staging.exists()
    assert not (upload_dir / '262x317-broken.png').exists()


@pytest.mark.django_db
def test_local_pipeline_store_failure(ingestion_config, staged_upload):
    """Test store failures propagate to the caller."""
    pipeline = LocalThumbnailPipeline(
        ingestion_config,
        _FailingRepository(),
        generate_thumbnail,
    )

    with pytest.raises(StoreError):
        pipeline.run(staged_upload, owner_id=42)


@pytest.mark.django_db
def test_local_pipeline_thumbnail_beside_staging_file(
    local_pipeline,
    make_image,
    tmp_path,
    upload_dir,
):
    """Test thumbnail is written next to the staging file."""
    staging_dir = tmp_path / 'incoming'
    staging_dir.mkdir()
    staging = staging_dir / 'cat.png'
    make_image('cat.png').replace(staging)

    record = local_pipeline.run(UploadedFile.from_path(staging)).record

    assert (staging_dir / '262x317-cat.png').exists()
    assert not (upload_dir / '262x317-cat.png').exists()
    assert record.size_bytes == staging.stat().st_size


@pytest.mark.django_db
def test_local_pipeline_unreadable_staging_file(ingestion_config, upload_dir):
    """Test a vanished staging file fails before any thumbnail is made."""
    generated = []

    def recording_generator(source, target, width, height):
        generated.append(target)
        return (width, height)

    pipeline = LocalThumbnailPipeline(
        ingestion_config,
        DjangoFileRecordRepository(),
        recording_generator,
    )
    upload = UploadedFile.from_path(upload_dir / 'gone.png')

    with pytest.raises(TransformError) as exc_info:
        pipeline.run(upload, owner_id=42)

    assert isinstance(exc_info.value.cause, FileNotFoundError)
    assert generated == []
    assert FileRecord.objects.count() == 0


@pytest.mark.django_db
def test_remote_pipeline_scenario(remote_pipeline, make_image, mock_s3):
    """Test logo.png with tag 'avatars' ends up remote, staging removed."""
    staging = make_image('logo.png', size=(64, 48))
    upload = UploadedFile.from_path(staging)

    run = remote_pipeline.run(upload, owner_id=None, tags=['avatars'])

    record = run.record
    assert run.state == PipelineState.DONE
    assert record.pk is not None
    assert record.provider_public_id.startswith('file/')
    assert record.provider_public_id.endswith('-logo.png')
    assert record.owner_id is None
    assert record.thumb_url == ''
    assert record.raw_provider_metadata
    assert record.get_provider_metadata()['tags'] == ['avatars']
    assert (record.width, record.height) == (64, 48)
    assert record.size_bytes > 0
    assert record.origin_url.endswith(record.provider_public_id)
    assert not staging.exists()

    stored = mock_s3.Object('uploads', record.provider_public_id)
    assert stored.content_length == record.size_bytes


@pytest.mark.django_db
def test_remote_pipeline_default_tag(remote_pipeline, make_image):
    """Test remote uploads without tags use the configured default."""
    upload = UploadedFile.from_path(make_image('logo.png'))

    record = remote_pipeline.run(upload, owner_id=7).record

    assert record.owner_id == 7
    assert record.get_provider_metadata()['tags'] == ['avatars']


@pytest.mark.django_db
def test_remote_pipeline_falsy_owner(remote_pipeline, make_image):
    """Test falsy owner ids are stored as anonymous."""
    upload = UploadedFile.from_path(make_image('logo.png'))

    record = remote_pipeline.run(upload, owner_id=0).record

    assert record.owner_id is None


@pytest.mark.django_db
def test_remote_pipeline_network_failure(ingestion_config, make_image):
    """Test failed remote call stores nothing and keeps the staging file."""
    staging = make_image('logo.png')
    error = UploadError(
        'file/1-logo.png',
        str(EndpointConnectionError(endpoint_url='https://s3.example.com')),
    )
    pipeline = RemoteUploadPipeline(
        ingestion_config,
        DjangoFileRecordRepository(),
        _RaisingUploader(error),
    )

    with pytest.raises(UploadError) as exc_info:
        pipeline.run(UploadedFile.from_path(staging), owner_id=42)

    assert exc_info.value is error
    assert FileRecord.objects.count() == 0
    assert staging.exists()


@pytest.mark.django_db
def test_remote_pipeline_store_failure_keeps_staging(
    ingestion_config,
    remote_storage,
    make_image,
    mock_s3,
):
    """Test store failure propagates, staging file and remote object stay."""
    staging = make_image('logo.png')
    pipeline = RemoteUploadPipeline(
        ingestion_config,
        _FailingRepository(),
        RemoteObjectUploader(remote_storage),
    )

    with pytest.raises(StoreError):
        pipeline.run(UploadedFile.from_path(staging))

    assert staging.exists()
    keys = [obj.key for obj in mock_s3.Bucket('uploads').objects.all()]
    assert len(keys) == 1
    assert keys[0].startswith('file/')


@pytest.mark.django_db
def test_remote_pipeline_cleanup_failure_is_not_fatal(
    ingestion_config,
    remote_storage,
    make_image,
    caplog,
):
    """Test a vanished staging file does not fail a stored upload."""
    staging = make_image('logo.png')
    upload = UploadedFile.from_path(staging)

    pipeline = RemoteUploadPipeline(
        ingestion_config,
        DjangoFileRecordRepository(),
        _VanishingUploader(RemoteObjectUploader(remote_storage)),
    )

    with caplog.at_level(logging.WARNING):
        run = pipeline.run(upload)

    assert run.state == PipelineState.DONE
    assert FileRecord.objects.filter(pk=run.record.pk).exists()
    assert 'Staging file left behind' in caplog.text


@pytest.mark.django_db
@pytest.mark.parametrize('pipeline_fixture', ['local_pipeline', 'remote_pipeline'])
def test_pipelines_reject_missing_file(request, pipeline_fixture):
    """Test both pipelines reject runs without an upload."""
    pipeline = request.getfixturevalue(pipeline_fixture)

    with pytest.raises(UploadValidationError) as exc_info:
        pipeline.run(None, owner_id=42)

    assert exc_info.value.code == 'missing_file'
    assert exc_info.value.status_code == 400
    assert FileRecord.objects.count() == 0


@pytest.mark.django_db
def test_persisted_records_use_exactly_one_pipeline(
    local_pipeline,
    remote_pipeline,
    make_image,
):
    """Test every stored record has a thumbnail xor provider id."""
    local_pipeline.run(UploadedFile.from_path(make_image('a.png')))
    remote_pipeline.run(UploadedFile.from_path(make_image('b.png')))

    for record in FileRecord.objects.all():
        assert bool(record.thumb_url) != bool(record.provider_public_id)
