"""Shared fixtures for uploads app tests."""

from pathlib import Path

import boto3
import pytest
from moto import mock_aws
from PIL import Image

from server.apps.uploads.infrastructure.storage import RemoteObjectStorage
from server.apps.uploads.logic.config import IngestionConfig
from server.apps.uploads.logic.intake import UploadedFile

TEST_BUCKET = 'uploads'


@pytest.fixture
def upload_dir(tmp_path):
    """Directory staging files land in.

    Returns:
        Existing temporary directory.
    """
    directory = tmp_path / 'uploads'
    directory.mkdir()
    return directory


@pytest.fixture
def make_image(upload_dir):
    """Factory writing test images into the upload directory.

    Returns:
        Callable (name, size, image_format, mode) -> Path.
    """
    def factory(
        name: str,
        size: tuple[int, int] = (800, 600),
        image_format: str = 'PNG',
        mode: str = 'RGB',
    ) -> Path:
        path = upload_dir / name
        Image.new(mode, size, color='red').save(path, format=image_format)
        return path

    return factory


@pytest.fixture
def staged_upload(make_image):
    """800x600 PNG landed by the transport as 'cat.png'.

    Returns:
        UploadedFile describing the staging file.
    """
    return UploadedFile.from_path(make_image('cat.png'))


@pytest.fixture
def ingestion_config(upload_dir):
    """Ingestion configuration pointing at the upload directory.

    Returns:
        IngestionConfig with the default thumbnail profile.
    """
    return IngestionConfig(
        server_url='http://testserver',
        upload_location=upload_dir,
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with uploads bucket.

    Yields:
        boto3 S3 resource with uploads bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=TEST_BUCKET)
        yield conn


@pytest.fixture
def remote_storage(mock_s3):
    """Remote storage backend bound to the mocked bucket.

    Returns:
        RemoteObjectStorage instance.
    """
    return RemoteObjectStorage(
        bucket_name=TEST_BUCKET,
        access_key='testing',
        secret_key='testing',
        region_name='us-east-1',
        file_overwrite=False,
        querystring_auth=False,
    )
