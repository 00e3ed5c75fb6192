"""Uploader pushing local files to remote object storage."""

import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, final

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError
from django.core.files.base import ContentFile
from django.core.files.storage import storages
from PIL import Image

from server.apps.uploads.exceptions import UploadError

if TYPE_CHECKING:
    from server.apps.uploads.infrastructure.storage import RemoteObjectStorage

DEFAULT_TAG: Final = 'avatars'
DEFAULT_QUALITY: Final = 60
REMOTE_STORAGE_ALIAS: Final = 'remote'

# Formats whose encoders honour a quality setting
_LOSSY_FORMATS: Final = frozenset(('JPEG', 'WEBP'))

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ObjectDescriptor:
    """Object stored in remote storage, as reported by the provider."""

    url: str
    width: int
    height: int
    byte_size: int
    provider_public_id: str
    raw_metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Reject descriptors the provider reported incompletely.

        Raises:
            UploadError: If a field is empty or negative.
        """
        if not self.url or not self.provider_public_id:
            raise UploadError(
                self.provider_public_id,
                'provider returned no URL or public id',
            )
        if min(self.width, self.height, self.byte_size) < 0:
            raise UploadError(
                self.provider_public_id,
                'provider returned negative geometry or size',
            )


@dataclass(frozen=True, slots=True)
class _PreparedImage:
    payload: bytes
    width: int
    height: int
    image_format: str | None


@final
class RemoteObjectUploader:
    """Push local images to S3-compatible storage.

    The uploader never touches the local source beyond reading it;
    removing staging files is the caller's job.
    """

    def __init__(self, storage: 'RemoteObjectStorage | None' = None) -> None:
        """Initialize uploader.

        Args:
            storage: Storage backend, defaults to the 'remote' alias
                of Django's STORAGES setting.
        """
        self._storage = storage

    @property
    def storage(self) -> 'RemoteObjectStorage':
        """Storage backend objects are uploaded to."""
        if self._storage is None:
            self._storage = storages[REMOTE_STORAGE_ALIAS]  # type: ignore[assignment]
        return self._storage  # type: ignore[return-value]

    def upload(
        self,
        local_path: str | Path,
        public_id: str,
        tags: Sequence[str] | None = None,
        quality: int = DEFAULT_QUALITY,
    ) -> ObjectDescriptor:
        """Upload a local image under a public identifier.

        Args:
            local_path: Readable local image path.
            public_id: Key the object will be addressable under.
            tags: Tag labels, defaults to a single 'avatars' tag.
            quality: Compression quality hint for lossy formats.

        Returns:
            Descriptor of the stored object.

        Raises:
            UploadError: If the source cannot be read or the provider
                rejects or cannot be reached. A partially uploaded
                object is discarded before raising.
        """
        tag_list = list(dict.fromkeys(tags or [DEFAULT_TAG]))

        try:
            prepared = _prepare_image(Path(local_path), quality)
        except (OSError, Image.DecompressionBombError) as exc:
            logger.exception('Cannot read upload source: %s', local_path)
            raise UploadError(public_id, str(exc)) from exc

        storage = self.storage
        try:
            saved_name = storage.save(public_id, ContentFile(prepared.payload))
        except (Boto3Error, BotoCoreError, ClientError) as exc:
            logger.exception('Cannot store object: %s', public_id)
            raise UploadError(public_id, str(exc)) from exc

        try:
            storage.tag_object(saved_name, tag_list)
            head = storage.describe(saved_name)
            url = storage.url(saved_name)
        except (Boto3Error, BotoCoreError, ClientError) as exc:
            logger.exception('Cannot finish upload of %s', saved_name)
            storage.discard(saved_name)
            raise UploadError(public_id, str(exc)) from exc

        byte_size = int(head.get('ContentLength', len(prepared.payload)))
        raw_metadata = {
            'public_id': saved_name,
            'url': url,
            'width': prepared.width,
            'height': prepared.height,
            'format': prepared.image_format,
            'bytes': byte_size,
            'quality': quality,
            'tags': tag_list,
            'etag': head.get('ETag', '').strip('"'),
            'content_type': head.get('ContentType'),
            'last_modified': head.get('LastModified'),
        }
        logger.info('Uploaded %s as %s (%d bytes)', local_path, saved_name, byte_size)
        return ObjectDescriptor(
            url=url,
            width=prepared.width,
            height=prepared.height,
            byte_size=byte_size,
            provider_public_id=saved_name,
            raw_metadata=raw_metadata,
        )


def _prepare_image(path: Path, quality: int) -> _PreparedImage:
    """Read an image and apply the quality hint where it matters.

    Args:
        path: Local image path.
        quality: Compression quality for lossy formats.

    Returns:
        Bytes to upload with the image geometry.

    Raises:
        OSError: If the file cannot be read or decoded.
    """
    with Image.open(path) as image:
        width, height = image.size
        image_format = image.format
        if image_format not in _LOSSY_FORMATS:
            return _PreparedImage(path.read_bytes(), width, height, image_format)
        buffer = io.BytesIO()
        image.save(buffer, format=image_format, quality=quality, optimize=True)
    return _PreparedImage(buffer.getvalue(), width, height, image_format)
