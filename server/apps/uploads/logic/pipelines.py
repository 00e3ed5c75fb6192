"""Ingestion pipelines turning an upload into a persisted file record."""

import json
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol, final

from django.core.serializers.json import DjangoJSONEncoder

from server.apps.uploads.exceptions import (
    CleanupError,
    StoreError,
    TransformError,
    UploadError,
    UploadValidationError,
)
from server.apps.uploads.infrastructure.metadata import (
    build_public_id,
    derivative_name,
)
from server.apps.uploads.infrastructure.staging import remove_staging_file
from server.apps.uploads.infrastructure.uploader import ObjectDescriptor
from server.apps.uploads.logic.config import IngestionConfig
from server.apps.uploads.logic.intake import UploadedFile
from server.apps.uploads.logic.repository import FileRecordRepository
from server.apps.uploads.logic.state import PipelineRun, PipelineState
from server.apps.uploads.models import FileKind, FileRecord, PipelineKind

# generate_thumbnail(source_path, target_path, width, height)
ThumbnailGenerator = Callable[[Path, Path, int, int], tuple[int, int]]

logger = logging.getLogger(__name__)


class ObjectUploader(Protocol):
    """Client pushing local files to remote object storage."""

    def upload(
        self,
        local_path: str | Path,
        public_id: str,
        tags: Sequence[str] | None = None,
        quality: int = 60,
    ) -> ObjectDescriptor:
        """Upload a file and describe the stored object."""


class Pipeline(Protocol):
    """One strategy for turning an upload into a file record."""

    kind: PipelineKind

    def run(
        self,
        upload: UploadedFile | None,
        *,
        owner_id: int | None = None,
        tags: Sequence[str] | None = None,
    ) -> PipelineRun:
        """Process the upload and persist its record."""


def _validate(run: PipelineRun, upload: UploadedFile | None) -> UploadedFile:
    """Reject runs without an upload.

    Args:
        run: Current run.
        upload: Upload handed over by the transport.

    Returns:
        The upload.

    Raises:
        UploadValidationError: If no upload was supplied.
    """
    if upload is None:
        error = UploadValidationError()
        run.fail(str(error))
        logger.warning('%s pipeline received no file', run.kind)
        raise error
    run.advance(PipelineState.VALIDATED)
    return upload


def _persist(
    run: PipelineRun,
    repository: FileRecordRepository,
    record: FileRecord,
) -> FileRecord:
    """Hand the finished record to the persistence gateway.

    Args:
        run: Current run.
        repository: Persistence gateway.
        record: Record to store.

    Returns:
        Stored record.

    Raises:
        StoreError: If the gateway cannot store the record.
    """
    try:
        stored = repository.store(record)
    except StoreError as exc:
        run.fail(str(exc))
        raise
    run.advance(PipelineState.PERSISTED)
    return stored


def _source_size(source_path: Path, thumb_path: Path) -> int:
    """Read the byte size of a staging file.

    Args:
        source_path: Staging file path.
        thumb_path: Thumbnail the file is transformed into.

    Returns:
        Size in bytes.

    Raises:
        TransformError: If the file cannot be read.
    """
    try:
        return source_path.stat().st_size
    except OSError as exc:
        raise TransformError(str(source_path), str(thumb_path), exc) from exc


@final
class LocalThumbnailPipeline:
    """Keep the upload on local disk and generate a thumbnail beside it."""

    kind = PipelineKind.LOCAL

    def __init__(
        self,
        config: IngestionConfig,
        repository: FileRecordRepository,
        generator: ThumbnailGenerator,
    ) -> None:
        """Initialize pipeline.

        Args:
            config: Ingestion configuration.
            repository: Persistence gateway.
            generator: Thumbnail generator.
        """
        self._config = config
        self._repository = repository
        self._generator = generator

    def run(
        self,
        upload: UploadedFile | None,
        *,
        owner_id: int | None = None,
        tags: Sequence[str] | None = None,
    ) -> PipelineRun:
        """Generate the thumbnail and store the record.

        On transform failure the staging file is left in place.

        Args:
            upload: Upload landed on local disk.
            owner_id: Acting user.
            tags: Unused by the local strategy.

        Returns:
            Finished run holding the persisted record.

        Raises:
            UploadValidationError: If no upload was supplied.
            TransformError: If the thumbnail cannot be generated.
            StoreError: If the record cannot be persisted.
        """
        run = PipelineRun(kind=self.kind)
        upload = _validate(run, upload)
        config = self._config

        record = FileRecord(
            owner_id=owner_id,
            origin_url=f'{config.server_url}/image/{upload.filename}',
            kind=FileKind.IMAGE,
        )
        run.record = record

        thumb_name = derivative_name(
            upload.filename,
            config.thumbnail_width,
            config.thumbnail_height,
        )
        source_path = Path(upload.storage_path)
        thumb_path = source_path.with_name(thumb_name)
        try:
            size_bytes = _source_size(source_path, thumb_path)
            width, height = self._generator(
                source_path,
                thumb_path,
                config.thumbnail_width,
                config.thumbnail_height,
            )
        except TransformError as exc:
            logger.exception(
                'Thumbnail failed, staging file kept: %s',
                upload.storage_path,
            )
            run.fail(str(exc))
            raise

        record.thumb_url = thumb_name
        record.width = width
        record.height = height
        record.size_bytes = size_bytes
        run.advance(PipelineState.TRANSFORMED)

        _persist(run, self._repository, record)
        run.advance(PipelineState.DONE)
        return run


@final
class RemoteUploadPipeline:
    """Push the upload to remote object storage and drop the local copy."""

    kind = PipelineKind.REMOTE

    def __init__(
        self,
        config: IngestionConfig,
        repository: FileRecordRepository,
        uploader: ObjectUploader,
    ) -> None:
        """Initialize pipeline.

        Args:
            config: Ingestion configuration.
            repository: Persistence gateway.
            uploader: Remote object uploader.
        """
        self._config = config
        self._repository = repository
        self._uploader = uploader

    def run(
        self,
        upload: UploadedFile | None,
        *,
        owner_id: int | None = None,
        tags: Sequence[str] | None = None,
    ) -> PipelineRun:
        """Upload the file, store the record and clean up staging.

        Args:
            upload: Upload landed on local disk.
            owner_id: Acting user, falsy values are stored as anonymous.
            tags: Tags for the remote object, defaults to the configured tag.

        Returns:
            Finished run holding the persisted record.

        Raises:
            UploadValidationError: If no upload was supplied.
            UploadError: If the remote storage rejects the upload.
            StoreError: If the record cannot be persisted.
        """
        run = PipelineRun(kind=self.kind)
        upload = _validate(run, upload)
        config = self._config

        public_id = build_public_id(config.public_id_prefix, upload.original_name)
        try:
            descriptor = self._uploader.upload(
                upload.storage_path,
                public_id,
                tags=tags or [config.default_tag],
                quality=config.upload_quality,
            )
        except UploadError as exc:
            logger.exception('Remote upload failed: %s', public_id)
            run.fail(str(exc))
            raise

        record = FileRecord(
            owner_id=owner_id or None,
            origin_url=descriptor.url,
            kind=FileKind.IMAGE,
            width=descriptor.width,
            height=descriptor.height,
            size_bytes=descriptor.byte_size,
            provider_public_id=descriptor.provider_public_id,
            raw_provider_metadata=json.dumps(
                descriptor.raw_metadata,
                cls=DjangoJSONEncoder,
            ),
        )
        run.record = record
        run.advance(PipelineState.TRANSFORMED)

        try:
            _persist(run, self._repository, record)
        except StoreError:
            # No compensating delete, the remote object stays behind
            logger.exception(
                'Record not stored, remote object orphaned: %s',
                descriptor.provider_public_id,
            )
            raise

        self._cleanup(upload)
        run.advance(PipelineState.DONE)
        return run

    def _cleanup(self, upload: UploadedFile) -> None:
        """Remove the staging file after the record is stored.

        The record is already durable, so a failure here is only logged.

        Args:
            upload: Upload whose staging file is removed.
        """
        try:
            remove_staging_file(upload.storage_path)
        except CleanupError:
            logger.warning(
                'Staging file left behind after successful upload: %s',
                upload.storage_path,
                exc_info=True,
            )
