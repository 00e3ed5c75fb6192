"""Entry point dispatching uploads to the ingestion pipelines."""

import logging
from collections.abc import Sequence
from typing import final

from server.apps.uploads.infrastructure.thumbnails import generate_thumbnail
from server.apps.uploads.infrastructure.uploader import RemoteObjectUploader
from server.apps.uploads.logic.config import IngestionConfig
from server.apps.uploads.logic.intake import UploadedFile
from server.apps.uploads.logic.pipelines import (
    LocalThumbnailPipeline,
    ObjectUploader,
    Pipeline,
    RemoteUploadPipeline,
    ThumbnailGenerator,
)
from server.apps.uploads.logic.repository import (
    DjangoFileRecordRepository,
    FileRecordRepository,
)
from server.apps.uploads.models import FileRecord, PipelineKind

logger = logging.getLogger(__name__)


@final
class IngestionOrchestrator:
    """Route each upload to the pipeline of the requested kind."""

    def __init__(
        self,
        config: IngestionConfig,
        repository: FileRecordRepository,
        generator: ThumbnailGenerator,
        uploader: ObjectUploader,
    ) -> None:
        """Initialize orchestrator with both pipelines.

        Args:
            config: Ingestion configuration shared by the pipelines.
            repository: Persistence gateway.
            generator: Thumbnail generator for the local pipeline.
            uploader: Remote object uploader for the remote pipeline.
        """
        self.config = config
        self._pipelines: dict[PipelineKind, Pipeline] = {
            PipelineKind.LOCAL: LocalThumbnailPipeline(
                config,
                repository,
                generator,
            ),
            PipelineKind.REMOTE: RemoteUploadPipeline(
                config,
                repository,
                uploader,
            ),
        }

    def get_pipeline(self, kind: PipelineKind | str) -> Pipeline:
        """Look up the pipeline for a kind.

        Args:
            kind: Pipeline kind or its value.

        Returns:
            Pipeline instance.

        Raises:
            ValueError: If kind is unknown.
        """
        return self._pipelines[PipelineKind(kind)]

    def ingest(
        self,
        kind: PipelineKind | str,
        upload: UploadedFile | None,
        *,
        owner_id: int | None = None,
        tags: Sequence[str] | None = None,
    ) -> FileRecord:
        """Run an upload through a pipeline.

        Args:
            kind: Pipeline to use.
            upload: Upload landed on local disk.
            owner_id: Acting user.
            tags: Tags for remote uploads.

        Returns:
            Persisted file record.

        Raises:
            IngestionError: If any pipeline step fails.
        """
        pipeline = self.get_pipeline(kind)
        logger.info(
            'Ingesting %s via %s pipeline',
            upload.original_name if upload else None,
            pipeline.kind,
        )
        run = pipeline.run(upload, owner_id=owner_id, tags=tags)
        return run.record  # type: ignore[return-value]


def get_orchestrator() -> IngestionOrchestrator:
    """Build an orchestrator wired to the configured collaborators.

    Returns:
        Orchestrator using Django settings, the ORM gateway, Pillow
        thumbnails and the 'remote' storage.
    """
    return IngestionOrchestrator(
        config=IngestionConfig.from_settings(),
        repository=DjangoFileRecordRepository(),
        generator=generate_thumbnail,
        uploader=RemoteObjectUploader(),
    )


def upload_file(owner_id: int | None, upload: UploadedFile | None) -> FileRecord:
    """Store an upload locally with a generated thumbnail.

    Args:
        owner_id: Acting user.
        upload: Upload landed on local disk.

    Returns:
        Persisted file record.
    """
    return get_orchestrator().ingest(
        PipelineKind.LOCAL,
        upload,
        owner_id=owner_id,
    )


def upload_image_to_remote(
    upload: UploadedFile | None,
    owner_id: int | None = None,
    tags: Sequence[str] | None = None,
) -> FileRecord:
    """Move an upload to remote object storage.

    Args:
        upload: Upload landed on local disk.
        owner_id: Acting user.
        tags: Tags for the remote object.

    Returns:
        Persisted file record.
    """
    return get_orchestrator().ingest(
        PipelineKind.REMOTE,
        upload,
        owner_id=owner_id,
        tags=tags,
    )
