"""Management command to ingest a file already on local disk."""

import logging
from pathlib import Path
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from server.apps.uploads.exceptions import IngestionError
from server.apps.uploads.logic.intake import UploadedFile
from server.apps.uploads.logic.orchestrator import get_orchestrator
from server.apps.uploads.models import PipelineKind

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Run a staged file through the local or remote pipeline."""

    help = 'Ingest a staged file and store its file record'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            'path',
            help='Staging file to ingest, inside UPLOAD_LOCATION',
        )
        parser.add_argument(
            '--pipeline',
            choices=PipelineKind.values,
            default=PipelineKind.LOCAL,
            help='Processing strategy (default: local)',
        )
        parser.add_argument(
            '--owner',
            type=int,
            default=None,
            help='ID of the acting user',
        )
        parser.add_argument(
            '--tag',
            action='append',
            dest='tags',
            help='Tag for remote uploads (repeatable)',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the ingestion.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the file is missing or ingestion fails.
        """
        path = Path(options['path'])
        if not path.is_file():
            raise CommandError(f'No such file: {path}')
        orchestrator = get_orchestrator()
        upload_location = orchestrator.config.upload_location.resolve()
        if path.resolve().parent != upload_location:
            raise CommandError(f'Staging file must be in {upload_location}')

        upload = UploadedFile.from_path(path)
        try:
            record = orchestrator.ingest(
                options['pipeline'],
                upload,
                owner_id=options['owner'],
                tags=options['tags'],
            )
        except IngestionError as exc:
            logger.exception('Ingestion failed: %s', path)
            raise CommandError(str(exc)) from exc

        self.stdout.write(f'Origin: {record.origin_url}')
        if record.thumb_url:
            self.stdout.write(f'Thumbnail: {record.thumb_url}')
        if record.provider_public_id:
            self.stdout.write(f'Public id: {record.provider_public_id}')
        self.stdout.write(
            self.style.SUCCESS(f'Stored file record {record.pk}'),
        )
