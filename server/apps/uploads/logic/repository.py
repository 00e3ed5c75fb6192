"""Persistence gateway for file records."""

import logging
from typing import Protocol, final

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from server.apps.uploads.exceptions import StoreError
from server.apps.uploads.models import FileRecord

logger = logging.getLogger(__name__)


class FileRecordRepository(Protocol):
    """Durable store of file records."""

    def store(self, record: FileRecord) -> FileRecord:
        """Persist a new record and assign its identifier."""


@final
class DjangoFileRecordRepository:
    """Store file records through the Django ORM."""

    def store(self, record: FileRecord) -> FileRecord:
        """Insert a new record in a transaction.

        Called at most once per pipeline run and never retried.

        Args:
            record: Unsaved record with all pipeline fields populated.

        Returns:
            The same record with its id assigned.

        Raises:
            StoreError: If the record is already stored, violates record
                invariants, or the database rejects the insert.
        """
        if record.pk is not None:
            raise StoreError(f'File record already stored (ID: {record.pk})')

        try:
            record.full_clean()
        except ValidationError as exc:
            logger.warning('Refusing to store invalid record: %s', exc)
            raise StoreError(f'Invalid file record: {exc}') from exc

        try:
            with transaction.atomic():
                record.save(force_insert=True)
        except DatabaseError as exc:
            logger.exception('Failed to store file record: %s', record.origin_url)
            raise StoreError(f'Cannot store file record: {exc}') from exc

        logger.info(
            'File record stored: %s (ID: %d)',
            record.origin_url,
            record.pk,
        )
        return record
