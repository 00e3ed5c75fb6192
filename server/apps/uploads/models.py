"""Database models for uploads app."""

import json
from typing import Any, Final, final, override

from django.core.exceptions import ValidationError
from django.db import models

_URL_MAX_LENGTH: Final = 1024
_PUBLIC_ID_MAX_LENGTH: Final = 512


class FileKind(models.TextChoices):
    """Type of the primary artifact of a record."""

    IMAGE = 'image', 'Image'


class PipelineKind(models.TextChoices):
    """Processing strategy that produced a record."""

    LOCAL = 'local', 'Local thumbnail'
    REMOTE = 'remote', 'Remote upload'


@final
class FileRecord(models.Model):
    """Stored file and its derivatives.

    A record is produced by exactly one pipeline:

    - local: the original stays on local disk, ``thumb_url`` names the
      generated thumbnail next to it;
    - remote: the original lives in object storage, ``provider_public_id``
      and ``raw_provider_metadata`` describe it.

    Both field sets are never populated together, and ``origin_url`` is
    always set on a persisted record.
    """

    # Acting user, anonymous uploads are allowed
    owner_id = models.BigIntegerField(
        null=True,
        blank=True,
        db_index=True,
    )

    origin_url = models.CharField(
        max_length=_URL_MAX_LENGTH,
        help_text='Address of the primary artifact',
    )

    thumb_url = models.CharField(
        max_length=_URL_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Thumbnail filename (local pipeline only)',
    )

    kind = models.CharField(
        max_length=16,
        choices=FileKind.choices,
        default=FileKind.IMAGE,
    )

    # Geometry and size of the primary artifact, when known
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    size_bytes = models.PositiveBigIntegerField(null=True, blank=True)

    provider_public_id = models.CharField(
        max_length=_PUBLIC_ID_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Object identifier assigned by remote storage',
    )

    raw_provider_metadata = models.TextField(
        blank=True,
        default='',
        help_text='Serialized metadata returned by remote storage',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File record'  # type: ignore[mutable-override]
        verbose_name_plural = 'File records'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        constraints = [
            models.CheckConstraint(
                condition=~models.Q(origin_url=''),
                name='file_record_origin_url_set',
            ),
            # thumb_url XOR provider_public_id
            models.CheckConstraint(
                condition=(
                    models.Q(thumb_url='') & ~models.Q(provider_public_id='')
                ) | (
                    ~models.Q(thumb_url='') & models.Q(provider_public_id='')
                ),
                name='file_record_single_pipeline',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.kind}:{self.origin_url}'

    @override
    def clean(self) -> None:
        """Validate record invariants before persistence.

        Raises:
            ValidationError: If the record has no origin URL or mixes
                local and remote fields.
        """
        super().clean()
        if not self.origin_url:
            raise ValidationError(
                {'origin_url': 'Record must reference a retrievable artifact'},
            )
        if bool(self.thumb_url) == bool(self.provider_public_id):
            raise ValidationError(
                'Record must carry either a thumbnail or provider '
                'metadata, not both or neither',
            )

    @property
    def pipeline_kind(self) -> PipelineKind | None:
        """Pipeline that produced this record.

        Returns:
            Kind derived from populated fields, None for an incomplete stub.
        """
        if self.provider_public_id:
            return PipelineKind.REMOTE
        if self.thumb_url:
            return PipelineKind.LOCAL
        return None

    def get_provider_metadata(self) -> dict[str, Any]:
        """Decode metadata returned by remote storage.

        Returns:
            Metadata dictionary, empty for local records.
        """
        if not self.raw_provider_metadata:
            return {}
        return json.loads(self.raw_provider_metadata)
