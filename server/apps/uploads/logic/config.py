"""Configuration injected into the ingestion pipelines."""

from dataclasses import dataclass
from pathlib import Path
from typing import Self

from django.conf import settings


@dataclass(frozen=True, slots=True)
class IngestionConfig:
    """Settings the pipelines need, passed explicitly at construction.

    Attributes:
        server_url: Base address local files are served from.
        upload_location: Directory the transport lands staging files in.
        thumbnail_width: Thumbnail width in pixels.
        thumbnail_height: Thumbnail height in pixels.
        public_id_prefix: Namespace of remote object identifiers.
        default_tag: Tag applied to remote uploads without one.
        upload_quality: Compression quality hint for remote uploads.
    """

    server_url: str
    upload_location: Path
    thumbnail_width: int = 317
    thumbnail_height: int = 262
    public_id_prefix: str = 'file'
    default_tag: str = 'avatars'
    upload_quality: int = 60

    @classmethod
    def from_settings(cls) -> Self:
        """Build configuration from Django settings.

        Returns:
            Configuration with values from the ingestion settings component.
        """
        return cls(
            server_url=settings.SERVER_URL.rstrip('/'),
            upload_location=Path(settings.UPLOAD_LOCATION),
            thumbnail_width=settings.THUMBNAIL_WIDTH,
            thumbnail_height=settings.THUMBNAIL_HEIGHT,
            public_id_prefix=settings.REMOTE_PUBLIC_ID_PREFIX,
            default_tag=settings.REMOTE_DEFAULT_TAG,
            upload_quality=settings.REMOTE_UPLOAD_QUALITY,
        )
