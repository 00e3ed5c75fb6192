"""Django storage configuration.

This module configures:
- Local filesystem storage for staging files and thumbnails
- django-storages S3 backend for remotely hosted uploads
  (MinIO for local development, any S3-compatible service in production)
"""

from typing import Any, Final

from server.settings.components import BASE_DIR, config

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
        'OPTIONS': {
            'location': config(
                'UPLOAD_LOCATION',
                default=str(BASE_DIR.joinpath('uploads')),
            ),
        },
    },
    'remote': {
        'BACKEND': 'server.apps.uploads.infrastructure.storage.RemoteObjectStorage',
        'OPTIONS': {
            'bucket_name': config(
                'AWS_STORAGE_BUCKET_NAME',
                default='uploads',
            ),
            'access_key': config('AWS_ACCESS_KEY_ID', default=None),
            'secret_key': config('AWS_SECRET_ACCESS_KEY', default=None),
            'endpoint_url': config(
                'AWS_S3_ENDPOINT_URL',
                default=None,
            ),
            'region_name': config(
                'AWS_S3_REGION_NAME',
                default='us-east-1',
            ),
            'file_overwrite': False,  # Public ids are unique per upload
            'default_acl': None,  # Inherit bucket ACL
            'querystring_auth': False,  # Stored URLs must not expire
        },
    },
}
