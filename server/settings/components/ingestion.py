"""Upload ingestion settings."""

from server.settings.components import BASE_DIR, config

# Base address locally stored images are served from
SERVER_URL = config('SERVER_URL', default='http://localhost:8000')

# Directory staging files and thumbnails are written to
UPLOAD_LOCATION = config(
    'UPLOAD_LOCATION',
    default=str(BASE_DIR.joinpath('uploads')),
)

# Thumbnail geometry of the local pipeline
THUMBNAIL_WIDTH = config('THUMBNAIL_WIDTH', cast=int, default=317)
THUMBNAIL_HEIGHT = config('THUMBNAIL_HEIGHT', cast=int, default=262)

# Remote pipeline
REMOTE_PUBLIC_ID_PREFIX = config('REMOTE_PUBLIC_ID_PREFIX', default='file')
REMOTE_DEFAULT_TAG = config('REMOTE_DEFAULT_TAG', default='avatars')
REMOTE_UPLOAD_QUALITY = config('REMOTE_UPLOAD_QUALITY', cast=int, default=60)
