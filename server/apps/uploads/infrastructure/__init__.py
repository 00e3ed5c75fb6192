"""Infrastructure layer for uploads app.

This package contains integrations with external systems:
- Thumbnail generation (Pillow)
- S3-compatible remote object storage and the uploader built on it
- Metadata helpers and staging file cleanup

Keep infrastructure concerns separate from business logic.
"""
