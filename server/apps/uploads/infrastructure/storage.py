"""Custom storage backend for S3-compatible remote object storage."""

import logging
from collections.abc import Sequence
from typing import Any, final

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

logger = logging.getLogger(__name__)


@final
class RemoteObjectStorage(S3Storage):
    """S3 storage backend for remotely hosted uploads.

    Extends django-storages S3Storage with:
    - Object tagging after upload
    - Object metadata lookup for upload descriptors
    - Discarding objects whose upload did not complete
    """

    def tag_object(self, name: str, tags: Sequence[str]) -> None:
        """Replace the tag set of a stored object.

        Each label becomes an S3 tag key with the value 'true'.

        Args:
            name: Object key.
            tags: Tag labels.
        """
        tag_set = [{'Key': tag, 'Value': 'true'} for tag in tags]
        self.connection.meta.client.put_object_tagging(
            Bucket=self.bucket_name,
            Key=self._object_key(name),
            Tagging={'TagSet': tag_set},
        )
        logger.info('Tagged object %s with %s', name, list(tags))

    def describe(self, name: str) -> dict[str, Any]:
        """Fetch object metadata reported by the provider.

        Args:
            name: Object key.

        Returns:
            HeadObject response without the HTTP envelope.
        """
        response = self.connection.meta.client.head_object(
            Bucket=self.bucket_name,
            Key=self._object_key(name),
        )
        response.pop('ResponseMetadata', None)
        logger.debug('Described object %s: %s', name, response.get('ETag'))
        return response

    def discard(self, name: str) -> None:
        """Delete an object whose upload was not completed.

        Best-effort: a failed delete is logged, the object stays
        orphaned in the bucket.

        Args:
            name: Object key.
        """
        try:
            self.delete(name)
        except (Boto3Error, BotoCoreError, ClientError):
            logger.exception('Cannot discard object, orphaned: %s', name)
        else:
            logger.warning('Discarded incomplete upload: %s', name)

    def _object_key(self, name: str) -> str:
        return self._normalize_name(clean_name(name))
