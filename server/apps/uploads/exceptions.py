"""Exceptions for uploads app."""

from typing import ClassVar, Final

MISSING_FILE: Final = 'missing_file'


class IngestionError(Exception):
    """Base class for failures of an ingestion pipeline run."""

    status_code: ClassVar[int] = 500


class UploadValidationError(IngestionError):
    """Raised when a pipeline receives no usable upload."""

    status_code: ClassVar[int] = 400

    def __init__(self, code: str = MISSING_FILE) -> None:
        """Initialize UploadValidationError.

        Args:
            code: Machine-readable reason of the rejection.
        """
        self.code = code
        super().__init__(f'Upload rejected: {code}')


class TransformError(IngestionError):
    """Raised when a thumbnail cannot be generated from a source image.

    The underlying failure is kept on ``cause`` (and chained as
    ``__cause__`` by the raiser) so callers can log it even though
    clients only see a bad request.
    """

    status_code: ClassVar[int] = 400

    def __init__(
        self,
        source_path: str,
        target_path: str,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize TransformError.

        Args:
            source_path: Image the thumbnail was generated from.
            target_path: Path the thumbnail should have been written to.
            cause: Original exception raised by the image library.
        """
        self.source_path = source_path
        self.target_path = target_path
        self.cause = cause
        message = f'Cannot generate thumbnail {target_path} from {source_path}'
        if cause is not None:
            message = f'{message}: {cause}'
        super().__init__(message)


class UploadError(IngestionError):
    """Raised when the remote object storage rejects or cannot be reached."""

    status_code: ClassVar[int] = 502

    def __init__(self, public_id: str, detail: str) -> None:
        """Initialize UploadError.

        Args:
            public_id: Identifier the object was to be stored under.
            detail: Error detail reported by the provider client.
        """
        self.public_id = public_id
        self.detail = detail
        super().__init__(f'Remote upload of {public_id} failed: {detail}')


class StoreError(IngestionError):
    """Raised when a file record cannot be persisted."""


class CleanupError(IngestionError):
    """Raised when a staging file cannot be removed after ingestion."""

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        """Initialize CleanupError.

        Args:
            path: Staging file that could not be removed.
            cause: Original filesystem error.
        """
        self.path = path
        self.cause = cause
        super().__init__(f'Cannot remove staging file {path}: {cause}')


class PipelineStateError(Exception):
    """Raised on an illegal pipeline state transition (programming error)."""
