"""Description of an upload already landed on local disk."""

from dataclasses import dataclass
from pathlib import Path
from typing import Self


@dataclass(frozen=True, slots=True)
class UploadedFile:
    """Upload handed over by the transport layer.

    Attributes:
        filename: Name the file was stored under.
        storage_path: Local path of the staging file.
        original_name: Filename sent by the client.
    """

    filename: str
    storage_path: str
    original_name: str

    @classmethod
    def from_path(cls, path: str | Path, original_name: str | None = None) -> Self:
        """Describe a file that is already on local disk.

        Args:
            path: Staging file path.
            original_name: Client-side filename, defaults to the stored one.

        Returns:
            Upload description.
        """
        staging = Path(path)
        return cls(
            filename=staging.name,
            storage_path=str(staging),
            original_name=original_name or staging.name,
        )
