"""Uploaded file payload."""

from dataclasses import dataclass


@dataclass
class UploadFile:
    """An image handed over by the client for storage."""
    filename: str
    content_type: str
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)
