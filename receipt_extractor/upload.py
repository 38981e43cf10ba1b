"""Uploaded receipt files and local pre-flight checks."""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from .errors import InputError

SUPPORTED_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "application/pdf"})
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


@dataclass(frozen=True)
class ReceiptFile:
    """An uploaded receipt: original file name, declared MIME type and bytes."""

    name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.standard_b64encode(self.data).decode()

    @classmethod
    def from_path(cls, path: str | Path) -> ReceiptFile:
        p = Path(path).expanduser()
        mime_type = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        return cls(name=p.name, mime_type=mime_type, data=p.read_bytes())


def validate_upload(file: ReceiptFile, max_size: int = MAX_FILE_SIZE) -> None:
    """Raise InputError if the file cannot be sent for extraction."""
    if file.mime_type not in SUPPORTED_TYPES:
        raise InputError("Please upload a JPG, PNG, or PDF file")
    if file.size == 0:
        raise InputError("The selected file is empty")
    if file.size > max_size:
        raise InputError(
            f"File size must be less than {max_size // (1024 * 1024)}MB"
        )
