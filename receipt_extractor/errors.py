"""Extraction error taxonomy and the result type returned by the client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ReceiptData


class ExtractionError(Exception):
    """Base class for every failure surfaced by an extraction attempt."""


class InputError(ExtractionError):
    """Unsupported or oversized upload, detected before any network call."""


class AuthError(ExtractionError):
    """Missing API key or uninitialized client."""


class ValidationRejected(ExtractionError):
    """The model judged the image unusable as a receipt."""

    NOT_RECEIPT = "not_receipt"
    UNCLEAR_IMAGE = "unclear_image"
    INDETERMINATE = "indeterminate"
    FAILED = "failed"

    def __init__(self, message: str, verdict: str) -> None:
        super().__init__(message)
        self.verdict = verdict


class TransportError(ExtractionError):
    """The model call itself failed (network, provider error, timeout)."""


class SchemaError(ExtractionError):
    """The model answered, but not with a usable JSON payload."""


@dataclass
class ExtractionResult:
    success: bool
    data: ReceiptData | None = None
    error: ExtractionError | None = None

    @classmethod
    def ok(cls, data: ReceiptData) -> ExtractionResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ExtractionError) -> ExtractionResult:
        return cls(success=False, error=error)

    @property
    def message(self) -> str | None:
        """Human-readable failure message, or None on success."""
        return str(self.error) if self.error is not None else None
