"""Receipt data extraction with a vision LLM and a local extraction history."""

from .client import ReceiptExtractionClient
from .config import ExtractorConfig, StorageConfig, UploadConfig, VisionConfig, load_config
from .currency import (
    detect_currency_from_location,
    format_currency,
    get_currency_symbol,
    is_valid_currency_code,
)
from .db import LocalStorage
from .errors import (
    AuthError,
    ExtractionError,
    ExtractionResult,
    InputError,
    SchemaError,
    TransportError,
    ValidationRejected,
)
from .history import ExtractionHistoryStore
from .models import ReceiptData, ReceiptItem
from .orchestrator import ExtractionOrchestrator, ExtractionState, ExtractionStatus
from .upload import ReceiptFile
from .vision import VisionModel, create_model

__all__ = [
    "ReceiptExtractionClient",
    "ExtractionHistoryStore",
    "ExtractionOrchestrator",
    "ExtractionState",
    "ExtractionStatus",
    "ReceiptData",
    "ReceiptItem",
    "ReceiptFile",
    "LocalStorage",
    "VisionModel",
    "create_model",
    "ExtractionResult",
    "ExtractionError",
    "InputError",
    "AuthError",
    "ValidationRejected",
    "TransportError",
    "SchemaError",
    "format_currency",
    "get_currency_symbol",
    "is_valid_currency_code",
    "detect_currency_from_location",
    "ExtractorConfig",
    "VisionConfig",
    "StorageConfig",
    "UploadConfig",
    "load_config",
]
