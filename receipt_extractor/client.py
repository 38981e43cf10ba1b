"""Receipt extraction over a vision model: validate, extract, parse, map."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from .config import ExtractorConfig
from .currency import detect_currency_from_location, is_valid_currency_code
from .errors import (
    AuthError,
    ExtractionError,
    ExtractionResult,
    SchemaError,
    TransportError,
    ValidationRejected,
)
from .models import Amount, ReceiptData, ReceiptItem, to_count
from .prompts import (
    API_TEST_PROMPT,
    NOT_RECEIPT,
    UNCLEAR_IMAGE,
    VALID_RECEIPT,
    VALIDATION_PROMPT,
    extraction_prompt,
)
from .upload import MAX_FILE_SIZE, ReceiptFile, validate_upload
from .vision import VisionModel, create_model

logger = logging.getLogger(__name__)

ModelFactory = Callable[[str], VisionModel]

_FENCED = re.compile(r"^```[A-Za-z]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
_ISO_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2})")


class ReceiptExtractionClient:
    """Two-stage receipt extraction against a vision-capable LLM.

    ``model_factory`` turns an API key into a :class:`VisionModel`; it is
    called by :meth:`initialize`. Model calls are bounded by ``timeout``
    seconds each.
    """

    def __init__(
        self,
        model_factory: ModelFactory,
        *,
        timeout: float = 60.0,
        max_file_size: int = MAX_FILE_SIZE,
    ) -> None:
        self._model_factory = model_factory
        self._timeout = timeout
        self._max_file_size = max_file_size
        self._model: VisionModel | None = None

    @classmethod
    def from_config(cls, config: ExtractorConfig) -> ReceiptExtractionClient:
        return cls(
            lambda api_key: create_model(config.vision, api_key),
            timeout=config.vision.timeout,
            max_file_size=config.upload.max_size_bytes,
        )

    @property
    def initialized(self) -> bool:
        return self._model is not None

    def initialize(self, api_key: str) -> None:
        """Create the model handle, replacing any previous one.

        Raises:
            AuthError: If the key is empty or the backend cannot be created.
        """
        self._model = None
        if not api_key:
            raise AuthError("API key is required")
        try:
            self._model = self._model_factory(api_key)
        except (ValueError, ImportError) as e:
            raise AuthError(str(e)) from e

    async def extract_receipt_data(
        self, file: ReceiptFile, country: str | None = None
    ) -> ExtractionResult:
        """Validate and extract one receipt. Never raises."""
        try:
            data = await self._extract(file, country)
        except ExtractionError as e:
            logger.warning("Receipt extraction failed for %s: %s", file.name, e)
            return ExtractionResult.fail(e)
        except Exception as e:
            logger.exception("Unexpected error during receipt extraction")
            return ExtractionResult.fail(
                TransportError(str(e) or "Unknown error occurred during extraction")
            )
        return ExtractionResult.ok(data)

    async def test_api_key(self, api_key: str) -> bool:
        """Loose liveness check: True if the model returns any text at all."""
        try:
            self.initialize(api_key)
            text = await self._call(API_TEST_PROMPT)
        except Exception as e:
            logger.warning("API key test failed: %s", e)
            return False
        return bool(text.strip())

    async def _extract(self, file: ReceiptFile, country: str | None) -> ReceiptData:
        validate_upload(file, self._max_file_size)
        if self._model is None:
            raise AuthError("Extraction service not initialized. Please provide API key.")

        logger.info("Validating receipt image %s", file.name)
        await self._validate_image(file)

        logger.info("Receipt validation passed, extracting %s", file.name)
        text = await self._call(extraction_prompt(country), file)
        logger.debug("Raw extraction response: %s", text)

        payload = parse_response(text)
        return build_receipt_data(payload, file.name, country=country)

    async def _validate_image(self, file: ReceiptFile) -> None:
        try:
            verdict = await self._call(VALIDATION_PROMPT, file)
        except TransportError as e:
            if isinstance(e.__cause__, asyncio.TimeoutError):
                raise
            raise TransportError("Failed to validate image. Please try again.") from e

        verdict = verdict.strip()
        logger.debug("Receipt validation response: %s", verdict)

        if not verdict:
            raise ValidationRejected(
                "Unable to analyze image. Please try with a clearer image.",
                ValidationRejected.FAILED,
            )
        if VALID_RECEIPT in verdict:
            return
        if NOT_RECEIPT in verdict:
            raise ValidationRejected(
                "This image does not appear to be a payment receipt. "
                "Please upload a receipt, invoice, or bill.",
                ValidationRejected.NOT_RECEIPT,
            )
        if UNCLEAR_IMAGE in verdict:
            raise ValidationRejected(
                "The image is too unclear to process. "
                "Please upload a clearer image of your receipt.",
                ValidationRejected.UNCLEAR_IMAGE,
            )
        raise ValidationRejected(
            "Unable to determine if this is a valid receipt. "
            "Please try with a clearer receipt image.",
            ValidationRejected.INDETERMINATE,
        )

    async def _call(self, prompt: str, image: ReceiptFile | None = None) -> str:
        if self._model is None:
            raise AuthError("Extraction service not initialized. Please provide API key.")
        try:
            text = await asyncio.wait_for(
                self._model.generate(prompt, image), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                "The AI service did not respond in time. Please try again."
            ) from e
        except ExtractionError:
            raise
        except Exception as e:
            raise TransportError(f"AI service request failed: {e}") from e
        return text or ""


def strip_code_fences(text: str) -> str:
    """Trim the text and remove a surrounding ``` or ```json fence."""
    cleaned = text.strip()
    match = _FENCED.match(cleaned)
    if match:
        return match.group(1).strip()
    if cleaned.startswith("```"):
        # Opening fence without a closing one
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
    return cleaned.strip()


def parse_response(text: str) -> dict[str, Any]:
    """Parse and structurally validate the extraction reply.

    Items are normalized to :class:`ReceiptItem` instances.

    Raises:
        SchemaError: Empty reply, invalid JSON, or malformed ``items``.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise SchemaError("No text content received from AI response")

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.debug("Unparseable response: %s", cleaned)
        raise SchemaError("Failed to parse AI response as JSON") from e

    if not isinstance(payload, dict):
        raise SchemaError("Invalid response format: expected a JSON object")

    items = payload.get("items")
    if not isinstance(items, list):
        raise SchemaError("Invalid response format: missing items array")

    payload["items"] = [_normalize_item(item) for item in items]
    return payload


def _normalize_item(raw: Any) -> ReceiptItem:
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
        raise SchemaError("Invalid item format in response")

    quantity = _as_amount(raw.get("quantity"))
    price = _as_amount(raw.get("price"))
    if quantity is None or price is None:
        raise SchemaError("Invalid item format in response")

    unit_price = None
    if raw.get("unitPrice") is not None:
        unit_price = _as_amount(raw["unitPrice"])
        if unit_price is None:
            raise SchemaError("Invalid item format in response")

    return ReceiptItem(
        name=raw["name"], quantity=quantity, price=price, unit_price=unit_price
    )


def _as_amount(value: Any) -> str | None:
    """Keep string amounts as written; render JSON numbers as strings."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _optional_amount(value: Any) -> Amount | None:
    if value == "":
        return None
    return _as_amount(value)


def _normalize_currency(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    code = value.strip().upper()
    if len(code) == 3 and code.isalpha() and is_valid_currency_code(code):
        return code
    return None


def _normalize_date(value: Any) -> str | None:
    text = _optional_str(value)
    if text is None:
        return None
    match = _ISO_DATE.match(text)
    return match.group(1) if match else text


def generate_receipt_id() -> str:
    return f"receipt_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def build_receipt_data(
    payload: dict[str, Any], file_name: str, *, country: str | None = None
) -> ReceiptData:
    """Map a validated payload to a new :class:`ReceiptData`.

    The id and timestamp are assigned here, never taken from the model.
    """
    address = _optional_str(payload.get("address"))
    currency = _normalize_currency(payload.get("currency"))
    if currency is None:
        currency = detect_currency_from_location(address, country)

    return ReceiptData(
        id=generate_receipt_id(),
        file_name=file_name,
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        items=tuple(payload["items"]),
        currency=currency,
        store_name=_optional_str(payload.get("storeName")),
        address=address,
        phone=_optional_str(payload.get("phone")),
        date=_normalize_date(payload.get("date")),
        total_items=to_count(payload.get("totalItems")),
        tax=_optional_amount(payload.get("tax")),
        total=_optional_amount(payload.get("total")),
        total_discount=_optional_amount(payload.get("totalDiscount")),
    )
