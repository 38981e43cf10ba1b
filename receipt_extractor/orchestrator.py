"""Extraction request lifecycle: the state object the presentation layer reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from .client import ReceiptExtractionClient
from .errors import AuthError, ExtractionError, ExtractionResult
from .history import ExtractionHistoryStore
from .models import ReceiptData
from .upload import ReceiptFile

logger = logging.getLogger(__name__)

PROGRESS_START = 0
PROGRESS_INITIALIZED = 25
PROGRESS_EXTRACTED = 75
PROGRESS_COMPLETE = 100


class ExtractionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ExtractionState:
    status: ExtractionStatus = ExtractionStatus.IDLE
    is_loading: bool = False
    is_processing: bool = False
    data: ReceiptData | None = None  # what is displayed (latest or from history)
    current_extraction: ReceiptData | None = None  # result of the active extraction
    error: str | None = None
    progress: int = PROGRESS_START
    history: tuple[ReceiptData, ...] = ()


Listener = Callable[[ExtractionState], None]


class ExtractionOrchestrator:
    """Drives idle → loading → succeeded/failed and feeds the history store.

    One extraction at a time: a call made while another is loading is
    rejected without touching state.
    """

    def __init__(
        self, client: ReceiptExtractionClient, history: ExtractionHistoryStore
    ) -> None:
        self._client = client
        self._history = history
        self._state = ExtractionState(history=tuple(history.load()))
        self._listeners: list[Listener] = []

    @property
    def state(self) -> ExtractionState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state change. Returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    async def extract(
        self,
        file: ReceiptFile,
        api_key: str | None = None,
        country: str | None = None,
    ) -> ExtractionResult:
        """Run one extraction, recording the outcome in state and history."""
        if self._state.is_loading:
            logger.warning("Ignoring extraction of %s: another is in progress", file.name)
            return ExtractionResult.fail(
                ExtractionError("An extraction is already in progress")
            )

        try:
            self._update(
                status=ExtractionStatus.LOADING,
                is_loading=True,
                is_processing=True,
                error=None,
                progress=PROGRESS_START,
            )
            return await self._run_extraction(file, api_key, country)
        except BaseException:
            # Loading never outlives the call
            if self._state.is_loading:
                self._fail("Extraction was interrupted. Please try again.")
            raise

    async def _run_extraction(
        self, file: ReceiptFile, api_key: str | None, country: str | None
    ) -> ExtractionResult:
        if api_key is not None:
            try:
                self._client.initialize(api_key)
            except AuthError as e:
                result = ExtractionResult.fail(e)
                self._fail(str(e))
                return result

        self.update_progress(PROGRESS_INITIALIZED)
        result = await self._client.extract_receipt_data(file, country)
        self.update_progress(PROGRESS_EXTRACTED)

        if not result.success or result.data is None:
            self._fail(result.message or "Failed to extract receipt data")
            return result

        history = self._history.add(result.data)
        self._update(
            status=ExtractionStatus.SUCCEEDED,
            is_loading=False,
            is_processing=False,
            data=result.data,
            current_extraction=result.data,
            error=None,
            progress=PROGRESS_COMPLETE,
            history=tuple(history),
        )
        logger.info("Extracted %s (%d items)", file.name, len(result.data.items))
        return result

    def _fail(self, message: str) -> None:
        self._update(
            status=ExtractionStatus.FAILED,
            is_loading=False,
            is_processing=False,
            error=message,
            progress=PROGRESS_START,
        )

    async def test_api_key(self, api_key: str) -> bool:
        self._update(is_loading=True, error=None)
        try:
            ok = await self._client.test_api_key(api_key)
        except BaseException:
            self._update(is_loading=False)
            raise
        self._update(
            is_loading=False,
            error=None if ok else "Invalid API key or connection failed",
        )
        return ok

    def reset_state(self) -> None:
        """Discard the displayed and current results. History is kept."""
        self._update(
            status=ExtractionStatus.IDLE,
            is_loading=False,
            is_processing=False,
            data=None,
            current_extraction=None,
            error=None,
            progress=PROGRESS_START,
        )

    def clear_current_extraction(self) -> None:
        self._update(
            status=ExtractionStatus.IDLE,
            current_extraction=None,
            error=None,
            progress=PROGRESS_START,
        )

    def clear_error(self) -> None:
        self._update(error=None)

    def update_progress(self, value: int) -> None:
        self._update(progress=value)

    def remove_from_history(self, file_name: str) -> None:
        """Remove history entries by file name. The current result is left as is."""
        self._update(history=tuple(self._history.remove(file_name)))

    def clear_history(self) -> None:
        self._history.clear()
        self._update(history=())

    def load_from_history(self, file_name: str) -> ReceiptData | None:
        """Display a past extraction. Unknown names leave state unchanged."""
        record = self._history.find(file_name)
        if record is not None:
            self._update(data=record, error=None)
        return record
