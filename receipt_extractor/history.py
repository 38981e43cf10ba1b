"""Bounded, locally persisted history of past extractions."""

from __future__ import annotations

import json
import logging
import sqlite3

from .db import LocalStorage
from .models import ReceiptData

logger = logging.getLogger(__name__)

HISTORY_KEY = "receipt-extraction-history"
HISTORY_LIMIT = 10


class ExtractionHistoryStore:
    """Newest-first list of ReceiptData kept under a single storage key.

    Persistence is best-effort: storage failures are logged and swallowed,
    and unreadable stored data loads as an empty history.
    """

    def __init__(
        self,
        storage: LocalStorage,
        *,
        key: str = HISTORY_KEY,
        max_entries: int = HISTORY_LIMIT,
    ) -> None:
        self._storage = storage
        self._key = key
        self._max_entries = max_entries
        self._entries: list[ReceiptData] | None = None

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def load(self) -> list[ReceiptData]:
        """(Re)read the history from storage."""
        try:
            raw = self._storage.get_item(self._key)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Error loading history from storage: %s", e)
            raw = None
        self._entries = _decode(raw)[: self._max_entries]
        return list(self._entries)

    def entries(self) -> list[ReceiptData]:
        if self._entries is None:
            return self.load()
        return list(self._entries)

    def add(self, record: ReceiptData) -> list[ReceiptData]:
        """Prepend a record, evicting the oldest beyond the cap."""
        self._entries = [record, *self.entries()][: self._max_entries]
        self._persist()
        return list(self._entries)

    def remove(self, file_name: str) -> list[ReceiptData]:
        """Drop every record with this file name. No match is a no-op."""
        current = self.entries()
        remaining = [r for r in current if r.file_name != file_name]
        self._entries = remaining
        if len(remaining) != len(current):
            self._persist()
        return list(remaining)

    def clear(self) -> None:
        self._entries = []
        self._persist()

    def find(self, file_name: str) -> ReceiptData | None:
        for record in self.entries():
            if record.file_name == file_name:
                return record
        return None

    def page(self, offset: int = 0, limit: int = HISTORY_LIMIT) -> list[ReceiptData]:
        return self.entries()[offset : offset + limit]

    def __len__(self) -> int:
        return len(self.entries())

    def _persist(self) -> None:
        payload = json.dumps(
            [r.to_dict() for r in self._entries or []], ensure_ascii=False
        )
        try:
            self._storage.set_item(self._key, payload)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Error saving history to storage: %s", e)


def _decode(raw: str | None) -> list[ReceiptData]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored history is not valid JSON, starting empty")
        return []
    if not isinstance(data, list):
        logger.warning("Stored history is not a list, starting empty")
        return []

    records: list[ReceiptData] = []
    for entry in data:
        try:
            records.append(ReceiptData.from_dict(entry))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning("Skipping unreadable history entry: %s", e)
    return records
