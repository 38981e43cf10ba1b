"""SQLite-backed local storage for client-side state."""

from .local_storage import LocalStorage
from .schema import ensure_schema

__all__ = [
    "LocalStorage",
    "ensure_schema",
]
