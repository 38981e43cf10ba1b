"""TOML configuration loader for the receipt extractor."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class GeminiVisionConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class ClaudeVisionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class VisionConfig:
    backend: str = "gemini"
    timeout: float = 60.0
    gemini: GeminiVisionConfig = field(default_factory=GeminiVisionConfig)
    claude: ClaudeVisionConfig = field(default_factory=ClaudeVisionConfig)

    @property
    def api_key(self) -> str:
        """API key of the selected backend."""
        if self.backend == "claude":
            return self.claude.api_key
        return self.gemini.api_key


@dataclass
class StorageConfig:
    db_path: str = "~/.config/receipt-extractor/storage.db"
    history_key: str = "receipt-extraction-history"


@dataclass
class UploadConfig:
    max_size_mb: int = 10

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024


@dataclass
class ExtractorConfig:
    vision: VisionConfig = field(default_factory=VisionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)


def load_config(path: str | Path | None = None) -> ExtractorConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path).expanduser()
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    vis = raw.get("vision", {})
    sto = raw.get("storage", {})
    upl = raw.get("upload", {})

    gemini_cfg = vis.get("gemini", {})
    claude_cfg = vis.get("claude", {})

    # Resolve API keys: config file → environment variable
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )

    return ExtractorConfig(
        vision=VisionConfig(
            backend=vis.get("backend", "gemini"),
            timeout=float(vis.get("timeout", 60.0)),
            gemini=GeminiVisionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
            claude=ClaudeVisionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        storage=StorageConfig(
            db_path=sto.get("db_path", "~/.config/receipt-extractor/storage.db"),
            history_key=sto.get("history_key", "receipt-extraction-history"),
        ),
        upload=UploadConfig(
            max_size_mb=upl.get("max_size_mb", 10),
        ),
    )
