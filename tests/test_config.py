"""Tests for config loading."""

import os
import tempfile

from receipt_extractor.config import ExtractorConfig, load_config


def _load_toml(content: bytes) -> ExtractorConfig:
    with tempfile.NamedTemporaryFile(suffix=".toml", delete=False) as f:
        f.write(content)
        f.flush()
        config = load_config(f.name)
    os.unlink(f.name)
    return config


def test_load_config_defaults(monkeypatch):
    """Loading with no path returns all defaults."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    config = load_config()
    assert isinstance(config, ExtractorConfig)
    assert config.vision.backend == "gemini"
    assert config.vision.timeout == 60.0
    assert config.vision.gemini.model == "gemini-2.0-flash"
    assert config.vision.api_key == ""
    assert config.storage.db_path == "~/.config/receipt-extractor/storage.db"
    assert config.storage.history_key == "receipt-extraction-history"
    assert config.upload.max_size_mb == 10
    assert config.upload.max_size_bytes == 10 * 1024 * 1024


def test_load_config_nonexistent_file():
    """Loading a nonexistent file returns defaults."""
    config = load_config("/nonexistent/path.toml")
    assert config.vision.backend == "gemini"


def test_load_config_from_toml():
    """Loading a valid TOML file populates config."""
    config = _load_toml(b"""\
[vision]
backend = "claude"
timeout = 15

[vision.claude]
api_key = "test-key-123"
model = "claude-haiku"

[storage]
db_path = "/var/lib/receipts.db"
history_key = "history-v2"

[upload]
max_size_mb = 5
""")
    assert config.vision.backend == "claude"
    assert config.vision.timeout == 15.0
    assert config.vision.claude.api_key == "test-key-123"
    assert config.vision.claude.model == "claude-haiku"
    assert config.vision.api_key == "test-key-123"
    assert config.storage.db_path == "/var/lib/receipts.db"
    assert config.storage.history_key == "history-v2"
    assert config.upload.max_size_bytes == 5 * 1024 * 1024


def test_load_config_env_override(monkeypatch):
    """Environment variables fill empty API keys."""
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini-key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-anthropic-key")

    config = load_config()
    assert config.vision.gemini.api_key == "env-gemini-key"
    assert config.vision.claude.api_key == "env-anthropic-key"
    assert config.vision.api_key == "env-gemini-key"


def test_load_config_file_key_takes_precedence(monkeypatch):
    """Config file API key takes precedence over env var."""
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    config = _load_toml(b"""\
[vision.gemini]
api_key = "file-key"
""")
    assert config.vision.gemini.api_key == "file-key"


def test_load_config_partial_toml():
    """Partial TOML uses defaults for missing sections."""
    config = _load_toml(b"""\
[upload]
max_size_mb = 2
""")
    assert config.upload.max_size_mb == 2
    assert config.vision.backend == "gemini"
    assert config.storage.history_key == "receipt-extraction-history"
