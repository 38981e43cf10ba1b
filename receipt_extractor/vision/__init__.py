"""Vision model capability interface and backend factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import VisionConfig
    from ..upload import ReceiptFile


class VisionModel(ABC):
    """Narrow capability over a vision-capable LLM: prompt (+ image) in, text out."""

    @abstractmethod
    async def generate(self, prompt: str, image: ReceiptFile | None = None) -> str:
        """Send one prompt, with an optional inline image, and return the reply text.

        Returns an empty string when the provider answered without text.
        """
        ...


def create_model(config: VisionConfig, api_key: str | None = None) -> VisionModel:
    """Create a vision model for the configured backend.

    ``api_key`` overrides the key from the configuration.
    """
    backend_name = config.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiVisionModel

            return GeminiVisionModel(
                api_key=api_key if api_key is not None else config.gemini.api_key,
                model=config.gemini.model,
            )
        case "claude":
            from .claude import ClaudeVisionModel

            return ClaudeVisionModel(
                api_key=api_key if api_key is not None else config.claude.api_key,
                model=config.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown vision backend: {backend_name!r} (choose gemini or claude)"
            )
