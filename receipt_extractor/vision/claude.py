"""Claude API vision backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import VisionModel

if TYPE_CHECKING:
    from ..upload import ReceiptFile


class ClaudeVisionModel(VisionModel):
    """Query Claude with a prompt and an inline base64 image or PDF."""

    def __init__(
        self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929"
    ) -> None:
        if not api_key:
            raise ValueError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )
        self._api_key = api_key
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    async def generate(self, prompt: str, image: ReceiptFile | None = None) -> str:
        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install 'receipt-extractor[claude]'"
            ) from None

        content: list[dict] = []
        if image is not None:
            block_type = "document" if image.mime_type == "application/pdf" else "image"
            media_type = "image/jpeg" if image.mime_type == "image/jpg" else image.mime_type
            content.append(
                {
                    "type": block_type,
                    "source": {
                        "type": "base64",
                        "media_type": media_type,
                        "data": image.to_base64(),
                    },
                }
            )
        content.append({"type": "text", "text": prompt})

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=4096,
            messages=[{"role": "user", "content": content}],
        )

        return "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
