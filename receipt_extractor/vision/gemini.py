"""Gemini API vision backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import VisionModel

if TYPE_CHECKING:
    from ..upload import ReceiptFile


class GeminiVisionModel(VisionModel):
    """Query Google Gemini with a prompt and inline receipt image."""

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        if not api_key:
            raise ValueError(
                "Gemini API key is not set. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )
        self._api_key = api_key
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    async def generate(self, prompt: str, image: ReceiptFile | None = None) -> str:
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        # The SDK base64-encodes inline blobs on the wire
        parts: list = [prompt]
        if image is not None:
            parts.append({"mime_type": image.mime_type, "data": image.data})

        response = await model.generate_content_async(parts)
        if not response.candidates or not response.candidates[0].content.parts:
            return ""
        return response.text or ""
