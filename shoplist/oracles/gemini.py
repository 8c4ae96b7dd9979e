"""Gemini API backend for shopping-text standardization."""

from __future__ import annotations

from ..errors import OracleError
from ..normalize.categorizer import DEFAULT_CATEGORIES
from . import StandardizedLine, TextStandardizer, build_prompt, parse_standardized


class GeminiStandardizer(TextStandardizer):
    """Standardize shopping-list lines with Google Gemini."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.0-flash",
        categories: list[str] | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._categories = categories or list(DEFAULT_CATEGORIES)
        self._genai_model = None

    async def open(self) -> None:
        if not self._api_key:
            raise OracleError(
                "Gemini API key is not configured. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        if self._genai_model is None:
            genai.configure(api_key=self._api_key)
            self._genai_model = genai.GenerativeModel(self._model)

    async def close(self) -> None:
        self._genai_model = None

    async def standardize(
        self, lines: list[str], language: str = "nl"
    ) -> list[StandardizedLine]:
        if not lines:
            return []
        await self.open()

        from google.api_core import exceptions as google_exceptions

        prompt = build_prompt(lines, language, self._categories)
        try:
            response = await self._genai_model.generate_content_async(prompt)
        except google_exceptions.ResourceExhausted as e:
            raise OracleError(f"Gemini quota exceeded: {e}", status=429) from e
        except google_exceptions.GoogleAPIError as e:
            raise OracleError(f"Gemini request failed: {e}") from e

        return parse_standardized(response.text, lines)
