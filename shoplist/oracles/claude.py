"""Claude API backend for shopping-text standardization."""

from __future__ import annotations

import logging

from ..errors import OracleError
from ..normalize.categorizer import DEFAULT_CATEGORIES
from . import StandardizedLine, TextStandardizer, build_prompt, parse_standardized

logger = logging.getLogger(__name__)


class ClaudeStandardizer(TextStandardizer):
    """Standardize shopping-list lines with Claude."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
        categories: list[str] | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._categories = categories or list(DEFAULT_CATEGORIES)
        self._client = None

    async def open(self) -> None:
        if not self._api_key:
            raise OracleError(
                "Anthropic API key is not configured. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def standardize(
        self, lines: list[str], language: str = "nl"
    ) -> list[StandardizedLine]:
        if not lines:
            return []
        await self.open()

        import anthropic

        prompt = build_prompt(lines, language, self._categories)
        logger.info("Standardizing %d lines with %s", len(lines), self._model)
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=4096,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as e:
            raise OracleError(f"Claude rate limit: {e}", status=429) from e
        except anthropic.APIError as e:
            raise OracleError(f"Claude request failed: {e}") from e

        text = response.content[0].text
        return parse_standardized(text, lines)
