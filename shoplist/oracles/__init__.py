"""External oracle interfaces (text generation, product search) and factories."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import OracleError
from ..models import ProductCandidate

if TYPE_CHECKING:
    from ..config import ShopConfig


@dataclass
class StandardizedLine:
    line: str  # original input line
    name: str  # canonical product name
    category: str | None = None


class ProductSearch(ABC):
    """Vector search over supermarket product catalogs."""

    async def open(self) -> None:
        """Connect to the service. Called once by the owning application."""

    async def close(self) -> None:
        """Release the connection."""

    @abstractmethod
    async def search(self, query: str, limit: int = 15) -> list[ProductCandidate]:
        """Return candidate products ranked by similarity (may be empty)."""
        ...


class TextStandardizer(ABC):
    """LLM-backed canonicalization of free-text shopping lines."""

    async def open(self) -> None:
        """Prepare the client. Called once by the owning application."""

    async def close(self) -> None:
        """Release the client."""

    @abstractmethod
    async def standardize(
        self, lines: list[str], language: str = "nl"
    ) -> list[StandardizedLine]:
        """Map each line to a canonical product name and optional category."""
        ...


_PROMPT = """\
You receive a JSON array of shopping-list lines (language: {language}).
For every line, give the standardized product name in that language,
singular and lower-case, without quantities or units, and a category.

Return only a JSON array, one object per input line, in input order:
[
  {{"line": "original line", "name": "product name", "category": "category"}}
]

Choose the category from:
{categories}
Use null when unsure.

Lines:
{lines}
"""


def build_prompt(lines: list[str], language: str, categories: list[str]) -> str:
    return _PROMPT.format(
        language=language,
        categories=", ".join(categories),
        lines=json.dumps(lines, ensure_ascii=False),
    )


def parse_standardized(text: str, lines: list[str]) -> list[StandardizedLine]:
    """Parse the JSON array returned by a text model.

    Markdown fences are tolerated. Entries are matched to input lines by the
    echoed ``line`` field, falling back to position.

    Raises:
        OracleError: If the response is not a JSON array of objects.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        rows = cleaned.split("\n")
        rows = [r for r in rows[1:] if not r.strip().startswith("```")]
        cleaned = "\n".join(rows)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise OracleError(f"Text model returned invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise OracleError("Text model did not return a JSON array")

    by_line: dict[str, StandardizedLine] = {}
    by_index: list[StandardizedLine] = []
    for entry in data:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        std = StandardizedLine(
            line=str(entry.get("line", "")),
            name=str(entry["name"]).strip(),
            category=entry.get("category") or None,
        )
        by_index.append(std)
        if std.line:
            by_line.setdefault(std.line, std)

    result: list[StandardizedLine] = []
    for i, line in enumerate(lines):
        std = by_line.get(line)
        if std is None and i < len(by_index) and not by_index[i].line:
            std = by_index[i]
        if std is not None:
            result.append(StandardizedLine(line=line, name=std.name, category=std.category))
    return result


def create_search_backend(config: ShopConfig) -> ProductSearch | None:
    """Create the product search backend, or None when search is disabled."""
    backend_name = config.search.backend

    match backend_name:
        case "none" | "":
            return None
        case "weaviate":
            from .weaviate_search import WeaviateProductSearch

            return WeaviateProductSearch(
                url=config.search.url,
                api_key=config.search.api_key,
                openai_api_key=config.search.openai_api_key,
                collection=config.search.collection,
            )
        case _:
            raise ValueError(
                f"Unknown search backend: {backend_name!r} "
                f"(choose from weaviate / none)"
            )


def create_text_backend(config: ShopConfig) -> TextStandardizer | None:
    """Create the text standardization backend, or None when disabled."""
    backend_name = config.llm.backend

    match backend_name:
        case "none" | "":
            return None
        case "claude":
            from .claude import ClaudeStandardizer

            return ClaudeStandardizer(
                api_key=config.llm.claude.api_key,
                model=config.llm.claude.model,
            )
        case "gemini":
            from .gemini import GeminiStandardizer

            return GeminiStandardizer(
                api_key=config.llm.gemini.api_key,
                model=config.llm.gemini.model,
            )
        case _:
            raise ValueError(
                f"Unknown LLM backend: {backend_name!r} "
                f"(choose from claude / gemini / none)"
            )
