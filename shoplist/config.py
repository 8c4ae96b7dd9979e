"""TOML configuration loader for the shopping-list service."""

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
class NormalizerConfig:
    locale: str = "en"
    strip_articles: bool = True
    default_strategy: str = "sum"
    notes_separator: str = "; "
    notes_max_length: int = 200


@dataclass
class CategoriesConfig:
    # Extra keywords per category, checked before the built-in table
    keywords: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class UnitsConfig:
    # Extra unit spellings, e.g. {"pak" = "piece"}
    aliases: dict[str, str] = field(default_factory=dict)


@dataclass
class DatabaseConfig:
    path: str = "~/.config/shoplist/shoplist.db"


@dataclass
class SearchConfig:
    backend: str = "none"
    url: str = ""
    api_key: str = ""
    openai_api_key: str = ""
    collection: str = "Products"
    limit: int = 15
    matches_per_item: int = 3


@dataclass
class ClaudeConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class GeminiConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class LLMConfig:
    backend: str = "none"
    language: str = "nl"
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class ShopConfig:
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    categories: CategoriesConfig = field(default_factory=CategoriesConfig)
    units: UnitsConfig = field(default_factory=UnitsConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def load_config(path: str | Path | None = None) -> ShopConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys and the search URL can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    nrm = raw.get("normalizer", {})
    cat = raw.get("categories", {})
    uni = raw.get("units", {})
    dbs = raw.get("database", {})
    sea = raw.get("search", {})
    llm = raw.get("llm", {})
    srv = raw.get("server", {})

    claude_cfg = llm.get("claude", {})
    gemini_cfg = llm.get("gemini", {})

    # Resolve secrets: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    search_url = sea.get("url", "") or os.environ.get("WEAVIATE_URL", "")
    search_api_key = sea.get("api_key", "") or os.environ.get(
        "WEAVIATE_API_KEY", ""
    )
    openai_api_key = sea.get("openai_api_key", "") or os.environ.get(
        "OPENAI_API_KEY", ""
    )

    return ShopConfig(
        normalizer=NormalizerConfig(
            locale=nrm.get("locale", "en"),
            strip_articles=nrm.get("strip_articles", True),
            default_strategy=nrm.get("default_strategy", "sum"),
            notes_separator=nrm.get("notes_separator", "; "),
            notes_max_length=nrm.get("notes_max_length", 200),
        ),
        categories=CategoriesConfig(
            keywords={k: list(v) for k, v in cat.get("keywords", {}).items()},
        ),
        units=UnitsConfig(
            aliases=dict(uni.get("aliases", {})),
        ),
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/shoplist/shoplist.db"),
        ),
        search=SearchConfig(
            backend=sea.get("backend", "none"),
            url=search_url,
            api_key=search_api_key,
            openai_api_key=openai_api_key,
            collection=sea.get("collection", "Products"),
            limit=sea.get("limit", 15),
            matches_per_item=sea.get("matches_per_item", 3),
        ),
        llm=LLMConfig(
            backend=llm.get("backend", "none"),
            language=llm.get("language", "nl"),
            claude=ClaudeConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            gemini=GeminiConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
        ),
        server=ServerConfig(
            host=srv.get("host", "127.0.0.1"),
            port=srv.get("port", 8000),
        ),
    )
