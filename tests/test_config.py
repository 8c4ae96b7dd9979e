"""Tests for shoplist config loading."""

import pytest

from shoplist.config import ShopConfig, load_config

_ENV_KEYS = (
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "WEAVIATE_URL",
    "WEAVIATE_API_KEY",
    "OPENAI_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_defaults():
    """Loading with no path returns all defaults."""
    config = load_config()
    assert isinstance(config, ShopConfig)
    assert config.normalizer.locale == "en"
    assert config.normalizer.default_strategy == "sum"
    assert config.normalizer.notes_max_length == 200
    assert config.categories.keywords == {}
    assert config.units.aliases == {}
    assert config.database.path == "~/.config/shoplist/shoplist.db"
    assert config.search.backend == "none"
    assert config.search.limit == 15
    assert config.search.matches_per_item == 3
    assert config.llm.backend == "none"
    assert config.llm.claude.api_key == ""
    assert config.server.port == 8000


def test_load_config_nonexistent_file():
    """Loading a nonexistent file returns defaults."""
    config = load_config("/nonexistent/path.toml")
    assert config.search.backend == "none"


def test_load_config_from_toml(tmp_path):
    """Loading a valid TOML file populates config."""
    path = tmp_path / "shoplist.toml"
    path.write_text(
        """\
[normalizer]
locale = "nl"
strip_articles = false
default_strategy = "max"
notes_separator = " | "

[categories.keywords]
produce = ["pompoen"]

[units.aliases]
zak = "piece"

[database]
path = "/var/shoplist.db"

[search]
backend = "weaviate"
url = "https://example.weaviate.cloud"
api_key = "wv-key"
collection = "Producten"
limit = 20
matches_per_item = 5

[llm]
backend = "gemini"
language = "en"

[llm.gemini]
api_key = "test-key-123"
model = "gemini-pro"

[server]
host = "0.0.0.0"
port = 9000
""",
        encoding="utf-8",
    )
    config = load_config(path)

    assert config.normalizer.locale == "nl"
    assert config.normalizer.strip_articles is False
    assert config.normalizer.default_strategy == "max"
    assert config.normalizer.notes_separator == " | "
    assert config.categories.keywords == {"produce": ["pompoen"]}
    assert config.units.aliases == {"zak": "piece"}
    assert config.database.path == "/var/shoplist.db"
    assert config.search.backend == "weaviate"
    assert config.search.url == "https://example.weaviate.cloud"
    assert config.search.api_key == "wv-key"
    assert config.search.collection == "Producten"
    assert config.search.limit == 20
    assert config.search.matches_per_item == 5
    assert config.llm.backend == "gemini"
    assert config.llm.language == "en"
    assert config.llm.gemini.api_key == "test-key-123"
    assert config.llm.gemini.model == "gemini-pro"
    assert config.server.host == "0.0.0.0"
    assert config.server.port == 9000


def test_load_config_env_override(monkeypatch):
    """Environment variables fill in empty secrets."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-anthropic-key")
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini-key")
    monkeypatch.setenv("WEAVIATE_URL", "https://env.weaviate.cloud")
    monkeypatch.setenv("WEAVIATE_API_KEY", "env-weaviate-key")
    monkeypatch.setenv("OPENAI_API_KEY", "env-openai-key")

    config = load_config()
    assert config.llm.claude.api_key == "env-anthropic-key"
    assert config.llm.gemini.api_key == "env-gemini-key"
    assert config.search.url == "https://env.weaviate.cloud"
    assert config.search.api_key == "env-weaviate-key"
    assert config.search.openai_api_key == "env-openai-key"


def test_load_config_file_key_takes_precedence(monkeypatch, tmp_path):
    """Config file API key takes precedence over env var."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")
    path = tmp_path / "shoplist.toml"
    path.write_text('[llm.claude]\napi_key = "file-key"\n', encoding="utf-8")

    config = load_config(path)
    assert config.llm.claude.api_key == "file-key"


def test_load_config_partial_toml(tmp_path):
    """Partial TOML uses defaults for missing sections."""
    path = tmp_path / "shoplist.toml"
    path.write_text('[server]\nport = 8123\n', encoding="utf-8")

    config = load_config(path)
    assert config.server.port == 8123
    assert config.server.host == "127.0.0.1"
    assert config.normalizer.locale == "en"
