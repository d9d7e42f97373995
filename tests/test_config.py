"""
Tests for settings and keyword overrides.
"""

import json
import os
from pathlib import Path

import pytest

from ezlead.config import DEFAULT_SERPAPI_ENDPOINT, Settings, load_keyword_overrides
from ezlead.env import load_env

ENV_VARS = [
    "SERPAPI_API_KEY", "SERPAPI_ENDPOINT", "EZLEAD_QUERY", "EZLEAD_LOCATION",
    "EZLEAD_SEARCH_CACHE_MINUTES", "EZLEAD_SEARCH_MAX_PAGES", "OPENAI_API_KEY",
    "OPENAI_MODEL", "EZLEAD_REQUEST_TIMEOUT", "EZLEAD_DB_PATH",
    "EZLEAD_FRESHNESS_HOURS", "EZLEAD_LOOKBACK_DAYS", "EZLEAD_CONFIG",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestSettingsFromEnv:
    def test_defaults(self, clean_env):
        settings = Settings.from_env()

        assert settings.serpapi_endpoint == DEFAULT_SERPAPI_ENDPOINT
        assert settings.search_query == "data engineer"
        assert settings.openai_model == "gpt-4o-mini"
        assert settings.db_path == Path("data/ezlead.db")
        assert settings.enrichment.freshness_hours == 24
        assert settings.enrichment.lookback_days == 30
        assert settings.enrichment.max_hierarchy_items == 3
        assert settings.filters.default_title == "Data Engineer"

    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("SERPAPI_API_KEY", "serp-key")
        clean_env.setenv("OPENAI_API_KEY", "openai-key")
        clean_env.setenv("EZLEAD_LOCATION", "Greenville, South Carolina, United States")
        clean_env.setenv("EZLEAD_DB_PATH", str(tmp_path / "x.db"))
        clean_env.setenv("EZLEAD_FRESHNESS_HOURS", "72")
        clean_env.setenv("EZLEAD_REQUEST_TIMEOUT", "7.5")

        settings = Settings.from_env()

        assert settings.serpapi_api_key == "serp-key"
        assert settings.openai_api_key == "openai-key"
        assert settings.search_location == "Greenville, South Carolina, United States"
        assert settings.db_path == tmp_path / "x.db"
        assert settings.enrichment.freshness_hours == 72
        assert settings.request_timeout == 7.5

    def test_invalid_integer(self, clean_env):
        clean_env.setenv("EZLEAD_LOOKBACK_DAYS", "a month")
        with pytest.raises(ValueError, match="EZLEAD_LOOKBACK_DAYS"):
            Settings.from_env()

    def test_config_file_from_environment(self, clean_env, tmp_path):
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps({"filters": {"region_suffixes": [", ga"]}}))
        clean_env.setenv("EZLEAD_CONFIG", str(path))

        assert Settings.from_env().filters.region_suffixes == [", ga"]


class TestKeywordOverrides:
    def test_overrides_sections(self, tmp_path):
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps({
            "filters": {"recruiting_agencies": ["hays"], "default_title": "Software Engineer"},
            "sanitizer": {"placeholder_names": ["Pat Example"]},
            "enrichment": {"max_hierarchy_items": 5},
        }))

        settings = load_keyword_overrides(Settings(), path)

        assert settings.filters.recruiting_agencies == ["hays"]
        assert settings.filters.default_title == "Software Engineer"
        assert settings.filters.region_suffixes == [", nc", ", sc"]
        assert settings.sanitizer.placeholder_names == ["Pat Example"]
        assert settings.enrichment.max_hierarchy_items == 5

    def test_base_settings_not_mutated(self, tmp_path):
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps({"enrichment": {"freshness_hours": 1}}))
        base = Settings()

        load_keyword_overrides(base, path)

        assert base.enrichment.freshness_hours == 24

    @pytest.mark.parametrize("content", [
        {"filterz": {}},
        {"filters": {"not_a_field": 1}},
        ["filters"],
    ])
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps(content))
        with pytest.raises(ValueError):
            load_keyword_overrides(Settings(), path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_keyword_overrides(Settings(), tmp_path / "missing.json")


class TestLoadEnv:
    def test_loads_dotenv_without_overriding(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SERPAPI_API_KEY=from-file\nOPENAI_MODEL=gpt-4o\n")
        clean_env.setenv("OPENAI_MODEL", "from-env")

        assert load_env(env_file)

        assert os.environ["SERPAPI_API_KEY"] == "from-file"
        assert os.environ["OPENAI_MODEL"] == "from-env"

    def test_missing_file(self, tmp_path):
        assert load_env(tmp_path / ".env") is False
