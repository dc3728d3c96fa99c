"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from talentpage.core.config import (
    DEFAULT_USER_AGENT,
    CacheConfig,
    DatabaseConfig,
    LLMConfig,
    MarketConfig,
    ScraperConfig,
    ServerConfig,
    Settings,
)


class TestDatabaseConfig:
    def test_defaults(self) -> None:
        d = DatabaseConfig()
        assert d.path == "data/talent_pages.db"
        assert d.enabled is True


class TestCacheConfig:
    def test_defaults(self) -> None:
        c = CacheConfig()
        assert c.brand_ttl_seconds == 3600.0
        assert c.market_ttl_seconds == 1800.0

    def test_ttl_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            CacheConfig(brand_ttl_seconds=0)


class TestScraperConfig:
    def test_defaults(self) -> None:
        s = ScraperConfig()
        assert s.user_agent == DEFAULT_USER_AGENT
        assert s.homepage_timeout_s == 15.0
        assert s.max_external_css == 3
        assert s.max_hero_images == 10

    def test_external_css_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ScraperConfig(max_external_css=11)
        with pytest.raises(ValidationError):
            ScraperConfig(max_external_css=-1)


class TestMarketConfig:
    def test_defaults(self) -> None:
        m = MarketConfig()
        assert m.timeout_s == 15.0
        assert m.max_listings == 20

    def test_max_listings_min_one(self) -> None:
        with pytest.raises(ValidationError):
            MarketConfig(max_listings=0)


class TestLLMConfig:
    def test_defaults(self) -> None:
        llm = LLMConfig()
        assert llm.provider == "openai"
        assert llm.model is None

    def test_provider_normalized(self) -> None:
        assert LLMConfig(provider="  Anthropic ").provider == "anthropic"

    def test_empty_provider_raises(self) -> None:
        with pytest.raises(ValidationError, match="llm provider must not be empty"):
            LLMConfig(provider="   ")


class TestServerConfig:
    def test_defaults(self) -> None:
        s = ServerConfig()
        assert s.port == 3001
        assert s.image_proxy_path == "/api/image-proxy"

    def test_port_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ServerConfig(port=70000)


class TestSettings:
    def test_defaults_without_file(self) -> None:
        settings = Settings()
        assert settings.database.enabled is True
        assert settings.llm.provider == "openai"

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        yaml_content = dedent("""\
            database:
              path: data/test.db
              enabled: false
            cache:
              brand_ttl_seconds: 60
            scraper:
              max_external_css: 1
            llm:
              provider: gemini
              model: gemini-2.5-pro
            server:
              port: 8080
        """)
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml_content)

        settings = Settings.from_yaml(config_file)

        assert settings.database.path == "data/test.db"
        assert settings.database.enabled is False
        assert settings.cache.brand_ttl_seconds == 60.0
        assert settings.cache.market_ttl_seconds == 1800.0
        assert settings.scraper.max_external_css == 1
        assert settings.llm.provider == "gemini"
        assert settings.llm.model == "gemini-2.5-pro"
        assert settings.server.port == 8080

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("")
        assert Settings.from_yaml(config_file) == Settings()

    def test_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml("/nonexistent/path.yaml")

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("market:\n  max_listings: 0\n")
        with pytest.raises(ValidationError):
            Settings.from_yaml(config_file)

    def test_load_example_settings(self) -> None:
        """The shipped example config must be valid."""
        settings = Settings.from_yaml("config/settings.example.yaml")
        assert settings.server.port == 3001
        assert settings.cache.market_ttl_seconds == 1800.0
