"""Configuration models and YAML loader for the talent page builder."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class DatabaseConfig(BaseModel):
    """Document store configuration.

    When ``enabled`` is False (or the file cannot be opened) records live in memory.
    """

    path: str = "data/talent_pages.db"
    enabled: bool = True


class CacheConfig(BaseModel):
    """TTLs for the shared result caches."""

    brand_ttl_seconds: float = Field(default=3600.0, gt=0)
    market_ttl_seconds: float = Field(default=1800.0, gt=0)


class ScraperConfig(BaseModel):
    """Company website scraping limits."""

    user_agent: str = DEFAULT_USER_AGENT
    homepage_timeout_s: float = Field(default=15.0, gt=0)
    subpage_timeout_s: float = Field(default=10.0, gt=0)
    css_timeout_s: float = Field(default=8.0, gt=0)
    robots_timeout_s: float = Field(default=5.0, gt=0)
    max_external_css: int = Field(default=3, ge=0, le=10)
    max_hero_images: int = Field(default=10, ge=1)


class MarketConfig(BaseModel):
    """Job-board research settings."""

    timeout_s: float = Field(default=15.0, gt=0)
    max_listings: int = Field(default=20, ge=1, le=100)


class LLMConfig(BaseModel):
    """Text-understanding provider selection."""

    provider: str = "openai"
    model: str | None = None

    @field_validator("provider")
    @classmethod
    def provider_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "llm provider must not be empty"
            raise ValueError(msg)
        return v.strip().lower()


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=3001, ge=1, le=65535)
    image_proxy_path: str = "/api/image-proxy"
    public_base_url: str = ""


class Settings(BaseModel):
    """Top-level settings loaded from YAML. Every section has working defaults."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
