"""
Configuration loading.

Scraper and ranking settings come from a YAML file (the packaged
``config.yaml`` by default).  Credentials for the LLM provider are read
from the environment, optionally seeded from a ``.env`` file, and are
carried around as an explicit `AIConfig` value rather than global state.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml  # type: ignore
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yaml")

# Provider-specific environment variables consulted when AI_API_KEY is unset.
PROVIDER_KEY_ENV: Dict[str, tuple] = {
    "openai": ("OPENAI_API_KEY",),
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "groq": ("GROQ_API_KEY",),
    "deepseek": ("DEEPSEEK_API_KEY",),
    "claude": ("ANTHROPIC_API_KEY",),
}


@dataclass
class ScraperSettings:
    origin: str = "https://www.jobs.ac.uk"
    source: str = "jobs.ac.uk"
    strategy: str = "http"
    timeout: float = 20.0
    default_keyword: str = "research"
    headless: bool = True


@dataclass
class RankingSettings:
    top_n: int = 3
    judge_timeout: float = 30.0


@dataclass
class Settings:
    scraper: ScraperSettings = field(default_factory=ScraperSettings)
    ranking: RankingSettings = field(default_factory=RankingSettings)


@dataclass(frozen=True)
class AIConfig:
    """Connection details for the LLM completion boundary.

    Attributes:
        provider: One of ``openai``, ``claude``, ``groq``, ``gemini`` or
            ``deepseek``.
        api_key: Credential for the provider.  An empty key makes
            semantic refinement unavailable.
        base_url: Optional endpoint override.
        model: Optional model name override.
    """

    provider: str
    api_key: str
    base_url: Optional[str] = None
    model: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AIConfig":
        """Build a config from ``AI_*`` environment variables.

        ``AI_PROVIDER`` (or ``LLM_PROVIDER``) selects the provider and
        defaults to ``openai``.  The key is ``AI_API_KEY`` or, failing
        that, the provider's own variable (e.g. ``OPENAI_API_KEY``).
        """
        provider = (os.getenv("AI_PROVIDER") or os.getenv("LLM_PROVIDER") or "openai").strip().lower()
        api_key = os.getenv("AI_API_KEY", "").strip()
        if not api_key:
            for name in PROVIDER_KEY_ENV.get(provider, ()):
                api_key = os.getenv(name, "").strip()
                if api_key:
                    break
        return cls(
            provider=provider,
            api_key=api_key,
            base_url=os.getenv("AI_BASE_URL") or None,
            model=os.getenv("AI_MODEL") or None,
        )

    def __repr__(self) -> str:
        masked = "SET" if self.api_key else "NONE"
        return (
            f"AIConfig(provider={self.provider!r}, api_key={masked}, "
            f"base_url={self.base_url!r}, model={self.model!r})"
        )


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from YAML, falling back to defaults for missing keys.

    The ``JOBSWIPE_FETCH_STRATEGY`` environment variable overrides the
    configured fetch strategy.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    scraper = ScraperSettings(**(raw.get("scraper") or {}))
    ranking = RankingSettings(**(raw.get("ranking") or {}))
    strategy = os.getenv("JOBSWIPE_FETCH_STRATEGY")
    if strategy:
        scraper.strategy = strategy.strip().lower()
    scraper.origin = scraper.origin.rstrip("/")
    logger.debug("Loaded settings from %s", config_path)
    return Settings(scraper=scraper, ranking=ranking)
