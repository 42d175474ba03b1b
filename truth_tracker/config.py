"""
Configuration management for the Political Truth Tracker ingestion pipeline.

Settings come from environment variables (or .env). The source registry and
the relay allow-list are static module-level data loaded once at import.
"""

from functools import lru_cache
from typing import Dict, List

from pydantic_settings import BaseSettings
from pydantic import Field

from .schemas.sources import FetchType, Source


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Configuration
    # Provider priority: OpenAI → Ollama (OpenAI-compatible endpoint)
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="", alias="OPENAI_BASE_URL")

    use_ollama: bool = Field(default=False, alias="USE_OLLAMA")
    ollama_model: str = Field(default="llama3.1", alias="OLLAMA_MODEL")
    ollama_base_url: str = Field(default="http://localhost:11434", alias="OLLAMA_BASE_URL")

    llm_temperature: float = Field(default=0.2, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(default=2000, alias="LLM_MAX_TOKENS")

    # ── Extraction ──
    # Candidates scored below this are treated as noise and dropped.
    min_credibility_score: int = Field(default=60, alias="MIN_CREDIBILITY_SCORE")

    # ── Duplicate detection ──
    # How many stored promises seed the in-memory history at run start
    dedup_history_limit: int = Field(default=100, alias="DEDUP_HISTORY_LIMIT")
    # How many of the most recent history items are shown to the model per check
    dedup_compare_limit: int = Field(default=10, alias="DEDUP_COMPARE_LIMIT")

    # ── Fetching ──
    fetch_timeout_seconds: float = Field(default=20.0, alias="FETCH_TIMEOUT_SECONDS")
    # Empty = fetch feeds directly (allow-list is still enforced locally)
    relay_base_url: str = Field(default="", alias="RELAY_BASE_URL")
    feed_min_length: int = Field(default=50, alias="FEED_MIN_LENGTH")
    scrape_min_length: int = Field(default=100, alias="SCRAPE_MIN_LENGTH")
    incident_max_per_source: int = Field(default=20, alias="INCIDENT_MAX_PER_SOURCE")

    # ── Rate limiting (seconds) ──
    promise_source_delay: float = Field(default=1.0, alias="PROMISE_SOURCE_DELAY")
    incident_source_delay: float = Field(default=2.0, alias="INCIDENT_SOURCE_DELAY")
    item_delay: float = Field(default=0.5, alias="ITEM_DELAY")

    # ── Sync runs ──
    sync_timeout_seconds: float = Field(default=1800.0, alias="SYNC_TIMEOUT_SECONDS")
    sync_history_limit: int = Field(default=20, alias="SYNC_HISTORY_LIMIT")
    sync_schedule_enabled: bool = Field(default=False, alias="SYNC_SCHEDULE_ENABLED")
    sync_schedule_hour: int = Field(default=2, alias="SYNC_SCHEDULE_HOUR")

    # Admin principals (comma-separated emails)
    admin_emails: str = Field(default="", alias="ADMIN_EMAILS")

    mock_mode: bool = Field(default=False, alias="MOCK_MODE")

    # Database
    database_url: str = Field(
        default="sqlite:///./truth_tracker.db",
        alias="DATABASE_URL"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    def get_llm_config(self) -> dict:
        """Get LLM configuration based on settings.

        Priority: OpenAI → Ollama
        """
        if self.openai_api_key:
            return {
                "provider": "openai",
                "api_key": self.openai_api_key,
                "model": self.openai_model,
                "base_url": self.openai_base_url or None,
            }
        elif self.use_ollama:
            return {
                "provider": "ollama",
                "api_key": "ollama",
                "model": self.ollama_model,
                "base_url": f"{self.ollama_base_url.rstrip('/')}/v1",
            }
        return {"provider": "none"}

    def admin_email_list(self) -> List[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# ─────────────────────────────────────────────────────────────────────────────
# Source registry
# ─────────────────────────────────────────────────────────────────────────────

# Sources scanned for political promises (LLM extraction pipeline).
# NOTE: The remaining entries were disabled upstream; kept here so they can be
# switched back on without hunting for URLs.
PROMISE_SOURCES: List[Source] = [
    Source(
        name="Election Commission of India",
        fetch_type=FetchType.API,
        url="https://eci.gov.in/api/candidate-affidavits",
        active=False,
        category="government",
    ),
    Source(
        name="PRS Legislative Research",
        fetch_type=FetchType.FEED,
        url="https://prsindia.org/rss/policy-updates",
        active=False,
        category="research",
    ),
    Source(
        name="Factly.in Political Promises",
        fetch_type=FetchType.FEED,
        url="https://factly.in/category/politics/feed/",
        active=False,
        category="fact-check",
    ),
    Source(
        name="The Wire Politics",
        fetch_type=FetchType.FEED,
        url="https://thewire.in/politics/feed",
        active=True,
        category="news",
    ),
    Source(
        name="Indian Express Politics",
        fetch_type=FetchType.FEED,
        url="https://indianexpress.com/section/india/politics/feed/",
        active=False,
        category="news",
    ),
    Source(
        name="Scroll.in Politics",
        fetch_type=FetchType.FEED,
        url="https://scroll.in/politics/feed",
        active=False,
        category="news",
    ),
]

# Sources scanned for political incidents (normalization pipeline, human-reviewed).
INCIDENT_SOURCES: List[Source] = [
    Source(
        name="Press Information Bureau",
        fetch_type=FetchType.FEED,
        url="https://pib.gov.in/rss/leng.xml",
        active=True,
        category="government",
    ),
    Source(
        name="The Hindu - Politics",
        fetch_type=FetchType.FEED,
        url="https://www.thehindu.com/news/national/feeder/default.rss",
        active=True,
        category="news",
    ),
    Source(
        name="The Wire - Politics",
        fetch_type=FetchType.FEED,
        url="https://thewire.in/politics/feed",
        active=True,
        category="news",
    ),
    Source(
        name="Scroll.in - Politics",
        fetch_type=FetchType.FEED,
        url="https://scroll.in/politics/feed",
        active=True,
        category="news",
    ),
    Source(
        name="Factly",
        fetch_type=FetchType.FEED,
        url="https://factly.in/feed/",
        active=True,
        category="fact-check",
    ),
]

# Hosts the feed relay may proxy to. Subdomains of these hosts are allowed too.
RELAY_ALLOWED_HOSTS = (
    "pib.gov.in",
    "thehindu.com",
    "thewire.in",
    "scroll.in",
    "factly.in",
    "prsindia.org",
    "indianexpress.com",
)

# Quick access
SOURCES_BY_PIPELINE: Dict[str, List[Source]] = {
    "promises": PROMISE_SOURCES,
    "incidents": INCIDENT_SOURCES,
}
