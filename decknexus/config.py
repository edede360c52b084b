from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "DeckNexus"
    debug: bool = False

    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Oracle providers
    default_provider: Literal["local", "remote"] = "local"
    local_ai_base_url: str = "http://localhost:1234"
    local_ai_model: str = "default"
    anthropic_api_key: str = ""
    remote_model: str = "claude-sonnet-4-20250514"
    oracle_timeout: float = 120.0

    # Card database
    scryfall_base_url: str = "https://api.scryfall.com"
    scryfall_rate_limit_delay: float = 0.1
    scryfall_max_retries: int = 3
    scryfall_initial_retry_delay: float = 1.0

    # Card pool resolution
    card_pool_limit: int = 20_000
    card_pool_cache_ttl: float = 600.0
    card_pool_cache_size: int = 64

    # Number of batches a single reduce may evaluate at once
    reducer_concurrency: int = 1


settings = Settings()


# =============================================================================
# DECK CONSTRUCTION CONSTANTS
# =============================================================================

# 99 cards plus the commander
DECK_SIZE = 100
NON_COMMANDER_SLOTS = DECK_SIZE - 1

MIN_LANDS = 35
MAX_LANDS = 37
AGGRO_LAND_COUNT = 35
DEFAULT_LAND_COUNT = 37
FALLBACK_BASIC_SHARE = 0.6

AGGRO_CREATURE_COUNT = 30
DEFAULT_CREATURE_COUNT = 26

# (batch size, fraction kept per batch)
BASIC_LAND_BATCH = (20, 0.80)
NON_BASIC_LAND_BATCH = (30, 0.25)
CREATURE_BATCH = (30, 0.30)
SPELL_BATCH = (30, 0.35)
