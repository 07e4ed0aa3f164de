from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="POKEVAULT_")

    app_name: str = "pokevault"
    debug: bool = False

    # REST server that owns the collection_cards rows
    api_base_url: str = "http://localhost:5000"

    pokemon_tcg_api_url: str = "https://api.pokemontcg.io/v2"
    pokemon_tcg_api_key: str = ""

    # Local durable storage for card metadata and the active collection id
    cache_database_url: str = "sqlite+aiosqlite:///pokevault-cache.db"

    http_timeout_seconds: float = 30.0

    # Pending markers outlive their write by this long to absorb re-render races
    pending_grace_seconds: float = 0.5

    # Background refresh period for picking up changes from other devices
    poll_interval_seconds: float = 5.0


settings = Settings()


# =============================================================================
# COLLECTION LIMITS
# =============================================================================

# Upper bound on collections per user. The server enforces it; the client
# checks first so the user gets a message without a round trip.
MAX_COLLECTIONS_PER_USER = 5

# Display name for cards whose metadata has not been fetched yet
PLACEHOLDER_NAME = "Loading..."
