from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="POKESHELF_")

    app_name: str = "pokeshelf"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/pokeshelf"

    catalog_base_url: str = "https://api.pokemontcg.io/v2"
    catalog_api_key: str = ""
    catalog_timeout_seconds: float = 30.0
    catalog_search_page_size: int = 50

    # Batched by-id lookups are split so the OR-clause never exceeds this many ids
    catalog_max_ids_per_request: int = 25

    cache_path: str = ".cache/pokeshelf.json"

    search_cache_ttl_seconds: int = 24 * 60 * 60
    item_cache_ttl_seconds: int = 7 * 24 * 60 * 60

    connectivity_probe_interval_seconds: float = 30.0


settings = Settings()
