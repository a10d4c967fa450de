"""Application configuration via environment variables."""

from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    database_url: str = "sqlite+aiosqlite:///./lobbytracker.db"
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    cors_origins: str = "*"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Klei lobby listing
    lobby_regions_url: str = "https://lobby-v2-cdn.klei.com/regioncapabilities-v2.json"
    lobby_list_url: str = "https://lobby-v2-cdn.klei.com/{region}-{platform}.json.gz"
    lobby_details_url: str = "https://lobby-v2-{region}.klei.com/lobby/read"
    klei_token: str = ""
    lobby_proxy: str | None = None
    lobby_timeout_seconds: int = 30

    # MaxMind GeoLite2/GeoIP2 City database
    geoip_db_path: str = "./GeoLite2-City.mmdb"

    # Collection schedule
    scheduler_enabled: bool = True
    collect_interval_seconds: int = 120
    collect_timeout_seconds: float = 60
    collect_concurrency: int = 10
    clear_interval_seconds: int = 86400
    server_ttl_seconds: int = 3 * 86400

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    INSECURE_TOKENS: ClassVar[set[str]] = {"", "xxxxxxxxx", "change-me"}

    def validate_production(self) -> None:
        """Raise if running in production without a real Klei token."""
        if self.environment == "production" and self.klei_token in self.INSECURE_TOKENS:
            raise RuntimeError(
                "KLEI_TOKEN must be set to a real lobby token in production; "
                "server details cannot be fetched without it"
            )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
