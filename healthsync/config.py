"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "HealthSync"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Database ---
    database_url: str = "postgresql://localhost:5432/healthsync"
    db_pool_min_size: int = 2
    db_pool_max_size: int = 20
    db_command_timeout: float = 30

    # --- Auth ---
    jwt_secret: str = ""  # shared signing secret, required by the sync endpoint
    jwt_algorithm: str = "HS256"

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:8081"]

    # --- Client side ---
    api_base_url: str = "http://localhost:8000/api"
    health_platform: str = "health_connect"  # health_connect | healthkit
    health_bridge_url: str = "http://127.0.0.1:8765"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
