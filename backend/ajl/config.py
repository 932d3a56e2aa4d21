from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "au-jour-le-jour"
    app_version: str = "1.1.0"
    schema_version: str = "2"
    debug: bool = False

    # Storage: "sql" (indexed tables) or "document" (single JSON blob)
    store_backend: str = "sql"
    database_url: str = "sqlite+aiosqlite:///./data/au_jour_le_jour.sqlite"
    document_path: str = "./data/au_jour_le_jour.json"
    # 0 disables the size guard
    document_max_bytes: int = 5_000_000
    # One copy of the store file per calendar day, taken at startup
    daily_backup_enabled: bool = True
    backup_dir: str = "./data/backups"

    # Advisory collaborator, reached over HTTP only when enabled
    advisor_enabled: bool = False
    advisor_url: str = "http://127.0.0.1:4567/query"
    advisor_timeout_seconds: float = 15.0

    # Server
    host: str = "127.0.0.1"
    port: int = 4567

    # CORS, comma-separated origins
    cors_allow_origins: str = "http://localhost:4567"

    model_config = {"env_prefix": "AJL_", "env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


settings = Settings()
