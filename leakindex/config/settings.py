from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "leakindex"
    db_username: str = "leakindex"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    uploads_dir: str = "uploads"
    max_file_size_bytes: int = 10 * 1024 * 1024
    duplicate_policy: str = "allow"
    max_line_length: int = 65536

    index_backend: str = "postgres"
    index_name: str = "document_lines"
    index_batch_size: int = 2000
    index_batch_retries: int = 2
    index_writer_workers: int = 1
    index_retry_backoff_seconds: float = 0.5

    default_page_size: int = 20
    max_page_size: int = 10000
    export_max_rows: int = 10000
