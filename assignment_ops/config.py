"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # so DB_HOST works regardless of case
    )

    # Database fields (read from .env)
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "assignment_ops"
    db_user: str = "postgres"
    db_password: str = "postgres"

    # Full SQLAlchemy URL; takes precedence over the db_* fields when set
    db_url: str | None = None

    # Construct database URL dynamically
    @property
    def database_url(self) -> str:
        if self.db_url:
            return self.db_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Scheduler
    scheduler_name: str = "auto_close_assignments"
    auto_close_batch_size: int = 100
    manual_batch_size: int = 50
    max_batch_size: int = 1000
    stats_default_days: int = 30

    # App
    log_level: str = "INFO"


settings = Settings()
