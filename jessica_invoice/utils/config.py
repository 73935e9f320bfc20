"""Configuration management using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseModel):
    """Local JSON store settings."""
    invoices_file: str = "invoices.json"
    products_file: str = "products.json"
    companies_file: str = "companies.json"
    backup_dir: str = "Backups"
    reports_dir: str = "Reports"
    create_sample_data: bool = True
    write_retries: int = 3
    retry_delay: float = 0.2


class DashboardConfig(BaseModel):
    """Dashboard aggregation settings."""
    default_timeframe: str = "month"
    recent_activity_limit: int = 10
    refresh_delay_seconds: float = 0.0


class LoggingFilesConfig(BaseModel):
    """Log file paths."""
    store: str = "logs/store.log"
    dashboard: str = "logs/dashboard.log"
    api: str = "logs/api.log"
    error: str = "logs/error.log"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5
    files: LoggingFilesConfig = LoggingFilesConfig()


class APIConfig(BaseModel):
    """HTTP API configuration."""
    require_api_key: bool = False
    embed_scheduler: bool = True


class SchedulerConfig(BaseModel):
    """Scheduler configuration."""
    timezone: str = "Europe/Stockholm"
    max_instances: int = 1
    coalesce: bool = True
    misfire_grace_time: int = 300

    overdue_check_minutes: int = 60
    nightly_backup_hour: int = 2
    nightly_backup_minute: int = 0


class YAMLConfig(BaseModel):
    """Configuration loaded from YAML file."""
    storage: StorageConfig = StorageConfig()
    dashboard: DashboardConfig = DashboardConfig()
    logging: LoggingConfig = LoggingConfig()
    api: APIConfig = APIConfig()
    scheduler: SchedulerConfig = SchedulerConfig()


class Settings(BaseSettings):
    """Application settings from environment variables."""

    data_dir: str = Field(default="data", description="Directory holding the JSON store")
    environment: str = Field(default="development", description="Environment (development/production)")
    log_level: Optional[str] = Field(default=None, description="Override log level")
    port: int = Field(default=8000, description="Server port")
    api_key: Optional[str] = Field(default=None, description="Key required on write endpoints")

    default_currency: str = Field(default="SEK", description="Currency for new invoices")
    default_vat_rate: float = Field(default=25.0, description="VAT percentage for new items")
    reminder_days_before: int = Field(default=3, description="Days before due date to remind")

    model_config = SettingsConfigDict(
        env_prefix="JESSICA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


class AppConfig:
    """Combined application configuration."""

    def __init__(self):
        self.env = Settings()

        config_path = Path(__file__).parent.parent.parent / "config" / "config.yml"
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
                self.yaml = YAMLConfig(**yaml_data)
        else:
            self.yaml = YAMLConfig()

        # Override log level if specified in env
        if self.env.log_level:
            self.yaml.logging.level = self.env.log_level

    @property
    def storage(self) -> StorageConfig:
        return self.yaml.storage

    @property
    def dashboard(self) -> DashboardConfig:
        return self.yaml.dashboard

    @property
    def logging(self) -> LoggingConfig:
        return self.yaml.logging

    @property
    def api(self) -> APIConfig:
        return self.yaml.api

    @property
    def scheduler(self) -> SchedulerConfig:
        return self.yaml.scheduler

    @property
    def data_dir(self) -> Path:
        return Path(self.env.data_dir)

    @property
    def is_production(self) -> bool:
        return self.env.environment.lower() == "production"


@lru_cache()
def get_config() -> AppConfig:
    """Get cached configuration instance."""
    return AppConfig()
