"""
Configuration management for AgroAlert.
"""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from ruamel.yaml import YAML


class AlertFeedConfig(BaseModel):
    """Upstream weather-alert feed configuration."""

    base_url: str = Field("https://opendata.aemet.es/opendata/api", description="Alert feed base URL")
    alerts_path: str = Field("/avisos_cap/geojson", description="Path of the GeoJSON alerts endpoint")
    api_key: Optional[str] = Field(None, description="API key sent in the 'api_key' header")
    timeout: int = Field(30, description="Request timeout in seconds")
    user_agent: str = Field("AgroAlert", description="User agent for API requests")
    max_retries: int = Field(3, description="Retry attempts for 5xx and transport errors")


class CacheConfig(BaseModel):
    """Alert cache configuration."""

    ttl_seconds: int = Field(3600, description="Time-to-live of the cached alert collection")
    fetch_timeout_seconds: float = Field(60.0, description="Upper bound for one upstream fetch")
    single_flight: bool = Field(True, description="Share one upstream fetch between concurrent refreshes")


class DatabaseConfig(BaseModel):
    """Parcel and user store configuration."""

    url: Optional[str] = Field(None, description="Database URL (defaults to SQLite in data_dir)")
    data_dir: Path = Field(Path("/var/lib/agroalert"), description="Data directory")


class NotificationConfig(BaseModel):
    """Notification fan-out configuration."""

    function_name: str = Field("agroalert-notifications", description="Notification function name or ARN")
    region: str = Field("eu-west-1", description="AWS region of the notification function")
    max_concurrent_dispatches: int = Field(10, description="Maximum dispatches in flight")
    dispatch_timeout_seconds: float = Field(10.0, description="Upper bound for one dispatch")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    file: Optional[Path] = Field(None, description="Log file path")
    format: str = Field("json", description="Log format: 'json' or 'text'")


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="allow",
        case_sensitive=False,
    )

    alert_feed: AlertFeedConfig = Field(default_factory=AlertFeedConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path=None) -> "AppConfig":
        """Load configuration from YAML file."""
        if config_path is None:
            config_path = Path("config/default.yaml")
        elif isinstance(config_path, str):
            config_path = Path(config_path)

        if not config_path.exists():
            # Return default config if file doesn't exist
            return cls()

        yaml = YAML(typ='safe')
        with open(config_path, 'r') as f:
            yaml_data = yaml.load(f)

        return cls(**(yaml_data or {}))
