"""Configuration management for the snapshot reader."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Postgres source configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    user: str = "cdcuser"
    password: str = "cdcpass"
    db: str = "cdcdb"
    host: str = "localhost"
    port: int = 5432


class MySQLConfig(BaseSettings):
    """MySQL source configuration."""

    model_config = SettingsConfigDict(env_prefix="MYSQL_")

    user: str = "cdcuser"
    password: str = "cdcpass"
    db: str = "cdcdb"
    host: str = "localhost"
    port: int = 3306


class KafkaConfig(BaseSettings):
    """Kafka configuration for the Kafka event sink."""

    model_config = SettingsConfigDict(env_prefix="KAFKA_")

    bootstrap_servers: str = "localhost:29092"
    topic_prefix: str = "cdc"


class SnapshotConfig(BaseSettings):
    """Split snapshot reading configuration."""

    model_config = SettingsConfigDict(env_prefix="SNAPSHOT_")

    fetch_size: int = Field(default=1024, gt=0)
    progress_interval_seconds: float = Field(default=10.0, gt=0)
    event_queue_size: int = Field(default=10000, ge=0)
    connect_max_retries: int = Field(default=3, ge=1)
    connect_retry_delay: float = Field(default=1.0, ge=0)


class ObservabilityConfig(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    metrics_port: int = Field(default=8000, alias="METRICS_PORT")


class ApplicationConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = "INFO"


class Settings(BaseSettings):
    """Main settings container."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    postgres: DatabaseConfig = Field(default_factory=DatabaseConfig)
    mysql: MySQLConfig = Field(default_factory=MySQLConfig)
    kafka: KafkaConfig = Field(default_factory=KafkaConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    app: ApplicationConfig = Field(default_factory=ApplicationConfig)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
