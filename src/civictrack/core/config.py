"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class LLMConfig(BaseSettings):
    """LLM provider configuration."""

    model_config = {"env_prefix": "CIVICTRACK_LLM_"}

    provider: str = "ollama"
    base_url: str = "http://localhost:11434"
    model: str = "llama3.1:8b"
    api_key: str | None = None
    timeout_seconds: int = 10
    max_retries: int = 1
    max_tokens: int = 32
    temperature: float = 0.0


class ClassifierConfig(BaseSettings):
    """Category suggestion configuration."""

    model_config = {"env_prefix": "CIVICTRACK_CLASSIFIER_"}

    provider: str = "keyword"
    max_description_chars: int = 2000


class LifecycleConfig(BaseSettings):
    """Report lifecycle configuration."""

    model_config = {"env_prefix": "CIVICTRACK_LIFECYCLE_"}

    auto_assign: bool = True
    max_conflict_retries: int = 3
    max_after_photos: int = 10


class NotificationConfig(BaseSettings):
    """Notification engine configuration."""

    model_config = {"env_prefix": "CIVICTRACK_NOTIFICATION_"}

    templates_path: str | None = None


class AuditConfig(BaseSettings):
    """Audit logging configuration."""

    model_config = {"env_prefix": "CIVICTRACK_AUDIT_"}

    log_dir: str = "data/audit"
    hash_algorithm: str = "sha256"


class DatabaseConfig(BaseSettings):
    """Database configuration. No URL means in-memory stores."""

    model_config = {"env_prefix": "CIVICTRACK_DB_"}

    database_url: str | None = None
    echo: bool = False
    pool_size: int = 5


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "CIVICTRACK_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    llm: LLMConfig = Field(default_factory=LLMConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
