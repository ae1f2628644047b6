"""Application configuration using Pydantic Settings."""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Messaging gateway (WAHA)
    waha_url: str = Field(default="http://localhost:3000")
    waha_api_key: str | None = Field(default=None)
    waha_session: str = Field(default="default")

    # Ingestion
    message_limit: int = Field(default=50, ge=1)
    chat_batch_size: int = Field(default=5, ge=1)
    enrichment_batch_size: int = Field(default=10, ge=1)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)

    # Graph and insight heuristics
    co_member_max_group_size: int = Field(default=100, ge=2)
    bridge_disconnect_threshold: float = Field(default=0.4, ge=0, le=1)
    insight_list_limit: int = Field(default=10, ge=1)
    unexpected_bridge_limit: int = Field(default=20, ge=1)
    bridge_min_groups: int = Field(default=3, ge=1)
    super_connector_min_connections: int = Field(default=3, ge=1)
    self_label: str = Field(default="Me")

    # Identity
    identity_namespace_aliases: dict[str, str] = Field(
        default={"s.whatsapp.net": "c.us", "lid": "c.us"}
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@dataclass(frozen=True)
class PipelineOptions:
    """Tunables for one pipeline run.

    Kept separate from `Settings` so library callers and tests can build a
    pipeline without touching the environment.
    """

    message_limit: int = 50
    chat_batch_size: int = 5
    enrichment_batch_size: int = 10
    request_timeout_seconds: float = 30.0
    retry_attempts: int = 3
    retry_backoff_seconds: float = 1.0
    co_member_max_group_size: int = 100
    bridge_disconnect_threshold: float = 0.4
    insight_list_limit: int = 10
    unexpected_bridge_limit: int = 20
    bridge_min_groups: int = 3
    super_connector_min_connections: int = 3
    self_label: str = "Me"
    identity_namespace_aliases: dict[str, str] = field(
        default_factory=lambda: {"s.whatsapp.net": "c.us", "lid": "c.us"}
    )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides) -> "PipelineOptions":
        settings = settings or get_settings()
        values = {
            name: getattr(settings, name)
            for name in cls.__dataclass_fields__
            if hasattr(settings, name)
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
