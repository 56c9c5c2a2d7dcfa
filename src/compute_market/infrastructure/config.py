"""Configuration for the compute marketplace."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchingConfig(BaseModel):
    """Matching engine configuration."""

    freshness_decay_seconds: float = Field(default=6.0, gt=0, description="Staleness costing one freshness point")


class QueueConfig(BaseModel):
    """Job queue configuration."""

    require_escrow: bool = Field(default=True, description="Lock client funds before dispatch")


class ReputationConfig(BaseModel):
    """Reputation scoring configuration."""

    min_score: int = Field(default=0)
    max_score: int = Field(default=10000)
    default_score: int = Field(default=1000, description="Score for resources with no record")


class OracleConfig(BaseModel):
    """Benchmark oracle configuration."""

    base_url: str = Field(default="https://hermes.pyth.network")
    api_key: str | None = Field(default=None)
    timeout_seconds: float = Field(default=5.0, gt=0)
    default_benchmark_score: int = Field(default=5000, description="Fallback for unknown models")


class HostChannelConfig(BaseModel):
    """Host execution channel configuration."""

    timeout_seconds: float = Field(default=10.0, gt=0)
    endpoints: dict[str, str] = Field(default_factory=dict, description="Host address -> worker URL")


class LifecycleConfig(BaseModel):
    """Job lifecycle configuration."""

    retention_hours: float = Field(default=24.0, gt=0, description="Retention of settled jobs")
    sync_queue_status: bool = Field(default=True, description="Mirror queue state changes into job status")


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=8080, ge=1, le=65535)
    metrics_port: int = Field(default=8005, ge=1, le=65535)


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    otlp_endpoint: str | None = Field(default=None)
    console_spans: bool = Field(default=False, description="Print spans to stdout when no OTLP endpoint is set")
    environment: str = Field(default="development")


class Config(BaseSettings):
    """Main configuration."""

    model_config = SettingsConfigDict(env_prefix="COMPUTE_MARKET_", env_nested_delimiter="__")

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    reputation: ReputationConfig = Field(default_factory=ReputationConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    host_channel: HostChannelConfig = Field(default_factory=HostChannelConfig)
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    return Config()
