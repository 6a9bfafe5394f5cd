"""
CellScan Quiz Service - Centralized Configuration.
Engine and service configuration with environment-based settings.
"""
from __future__ import annotations
from functools import lru_cache
from typing import Any
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

from cellscan_common.observability import ObservabilitySettings

logger = structlog.get_logger(__name__)


class ScoringSettings(BaseSettings):
    """Response scoring configuration."""
    default_positive_value: str = Field(default="yes")
    clamp_range_values: bool = Field(default=True)
    model_config = SettingsConfigDict(env_prefix="QUIZ_SCORING_", env_file=".env", extra="ignore")


class TraversalSettings(BaseSettings):
    """Question traversal configuration."""
    max_steps: int = Field(default=500, ge=1)
    model_config = SettingsConfigDict(env_prefix="QUIZ_TRAVERSAL_", env_file=".env", extra="ignore")


class ResolverSettings(BaseSettings):
    """Risk band resolution configuration."""
    strict_integrity: bool = Field(default=False)
    check_coverage: bool = Field(default=True)
    model_config = SettingsConfigDict(env_prefix="QUIZ_RESOLVER_", env_file=".env", extra="ignore")


class QuizServiceSettings(BaseSettings):
    """Session management configuration."""
    persist_responses: bool = Field(default=True)
    max_active_sessions: int = Field(default=10000, ge=1)
    default_quiz_key: str = Field(default="default")
    model_config = SettingsConfigDict(env_prefix="QUIZ_SERVICE_", env_file=".env", extra="ignore")


class QuizEngineConfig(BaseSettings):
    """Main quiz engine configuration."""
    service_name: str = Field(default="cellscan-quiz")
    service_version: str = Field(default="1.0.0")
    environment: str = Field(default="development")
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    traversal: TraversalSettings = Field(default_factory=TraversalSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    service: QuizServiceSettings = Field(default_factory=QuizServiceSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    model_config = SettingsConfigDict(env_prefix="QUIZ_", env_file=".env", extra="ignore")

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "service_name": self.service_name,
            "service_version": self.service_version,
            "environment": self.environment,
            "scoring": {"default_positive_value": self.scoring.default_positive_value,
                        "clamp_range_values": self.scoring.clamp_range_values},
            "traversal": {"max_steps": self.traversal.max_steps},
            "resolver": {"strict_integrity": self.resolver.strict_integrity,
                         "check_coverage": self.resolver.check_coverage},
            "service": {"persist_responses": self.service.persist_responses,
                        "max_active_sessions": self.service.max_active_sessions,
                        "default_quiz_key": self.service.default_quiz_key},
        }


@lru_cache
def get_config() -> QuizEngineConfig:
    """Get cached configuration instance."""
    config = QuizEngineConfig()
    logger.info("config_loaded", environment=config.environment, service=config.service_name)
    return config


def reload_config() -> QuizEngineConfig:
    """Reload configuration (clears cache)."""
    get_config.cache_clear()
    return get_config()
