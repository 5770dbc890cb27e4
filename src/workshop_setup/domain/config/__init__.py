"""Configuration models with Pydantic validation."""

from workshop_setup.domain.config.app import AppConfig
from workshop_setup.domain.config.profile import ProfileConfig
from workshop_setup.domain.config.retry import RetryConfig, RetryPolicy
from workshop_setup.domain.config.stack import StackConfig
from workshop_setup.domain.config.steps import (
    CleanupConfig,
    PerformanceInsightsConfig,
    PgbenchConfig,
)

__all__ = [
    "AppConfig",
    "StackConfig",
    "RetryConfig",
    "RetryPolicy",
    "ProfileConfig",
    "PgbenchConfig",
    "PerformanceInsightsConfig",
    "CleanupConfig",
]
