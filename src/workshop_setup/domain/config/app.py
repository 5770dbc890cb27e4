"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from workshop_setup.domain.config.profile import ProfileConfig
from workshop_setup.domain.config.retry import RetryConfig
from workshop_setup.domain.config.stack import StackConfig
from workshop_setup.domain.config.steps import (
    CleanupConfig,
    PerformanceInsightsConfig,
    PgbenchConfig,
)


class AppConfig(BaseModel):
    """Main application configuration.

    This is the root configuration model that aggregates all configuration sections.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        stack: Stack name and region
        retry: Retry policies
        profile: Login profile settings
        pgbench: pgbench seed settings
        performance_insights: Performance Insights settings
        cleanup: Incident table cleanup settings
    """

    stack: StackConfig = Field(default_factory=StackConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    profile: ProfileConfig = Field(default_factory=ProfileConfig)
    pgbench: PgbenchConfig = Field(default_factory=PgbenchConfig)
    performance_insights: PerformanceInsightsConfig = Field(
        default_factory=PerformanceInsightsConfig
    )
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "stack": {"name": "dat301-workshop", "region": "us-west-2"},
                "retry": {
                    "default": {
                        "max_attempts": 10,
                        "initial_delay": 2.0,
                        "backoff_multiplier": 2.0,
                    },
                    "operations": {
                        "stack_outputs": {"max_attempts": 3, "initial_delay": 1.0},
                    },
                },
                "profile": {"path": "/home/ec2-user/.bashrc", "owner": "ec2-user"},
                "pgbench": {"enabled": True, "scale": 200},
                "performance_insights": {"enabled": True, "retention_days": 7},
                "cleanup": {"enabled": True, "settle_seconds": 300},
            }
        },
    )
