"""Optional workflow step configuration models."""

from pydantic import BaseModel, Field


class PgbenchConfig(BaseModel):
    """Configuration for the pgbench seed on the IDR instance.

    Attributes:
        enabled: Whether to run ``pgbench -i``
        scale: pgbench scale factor
    """

    enabled: bool = True
    scale: int = Field(200, gt=0)


class PerformanceInsightsConfig(BaseModel):
    """Configuration for enabling RDS Performance Insights.

    Attributes:
        enabled: Whether to check and enable Performance Insights
        retention_days: Retention period for Performance Insights data
    """

    enabled: bool = True
    retention_days: int = Field(7, gt=0)


class CleanupConfig(BaseModel):
    """Configuration for truncating the incident table.

    Attributes:
        enabled: Whether to truncate the table
        settle_seconds: Wait before truncating so bootstrap writers finish
    """

    enabled: bool = True
    settle_seconds: float = Field(300.0, ge=0.0)
