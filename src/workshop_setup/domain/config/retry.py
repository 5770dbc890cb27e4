"""Retry configuration models."""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Exponential backoff policy for a single operation.

    Attributes:
        max_attempts: Maximum number of attempts (1 = no retry)
        initial_delay: Delay in seconds before the second attempt
        backoff_multiplier: Factor applied to the delay after each failed attempt
    """

    max_attempts: int = Field(10, gt=0)
    initial_delay: float = Field(2.0, ge=0.0)  # Allow 0 for tests
    backoff_multiplier: float = Field(2.0, ge=1.0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def delay_after(self, attempt_number: int) -> float:
        """Delay in seconds after failed attempt ``attempt_number`` (1-based)."""
        if attempt_number < 1:
            raise ValueError(f"attempt_number must be >= 1, got {attempt_number}")
        return self.initial_delay * self.backoff_multiplier ** (attempt_number - 1)

    def schedule(self) -> List[float]:
        """Delays between consecutive attempts when every attempt fails."""
        return [self.delay_after(n) for n in range(1, self.max_attempts)]


class RetryConfig(BaseModel):
    """Retry policies for the setup workflow.

    Attributes:
        default: Policy used by operations without their own entry
        operations: Per-operation policies keyed by operation name
    """

    default: RetryPolicy = Field(default_factory=RetryPolicy)
    operations: Dict[str, RetryPolicy] = Field(default_factory=dict)

    def policy_for(self, operation: str) -> RetryPolicy:
        return self.operations.get(operation, self.default)
