"""Workshop stack configuration model."""

from typing import Optional

from pydantic import BaseModel, Field


class StackConfig(BaseModel):
    """Configuration for the CloudFormation stack being bootstrapped.

    Attributes:
        name: Stack name (None = from WORKSHOP_STACK_NAME env)
        region: AWS region of the stack
    """

    name: Optional[str] = None
    region: str = Field("us-west-2", min_length=1)
