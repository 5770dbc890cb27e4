"""CloudFormation stack output lookup"""

import logging
from typing import Any

from botocore.exceptions import ClientError

from workshop_setup.domain.models.stack_outputs import StackOutputs
from workshop_setup.infrastructure.aws.errors import PERMANENT_BOTOCORE_ERRORS, is_permanent_client_error
from workshop_setup.infrastructure.retry import PermanentFailure

logger = logging.getLogger(__name__)


class StackOutputReader:
    """Reads the outputs of a CloudFormation stack"""

    def __init__(self, client: Any):
        """Initialize reader

        Args:
            client: boto3 CloudFormation client
        """
        self.client = client

    def read(self, stack_name: str) -> StackOutputs:
        """Fetch all outputs of ``stack_name`` with a single describe-stacks call

        Raises:
            PermanentFailure: If the stack does not exist, access is denied or no credentials are configured
            ClientError: On other API errors
        """
        logger.debug(f"Describing stack {stack_name}")
        try:
            response = self.client.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if is_permanent_client_error(e):
                raise PermanentFailure(str(e)) from e
            raise
        except PERMANENT_BOTOCORE_ERRORS as e:
            raise PermanentFailure(str(e)) from e

        stacks = response.get("Stacks", [])
        if not stacks:
            raise PermanentFailure(f"Stack {stack_name} not found")
        return StackOutputs.from_outputs(stacks[0].get("Outputs", []))
