"""Secrets Manager credential retrieval"""

import logging
from typing import Any

from botocore.exceptions import ClientError

from workshop_setup.domain.models.credentials import DatabaseCredentials
from workshop_setup.infrastructure.aws.errors import PERMANENT_BOTOCORE_ERRORS, is_permanent_client_error
from workshop_setup.infrastructure.retry import PermanentFailure

logger = logging.getLogger(__name__)


class SecretsClient:
    """Fetches database credentials stored as JSON secrets"""

    def __init__(self, client: Any):
        self.client = client

    def get_database_credentials(self, secret_arn: str) -> DatabaseCredentials:
        """Fetch and parse the secret ``secret_arn``

        Raises:
            PermanentFailure: If the secret is missing, inaccessible or malformed
            ClientError: On other API errors
        """
        logger.debug(f"Fetching secret {secret_arn}")
        try:
            response = self.client.get_secret_value(SecretId=secret_arn)
        except ClientError as e:
            if is_permanent_client_error(e):
                raise PermanentFailure(str(e)) from e
            raise
        except PERMANENT_BOTOCORE_ERRORS as e:
            raise PermanentFailure(str(e)) from e

        secret_string = response.get("SecretString")
        if not secret_string:
            raise PermanentFailure(f"Secret {secret_arn} has no SecretString")
        try:
            return DatabaseCredentials.from_secret_string(secret_string)
        except ValueError as e:
            raise PermanentFailure(f"Secret {secret_arn} is malformed: {e}") from e
