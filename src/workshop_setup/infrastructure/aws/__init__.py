"""AWS collaborators backed by boto3 clients"""

from workshop_setup.infrastructure.aws.cloudformation import StackOutputReader
from workshop_setup.infrastructure.aws.dynamodb import TableCleaner
from workshop_setup.infrastructure.aws.rds import RdsClient
from workshop_setup.infrastructure.aws.secrets import SecretsClient
from workshop_setup.infrastructure.aws.session import AwsClients

__all__ = ["AwsClients", "StackOutputReader", "SecretsClient", "RdsClient", "TableCleaner"]
