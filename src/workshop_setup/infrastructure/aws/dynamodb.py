"""DynamoDB table truncation"""

import logging
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from workshop_setup.infrastructure.aws.errors import PERMANENT_BOTOCORE_ERRORS, is_permanent_client_error
from workshop_setup.infrastructure.retry import PermanentFailure

logger = logging.getLogger(__name__)


class TableCleaner:
    """Deletes every item of a DynamoDB table, keeping the table itself"""

    def __init__(self, client: Any):
        """Initialize cleaner

        Args:
            client: boto3 DynamoDB client
        """
        self.client = client

    def key_attributes(self, table_name: str) -> List[str]:
        """Get the key attribute names (partition key first) of a table"""
        try:
            response = self.client.describe_table(TableName=table_name)
        except ClientError as e:
            if is_permanent_client_error(e):
                raise PermanentFailure(str(e)) from e
            raise
        except PERMANENT_BOTOCORE_ERRORS as e:
            raise PermanentFailure(str(e)) from e

        schema = response["Table"]["KeySchema"]
        # HASH sorts before RANGE
        return [k["AttributeName"] for k in sorted(schema, key=lambda k: k["KeyType"])]

    def truncate(self, table_name: str) -> int:
        """Delete all items of ``table_name``

        Deleting is idempotent, so a failed run can be repeated from the start.

        Returns:
            Number of deleted items
        """
        keys = self.key_attributes(table_name)
        names = {f"#k{i}": name for i, name in enumerate(keys)}
        paginator = self.client.get_paginator("scan")
        pages = paginator.paginate(
            TableName=table_name,
            ProjectionExpression=", ".join(names),
            ExpressionAttributeNames=names,
        )

        deleted = 0
        for page in pages:
            for item in page.get("Items", []):
                key: Dict[str, Any] = {name: item[name] for name in keys if name in item}
                if len(key) != len(keys):
                    logger.warning(f"Skipping item without full key in {table_name}: {item}")
                    continue
                logger.debug(f"Deleting {key} from {table_name}")
                self.client.delete_item(TableName=table_name, Key=key)
                deleted += 1

        logger.info(f"Deleted {deleted} items from {table_name}")
        return deleted
