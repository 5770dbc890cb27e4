"""RDS instance lookup and Performance Insights management"""

import logging
from typing import Any, Optional

from botocore.exceptions import ClientError

from workshop_setup.infrastructure.aws.errors import PERMANENT_BOTOCORE_ERRORS, is_permanent_client_error
from workshop_setup.infrastructure.retry import PermanentFailure

logger = logging.getLogger(__name__)


def instance_id_from_endpoint(endpoint: Optional[str]) -> Optional[str]:
    """Leading DNS label of an RDS endpoint, which is the cluster or instance identifier"""
    if not endpoint or endpoint == "None":
        return None
    return endpoint.split(".", 1)[0] or None


class RdsClient:
    """Client for the RDS calls the setup workflow needs"""

    def __init__(self, client: Any):
        """Initialize RDS client

        Args:
            client: boto3 RDS client
        """
        self.client = client

    def cluster_instance(self, cluster_id: str) -> Optional[str]:
        """Get the writer instance of a cluster (first member if none is flagged writer)

        Returns:
            DB instance identifier, or None if the cluster has no members
        """
        try:
            response = self.client.describe_db_clusters(DBClusterIdentifier=cluster_id)
        except ClientError as e:
            if is_permanent_client_error(e):
                raise PermanentFailure(str(e)) from e
            raise
        except PERMANENT_BOTOCORE_ERRORS as e:
            raise PermanentFailure(str(e)) from e

        clusters = response.get("DBClusters", [])
        if not clusters:
            return None
        members = clusters[0].get("DBClusterMembers", [])
        if not members:
            return None
        for member in members:
            if member.get("IsClusterWriter"):
                return member.get("DBInstanceIdentifier")
        return members[0].get("DBInstanceIdentifier")

    def performance_insights_enabled(self, instance_id: str) -> bool:
        """Check whether Performance Insights is enabled on an instance"""
        try:
            response = self.client.describe_db_instances(DBInstanceIdentifier=instance_id)
        except ClientError as e:
            if is_permanent_client_error(e):
                raise PermanentFailure(str(e)) from e
            raise
        except PERMANENT_BOTOCORE_ERRORS as e:
            raise PermanentFailure(str(e)) from e

        instances = response.get("DBInstances", [])
        if not instances:
            raise PermanentFailure(f"DB instance {instance_id} not found")
        return bool(instances[0].get("PerformanceInsightsEnabled"))

    def enable_performance_insights(self, instance_id: str, retention_days: int = 7) -> None:
        """Enable Performance Insights on an instance, applied immediately"""
        logger.debug(f"Enabling Performance Insights on {instance_id} ({retention_days} days retention)")
        try:
            self.client.modify_db_instance(
                DBInstanceIdentifier=instance_id,
                EnablePerformanceInsights=True,
                PerformanceInsightsRetentionPeriod=retention_days,
                ApplyImmediately=True,
            )
        except ClientError as e:
            if is_permanent_client_error(e):
                raise PermanentFailure(str(e)) from e
            raise
        except PERMANENT_BOTOCORE_ERRORS as e:
            raise PermanentFailure(str(e)) from e
