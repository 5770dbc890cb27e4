"""StackOutputs model - the outputs published by the workshop CloudFormation stack"""

from dataclasses import dataclass, fields
from typing import Dict, List, Optional

# Attribute name -> CloudFormation OutputKey
OUTPUT_KEYS: Dict[str, str] = {
    "main_secret_arn": "DatabaseSecretArn",
    "idr_secret_arn": "IDRSecretArn",
    "iops_secret_arn": "IDRInstanceSecretArn",
    "main_endpoint": "DatabaseEndpoint",
    "idr_cluster_endpoint": "IDRClusterEndpoint",
    "idr_instance_endpoint": "IDRInstanceEndpoint",
    "main_kb_id": "MainKnowledgeBaseId",
    "main_kb_bucket": "MainKnowledgeBaseBucket",
    "idr_kb_id": "IDRKnowledgeBaseId",
    "incident_table": "IDRIncidentTable",
    "idr_cluster_arn": "IDRClusterArn",
    "main_cluster_arn": "MainDBClusterArn",
    "cognito_user_pool_id": "CognitoUserPoolId",
    "cognito_client_id": "CognitoClientId",
}

REQUIRED_OUTPUTS = ("main_secret_arn", "main_endpoint")


@dataclass(frozen=True)
class StackOutputs:
    """Outputs of the workshop stack. Outputs the stack does not publish are None."""

    main_secret_arn: Optional[str] = None
    idr_secret_arn: Optional[str] = None
    iops_secret_arn: Optional[str] = None
    main_endpoint: Optional[str] = None
    idr_cluster_endpoint: Optional[str] = None
    idr_instance_endpoint: Optional[str] = None
    main_kb_id: Optional[str] = None
    main_kb_bucket: Optional[str] = None
    idr_kb_id: Optional[str] = None
    incident_table: Optional[str] = None
    idr_cluster_arn: Optional[str] = None
    main_cluster_arn: Optional[str] = None
    cognito_user_pool_id: Optional[str] = None
    cognito_client_id: Optional[str] = None

    @classmethod
    def from_outputs(cls, outputs: List[Dict[str, str]]) -> "StackOutputs":
        """Build from the ``Outputs`` list of a describe-stacks response"""
        by_key = {o.get("OutputKey"): o.get("OutputValue") for o in outputs}
        values = {}
        for attr, output_key in OUTPUT_KEYS.items():
            value = by_key.get(output_key)
            # The CLI renders absent values as "None"
            if value in (None, "", "None"):
                value = None
            values[attr] = value
        return cls(**values)

    @property
    def missing_required(self) -> List[str]:
        """OutputKeys of required outputs that are absent"""
        return [OUTPUT_KEYS[attr] for attr in REQUIRED_OUTPUTS if getattr(self, attr) is None]

    def as_dict(self) -> Dict[str, Optional[str]]:
        """Outputs keyed by CloudFormation OutputKey"""
        return {OUTPUT_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}
