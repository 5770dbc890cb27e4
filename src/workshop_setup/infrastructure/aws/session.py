"""boto3 session and client construction."""

import logging
from typing import Any, Optional

import boto3

logger = logging.getLogger(__name__)


class AwsClients:
    """Lazily created boto3 clients sharing one session"""

    def __init__(self, region: str, session: Optional[boto3.session.Session] = None):
        self.region = region
        self.session = session or boto3.session.Session(region_name=region)
        self._clients = {}

    def client(self, service_name: str) -> Any:
        if service_name not in self._clients:
            logger.debug(f"Creating {service_name} client in {self.region}")
            self._clients[service_name] = self.session.client(service_name, region_name=self.region)
        return self._clients[service_name]
