"""DatabaseCredentials model - connection settings stored in a Secrets Manager secret"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class DatabaseCredentials:
    """Credentials for a PostgreSQL database"""

    host: str
    port: int
    username: str
    password: str = field(repr=False)
    dbname: str

    @classmethod
    def from_secret_string(cls, secret_string: str) -> "DatabaseCredentials":
        """Parse an RDS-style secret (host, port, username, password, dbname)

        Raises:
            ValueError: If the secret is not JSON or lacks a field
        """
        try:
            data: Dict[str, Any] = json.loads(secret_string)
        except json.JSONDecodeError as e:
            raise ValueError(f"Secret is not valid JSON: {e.msg}") from e
        if not isinstance(data, dict):
            raise ValueError("Secret must be a JSON object")

        missing = [k for k in ("host", "port", "username", "password", "dbname") if k not in data]
        if missing:
            raise ValueError(f"Secret is missing fields: {', '.join(missing)}")

        try:
            port = int(data["port"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Secret has invalid port: {data['port']!r}") from e

        return cls(
            host=str(data["host"]),
            port=port,
            username=str(data["username"]),
            password=str(data["password"]),
            dbname=str(data["dbname"]),
        )

    @property
    def pg_env(self) -> Dict[str, str]:
        """libpq environment variables for these credentials"""
        return {
            "PGHOST": self.host,
            "PGPORT": str(self.port),
            "PGUSER": self.username,
            "PGPASSWORD": self.password,
            "PGDATABASE": self.dbname,
        }
