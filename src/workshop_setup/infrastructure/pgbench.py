"""pgbench runner for seeding the benchmark database"""

import logging
import os
import subprocess
from typing import List

from workshop_setup.domain.models.credentials import DatabaseCredentials
from workshop_setup.infrastructure.retry import PermanentFailure

logger = logging.getLogger(__name__)


class PgbenchRunner:
    """Runs ``pgbench -i`` against a database"""

    def __init__(self, executable: str = "pgbench", timeout: float = 3600.0):
        self.executable = executable
        self.timeout = timeout

    def build_command(self, credentials: DatabaseCredentials, scale: int) -> List[str]:
        return [
            self.executable,
            "-i",
            "-s",
            str(scale),
            "-h",
            credentials.host,
            "-p",
            str(credentials.port),
            "-U",
            credentials.username,
            "-d",
            credentials.dbname,
        ]

    def initialize(self, credentials: DatabaseCredentials, scale: int = 200) -> bool:
        """Create and populate the pgbench tables

        The password reaches pgbench through the child's environment only.

        Returns:
            True if pgbench exited with status 0

        Raises:
            PermanentFailure: If the pgbench executable is not installed
        """
        command = self.build_command(credentials, scale)
        env = dict(os.environ)
        env["PGPASSWORD"] = credentials.password

        logger.info(f"Running pgbench -i -s {scale} on {credentials.host}:{credentials.port}/{credentials.dbname}")
        try:
            completed = subprocess.run(
                command,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise PermanentFailure(f"{self.executable} not found: {e}") from e
        except subprocess.TimeoutExpired:
            logger.warning(f"pgbench timed out after {self.timeout}s")
            return False

        if completed.returncode != 0:
            logger.warning(f"pgbench exited with status {completed.returncode}: {completed.stderr.strip()}")
            return False
        return True
