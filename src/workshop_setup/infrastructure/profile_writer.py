"""Login profile rendering and writing.

The workshop environment lives in one marker-delimited block of the profile.
Writing replaces that block when it already exists, so setup can be rerun
without piling up duplicate exports.
"""

from __future__ import annotations

import logging
import re
import shlex
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from workshop_setup.domain.config.profile import ProfileConfig
from workshop_setup.domain.models.credentials import DatabaseCredentials
from workshop_setup.domain.models.stack_outputs import StackOutputs

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# >>> workshop-setup >>>"
END_MARKER = "# <<< workshop-setup <<<"

_BLOCK_RE = re.compile(
    re.escape(BEGIN_MARKER) + r".*?" + re.escape(END_MARKER) + r"\n?",
    re.DOTALL,
)

WORKSHOP_ENV_PATTERN = "(AWS_|RDS_|DATABASE_|IDR_|PGHOST|PGPORT|PGUSER|PGDATABASE|KB_ID|DYNAMODB)"

# Helper function, WorkshopEnvironment database attribute, description
PSQL_FUNCTIONS = (
    ("psql_main", "main", "Connect to main database"),
    ("psql_idr_acu", "idr", "Connect to IDR ACU cluster"),
    ("psql_idr_iops", "iops", "Connect to IDR IOPS instance"),
)


@dataclass
class WorkshopEnvironment:
    """Everything the profile block is rendered from"""

    stack_name: str
    region: str
    outputs: StackOutputs
    main: Optional[DatabaseCredentials] = None
    idr: Optional[DatabaseCredentials] = None
    iops: Optional[DatabaseCredentials] = None


def _quote(value: object) -> str:
    return shlex.quote("" if value is None else str(value))


def _psql_function(name: str, credentials: DatabaseCredentials) -> List[str]:
    assignments = " ".join(f"{k}={_quote(v)}" for k, v in credentials.pg_env.items())
    return [
        f"function {name}() {{",
        f'  {assignments} psql "$@"',
        "}",
    ]


def build_exports(env: WorkshopEnvironment, config: ProfileConfig) -> Dict[str, Optional[str]]:
    """Environment variables exported by the profile, in output order"""
    outputs = env.outputs
    main = env.main
    idr = env.idr
    iops = env.iops

    exports: Dict[str, Optional[str]] = {
        # AWS
        "AWS_REGION": env.region,
        "AWS_DEFAULT_REGION": env.region,
        "WORKSHOP_STACK_NAME": env.stack_name,
        # Main database
        "RDS_SECRET_ARN": outputs.main_secret_arn,
        "RDS_CLUSTER_ARN": outputs.main_cluster_arn,
        "DATABASE_NAME": main.dbname if main else None,
        "DB_SECRET_ARN": outputs.main_secret_arn,
        "DB_ENDPOINT": main.host if main else None,
        "DB_PORT": str(main.port) if main else None,
        "DB_USER": main.username if main else None,
        "DB_PASS": main.password if main else None,
        "DB_NAME": main.dbname if main else None,
        "MAIN_SECRET_ARN": outputs.main_secret_arn,
    }
    # PostgreSQL defaults point at the main database
    if main:
        exports.update(main.pg_env)
    exports.update(
        {
            # Legacy names
            "DATABASE_ENDPOINT": main.host if main else None,
            "DATABASE_PORT": str(main.port) if main else None,
            "DATABASE_SECRET_ARN": outputs.main_secret_arn,
            "HOST": main.host if main else None,
            # IDR cluster
            "IDR_CLUSTER_ARN": outputs.idr_cluster_arn,
            "IDR_SECRET_ARN": outputs.idr_secret_arn,
            "IDR_DATABASE_NAME": idr.dbname if idr else None,
            "IDR_CLUSTER_ENDPOINT": idr.host if idr else None,
            # IDR instance
            "IOPS_SECRET_ARN": outputs.iops_secret_arn,
            "IDR_IOPS_ENDPOINT": iops.host if iops else None,
            # Knowledge bases
            "MAIN_KB_ID": outputs.main_kb_id,
            "MAIN_KB_BUCKET": outputs.main_kb_bucket,
            "IDR_KB_ID": outputs.idr_kb_id,
            # DynamoDB
            "DYNAMODB_TABLE": outputs.incident_table,
            "INCIDENT_TABLE": outputs.incident_table,
            # Cognito
            "COGNITO_USER_POOL_ID": outputs.cognito_user_pool_id,
            "COGNITO_CLIENT_ID": outputs.cognito_client_id,
        }
    )
    if config.demo_username:
        exports["DEMO_USERNAME"] = config.demo_username
    if config.demo_password:
        exports["DEMO_PASSWORD"] = config.demo_password
    return exports


def render_profile_block(env: WorkshopEnvironment, config: ProfileConfig) -> str:
    """Render the managed profile block, markers included"""
    lines = [BEGIN_MARKER, "# Workshop environment, managed by workshop-setup. Edits are overwritten."]

    databases = [(name, getattr(env, attr)) for name, attr, _ in PSQL_FUNCTIONS]
    functions = [(name, creds) for name, creds in databases if creds is not None]
    if functions:
        lines.append("")
        lines.append("# PostgreSQL connection functions")
        for name, creds in functions:
            lines.extend(_psql_function(name, creds))

    lines.append("")
    lines.append("# Environment variables")
    for name, value in build_exports(env, config).items():
        if value is None:
            continue
        lines.append(f"export {name}={_quote(value)}")

    if config.aliases:
        lines.append("")
        lines.append("# Aliases")
        for name, command in config.aliases.items():
            lines.append(f"alias {name}={_quote(command)}")

    if config.venv_activate:
        activate = _quote(config.venv_activate)
        lines.append("")
        lines.append(f"if [ -f {activate} ]; then")
        lines.append(f"    source {activate}")
        lines.append("fi")

    lines.append("")
    workshop_env = f"env | grep -E {_quote(WORKSHOP_ENV_PATTERN)} | sort"
    lines.append(f"alias workshop-env={_quote(workshop_env)}")
    lines.append("echo \"Workshop environment loaded! Use 'workshop-env' to see all variables.\"")
    lines.append(END_MARKER)
    return "\n".join(lines) + "\n"


def merge_profile_block(existing: str, block: str) -> str:
    """Replace the managed block in ``existing``, or append it"""
    if _BLOCK_RE.search(existing):
        return _BLOCK_RE.sub(lambda _: block, existing, count=1)
    if existing and not existing.endswith("\n"):
        existing += "\n"
    separator = "\n" if existing else ""
    return existing + separator + block


class ProfileWriter:
    """Writes the workshop block into the login profile"""

    def __init__(self, config: ProfileConfig):
        self.config = config

    @property
    def path(self) -> Path:
        return Path(self.config.path)

    def render(self, env: WorkshopEnvironment) -> str:
        return render_profile_block(env, self.config)

    def write(self, env: WorkshopEnvironment) -> Path:
        """Write the block and hand the profile to the configured owner

        Returns:
            Path of the written profile
        """
        path = self.path
        existing = path.read_text(encoding="utf-8") if path.exists() else ""
        updated = merge_profile_block(existing, self.render(env))

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(updated, encoding="utf-8")
        path.chmod(0o600)
        logger.info(f"Wrote workshop environment to {path}")

        if self.config.owner:
            try:
                shutil.chown(path, user=self.config.owner, group=self.config.owner)
            except (LookupError, PermissionError) as e:
                logger.warning(f"Could not change owner of {path} to {self.config.owner}: {e}")
        return path
