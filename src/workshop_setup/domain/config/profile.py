"""Login profile configuration model."""

from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field


def _default_aliases() -> Dict[str, str]:
    return {
        "iops-test": "/workshop/load-test/iops-test.sh",
        "acu-test": "/workshop/load-test/acu-test.sh",
        "main-test": "/workshop/load-test/run_stress_test.sh -s $MAIN_SECRET_ARN -w CPU",
        "simulation-2": "cd /workshop/database-workload && python3 simulation-2.py",
        "simulation-3": "cd /workshop/database-workload && python3 simulation-3.py",
        "start-mahavat-v1": "cd /workshop/mahavat_agent && /workshop/mahavat_agent/mahavat_agent_v1.sh",
        "start-mahavat-v2": "cd /workshop/mahavat_agent && /workshop/mahavat_agent/mahavat_agent_v2.sh",
    }


class ProfileConfig(BaseModel):
    """Configuration for the login profile the workshop environment is written to.

    Attributes:
        path: Profile file receiving the managed block
        owner: User (and group) that should own the profile (None = leave as is)
        venv_activate: Virtualenv activate script sourced on login when present
        aliases: Shell aliases to define, name -> command
        demo_username: Demo user name exported as DEMO_USERNAME (None = not exported)
        demo_password: Demo password exported as DEMO_PASSWORD (None = not exported)
    """

    path: Path = Path("/home/ec2-user/.bashrc")
    owner: Optional[str] = "ec2-user"
    venv_activate: Optional[Path] = Path("/workshop/mahavat_agent/venv/bin/activate")
    aliases: Dict[str, str] = Field(default_factory=_default_aliases)
    demo_username: Optional[str] = "demo"
    demo_password: Optional[str] = None
