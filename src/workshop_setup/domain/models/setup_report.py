"""SetupReport model - outcome of each workflow step"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class StepResult:
    """Result of one workflow step"""

    name: str
    succeeded: bool
    required: bool = False
    skipped: bool = False
    detail: Optional[str] = None

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return "ok" if self.succeeded else "failed"


@dataclass
class SetupReport:
    """Collected step results of a setup run"""

    steps: List[StepResult] = field(default_factory=list)

    def add(self, result: StepResult) -> StepResult:
        self.steps.append(result)
        return result

    @property
    def warnings(self) -> List[StepResult]:
        """Optional steps that ran and failed"""
        return [s for s in self.steps if not s.skipped and not s.succeeded and not s.required]

    @property
    def succeeded(self) -> bool:
        """True when no required step failed"""
        return all(s.succeeded or s.skipped for s in self.steps if s.required)

    def get(self, name: str) -> Optional[StepResult]:
        for step in self.steps:
            if step.name == name:
                return step
        return None
