"""
In-memory result records accumulated during a run.

A TestRecord is a single tagged variant: `kind` decides whether `steps` or
`iterations` is populated, never both.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from xray_reporter.models.xray import XrayEvidence, XrayParameter, XrayStepDef


class Status(str, Enum):
    """Xray test run statuses."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    EXECUTING = "EXECUTING"
    TODO = "TODO"


class TestKind(str, Enum):
    """Record variants."""

    __test__ = False

    SIMPLE = "simple"
    DATA_DRIVEN = "data_driven"


# Raw host statuses understood by the aggregator
HOST_STATUS_MAP: dict[str, Status] = {
    "passed": Status.PASSED,
    "failed": Status.FAILED,
    "timedOut": Status.FAILED,
    "skipped": Status.TODO,
    "interrupted": Status.TODO,
}

# Iterations keep "skipped" visible for the roll-up
ITERATION_STATUS_MAP: dict[str, Status] = {
    **HOST_STATUS_MAP,
    "skipped": Status.SKIPPED,
}


def map_host_status(raw: str, *, iteration: bool = False) -> Status | None:
    """Map a raw host status to an Xray status.

    Args:
        raw: Status reported by the host runner.
        iteration: Use the iteration mapping (keeps SKIPPED).

    Returns:
        The Xray status, or None for unknown raw values.
    """
    mapping = ITERATION_STATUS_MAP if iteration else HOST_STATUS_MAP
    return mapping.get(raw)


@dataclass
class StepResult:
    """Outcome of one top-level step."""

    status: Status
    actual_result: str = "OK"


@dataclass
class IterationRecord:
    """One data-driven iteration."""

    index: int
    parameters: list[XrayParameter] | None = None
    status: Status | None = None
    steps: list[StepResult] = field(default_factory=list)


@dataclass
class TestRecord:
    """Aggregated result for one external identifier."""

    __test__ = False  # not a pytest test class

    identifier: str
    kind: TestKind
    status: Status | None = None
    steps: list[StepResult] = field(default_factory=list)
    iterations: dict[int, IterationRecord] = field(default_factory=dict)
    evidence: list[XrayEvidence] = field(default_factory=list)

    # testInfo, only filled when test details are overridden
    summary: str | None = None
    step_definitions: list[XrayStepDef] = field(default_factory=list)

    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_data_driven(self) -> bool:
        return self.kind is TestKind.DATA_DRIVEN

    def add_step_definition(self, action: str) -> None:
        """Add a step definition unless one with the same action exists."""
        if not any(d.action == action for d in self.step_definitions):
            self.step_definitions.append(XrayStepDef(action=action))
