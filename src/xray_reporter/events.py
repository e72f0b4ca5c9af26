"""
Lifecycle events fed to the result aggregator.

The host adapter resolves identifiers before building an event, so events
only carry what the aggregator needs to update one record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from xray_reporter.models.records import TestKind


def _now() -> datetime:
    return datetime.now(timezone.utc).astimezone()


@dataclass(frozen=True)
class Attachment:
    """A file attached to a test run by the host."""

    name: str
    path: Path
    content_type: str | None = None


@dataclass(frozen=True)
class TestStarted:
    """A test (or one iteration of a data-driven test) started."""

    __test__ = False

    identifier: str
    kind: TestKind
    summary: str | None = None
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class StepEnded:
    """A step finished."""

    identifier: str
    kind: TestKind
    title: str
    failed: bool = False
    detail: str | None = None
    iteration: int | None = None
    nested: bool = False
    summary: str | None = None


@dataclass(frozen=True)
class TestEnded:
    """A test (or one iteration) finished with the host's raw status."""

    __test__ = False

    identifier: str
    kind: TestKind
    status: str
    iteration: int | None = None
    attachments: tuple[Attachment, ...] = ()
    timestamp: datetime = field(default_factory=_now)


LifecycleEvent = TestStarted | StepEnded | TestEnded
