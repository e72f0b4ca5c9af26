"""Execution counters for the end-of-run summary."""

import time
from dataclasses import dataclass, field


@dataclass
class RunMetrics:
    """Counts test outcomes as reported by the host, linked to Jira or not."""

    executed: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    started: float = field(default_factory=time.monotonic)
    finished: float | None = None

    def update(self, raw_status: str) -> None:
        self.executed += 1
        if raw_status == "passed":
            self.passed += 1
        elif raw_status in ("failed", "timedOut"):
            self.failed += 1
        elif raw_status == "skipped":
            self.skipped += 1

    def stop(self) -> None:
        self.finished = time.monotonic()

    @property
    def runtime_seconds(self) -> float:
        end = self.finished if self.finished is not None else time.monotonic()
        return end - self.started
