"""
Result aggregation for one reporter run.

Folds lifecycle events into one TestRecord per identifier. Events of
different identifiers, and of different iterations of the same data-driven
identifier, may arrive interleaved and out of index order; each handler only
touches the record (and iteration) named by its event.

No roll-up happens here: a data-driven status is only meaningful once every
iteration has been seen, so the report assembler computes it at run end.
"""

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from xray_reporter.datasets import DatasetStore
from xray_reporter.events import LifecycleEvent, StepEnded, TestEnded, TestStarted
from xray_reporter.evidence import EvidenceLoader
from xray_reporter.models.records import (
    IterationRecord,
    Status,
    StepResult,
    TestKind,
    TestRecord,
    map_host_status,
)

logger = logging.getLogger(__name__)

StepKey = tuple[str, int | None, str]


def running_status(steps: list[StepResult]) -> Status:
    """FAILED as soon as one step failed, PASSED otherwise."""
    if any(step.status is Status.FAILED for step in steps):
        return Status.FAILED
    return Status.PASSED


class ResultAggregator:
    """Owns the identifier -> TestRecord mapping of a run."""

    def __init__(
        self,
        datasets: DatasetStore | None = None,
        evidence: EvidenceLoader | None = None,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            datasets: Source of iteration parameters for data-driven tests
            evidence: Loader turning attachments into evidence (None: no evidence)
        """
        self._datasets = datasets
        self._evidence = evidence
        self._records: dict[str, TestRecord] = {}
        self._recorded_steps: set[StepKey] = set()
        self._handlers: dict[type, Callable[[Any], None]] = {
            TestStarted: self.on_test_start,
            StepEnded: self.on_step_end,
            TestEnded: self.on_test_end,
        }

    @property
    def records(self) -> Mapping[str, TestRecord]:
        """Read-only view of the records, in insertion order."""
        return MappingProxyType(self._records)

    def dispatch(self, event: LifecycleEvent) -> None:
        """Route an event to its handler.

        Errors are logged and swallowed so that one broken test never
        affects the records of the others.
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"[ResultAggregator] Unknown event type: {type(event).__name__}")
            return
        try:
            handler(event)
        except Exception:
            logger.exception(f"[ResultAggregator] Failed to handle {event!r}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_test_start(self, event: TestStarted) -> None:
        record = self._get_or_create(event.identifier, event.kind, event.summary)
        if record is not None and record.started_at is None:
            record.started_at = event.timestamp

    def on_step_end(self, event: StepEnded) -> None:
        if event.nested:
            return

        key: StepKey = (event.identifier, event.iteration, event.title)
        if key in self._recorded_steps:
            logger.debug(f"[ResultAggregator] Step already recorded: {key}")
            return

        record = self._get_or_create(event.identifier, event.kind, event.summary)
        if record is None:
            return

        if event.failed:
            step = StepResult(status=Status.FAILED, actual_result=event.detail or "Step failed")
        else:
            step = StepResult(status=Status.PASSED, actual_result="OK")

        if record.is_data_driven:
            if event.iteration is None:
                logger.warning(
                    f"[ResultAggregator] Step '{event.title}' of {event.identifier} has no iteration"
                )
                return
            iteration = self._get_iteration(record, event.iteration)
            iteration.steps.append(step)
            iteration.status = running_status(iteration.steps)
        else:
            record.steps.append(step)
            record.status = running_status(record.steps)

        record.add_step_definition(event.title)
        self._recorded_steps.add(key)

    def on_test_end(self, event: TestEnded) -> None:
        record = self._get_or_create(event.identifier, event.kind)
        if record is None:
            return

        if record.is_data_driven:
            if event.iteration is None:
                logger.warning(f"[ResultAggregator] End of {event.identifier} has no iteration")
            else:
                iteration = self._get_iteration(record, event.iteration)
                status = map_host_status(event.status, iteration=True)
                if status is not None:
                    iteration.status = status
        else:
            status = map_host_status(event.status)
            if status is not None:
                record.status = status

        if self._evidence is not None and event.attachments:
            record.evidence.extend(self._evidence.load(event.attachments))

        record.finished_at = event.timestamp

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _get_or_create(
        self, identifier: str, kind: TestKind, summary: str | None = None
    ) -> TestRecord | None:
        """Fetch a record, creating it on first sight.

        Returns None when the event contradicts the record's kind.
        """
        record = self._records.get(identifier)
        if record is None:
            record = TestRecord(identifier=identifier, kind=kind, summary=summary)
            self._records[identifier] = record
            logger.debug(f"[ResultAggregator] New {kind.value} record: {identifier}")
            return record

        if record.kind is not kind:
            logger.warning(
                f"[ResultAggregator] {identifier} is {record.kind.value}, "
                f"ignoring {kind.value} event"
            )
            return None

        if record.summary is None and summary:
            record.summary = summary
        return record

    def _get_iteration(self, record: TestRecord, index: int) -> IterationRecord:
        iteration = record.iterations.get(index)
        if iteration is None:
            parameters = None
            if self._datasets is not None:
                parameters = self._datasets.parameters(record.identifier, index)
            if parameters is None:
                logger.warning(
                    f"[ResultAggregator] Iteration {index + 1} of {record.identifier} "
                    "recorded without parameters"
                )
            iteration = IterationRecord(index=index, parameters=parameters)
            record.iterations[index] = iteration
        return iteration
