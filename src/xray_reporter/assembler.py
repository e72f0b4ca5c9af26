"""
Report assembly at run end.

Turns the aggregated records into the Xray JSON document, computing the
roll-up status of data-driven tests from their iterations.
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from xray_reporter.models.records import IterationRecord, Status, StepResult, TestRecord
from xray_reporter.models.xray import (
    XrayInfo,
    XrayIteration,
    XrayReport,
    XrayStepResult,
    XrayTest,
    XrayTestInfo,
)

logger = logging.getLogger(__name__)


def rollup_status(iterations: Iterable[IterationRecord]) -> Status:
    """
    Overall status of a data-driven test.

    Precedence:
    - any iteration FAILED -> FAILED
    - every iteration PASSED -> PASSED
    - any iteration SKIPPED -> EXECUTING
    - otherwise PASSED

    Args:
        iterations: Iterations of one record

    Returns:
        Roll-up status
    """
    statuses = [iteration.status for iteration in iterations]
    if any(status is Status.FAILED for status in statuses):
        return Status.FAILED
    if all(status is Status.PASSED for status in statuses):
        return Status.PASSED
    if any(status is Status.SKIPPED for status in statuses):
        return Status.EXECUTING
    return Status.PASSED


def dense_iterations(record: TestRecord) -> list[IterationRecord]:
    """Iterations ordered by index, logging holes in the 0..max range."""
    if not record.iterations:
        return []
    last = max(record.iterations)
    missing = [index + 1 for index in range(last + 1) if index not in record.iterations]
    if missing:
        logger.warning(
            f"[ReportAssembler] {record.identifier}: no result for iteration(s) "
            f"{', '.join(map(str, missing))}"
        )
    return [record.iterations[index] for index in sorted(record.iterations)]


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat(timespec="seconds") if value else None


def _step_results(steps: list[StepResult]) -> list[XrayStepResult]:
    return [
        XrayStepResult(status=step.status.value, actual_result=step.actual_result)
        for step in steps
    ]


class ReportAssembler:
    """Builds the exportable Xray document."""

    def __init__(
        self,
        *,
        project: str | None = None,
        test_execution_key: str | None = None,
        test_plan_key: str | None = None,
        executed_by: str | None = None,
        override_test_detail: bool = False,
    ) -> None:
        self.project = project
        self.test_execution_key = test_execution_key
        self.test_plan_key = test_plan_key
        self.executed_by = executed_by
        self.override_test_detail = override_test_detail

    def assemble(
        self,
        records: Iterable[TestRecord],
        *,
        started_at: datetime | None = None,
        finished_at: datetime | None = None,
    ) -> XrayReport:
        """Render all records, in insertion order."""
        tests = [self.to_xray_test(record) for record in records]

        info = XrayInfo(
            project=self.project,
            user=self.executed_by,
            start_date=_format_time(started_at),
            finish_date=_format_time(finished_at),
            test_plan_key=self.test_plan_key,
        )

        return XrayReport(
            test_execution_key=self.test_execution_key,
            info=info if info.model_dump(exclude_none=True) else None,
            tests=tests,
        )

    def to_xray_test(self, record: TestRecord) -> XrayTest:
        test = XrayTest(
            test_key=record.identifier,
            start=_format_time(record.started_at),
            finish=_format_time(record.finished_at),
            executed_by=self.executed_by,
            evidence=list(record.evidence) or None,
        )

        if self.override_test_detail:
            test.test_info = XrayTestInfo(
                project_key=self.project,
                summary=record.summary or record.identifier,
                steps=list(record.step_definitions) or None,
            )

        if record.is_data_driven:
            iterations = dense_iterations(record)
            test.status = rollup_status(iterations).value
            test.iterations = [
                XrayIteration(
                    parameters=iteration.parameters,
                    status=iteration.status.value if iteration.status else None,
                    steps=_step_results(iteration.steps),
                )
                for iteration in iterations
            ]
        else:
            test.status = record.status.value if record.status else None
            test.steps = _step_results(record.steps) or None

        return test
