"""Lifecycle event factories shared by the tests."""

from xray_reporter.events import StepEnded, TestEnded, TestStarted
from xray_reporter.models.records import TestKind


def simple_start(identifier: str, summary: str = "Simple test") -> TestStarted:
    return TestStarted(identifier=identifier, kind=TestKind.SIMPLE, summary=summary)


def simple_step(identifier: str, title: str, *, failed: bool = False, **kwargs) -> StepEnded:
    return StepEnded(identifier=identifier, kind=TestKind.SIMPLE, title=title, failed=failed, **kwargs)


def simple_end(identifier: str, status: str, **kwargs) -> TestEnded:
    return TestEnded(identifier=identifier, kind=TestKind.SIMPLE, status=status, **kwargs)


def ddt_start(identifier: str, summary: str = "Data driven test") -> TestStarted:
    return TestStarted(identifier=identifier, kind=TestKind.DATA_DRIVEN, summary=summary)


def ddt_step(identifier: str, iteration: int, title: str, *, failed: bool = False, **kwargs) -> StepEnded:
    return StepEnded(
        identifier=identifier,
        kind=TestKind.DATA_DRIVEN,
        title=title,
        failed=failed,
        iteration=iteration,
        **kwargs,
    )


def ddt_end(identifier: str, iteration: int, status: str, **kwargs) -> TestEnded:
    return TestEnded(
        identifier=identifier,
        kind=TestKind.DATA_DRIVEN,
        status=status,
        iteration=iteration,
        **kwargs,
    )
