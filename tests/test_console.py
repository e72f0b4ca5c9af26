"""
Tests for console output and run metrics.

Run with: uv run pytest tests/test_console.py -v
"""

import pytest
from rich.console import Console

from xray_reporter.console import ReporterConsole, format_duration
from xray_reporter.metrics import RunMetrics


@pytest.fixture
def console():
    return ReporterConsole(Console(record=True, width=200, color_system=None))


def _text(console: ReporterConsole) -> str:
    return console.console.export_text()


class TestFormatDuration:
    @pytest.mark.parametrize(
        "milliseconds,expected",
        [(120, "120msec"), (30_000, "30s"), (90_000, "1.5m"), (999, "999msec")],
    )
    def test_units(self, milliseconds, expected):
        assert format_duration(milliseconds) == expected


class TestReporterConsole:
    def test_progress_lines(self, console):
        console.total = 3

        console.test_result("Login", "passed", 1500, identifier="PROV-1")
        console.test_result("Logout", "failed", 200, identifier="PROV-2")
        console.test_result("Search", "skipped", 0)

        lines = _text(console).splitlines()
        assert lines[0].startswith("1/3")
        assert "✅ Login" in lines[0] and "- 1s" in lines[0]
        assert "❌ Logout" in lines[1] and "200msec" in lines[1]
        assert "⏩ Search" in lines[2] and "Excluded" in lines[2]

    def test_project_label(self, console):
        console.total = 1

        console.test_result("Login", "passed", 10, project="PROV", identifier="PROV-1")

        assert "✅ PROV ✅ Login" in _text(console)

    def test_unknown_status_counts_without_output(self, console):
        console.total = 2

        console.test_result("Odd", "interrupted", 0, identifier="PROV-1")
        console.test_result("Login", "passed", 10, identifier="PROV-1")

        assert _text(console).startswith("2/2")

    def test_markup_in_messages_is_escaped(self, console):
        console.info("[bold]not markup[/bold]")

        assert "[bold]not markup[/bold]" in _text(console)

    def test_summary_table(self, console):
        metrics = RunMetrics()
        for raw in ("passed", "passed", "failed", "skipped"):
            metrics.update(raw)
        metrics.stop()

        console.summary(metrics)

        text = _text(console)
        assert "Xray execution summary" in text
        assert "Executed" in text


class TestRunMetrics:
    def test_counts(self):
        metrics = RunMetrics()
        for raw in ("passed", "failed", "timedOut", "skipped", "interrupted"):
            metrics.update(raw)

        assert (metrics.executed, metrics.passed, metrics.failed, metrics.skipped) == (5, 1, 2, 1)

    def test_runtime_frozen_after_stop(self):
        metrics = RunMetrics(started=10.0)
        metrics.finished = 12.5

        assert metrics.runtime_seconds == 2.5
