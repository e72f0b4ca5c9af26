"""Console output of the reporter (progress lines, banners, run summary)."""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from xray_reporter.metrics import RunMetrics

PREFIX = "XRAY-REPORTER ->"


def format_duration(milliseconds: float) -> str:
    """Human readable duration: `1.5m`, `30s` or `120msec`."""
    seconds = milliseconds / 1000
    if seconds >= 60:
        return f"{seconds / 60:.1f}m"
    if seconds >= 1:
        return f"{int(seconds)}s"
    return f"{int(milliseconds)}msec"


class ReporterConsole:
    """Rich console wrapper with the reporter's message styles."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self.total = 0
        self._progress = 1

    def info(self, message: str) -> None:
        self.console.print(f"[bold bright_black]⚡ {PREFIX} {escape(message)} ⚡[/]")

    def warning(self, message: str) -> None:
        self.console.print(f"[bold yellow]⚠️  {PREFIX} {escape(message)}[/]")

    def error(self, message: str) -> None:
        self.console.print(f"[bold bright_red]⛔️ {PREFIX} {escape(message)}[/]")

    def success(self, message: str) -> None:
        self.console.print(f"[bold bright_green]❇️  {escape(message)}[/]")

    def test_result(
        self,
        title: str,
        raw_status: str,
        duration_ms: float,
        *,
        project: str | None = None,
        identifier: str | None = None,
    ) -> None:
        """Print one progress line. Other statuses print nothing but still count."""
        label = f"{project} " if project else ""
        title = escape(title)
        excluded = "" if identifier else " - [bold yellow]⚡ Excluded.⚡[/]"
        progress = f"{self._progress}/{self.total}\t"

        if raw_status == "passed":
            line = f"{progress}[bold bright_green]✅ {label}✅ {title}[/]{excluded} - {format_duration(duration_ms)}"
        elif raw_status in ("failed", "timedOut"):
            line = f"{progress}[bold bright_red]❌ {label}❌ {title}[/]{excluded} - {format_duration(duration_ms)}"
        elif raw_status == "skipped":
            line = f"{progress}[bold bright_black]⏩ {label}⏩ {title}[/]{excluded}"
        else:
            line = None

        if line is not None:
            self.console.print(line)
        self._progress += 1

    def summary(self, metrics: RunMetrics) -> None:
        """Print the end-of-run table."""
        table = Table(title="Xray execution summary")
        table.add_column("Executed", justify="right")
        table.add_column("Passed", justify="right", style="green")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Skipped", justify="right", style="yellow")
        table.add_column("Runtime", justify="right")
        table.add_row(
            str(metrics.executed),
            str(metrics.passed),
            str(metrics.failed),
            str(metrics.skipped),
            format_duration(metrics.runtime_seconds * 1000),
        )
        self.console.print(table)
