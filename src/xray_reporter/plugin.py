"""pytest plugin feeding test results to Xray.

Enabled with `pytest --xray` (or XRAY_ENABLED=true); every other setting
comes from XRAY_* environment variables, see `xray_reporter.config`.

Hook mapping:
    pytest_collection_finish  -> scan test sources for @JiraIssue / @DDT tags
    pytest_runtest_logstart   -> TestStarted
    xray_step(...)            -> step kept on the test node (user_properties)
    pytest_runtest_logfinish  -> StepEnded per step, then TestEnded (phase reports folded)
    pytest_sessionfinish      -> assemble + export, unless the run was interrupted
"""

import inspect
import logging
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

from xray_reporter.aggregator import ResultAggregator
from xray_reporter.annotations import (
    MetadataResolver,
    SourceScanner,
    TestMetadata,
    docstring_summary,
)
from xray_reporter.assembler import ReportAssembler
from xray_reporter.config import ReporterSettings, get_settings
from xray_reporter.console import ReporterConsole
from xray_reporter.datasets import DatasetStore
from xray_reporter.events import Attachment, StepEnded, TestEnded, TestStarted
from xray_reporter.evidence import EvidenceLoader
from xray_reporter.exceptions import ConfigError
from xray_reporter.export import ReportExporter
from xray_reporter.metrics import RunMetrics
from xray_reporter.models.xray import XrayImportResponse, XrayReport

logger = logging.getLogger(__name__)

PLUGIN_NAME = "xray_reporter_session"
EVIDENCE_PROPERTY = "xray_evidence"
STEP_PROPERTY = "xray_step"


def configure_logging(settings: ReporterSettings) -> None:
    """Set reporter log levels; handlers stay owned by pytest."""
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)
    logging.getLogger("xray_reporter").setLevel(level)

    # Silence noisy libraries
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _resolve(rootpath: Path, path: Path) -> Path:
    return path if path.is_absolute() else rootpath / path


def host_status(reports: list[pytest.TestReport]) -> str:
    """Fold setup/call/teardown reports into one raw status."""
    if any(report.failed for report in reports):
        return "failed"
    if any(report.skipped for report in reports if report.when in ("setup", "call")):
        return "skipped"
    return "passed"


def item_title(item: pytest.Item) -> str:
    """Title of a test: docstring summary (or function name) plus parameter id.

    Parametrized items become `<base> -> <id>`, so ids like `Iteration 2`
    mark data-driven iterations.
    """
    function = getattr(item, "function", None)
    doc = inspect.getdoc(function) if function is not None else None
    base = docstring_summary(doc) or getattr(item, "originalname", item.name)

    callspec = getattr(item, "callspec", None)
    if callspec is not None:
        return f"{base} -> {callspec.id}"
    return base


def location_title(location: tuple[str, int | None, str], summary: str | None = None) -> str:
    """Title of a test from its report location (`TestCart.test_add[Iteration 1]`)."""
    qualname, _, param = location[2].partition("[")
    base = summary or qualname.rsplit(".", 1)[-1]
    if param:
        return f"{base} -> {param.removesuffix(']')}"
    return base


def _source_of(item: pytest.Item) -> tuple[Path, str] | None:
    """File and qualname where the test function is defined."""
    function = getattr(item, "function", None)
    if function is None:
        return None
    try:
        source = inspect.getsourcefile(function)
    except TypeError:
        source = None
    return (Path(source) if source else Path(item.path)), function.__qualname__


def _attachments(properties: list[tuple[str, Any]]) -> tuple[Attachment, ...]:
    seen: dict[tuple[str, str], Attachment] = {}
    for key, value in properties:
        if key != EVIDENCE_PROPERTY:
            continue
        attachment = Attachment(
            name=value["name"],
            path=Path(value["path"]),
            content_type=value.get("content_type"),
        )
        seen[(attachment.name, value["path"])] = attachment
    return tuple(seen.values())


def _reporting_enabled(config: pytest.Config) -> bool:
    return bool(config.getoption("xray") or get_settings().enabled)


class XrayReporter:
    """Run-scoped reporter: owns the aggregator and drives the export.

    Steps and attachments travel with the test reports (`user_properties`),
    so the same hooks work in-process and on a pytest-xdist controller.
    """

    def __init__(
        self,
        settings: ReporterSettings,
        *,
        rootpath: Path,
        console: ReporterConsole | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.rootpath = rootpath
        self.console = console or ReporterConsole()
        self.resolver = MetadataResolver(
            SourceScanner(),
            test_key_tag=settings.test_key_tag,
            ddt_key_tag=settings.ddt_key_tag,
        )
        self.aggregator = ResultAggregator(
            datasets=DatasetStore(_resolve(rootpath, settings.datasets_dir)),
            evidence=EvidenceLoader(settings.evidence_filter),
        )
        self.assembler = ReportAssembler(
            project=settings.project,
            test_execution_key=settings.test_execution_key,
            test_plan_key=settings.test_plan_key,
            executed_by=settings.executed_by,
            override_test_detail=settings.override_test_detail,
        )
        self.exporter = ReportExporter(
            settings,
            self.console,
            out_dir=_resolve(rootpath, settings.report_out_dir),
            transport=transport,
        )
        self.metrics = RunMetrics()
        self.interrupted = False
        self.report: XrayReport | None = None

        self._started_at = datetime.now(timezone.utc).astimezone()
        self._items: dict[str, pytest.Item] = {}
        self._titles: dict[str, str] = {}
        self._metadata: dict[str, TestMetadata | None] = {}
        self._reports: dict[str, list[pytest.TestReport]] = {}

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def metadata_for(
        self, nodeid: str, location: tuple[str, int | None, str]
    ) -> TestMetadata | None:
        """Resolve (once) the Jira identity of a test.

        Collected items are inspected directly; tests run by other processes
        (pytest-xdist workers) are resolved from their report location.
        """
        if nodeid not in self._metadata:
            item = self._items.get(nodeid)
            if item is not None:
                title = item_title(item)
                source = _source_of(item)
            else:
                path = _resolve(self.rootpath, Path(location[0]))
                qualname = location[2].partition("[")[0]
                title = location_title(location, self.resolver.scanner.summary_for(path, qualname))
                source = (path, qualname)

            self._titles[nodeid] = title
            self._metadata[nodeid] = (
                self.resolver.resolve_test(source[0], source[1], title) if source else None
            )
        return self._metadata[nodeid]

    # ------------------------------------------------------------------
    # pytest hooks
    # ------------------------------------------------------------------

    def pytest_collection_finish(self, session: pytest.Session) -> None:
        self._items = {item.nodeid: item for item in session.items}
        for item in session.items:
            source = _source_of(item)
            if source is not None:
                self.resolver.scanner.scan_file(source[0])
        self._announce_total(len(session.items))

    @pytest.hookimpl(optionalhook=True)
    def pytest_xdist_node_collection_finished(self, node: Any, ids: list[str]) -> None:
        if not self.console.total:
            self._announce_total(len(ids))

    def _announce_total(self, total: int) -> None:
        self.console.total = total
        if not total:
            self.console.info("No tests found.")
        else:
            self.console.info(f"Executing {total} tests...")

    def pytest_runtest_logstart(self, nodeid: str, location: tuple[str, int | None, str]) -> None:
        meta = self.metadata_for(nodeid, location)
        if meta is not None:
            self.aggregator.dispatch(
                TestStarted(identifier=meta.identifier, kind=meta.kind, summary=meta.summary)
            )

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        self._reports.setdefault(report.nodeid, []).append(report)

    def pytest_runtest_logfinish(self, nodeid: str, location: tuple[str, int | None, str]) -> None:
        reports = self._reports.pop(nodeid, [])
        raw_status = host_status(reports)
        duration_ms = sum(report.duration for report in reports) * 1000
        # The last phase report carries everything recorded during the test
        properties = list(reports[-1].user_properties) if reports else []

        meta = self.metadata_for(nodeid, location)
        if meta is not None:
            for key, value in properties:
                if key == STEP_PROPERTY:
                    self.aggregator.dispatch(
                        StepEnded(
                            identifier=meta.identifier,
                            kind=meta.kind,
                            title=value["title"],
                            failed=value["failed"],
                            detail=value.get("detail"),
                            iteration=meta.iteration,
                            nested=value["nested"],
                            summary=meta.summary,
                        )
                    )
            self.aggregator.dispatch(
                TestEnded(
                    identifier=meta.identifier,
                    kind=meta.kind,
                    status=raw_status,
                    iteration=meta.iteration,
                    attachments=_attachments(properties),
                )
            )

        self.metrics.update(raw_status)
        self.console.test_result(
            self._titles.get(nodeid, nodeid),
            raw_status,
            duration_ms,
            project=self.settings.project,
            identifier=meta.identifier if meta else None,
        )

    def pytest_keyboard_interrupt(self, excinfo: pytest.ExceptionInfo[BaseException]) -> None:
        self.interrupted = True

    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: int) -> None:
        if exitstatus == pytest.ExitCode.INTERRUPTED:
            self.interrupted = True
        self.finish()

    # ------------------------------------------------------------------
    # Run end
    # ------------------------------------------------------------------

    def finish(self) -> XrayImportResponse | None:
        """Assemble and export the report; no-op for interrupted runs."""
        self.metrics.stop()
        self.console.info("Execution done.")
        self.console.summary(self.metrics)

        if self.interrupted:
            logger.info(f"[XrayReporter] Run interrupted, dropping {len(self.aggregator.records)} records")
            self.console.warning("Run interrupted, results are not exported")
            return None

        self.report = self.assembler.assemble(
            self.aggregator.records.values(),
            started_at=self._started_at,
            finished_at=datetime.now(timezone.utc).astimezone(),
        )
        return self.exporter.export(self.report)


# ----------------------------------------------------------------------
# Plugin registration
# ----------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("xray", "Xray test management reporting")
    group.addoption(
        "--xray",
        action="store_true",
        default=False,
        dest="xray",
        help="Report results to Xray (configured through XRAY_* environment variables)",
    )


def pytest_configure(config: pytest.Config) -> None:
    try:
        settings = get_settings()
    except ConfigError as e:
        raise pytest.UsageError(f"XRAY-REPORTER -> {e}") from e

    # pytest-xdist workers only record steps; the controller reports
    if hasattr(config, "workerinput"):
        return

    if not (config.getoption("xray") or settings.enabled):
        return

    try:
        settings.validate_options()
    except ConfigError as e:
        raise pytest.UsageError(f"XRAY-REPORTER -> {e}") from e

    configure_logging(settings)
    reporter = XrayReporter(settings, rootpath=config.rootpath)
    config.pluginmanager.register(reporter, PLUGIN_NAME)
    reporter.console.info("Checking Options... Options OK.")


def pytest_unconfigure(config: pytest.Config) -> None:
    reporter = config.pluginmanager.get_plugin(PLUGIN_NAME)
    if reporter is not None:
        config.pluginmanager.unregister(reporter, PLUGIN_NAME)


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------


class StepRecorder:
    """Context managers recording steps of the running test on its node."""

    def __init__(self, item: pytest.Item, enabled: bool = True) -> None:
        self._item = item
        self._enabled = enabled
        self._depth = 0

    @contextmanager
    def step(self, title: str) -> Iterator[None]:
        nested = self._depth > 0
        self._depth += 1
        try:
            yield
        except (Exception, pytest.fail.Exception) as e:
            # pytest.skip() leaves the step unrecorded
            self._record(title, nested, e)
            raise
        else:
            self._record(title, nested, None)
        finally:
            self._depth -= 1

    def _record(self, title: str, nested: bool, error: BaseException | None) -> None:
        if not self._enabled:
            return
        value: dict[str, Any] = {
            "title": title,
            "failed": error is not None,
            "detail": (str(error) or type(error).__name__) if error is not None else None,
            "nested": nested,
        }
        self._item.user_properties.append((STEP_PROPERTY, value))


@pytest.fixture
def xray_step(request: pytest.FixtureRequest) -> Callable[[str], AbstractContextManager[None]]:
    """Report a block as an Xray step.

    Example:
        def test_checkout(xray_step):
            with xray_step("Open cart"):
                ...
    """
    return StepRecorder(request.node, _reporting_enabled(request.config)).step


@pytest.fixture
def xray_evidence(request: pytest.FixtureRequest) -> Callable[..., None]:
    """Attach a file to the test run.

    Only names enabled in the settings (trace, video, evidence_names) are
    exported.
    """
    enabled = _reporting_enabled(request.config)

    def attach(path: Path | str, name: str = "evidence", content_type: str | None = None) -> None:
        if not enabled:
            return
        value: dict[str, Any] = {"name": name, "path": str(path), "content_type": content_type}
        request.node.user_properties.append((EVIDENCE_PROPERTY, value))

    return attach
