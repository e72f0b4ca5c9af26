"""
Report delivery: local JSON files and/or Xray Cloud import.

Delivery never fails the test run. Authentication errors abort the push
(nothing is uploaded), import errors are reported and swallowed; local
files are written before any network call.
"""

import asyncio
import json
import logging
import re
from pathlib import Path

import httpx

from xray_reporter.client import XrayClient
from xray_reporter.config import ReporterSettings
from xray_reporter.console import ReporterConsole
from xray_reporter.exceptions import AuthenticationError, XrayImportError
from xray_reporter.models.xray import (
    XrayFieldsMultipart,
    XrayImportResponse,
    XrayInfoMultipart,
    XrayReport,
)

logger = logging.getLogger(__name__)

JIRA_URL_PATTERN = re.compile(r"https://([^./]+\.atlassian\.net)")

REPORT_FILENAME = "xray-report.json"
INFO_FILENAME = "issue-fields.json"


def browse_url(response: XrayImportResponse) -> str | None:
    """Jira browse link of the execution issue, when Xray returns a Jira URL."""
    match = JIRA_URL_PATTERN.search(response.self_url)
    if not match:
        return None
    return f"https://{match.group(1)}/browse/{response.key}"


def build_multipart_info(settings: ReporterSettings) -> XrayInfoMultipart:
    """Jira fields of the execution issue created by a multipart import."""
    info = XrayInfoMultipart()
    if settings.test_plan_key:
        info.xray_fields = XrayFieldsMultipart(test_plan_key=settings.test_plan_key)

    fields: dict[str, object] = {"project": {"key": settings.project}}
    execution = settings.new_execution
    if execution:
        fields["summary"] = execution.summary
        fields["issuetype"] = execution.issue_type_ref
        if execution.assignee_id:
            fields["assignee"] = {"id": execution.assignee_id}
        if execution.description:
            fields["description"] = execution.description
        if execution.components:
            fields["components"] = execution.components
        fields.update(execution.required_fields)
    else:
        fields["summary"] = "Automated test execution"
        fields["issuetype"] = {"name": "Test Execution"}

    info.fields = fields
    return info


class ReportExporter:
    """Delivers an assembled report according to the settings."""

    def __init__(
        self,
        settings: ReporterSettings,
        console: ReporterConsole | None = None,
        *,
        out_dir: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the exporter.

        Args:
            settings: Reporter settings
            console: Console for user facing messages
            out_dir: Resolved report directory (defaults to settings.report_out_dir)
            transport: Optional httpx transport for the Xray client (tests)
        """
        self.settings = settings
        self.console = console or ReporterConsole()
        self.out_dir = Path(out_dir) if out_dir is not None else settings.report_out_dir
        self._transport = transport

    @property
    def report_path(self) -> Path:
        return self.out_dir / REPORT_FILENAME

    @property
    def info_path(self) -> Path:
        return self.out_dir / INFO_FILENAME

    def export(self, report: XrayReport) -> XrayImportResponse | None:
        """Save and/or upload the report.

        Returns:
            The Xray import response, None when nothing was uploaded.
        """
        info = build_multipart_info(self.settings)

        if report.tests and (self.settings.import_type == "MANUAL" or self.settings.debug):
            self.save_locally(report, info)

        if self.settings.import_type != "REST":
            return None

        if not report.tests:
            self.console.warning("No test linked to Xray, nothing to import")
            return None

        return asyncio.run(self.push(report, info))

    def save_locally(self, report: XrayReport, info: XrayInfoMultipart) -> bool:
        """Write the report and the execution issue fields as JSON files."""
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            self.report_path.write_text(
                json.dumps(report.to_wire(), indent=2, ensure_ascii=False), encoding="utf-8"
            )
            self.info_path.write_text(
                json.dumps(info.to_wire(), indent=2, ensure_ascii=False), encoding="utf-8"
            )
        except OSError as e:
            logger.error(f"[ReportExporter] Cannot save report to {self.out_dir}: {e}")
            self.console.error(f"Error while saving report locally: {e}")
            return False

        self.console.info(f"Creating xray-report... report saved to '{self.report_path}'")
        return True

    async def push(
        self, report: XrayReport, info: XrayInfoMultipart
    ) -> XrayImportResponse | None:
        """Authenticate, then import with the endpoint the settings call for."""
        async with XrayClient(
            client_id=self.settings.client_id or "",
            client_secret=self.settings.client_secret or "",
            base_url=self.settings.base_url,
            timeout=self.settings.timeout,
            transport=self._transport,
        ) as client:
            try:
                await client.authenticate()
            except AuthenticationError as e:
                logger.error(f"[ReportExporter] {e}")
                self.console.error(f"{e}. Results were not uploaded")
                return None
            self.console.info("Authenticated to Xray.")

            try:
                if self.settings.uses_multipart:
                    response = await client.import_execution_multipart(info, report)
                else:
                    response = await client.import_execution(report)
            except XrayImportError as e:
                logger.error(f"[ReportExporter] {e}")
                self.console.error(str(e))
                return None

        self._announce(response)
        return response

    def _announce(self, response: XrayImportResponse) -> None:
        link = browse_url(response) or response.self_url
        expected_key = self.settings.test_execution_key

        if self.settings.uses_multipart:
            if self.settings.test_plan_key:
                self.console.success(
                    f"Results imported in Plan: {self.settings.test_plan_key}, "
                    f"new Execution issue: {response.key} -> {link}"
                )
            else:
                self.console.success(f"Results imported in a new Execution: {response.key} -> {link}")
        elif expected_key and expected_key != response.key:
            self.console.warning(
                f"Execution issue {expected_key} does not exist, a new execution "
                f"hosts the results: {response.key} -> {link}"
            )
        else:
            self.console.success(f"Results imported in the Execution: {response.key} -> {link}")
