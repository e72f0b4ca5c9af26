"""Xray reporter configuration with Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from xray_reporter.exceptions import ConfigError

DEFAULT_BASE_URL = "https://xray.cloud.getxray.app/api/v2"


class NewExecutionSettings(BaseModel):
    """Fields of the Test Execution issue created by a multipart import."""

    summary: str | None = Field(default=None, description="Execution issue summary")
    assignee_id: str | None = Field(default=None, description="Jira account id of the assignee")
    issue_type: str | None = Field(
        default=None, description="Execution issue type, by name or numeric id"
    )
    description: str | None = Field(default=None, description="Execution issue description")
    components: list[dict[str, str]] = Field(
        default_factory=list, description="Components as {'name': ...} or {'id': ...}"
    )
    required_fields: dict[str, Any] = Field(
        default_factory=dict, description="Extra mandatory Jira fields, merged as is"
    )

    @property
    def issue_type_ref(self) -> dict[str, str]:
        """Issue type reference in the form Jira expects."""
        if self.issue_type and self.issue_type.isdigit():
            return {"id": self.issue_type}
        return {"name": self.issue_type or ""}


class ReporterSettings(BaseSettings):
    """Main reporter settings."""

    model_config = SettingsConfigDict(
        env_prefix="XRAY_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    enabled: bool = Field(default=False, description="Activate the reporter without --xray")
    import_type: Literal["MANUAL", "REST"] = Field(
        default="MANUAL", description="Save the report locally or push it to Xray"
    )
    project: str | None = Field(default=None, description="Jira project key")
    test_execution_key: str | None = Field(
        default=None, description="Execution issue receiving the results"
    )
    test_plan_key: str | None = Field(default=None, description="Test plan to link the execution to")
    new_execution: NewExecutionSettings | None = Field(default=None)

    override_test_detail: bool = Field(
        default=False, description="Send testInfo (summary, steps) to update Jira tests"
    )
    report_out_dir: Path = Field(default=Path("xray-report"), description="Local report directory")
    datasets_dir: Path = Field(
        default=Path("data/datasets"), description="Directory holding <key>.dataset.json files"
    )

    # Evidence
    save_trace_evidence: bool = Field(default=False)
    save_video_evidence: bool = Field(default=False)
    evidence_names: list[str] = Field(
        default_factory=list, description="Attachment names that are always exported"
    )

    # Xray Cloud
    client_id: str | None = Field(default=None, description="Xray API client id")
    client_secret: str | None = Field(default=None, description="Xray API client secret")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Xray Cloud API root")
    timeout: float = Field(default=60.0, gt=0, description="HTTP timeout in seconds")

    executed_by: str | None = Field(default=None, description="Jira account id of the executor")

    # Annotation tags
    test_key_tag: str = Field(default="JiraIssue", min_length=1)
    ddt_key_tag: str = Field(default="DDT", min_length=1)

    # Logging
    debug: bool = Field(default=False, description="Also save the report locally in REST mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the API root and drop the trailing slash."""
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("Xray base URL must start with 'http://' or 'https://'")
        return v.rstrip("/")

    @property
    def uses_multipart(self) -> bool:
        """Whether results go through the multipart import endpoint."""
        return bool(self.test_plan_key) or not self.test_execution_key or bool(self.new_execution)

    @property
    def evidence_filter(self) -> set[str]:
        """Attachment names that end up in the report."""
        names = set(self.evidence_names)
        if self.save_trace_evidence:
            names.add("trace")
        if self.save_video_evidence:
            names.add("video")
        return names

    def validate_options(self) -> None:
        """Check option combinations that pydantic cannot express.

        Raises:
            ConfigError: If a required option is missing.
        """
        if not self.project:
            raise ConfigError("Provide the Jira project key (XRAY_PROJECT)")

        if self.import_type != "REST":
            return

        if not self.client_id:
            raise ConfigError(
                "REST import selected, provide the Xray client id (XRAY_CLIENT_ID)"
            )
        if not self.client_secret:
            raise ConfigError(
                "REST import selected, provide the Xray client secret (XRAY_CLIENT_SECRET)"
            )
        if self.test_plan_key and not self.new_execution:
            raise ConfigError(
                "Importing into a test plan requires the new execution fields "
                "(XRAY_NEW_EXECUTION__SUMMARY, ...)"
            )

        if self.new_execution:
            target = self.test_plan_key or self.project
            if not self.new_execution.summary:
                raise ConfigError(f"Provide the execution summary for the new execution in {target}")
            if not self.new_execution.assignee_id:
                raise ConfigError(f"Provide the assignee for the new execution in {target}")
            if not self.new_execution.issue_type:
                raise ConfigError(f"Provide the execution issue type for the new execution in {target}")


@lru_cache
def get_settings() -> ReporterSettings:
    """Get cached global settings instance.

    Returns:
        ReporterSettings instance (cached).

    Raises:
        ConfigError: If an environment value cannot be parsed.
    """
    try:
        return ReporterSettings()
    except ValidationError as e:
        raise ConfigError(f"Invalid Xray reporter settings: {e}") from e


def reset_settings() -> None:
    """Reset cached settings (useful for testing)."""
    get_settings.cache_clear()
