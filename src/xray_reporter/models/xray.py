"""
Models for the Xray JSON import format.

https://docs.getxray.app/display/XRAYCLOUD/Using+Xray+JSON+format+to+import+execution+results
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class XrayModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize the way Xray expects it (aliases, no empty optionals)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class XrayEvidence(XrayModel):
    """An attachment of a test run."""

    data: str = Field(..., description="File content, base64 encoded")
    filename: str
    content_type: str | None = None


class XrayParameter(XrayModel):
    """A data-driven parameter with its value."""

    name: str
    value: str


class XrayStepResult(XrayModel):
    """Result of a single manual step."""

    status: str
    comment: str | None = None
    actual_result: str | None = None
    evidence: list[XrayEvidence] | None = None
    defects: list[str] | None = None


class XrayStepDef(XrayModel):
    """Step definition sent inside testInfo."""

    action: str
    data: str = ""
    result: str = ""


class XrayTestInfo(XrayModel):
    """Test issue specification, used to create or update Jira tests."""

    project_key: str | None = None
    summary: str | None = None
    type: str | None = "Manual"
    requirement_keys: list[str] | None = None
    labels: list[str] | None = None
    steps: list[XrayStepDef] | None = None
    scenario: str | None = None
    definition: str | None = None


class XrayIteration(XrayModel):
    """One iteration of a data-driven test."""

    parameters: list[XrayParameter] | None = None
    log: str | None = None
    duration: str | None = None
    status: str | None = None
    steps: list[XrayStepResult] = Field(default_factory=list)


class XrayTest(XrayModel):
    """A test run entry of the report."""

    test_key: str
    test_info: XrayTestInfo | None = None
    start: str | None = None
    finish: str | None = None
    comment: str | None = None
    executed_by: str | None = None
    assignee: str | None = None
    status: str | None = None
    steps: list[XrayStepResult] | None = None
    iterations: list[XrayIteration] | None = None
    defects: list[str] | None = None
    evidence: list[XrayEvidence] | None = None


class XrayInfo(XrayModel):
    """Info object used when Xray creates the execution issue."""

    project: str | None = None
    summary: str | None = None
    description: str | None = None
    version: str | None = None
    revision: str | None = None
    user: str | None = None
    start_date: str | None = None
    finish_date: str | None = None
    test_plan_key: str | None = None
    test_environments: list[str] | None = None


class XrayReport(XrayModel):
    """The document sent to the import endpoints."""

    test_execution_key: str | None = None
    info: XrayInfo | None = None
    tests: list[XrayTest] = Field(default_factory=list)


class XrayFieldsMultipart(XrayModel):
    """Xray specific fields of a multipart import."""

    test_plan_key: str | None = None
    environments: list[str] | None = None


class XrayInfoMultipart(BaseModel):
    """Jira issue payload of a multipart import.

    `fields` holds raw Jira fields, so no alias generation applies to it.
    """

    model_config = ConfigDict(populate_by_name=True)

    xray_fields: XrayFieldsMultipart | None = Field(default=None, alias="xrayFields")
    fields: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class XrayImportResponse(BaseModel):
    """Response of both import endpoints."""

    id: str | int | None = None
    key: str
    self_url: str = Field(..., alias="self")
