"""
Models for the Xray reporter: wire format and in-memory records.
"""

from xray_reporter.models.records import (
    HOST_STATUS_MAP,
    IterationRecord,
    Status,
    StepResult,
    TestKind,
    TestRecord,
    map_host_status,
)
from xray_reporter.models.xray import (
    XrayEvidence,
    XrayFieldsMultipart,
    XrayImportResponse,
    XrayInfo,
    XrayInfoMultipart,
    XrayIteration,
    XrayParameter,
    XrayReport,
    XrayStepDef,
    XrayStepResult,
    XrayTest,
    XrayTestInfo,
)

__all__ = [
    # Records
    "Status",
    "TestKind",
    "StepResult",
    "IterationRecord",
    "TestRecord",
    "HOST_STATUS_MAP",
    "map_host_status",
    # Xray JSON
    "XrayEvidence",
    "XrayParameter",
    "XrayStepResult",
    "XrayStepDef",
    "XrayTestInfo",
    "XrayIteration",
    "XrayTest",
    "XrayInfo",
    "XrayReport",
    "XrayFieldsMultipart",
    "XrayInfoMultipart",
    "XrayImportResponse",
]
