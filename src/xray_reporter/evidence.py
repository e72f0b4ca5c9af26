"""Attachment to Xray evidence conversion."""

import base64
import logging
import mimetypes
from collections.abc import Iterable

from xray_reporter.events import Attachment
from xray_reporter.models.xray import XrayEvidence

logger = logging.getLogger(__name__)


class EvidenceLoader:
    """Reads selected attachments and encodes them as base64 evidence."""

    def __init__(self, include_names: Iterable[str] = ()) -> None:
        self.include_names = set(include_names)

    def wants(self, attachment: Attachment) -> bool:
        return attachment.name in self.include_names

    def load(self, attachments: Iterable[Attachment]) -> list[XrayEvidence]:
        """Encode the wanted attachments, skipping unreadable files."""
        evidence: list[XrayEvidence] = []
        for attachment in attachments:
            if not self.wants(attachment):
                continue
            try:
                data = attachment.path.read_bytes()
            except OSError as e:
                logger.warning(f"[EvidenceLoader] Skipping {attachment.name} evidence: {e}")
                continue

            content_type = (
                attachment.content_type
                or mimetypes.guess_type(attachment.path.name)[0]
                or "application/octet-stream"
            )
            evidence.append(
                XrayEvidence(
                    data=base64.b64encode(data).decode("ascii"),
                    filename=attachment.path.name or "file",
                    content_type=content_type,
                )
            )
        return evidence
