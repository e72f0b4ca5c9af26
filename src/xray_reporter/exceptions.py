"""Xray reporter custom exceptions."""


class XrayReporterError(Exception):
    """Base exception for the Xray reporter."""

    pass


class ConfigError(XrayReporterError):
    """Configuration error."""

    pass


class DatasetError(XrayReporterError):
    """Dataset file missing, unreadable or invalid."""

    pass


class AnnotationError(XrayReporterError):
    """Test source could not be scanned for annotations."""

    pass


class XrayApiError(XrayReporterError):
    """Xray API error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(XrayApiError):
    """Xray rejected the client credentials."""

    pass


class XrayImportError(XrayApiError):
    """Xray rejected an execution import."""

    pass
