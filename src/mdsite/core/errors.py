"""Build error taxonomy and the diagnostic records carried alongside output"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    """How much a diagnostic matters to the caller deciding the exit status"""
    info = "info"
    warning = "warning"
    error = "error"


class DiagnosticKind(str, Enum):
    """Closed set of anomaly tags a build can report"""
    source_unavailable = "source_unavailable"
    invalid_entry = "invalid_entry"
    invalid_front_matter = "invalid_front_matter"
    duplicate_route_discarded = "duplicate_route_discarded"
    excluded_draft = "excluded_draft"
    excluded_future = "excluded_future"
    render_failure = "render_failure"


class Diagnostic(BaseModel):
    """A non-fatal record of something that went wrong (or was skipped) during a build."""
    model_config = ConfigDict(frozen=True)

    severity: Severity
    kind: DiagnosticKind
    message: str
    source_path: Optional[str] = None
    route: Optional[str] = None

    def __str__(self) -> str:
        where = self.route or self.source_path
        prefix = f"{self.severity.value}[{self.kind.value}]"
        return f"{prefix} {where}: {self.message}" if where else f"{prefix} {self.message}"


class BuildError(Exception):
    """Base class for pipeline errors."""
    kind: DiagnosticKind = DiagnosticKind.invalid_entry
    severity: Severity = Severity.error

    def __init__(self, message: str, source_path: str = None, route: str = None):
        super().__init__(message)
        self.message = message
        self.source_path = source_path
        self.route = route

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=self.severity,
            kind=self.kind,
            message=self.message,
            source_path=self.source_path,
            route=self.route,
        )


class SourceUnavailable(BuildError):
    """The content source cannot be enumerated at all. Aborts the build."""
    kind = DiagnosticKind.source_unavailable


class InvalidFrontMatter(BuildError):
    """Front matter of a single entry is not usable structured data."""
    kind = DiagnosticKind.invalid_front_matter


class RenderFailure(BuildError):
    """The injected renderer failed for one document."""
    kind = DiagnosticKind.render_failure


class InternalInvariantViolation(BuildError):
    """A bug in the pipeline itself, e.g. an unindexed document reaching the renderer."""


def diagnostic(
    kind: DiagnosticKind,
    message: str,
    severity: Severity = Severity.warning,
    source_path: str = None,
    route: str = None,
    ) -> Diagnostic:
    """Shorthand constructor used by the pipeline stages."""
    return Diagnostic(severity=severity, kind=kind, message=message, source_path=source_path, route=route)
