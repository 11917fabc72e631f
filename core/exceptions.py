"""
Error taxonomy for the report lifecycle subsystem.

Routers translate these into HTTP responses; services raise them.
"""
from typing import Optional


class WarningTrackerError(Exception):
    """Base exception for report lifecycle errors."""
    pass


class ValidationError(WarningTrackerError):
    """Caller supplied an incomplete or malformed record. Nothing was written."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class StorageUnavailable(WarningTrackerError):
    """The store could not be reached (connection refused, timeout)."""
    pass


class OperationFailed(WarningTrackerError):
    """Write rejected for a reason other than unavailability. Not retried."""
    pass


class PermissionDenied(OperationFailed):
    """Actor's role or campus does not allow the operation."""
    pass


class ReportNotFound(OperationFailed):
    """No report with the given id."""

    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


class ReportFinalized(OperationFailed):
    """Finalized reports accept no further mutation."""

    def __init__(self, report_id: str):
        super().__init__(f"Report {report_id} is finalized and can no longer be changed")
        self.report_id = report_id


class PreconditionNotMet(WarningTrackerError):
    """A lifecycle transition was attempted on a record not in the required source state."""

    def __init__(self, report_id: str, expected: str, actual: str):
        super().__init__(f"Report {report_id} is '{actual}', expected '{expected}'")
        self.report_id = report_id
        self.expected = expected
        self.actual = actual


class VersioningStepFailed(WarningTrackerError):
    """
    A step of the new-cycle sequence failed.

    `step` is one of "archive", "update", "notify". Steps before it completed.
    """

    def __init__(self, step: str, report_id: str, cause: Optional[Exception] = None):
        super().__init__(f"New assessment cycle for report {report_id} failed at step '{step}': {cause}")
        self.step = step
        self.report_id = report_id
        self.cause = cause
