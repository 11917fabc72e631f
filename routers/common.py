"""
Shared router helpers: service lookups and error translation.
"""
from fastapi import HTTPException, status

from core.exceptions import (
    OperationFailed, PermissionDenied, PreconditionNotMet, ReportFinalized,
    ReportNotFound, StorageUnavailable, ValidationError, VersioningStepFailed,
    WarningTrackerError,
)
from core.logger import logger
import config


def _service(name: str):
    service = getattr(config, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return service


def get_repository():
    return _service("repository")


def get_lifecycle():
    return _service("lifecycle")


def get_versioning():
    return _service("versioning")


def get_audit():
    return _service("audit")


def get_notifications():
    return _service("notifications")


def get_student_affairs():
    return _service("student_affairs")


def http_error(exc: WarningTrackerError) -> HTTPException:
    """Translate a service error into the HTTP response the dashboard shows."""
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=422,
            detail={"field": exc.field, "message": exc.message},
        )
    if isinstance(exc, PermissionDenied):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, ReportNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (ReportFinalized, PreconditionNotMet)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, VersioningStepFailed):
        code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if isinstance(exc.cause, StorageUnavailable)
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        return HTTPException(status_code=code, detail={"step": exc.step, "message": str(exc)})
    if isinstance(exc, StorageUnavailable):
        logger.error(f"Store unavailable with no fallback: {exc}")
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")
    if isinstance(exc, OperationFailed):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.error(f"Unhandled service error: {exc}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
