"""
Student-affairs follow-up on flagged students.
"""
from typing import Optional, Union

from core.exceptions import PermissionDenied, ReportFinalized
from core.logger import logger
from core.schemas import Actor, ReportRecord
from core.validators import parse_dvsv_status
from database.models import DvsvStatus, LogType, ReportStatus
from services.access_policy import CARE_ROLES
from services.audit_service import AuditLogService
from services.report_repository import ReportRepository


class StudentAffairsService:
    """Records the outcome of student-affairs care for a report."""

    def __init__(self, repository: ReportRepository, audit: AuditLogService):
        self.repository = repository
        self.audit = audit

    def record_care_outcome(
        self,
        actor: Actor,
        report_id: str,
        dvsv_status: Union[DvsvStatus, str],
        note: Optional[str] = None
    ) -> ReportRecord:
        """
        Set the care status of a report, optionally with a dvsv_note.

        The note goes through the dvsv_note thread so the field and its history stay in sync.

        Raises:
            PermissionDenied: actor is not student affairs, or report is on another campus
            ValidationError: unknown care status
        """
        if actor.role not in CARE_ROLES:
            raise PermissionDenied(f"Role '{actor.role.value}' cannot record care outcomes")
        status = parse_dvsv_status(dvsv_status)
        report = self.repository.get(report_id)
        if actor.campus is None or report.campus != actor.campus:
            raise PermissionDenied(f"Report {report_id} belongs to campus {report.campus.value}")
        if report.status == ReportStatus.FINALIZED:
            raise ReportFinalized(report_id)

        if note is not None and note.strip():
            self.audit.append_note(report_id, actor, LogType.DVSV_NOTE, note)
            report = self.repository.get(report_id)

        updated = self.repository.update(report.model_copy(update={"dvsv_status": status}))
        logger.info(f"Care outcome for report {report_id} set to {status.value} by {actor.user_id}")
        return updated
