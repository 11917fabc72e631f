"""
Report repository: role-scoped CRUD over reports.

Every other service reads and writes report state through this class. It talks
to a FailoverStore, so degrading to the local store is invisible to callers.
"""
from typing import Any, Dict, List, Optional, Sequence, Union

from core.exceptions import ReportFinalized, ReportNotFound, WarningTrackerError
from core.logger import logger
from core.schemas import Actor, ReportRecord
from core.utils import new_id, utcnow
from core.validators import validate_draft
from database.models import Campus, DvsvStatus, NotificationType, ReportStatus, UserRole
from services.access_policy import report_filters
from services.notification_service import NotificationDispatcher
from storage.base import ReportStore

# Status a report must currently have to be moved to the key status
REQUIRED_SOURCE_STATUS = {
    ReportStatus.SUBMITTED: ReportStatus.DRAFT,
    ReportStatus.APPROVED: ReportStatus.SUBMITTED,
    ReportStatus.DRAFT: ReportStatus.SUBMITTED,
    ReportStatus.FINALIZED: ReportStatus.APPROVED,
}


class ReportRepository:
    """CRUD and role-filtered queries over reports."""

    def __init__(self, store: ReportStore, notifications: NotificationDispatcher):
        self.store = store
        self.notifications = notifications

    # Queries -----------------------------------------------------------------

    def list(self, actor_id: str, role: Union[UserRole, str], campus: Optional[Union[Campus, str]]) -> List[ReportRecord]:
        """
        Reports visible to an actor, newest first.

        Lecturers get their own reports, campus-scoped roles (cnbm, dvsv) their
        campus, org-wide roles (truong_nganh, ho, tbdt) everything.
        """
        filters = report_filters(actor_id, role, campus)
        if filters is None:
            return []
        return self.store.list_reports(**filters)

    def list_for(self, actor: Actor) -> List[ReportRecord]:
        return self.list(actor.user_id, actor.role, actor.campus)

    def get(self, report_id: str) -> ReportRecord:
        report = self.store.get_report(report_id)
        if report is None:
            raise ReportNotFound(report_id)
        return report

    def stats(self, actor: Actor) -> Dict[str, int]:
        """Status and ban counts over the actor's visible reports."""
        reports = self.list_for(actor)
        counts = {"total": len(reports), "banned": sum(1 for r in reports if r.banned)}
        for status in ReportStatus:
            counts[status.value] = sum(1 for r in reports if r.status == status)
        return counts

    # Mutations ---------------------------------------------------------------

    def create(self, draft_fields: Dict[str, Any], actor: Optional[Actor] = None) -> ReportRecord:
        """
        Create a draft report and announce it to its campus.

        Args:
            draft_fields: Report content; lifecycle fields are ignored
            actor: Creating lecturer; owns the report, and a campus-bound
                actor files it into their own campus whatever draft_fields say

        Raises:
            ValidationError: missing or malformed field; nothing is written
        """
        if actor is not None:
            draft_fields = dict(draft_fields, lecturer_id=actor.user_id)
            if actor.campus is not None:
                draft_fields["campus"] = actor.campus
        clean = validate_draft(draft_fields)
        now = utcnow()
        report = ReportRecord(
            id=new_id(),
            status=ReportStatus.DRAFT,
            dvsv_status=DvsvStatus.PENDING,
            created_at=now,
            updated_at=now,
            **clean
        )
        self.store.insert_report(report)
        logger.info(f"Report {report.id} created by lecturer {report.lecturer_id} ({report.campus.value})")
        try:
            self.notifications.notify(
                report.campus,
                "Báo cáo mới",
                f"Giảng viên vừa tạo báo cáo cho {report.student_name}",
                NotificationType.REPORT_CREATED,
                report.id,
            )
        except WarningTrackerError as e:
            # The report exists; a missed announcement does not undo it
            logger.error(f"Report {report.id} created but notification failed: {e}", exc_info=True)
        return report

    def update(self, report: ReportRecord) -> ReportRecord:
        """
        Full-record overwrite by id; refreshes updated_at.

        Campus, created_at and lifecycle status always keep their stored values:
        status only moves through bulk_set_status. Emits no logs or notifications.

        Raises:
            ReportNotFound: no such report
            ReportFinalized: stored report is finalized
            ValidationError: record lost a required field
        """
        existing = self.get(report.id)
        if existing.status == ReportStatus.FINALIZED:
            raise ReportFinalized(report.id)
        if report.status != existing.status:
            logger.debug(f"Ignoring status change on update of report {report.id}; use the lifecycle service")
        clean = validate_draft(report.model_dump())
        clean.update(
            campus=existing.campus,
            status=existing.status,
            created_at=existing.created_at,
            updated_at=utcnow(),
        )
        updated = report.model_copy(update=clean)
        self.store.save_report(updated)
        return updated

    def delete(self, report_id: str):
        """Hard delete. Logs and notifications referencing the report are kept."""
        existing = self.get(report_id)
        if existing.status == ReportStatus.FINALIZED:
            raise ReportFinalized(report_id)
        self.store.delete_report(report_id)
        logger.info(f"Report {report_id} deleted")

    def clear_drafts(self, lecturer_id: str) -> int:
        """Delete every draft owned by a lecturer."""
        removed = self.store.delete_reports_where(lecturer_id, ReportStatus.DRAFT)
        logger.info(f"Cleared {removed} draft(s) of lecturer {lecturer_id}")
        return removed

    def bulk_set_status(self, report_ids: Sequence[str], new_status: Union[ReportStatus, str]) -> List[str]:
        """
        Move the given reports to `new_status` where their current status allows it.

        Reports not in the required source status (draft for submitted, submitted
        for approved/draft, approved for finalized) are skipped, not failed.

        Returns:
            Ids that changed
        """
        new_status = ReportStatus(new_status)
        source = REQUIRED_SOURCE_STATUS[new_status]
        ids = list(dict.fromkeys(report_ids))
        changed = self.store.set_status_where(ids, source, new_status, utcnow())
        skipped = [report_id for report_id in ids if report_id not in changed]
        if skipped:
            logger.debug(f"Skipped {len(skipped)} report(s) not in '{source.value}' for -> '{new_status.value}': {skipped}")
        logger.info(f"{len(changed)} report(s) moved {source.value} -> {new_status.value}")
        return changed

    def finalize_all_approved(self) -> List[str]:
        """Finalize every approved report system-wide."""
        changed = self.store.set_status_where(None, ReportStatus.APPROVED, ReportStatus.FINALIZED, utcnow())
        logger.info(f"Finalized {len(changed)} approved report(s)")
        return changed
