"""
Report lifecycle state machine.

    draft -> submitted -> approved -> finalized
                 |
                 +-> draft   (reject / return for revision)

Who may trigger each edge lives in services.access_policy.TRANSITION_ROLES.
Batch operations skip records not in the required source state; single-record
operations report such a record as a no-op TransitionResult.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from core.exceptions import PermissionDenied, PreconditionNotMet, WarningTrackerError
from core.logger import logger
from core.schemas import Actor, ReportRecord
from database.models import Campus, NotificationType, ReportStatus, UserRole
from services import access_policy
from services.notification_service import NotificationDispatcher
from services.report_repository import ReportRepository


@dataclass
class TransitionResult:
    """Outcome of a single-record transition."""
    report_id: str
    applied: bool
    from_status: ReportStatus
    to_status: ReportStatus
    reason: Optional[str] = None


class ReportLifecycleService:
    """Drives reports through their lifecycle and announces each move."""

    def __init__(self, repository: ReportRepository, notifications: NotificationDispatcher):
        self.repository = repository
        self.notifications = notifications

    @staticmethod
    def can_transition(role: Union[UserRole, str], from_status: ReportStatus, to_status: ReportStatus) -> bool:
        return access_policy.can_transition(role, ReportStatus(from_status), ReportStatus(to_status))

    def _require_role(self, actor: Actor, from_status: ReportStatus, to_status: ReportStatus):
        if not self.can_transition(actor.role, from_status, to_status):
            raise PermissionDenied(
                f"Role '{actor.role.value}' cannot move reports from {from_status.value} to {to_status.value}"
            )

    def _announce(self, campus: Optional[Campus], title: str, message: str, type: NotificationType, related_id: Optional[str]):
        try:
            self.notifications.notify(campus, title, message, type, related_id)
        except WarningTrackerError as e:
            # Transition is already persisted
            logger.error(f"Notification '{type.value}' for report {related_id} failed: {e}", exc_info=True)

    # Lecturer ----------------------------------------------------------------

    def submit(self, actor: Actor, report_ids: Iterable[str]) -> List[str]:
        """
        Submit a lecturer's drafts for review.

        Ids that are not drafts or belong to another lecturer are skipped.

        Returns:
            Ids that moved to submitted
        """
        self._require_role(actor, ReportStatus.DRAFT, ReportStatus.SUBMITTED)
        requested = list(dict.fromkeys(report_ids))
        own = {r.id: r for r in self.repository.list_for(actor)}
        foreign = [report_id for report_id in requested if report_id not in own]
        if foreign:
            logger.debug(f"Submit by {actor.user_id} skipped reports not owned: {foreign}")

        changed = self.repository.bulk_set_status([i for i in requested if i in own], ReportStatus.SUBMITTED)

        by_campus: Dict[Campus, List[ReportRecord]] = defaultdict(list)
        for report_id in changed:
            by_campus[own[report_id].campus].append(own[report_id])
        for campus, reports in by_campus.items():
            related_id = reports[0].id if len(reports) == 1 else None
            self._announce(
                campus,
                "Báo cáo đã gửi",
                f"GV {actor.name} đã gửi {len(reports)} báo cáo chờ duyệt",
                NotificationType.REPORT_UPDATED,
                related_id,
            )
        logger.info(f"Lecturer {actor.user_id} submitted {len(changed)}/{len(requested)} report(s)")
        return changed

    # Manager -----------------------------------------------------------------

    def approve(self, actor: Actor, report_id: str) -> TransitionResult:
        """Approve a submitted report."""
        return self._review(
            actor, report_id, ReportStatus.APPROVED,
            NotificationType.REPORT_APPROVED,
            "Báo cáo được duyệt",
            "Báo cáo của sinh viên {name} đã được duyệt",
        )

    def reject(self, actor: Actor, report_id: str) -> TransitionResult:
        """Return a submitted report to its lecturer as a draft."""
        return self._review(
            actor, report_id, ReportStatus.DRAFT,
            NotificationType.REPORT_REJECTED,
            "Báo cáo bị trả lại",
            "Báo cáo của sinh viên {name} đã bị trả lại để chỉnh sửa",
        )

    def _review(
        self,
        actor: Actor,
        report_id: str,
        to_status: ReportStatus,
        notification_type: NotificationType,
        title: str,
        message: str
    ) -> TransitionResult:
        self._require_role(actor, ReportStatus.SUBMITTED, to_status)
        report = self.repository.get(report_id)
        if access_policy.is_campus_scoped(actor.role) and report.campus != actor.campus:
            raise PermissionDenied(f"Report {report_id} belongs to campus {report.campus.value}")

        if report.status != ReportStatus.SUBMITTED:
            reason = str(PreconditionNotMet(report_id, ReportStatus.SUBMITTED.value, report.status.value))
            logger.info(f"No-op {to_status.value} by {actor.user_id}: {reason}")
            return TransitionResult(report_id, False, report.status, to_status, reason)

        if report_id not in self.repository.bulk_set_status([report_id], to_status):
            # Moved by someone else between the read and the write
            current = self.repository.get(report_id)
            reason = str(PreconditionNotMet(report_id, ReportStatus.SUBMITTED.value, current.status.value))
            return TransitionResult(report_id, False, current.status, to_status, reason)

        self._announce(report.campus, title, message.format(name=report.student_name), notification_type, report_id)
        logger.info(f"Report {report_id} {ReportStatus.SUBMITTED.value} -> {to_status.value} by {actor.user_id}")
        return TransitionResult(report_id, True, ReportStatus.SUBMITTED, to_status)

    # Admin -------------------------------------------------------------------

    def finalize_all(self, actor: Actor) -> List[str]:
        """
        Finalize every approved report in the system.

        Raises:
            PermissionDenied: role may not finalize
            OperationFailed: primary store unavailable (no local equivalent)
        """
        self._require_role(actor, ReportStatus.APPROVED, ReportStatus.FINALIZED)
        changed = self.repository.finalize_all_approved()

        counts: Dict[Campus, int] = defaultdict(int)
        for report_id in changed:
            counts[self.repository.get(report_id).campus] += 1
        for campus, count in counts.items():
            self._announce(
                campus,
                "Báo cáo đã chốt",
                f"{count} báo cáo đã được chốt",
                NotificationType.REPORT_UPDATED,
                None,
            )
        logger.info(f"{actor.user_id} finalized {len(changed)} report(s) across {len(counts)} campus(es)")
        return changed
