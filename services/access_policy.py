"""
Authorization policy: which reports a role sees and which roles drive which transitions.

Consumed by the repository (visibility) and the lifecycle service (transitions),
so role checks are not repeated at every call site.
"""
import enum
from typing import Any, Dict, Optional, Union

from core.schemas import Actor, ReportRecord
from database.models import Campus, LogType, ReportStatus, UserRole


class Visibility(str, enum.Enum):
    """Scope of reports a role can read."""
    OWN = "own"          # lecturer_id == actor
    CAMPUS = "campus"    # campus == actor's campus
    ALL = "all"          # unfiltered


VISIBILITY_BY_ROLE = {
    UserRole.LECTURER: Visibility.OWN,
    UserRole.DEPARTMENT_MANAGER: Visibility.CAMPUS,
    UserRole.STUDENT_AFFAIRS: Visibility.CAMPUS,
    UserRole.HEAD_OF_DISCIPLINE: Visibility.ALL,
    UserRole.HEAD_OFFICE: Visibility.ALL,
    UserRole.HEAD_OF_TRAINING: Visibility.ALL,
    UserRole.GUEST: Visibility.OWN,
}

# Who may move a report from one status to another
TRANSITION_ROLES = {
    (ReportStatus.DRAFT, ReportStatus.SUBMITTED): {UserRole.LECTURER},
    (ReportStatus.SUBMITTED, ReportStatus.APPROVED): {UserRole.DEPARTMENT_MANAGER, UserRole.HEAD_OF_DISCIPLINE},
    (ReportStatus.SUBMITTED, ReportStatus.DRAFT): {UserRole.DEPARTMENT_MANAGER, UserRole.HEAD_OF_DISCIPLINE},
    (ReportStatus.APPROVED, ReportStatus.FINALIZED): {UserRole.HEAD_OF_DISCIPLINE, UserRole.HEAD_OFFICE},
}

CONTENT_EDITOR_ROLES = {UserRole.LECTURER}
CARE_ROLES = {UserRole.STUDENT_AFFAIRS}


def parse_role(role: Union[UserRole, str, None]) -> Optional[UserRole]:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def visibility_for(role: Union[UserRole, str, None]) -> Visibility:
    """Unknown roles fall back to seeing only their own reports."""
    parsed = parse_role(role)
    return VISIBILITY_BY_ROLE.get(parsed, Visibility.OWN)


def report_filters(actor_id: str, role: Union[UserRole, str, None], campus: Union[Campus, str, None]) -> Optional[Dict[str, Any]]:
    """
    Store filters for the reports `role` may list.

    Returns:
        Keyword filters for ReportStore.list_reports, or None when the actor
        can see nothing (campus-scoped role without a campus)
    """
    visibility = visibility_for(role)
    if visibility == Visibility.ALL:
        return {}
    if visibility == Visibility.CAMPUS:
        if not campus:
            return None
        try:
            return {"campus": Campus(campus)}
        except ValueError:
            return None
    return {"lecturer_id": actor_id}


def can_view(actor: Actor, report: ReportRecord) -> bool:
    visibility = visibility_for(actor.role)
    if visibility == Visibility.ALL:
        return True
    if visibility == Visibility.CAMPUS:
        return actor.campus is not None and report.campus == actor.campus
    return report.lecturer_id == actor.user_id


def can_transition(role: Union[UserRole, str, None], from_status: ReportStatus, to_status: ReportStatus) -> bool:
    """True when the transition exists and `role` may trigger it. Nothing leaves finalized."""
    parsed = parse_role(role)
    return parsed in TRANSITION_ROLES.get((from_status, to_status), set())


def is_campus_scoped(role: Union[UserRole, str, None]) -> bool:
    return visibility_for(role) == Visibility.CAMPUS


def notification_campus(actor: Actor) -> Optional[Campus]:
    """Campus filter for the notification feed; org-wide roles see every campus."""
    if visibility_for(actor.role) == Visibility.ALL:
        return None
    return actor.campus


def can_edit_content(actor: Actor, report: ReportRecord) -> bool:
    """Only the owning lecturer edits a report's content."""
    return actor.role in CONTENT_EDITOR_ROLES and report.lecturer_id == actor.user_id


def can_write_note(actor: Actor, report: ReportRecord, field: LogType) -> bool:
    """dvsv_note belongs to student affairs of the report's campus; the other threads to its lecturer."""
    if field == LogType.DVSV_NOTE:
        return actor.role in CARE_ROLES and actor.campus is not None and report.campus == actor.campus
    return can_edit_content(actor, report)
