"""
Academic-warning report APIs: CRUD, lifecycle, assessment cycles, note threads and care outcomes.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from auth.dependencies import get_current_actor, require_lecturer, require_student_affairs
from core.exceptions import PermissionDenied, WarningTrackerError
from core.schemas import Actor, CycleEntry, ReportLogRecord, ReportRecord
from core.validators import parse_note_field
from routers.common import (
    get_audit, get_lifecycle, get_repository, get_student_affairs, get_versioning, http_error,
)
from services import access_policy
from services.audit_service import AuditLogService
from services.lifecycle_service import ReportLifecycleService
from services.report_repository import ReportRepository
from services.student_affairs_service import StudentAffairsService
from services.versioning_service import ReportVersioningService


router = APIRouter(prefix="/api/reports", tags=["reports"])


# Request/Response Models
class ReportCreate(BaseModel):
    """Create report request. Owner and campus always come from the caller's token."""
    student_code: str
    student_name: str
    class_name: str = ""
    subject: str = ""
    warn_10: bool = False
    warn_15_17: bool = False
    warn_20: bool = False
    banned: bool = False
    status_detail: str = ""
    teacher_note: str = ""
    study_status: Optional[str] = None
    assessment_date: Optional[str] = None


class ReportUpdate(BaseModel):
    """Content edit. Omitted fields keep their value; campus and status cannot be changed here."""
    student_code: Optional[str] = None
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    subject: Optional[str] = None
    warn_10: Optional[bool] = None
    warn_15_17: Optional[bool] = None
    warn_20: Optional[bool] = None
    banned: Optional[bool] = None
    status_detail: Optional[str] = None
    teacher_note: Optional[str] = None
    study_status: Optional[str] = None
    assessment_date: Optional[str] = None


class SubmitRequest(BaseModel):
    ids: List[str] = Field(min_length=1)


class CycleCreate(BaseModel):
    """New assessment cycle; assessment_date defaults to today."""
    assessment_date: Optional[str] = None
    status_detail: Optional[str] = None
    teacher_note: Optional[str] = None
    warn_10: Optional[bool] = None
    warn_15_17: Optional[bool] = None
    warn_20: Optional[bool] = None
    banned: Optional[bool] = None


class NoteCreate(BaseModel):
    content: str


class CareOutcome(BaseModel):
    dvsv_status: str
    note: Optional[str] = None


class TransitionResponse(BaseModel):
    report_id: str
    applied: bool
    from_status: str
    to_status: str
    reason: Optional[str] = None


def _visible_report(repository: ReportRepository, report_id: str, actor: Actor) -> ReportRecord:
    report = repository.get(report_id)
    if not access_policy.can_view(actor, report):
        raise PermissionDenied(f"Report {report_id} is not visible to {actor.user_id}")
    return report


def _editable_report(repository: ReportRepository, report_id: str, actor: Actor) -> ReportRecord:
    report = repository.get(report_id)
    if not access_policy.can_edit_content(actor, report):
        raise PermissionDenied(f"Only the owning lecturer can change report {report_id}")
    return report


# ============================================================================
# Reports
# ============================================================================

@router.get("", response_model=List[ReportRecord])
async def list_reports(
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository)
):
    """Reports visible to the caller, newest first."""
    try:
        return repository.list_for(actor)
    except WarningTrackerError as e:
        raise http_error(e)


@router.post("", response_model=ReportRecord, status_code=status.HTTP_201_CREATED)
async def create_report(
    body: ReportCreate,
    actor: Actor = Depends(require_lecturer),
    repository: ReportRepository = Depends(get_repository)
):
    """Create a draft report owned by the calling lecturer."""
    fields = body.model_dump(exclude_none=True)
    try:
        return repository.create(fields, actor)
    except WarningTrackerError as e:
        raise http_error(e)


@router.post("/submit")
async def submit_reports(
    body: SubmitRequest,
    actor: Actor = Depends(require_lecturer),
    lifecycle: ReportLifecycleService = Depends(get_lifecycle)
):
    """Submit the caller's drafts. Ids that are not the caller's drafts are skipped."""
    try:
        submitted = lifecycle.submit(actor, body.ids)
    except WarningTrackerError as e:
        raise http_error(e)
    return {"submitted": submitted, "skipped": [i for i in body.ids if i not in submitted]}


@router.post("/finalize")
async def finalize_reports(
    actor: Actor = Depends(get_current_actor),
    lifecycle: ReportLifecycleService = Depends(get_lifecycle)
):
    """Finalize every approved report system-wide."""
    try:
        finalized = lifecycle.finalize_all(actor)
    except WarningTrackerError as e:
        raise http_error(e)
    return {"finalized": finalized, "count": len(finalized)}


@router.delete("/drafts")
async def clear_drafts(
    actor: Actor = Depends(require_lecturer),
    repository: ReportRepository = Depends(get_repository)
):
    """Delete all of the caller's drafts."""
    try:
        return {"deleted": repository.clear_drafts(actor.user_id)}
    except WarningTrackerError as e:
        raise http_error(e)


@router.get("/{report_id}", response_model=ReportRecord)
async def get_report(
    report_id: str,
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository)
):
    try:
        return _visible_report(repository, report_id, actor)
    except WarningTrackerError as e:
        raise http_error(e)


@router.put("/{report_id}", response_model=ReportRecord)
async def update_report(
    report_id: str,
    body: ReportUpdate,
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository)
):
    """Edit report content. Only the owning lecturer, and never once finalized."""
    try:
        report = _editable_report(repository, report_id, actor)
        return repository.update(report.model_copy(update=body.model_dump(exclude_none=True)))
    except WarningTrackerError as e:
        raise http_error(e)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: str,
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository)
):
    try:
        _editable_report(repository, report_id, actor)
        repository.delete(report_id)
    except WarningTrackerError as e:
        raise http_error(e)


# ============================================================================
# Review
# ============================================================================

@router.post("/{report_id}/approve", response_model=TransitionResponse)
async def approve_report(
    report_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ReportLifecycleService = Depends(get_lifecycle)
):
    """Approve a submitted report. A report in any other status is left alone (applied=false)."""
    try:
        result = lifecycle.approve(actor, report_id)
    except WarningTrackerError as e:
        raise http_error(e)
    return TransitionResponse(
        report_id=result.report_id,
        applied=result.applied,
        from_status=result.from_status.value,
        to_status=result.to_status.value,
        reason=result.reason,
    )


@router.post("/{report_id}/reject", response_model=TransitionResponse)
async def reject_report(
    report_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ReportLifecycleService = Depends(get_lifecycle)
):
    """Return a submitted report to draft."""
    try:
        result = lifecycle.reject(actor, report_id)
    except WarningTrackerError as e:
        raise http_error(e)
    return TransitionResponse(
        report_id=result.report_id,
        applied=result.applied,
        from_status=result.from_status.value,
        to_status=result.to_status.value,
        reason=result.reason,
    )


# ============================================================================
# Assessment cycles
# ============================================================================

@router.post("/{report_id}/cycles", response_model=ReportRecord)
async def record_cycle(
    report_id: str,
    body: CycleCreate,
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository),
    versioning: ReportVersioningService = Depends(get_versioning)
):
    """Archive the current assessment and move the report to a new assessment date."""
    try:
        _editable_report(repository, report_id, actor)
        return versioning.record_new_cycle(report_id, body.model_dump(exclude_none=True), actor)
    except WarningTrackerError as e:
        raise http_error(e)


@router.get("/{report_id}/cycles", response_model=List[CycleEntry])
async def list_cycles(
    report_id: str,
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository),
    versioning: ReportVersioningService = Depends(get_versioning)
):
    """Archived assessment cycles, newest first."""
    try:
        _visible_report(repository, report_id, actor)
        return versioning.list_cycles(report_id)
    except WarningTrackerError as e:
        raise http_error(e)


# ============================================================================
# Per-field note threads
# ============================================================================

@router.post("/{report_id}/notes/{field}", response_model=ReportLogRecord, status_code=status.HTTP_201_CREATED)
async def append_note(
    report_id: str,
    field: str,
    body: NoteCreate,
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository),
    audit: AuditLogService = Depends(get_audit)
):
    """Add a note to a field's thread; the report field then shows it."""
    try:
        field_type = parse_note_field(field)
        report = repository.get(report_id)
        if not access_policy.can_write_note(actor, report, field_type):
            raise PermissionDenied(f"Role '{actor.role.value}' cannot write {field_type.value} on report {report_id}")
        return audit.append_note(report_id, actor, field_type, body.content)
    except WarningTrackerError as e:
        raise http_error(e)


@router.get("/{report_id}/notes/{field}", response_model=List[ReportLogRecord])
async def list_notes(
    report_id: str,
    field: str,
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository),
    audit: AuditLogService = Depends(get_audit)
):
    try:
        _visible_report(repository, report_id, actor)
        return audit.list_notes(report_id, field)
    except WarningTrackerError as e:
        raise http_error(e)


# ============================================================================
# Student affairs
# ============================================================================

@router.post("/{report_id}/care", response_model=ReportRecord)
async def record_care_outcome(
    report_id: str,
    body: CareOutcome,
    actor: Actor = Depends(require_student_affairs),
    student_affairs: StudentAffairsService = Depends(get_student_affairs)
):
    """Record the outcome of student-affairs follow-up."""
    try:
        return student_affairs.record_care_outcome(actor, report_id, body.dvsv_status, body.note)
    except WarningTrackerError as e:
        raise http_error(e)
