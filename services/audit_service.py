"""
Per-field note history for reports.

status_detail, teacher_note and dvsv_note each carry an append-only thread of
report logs. The field on the report is a cache of the newest entry in its thread.
"""
from typing import List, Optional, Union

from core.exceptions import ReportFinalized
from core.logger import logger
from core.schemas import Actor, ReportLogRecord, ReportRecord
from core.utils import new_id, utcnow
from core.validators import ensure_note_content, parse_note_field
from database.models import LogType, ReportStatus
from services.report_repository import ReportRepository
from storage.base import ReportStore


class AuditLogService:
    """Service for per-field note threads."""

    def __init__(self, store: ReportStore, repository: ReportRepository):
        self.store = store
        self.repository = repository

    def append_note(
        self,
        report_id: str,
        actor: Actor,
        field_type: Union[LogType, str],
        content: str
    ) -> ReportLogRecord:
        """
        Append a note to a field's thread and make it the field's current value.

        Args:
            report_id: Report the note belongs to
            actor: Author of the note
            field_type: status_detail, teacher_note or dvsv_note
            content: Note text; blank is rejected

        Returns:
            Created ReportLogRecord

        Raises:
            ValidationError: unsupported field or blank content
            ReportNotFound / ReportFinalized: report missing or closed
        """
        field = parse_note_field(field_type)
        text = ensure_note_content(content)
        report = self.repository.get(report_id)
        if report.status == ReportStatus.FINALIZED:
            raise ReportFinalized(report_id)

        log = ReportLogRecord(
            id=new_id(),
            report_id=report_id,
            user_id=actor.user_id,
            user_name=actor.name,
            type=field,
            content=text,
            created_at=utcnow(),
        )
        self.store.insert_log(log)
        self.sync_field(report, field, text)
        logger.info(f"Note appended to {field.value} of report {report_id} by {actor.user_id}")
        return log

    def sync_field(self, report: ReportRecord, field: LogType, content: str) -> ReportRecord:
        """Write `content` into the report field the thread caches."""
        return self.repository.update(report.model_copy(update={field.value: content}))

    def list_notes(self, report_id: str, field_type: Union[LogType, str]) -> List[ReportLogRecord]:
        """Thread of one field, newest first."""
        return self.store.list_logs(report_id, parse_note_field(field_type))

    def list_logs(self, report_id: str, log_type: Optional[LogType] = None) -> List[ReportLogRecord]:
        return self.store.list_logs(report_id, log_type)

    def latest_note(self, report_id: str, field_type: Union[LogType, str]) -> Optional[ReportLogRecord]:
        notes = self.list_notes(report_id, field_type)
        return notes[0] if notes else None
