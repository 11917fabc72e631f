"""
Assessment-cycle versioning for reports.

Rolling a report forward to a new assessment date archives the full prior state
as a `full_update` log before overwriting it, giving an append-only timeline.
"""
import json
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from core.exceptions import ReportFinalized, VersioningStepFailed, WarningTrackerError
from core.logger import logger
from core.schemas import Actor, CycleEntry, CyclePayload, RawNote, ReportLogRecord, ReportRecord, SnapshotV1
from core.utils import new_id, truncate_preview, utcnow
from core.validators import FLAG_FIELDS, format_assessment_date
from database.models import LogType, NotificationType, ReportStatus
from services.notification_service import NotificationDispatcher
from services.report_repository import ReportRepository
from storage.base import ReportStore

ARCHIVE_NOTE_PREFIX = "Cập nhật sang ngày mới: "
UPDATE_TITLE = "Báo cáo được cập nhật"
EMPTY_DETAIL_PREVIEW = "Cập nhật ngày đánh giá"

CYCLE_TEXT_FIELDS = ("status_detail", "teacher_note")

_payload_adapter = TypeAdapter(CyclePayload)


def parse_cycle_content(content: str) -> CyclePayload:
    """
    Decode the content of a full_update log.

    Untagged JSON objects written before payloads carried a `kind` are read as
    version 1 snapshots. Anything else becomes a RawNote holding the text.
    """
    try:
        data = json.loads(content)
    except ValueError:
        return RawNote(note=content)
    if not isinstance(data, dict):
        return RawNote(note=content)
    data = {key: value for key, value in data.items() if value is not None}
    data.setdefault("kind", "snapshot")
    try:
        return _payload_adapter.validate_python(data)
    except PydanticValidationError:
        return RawNote(note=str(data.get("note") or content))


class ReportVersioningService:
    """Archives and rolls forward assessment cycles."""

    def __init__(
        self,
        store: ReportStore,
        repository: ReportRepository,
        notifications: NotificationDispatcher,
        preview_length: int = 50
    ):
        self.store = store
        self.repository = repository
        self.notifications = notifications
        self.preview_length = preview_length

    def record_new_cycle(self, report_id: str, new_fields: Dict[str, Any], actor: Actor) -> ReportRecord:
        """
        Archive the current state of a report, then apply a new assessment cycle.

        Steps run in order: archive, update, notify. A failed step leaves the
        earlier ones in place; re-running the whole call is safe because the
        update is a full overwrite.

        Args:
            report_id: Report to roll forward
            new_fields: assessment_date (date, ISO or dd/mm/YYYY; default today),
                status_detail, teacher_note and the four warning flags. Absent
                keys keep their current value.
            actor: Lecturer recording the cycle

        Returns:
            Updated report

        Raises:
            ValidationError: bad assessment date; nothing written
            ReportNotFound / ReportFinalized: before any step runs
            VersioningStepFailed: a step failed; `step` names it
        """
        new_date = format_assessment_date(new_fields.get("assessment_date"))
        current = self.repository.get(report_id)
        if current.status == ReportStatus.FINALIZED:
            raise ReportFinalized(report_id)

        snapshot = SnapshotV1(
            assessment_date=current.assessment_date,
            warn_10=current.warn_10,
            warn_15_17=current.warn_15_17,
            warn_20=current.warn_20,
            banned=current.banned,
            status_detail=current.status_detail,
            teacher_note=current.teacher_note,
            note=ARCHIVE_NOTE_PREFIX + new_date,
        )
        log = ReportLogRecord(
            id=new_id(),
            report_id=report_id,
            user_id=actor.user_id,
            user_name=actor.name,
            type=LogType.FULL_UPDATE,
            content=snapshot.model_dump_json(),
            created_at=utcnow(),
        )
        self._run_step("archive", report_id, self.store.insert_log, log)

        changes: Dict[str, Any] = {"assessment_date": new_date}
        for name in CYCLE_TEXT_FIELDS:
            if new_fields.get(name) is not None:
                changes[name] = str(new_fields[name])
        for name in FLAG_FIELDS:
            if new_fields.get(name) is not None:
                changes[name] = bool(new_fields[name])
        updated = self._run_step("update", report_id, self.repository.update, current.model_copy(update=changes))

        self._run_step(
            "notify", report_id, self.notifications.notify,
            updated.campus,
            UPDATE_TITLE,
            self._update_message(actor, updated),
            NotificationType.REPORT_UPDATED,
            report_id,
        )
        logger.info(f"Report {report_id} moved to assessment date {new_date} by {actor.user_id}")
        return updated

    def _update_message(self, actor: Actor, report: ReportRecord) -> str:
        if report.status_detail:
            preview = truncate_preview(report.status_detail, self.preview_length)
        else:
            preview = EMPTY_DETAIL_PREVIEW
        return f'GV {actor.name} đã cập nhật tiến độ cho sinh viên {report.student_name}: "{preview}"'

    def _run_step(self, step: str, report_id: str, func, *args):
        try:
            return func(*args)
        except WarningTrackerError as e:
            logger.error(f"New cycle for report {report_id} failed at {step}: {e}", exc_info=True)
            raise VersioningStepFailed(step, report_id, e) from e

    def list_cycles(self, report_id: str) -> List[CycleEntry]:
        """Archived cycles of a report, newest first. Unreadable entries are kept as raw notes."""
        logs = self.store.list_logs(report_id, LogType.FULL_UPDATE)
        return [
            CycleEntry(
                log_id=log.id,
                user_id=log.user_id,
                user_name=log.user_name,
                created_at=log.created_at,
                payload=parse_cycle_content(log.content),
            )
            for log in logs
        ]

    def latest_cycle(self, report_id: str) -> Optional[CycleEntry]:
        cycles = self.list_cycles(report_id)
        return cycles[0] if cycles else None
