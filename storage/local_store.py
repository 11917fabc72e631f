"""
Local key-value fallback store.

Keeps the three collections as lists in a single JSON document, either on
disk (LOCAL_STORE_PATH) or in memory. Used when the database is unreachable
and for database-less local deployments.
"""
import copy
import json
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence, Union

from core.exceptions import OperationFailed
from core.logger import get_logger
from core.schemas import NotificationRecord, ReportLogRecord, ReportRecord
from database.models import Campus, LogType, ReportStatus
from storage.base import ReportStore

logger = get_logger("storage")

REPORTS_KEY = "reports"
LOGS_KEY = "report_logs"
NOTIFICATIONS_KEY = "notifications"


class LocalReportStore(ReportStore):
    """JSON-document store with the same contract as the database store."""

    name = "local"

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Args:
            path: JSON file to persist to; None keeps everything in memory
        """
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._data: Dict[str, List[Dict[str, Any]]] = self._load()
        logger.info(f"Local store initialized ({self.path or 'in-memory'})")

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        empty = {REPORTS_KEY: [], LOGS_KEY: [], NOTIFICATIONS_KEY: []}
        if self.path is None or not self.path.exists():
            return empty
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Local store file {self.path} unreadable, starting empty: {e}")
            return empty
        for key in empty:
            empty[key] = list(stored.get(key) or [])
        return empty

    @contextmanager
    def _write(self) -> Generator[Dict[str, List[Dict[str, Any]]], None, None]:
        """
        Mutate the document and persist it. If the flush (or the mutation)
        fails, the in-memory document is restored so readers never see a
        change the caller was told did not happen.
        """
        with self._lock:
            snapshot = copy.deepcopy(self._data) if self.path is not None else None
            try:
                yield self._data
                self._flush()
            except Exception:
                if snapshot is not None:
                    self._data = snapshot
                raise

    def _flush(self):
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as e:
            raise OperationFailed(f"Could not write local store {self.path}: {e}") from e

    def ping(self) -> bool:
        return True

    # Reports ---------------------------------------------------------------

    def _report_rows(self) -> List[Dict[str, Any]]:
        return self._data[REPORTS_KEY]

    def get_report(self, report_id: str) -> Optional[ReportRecord]:
        with self._lock:
            for row in self._report_rows():
                if row["id"] == report_id:
                    return ReportRecord.model_validate(row)
        return None

    def list_reports(
        self,
        lecturer_id: Optional[str] = None,
        campus: Optional[Campus] = None,
        status: Optional[ReportStatus] = None,
    ) -> List[ReportRecord]:
        with self._lock:
            reports = [ReportRecord.model_validate(row) for row in self._report_rows()]
        if lecturer_id is not None:
            reports = [r for r in reports if r.lecturer_id == lecturer_id]
        if campus is not None:
            reports = [r for r in reports if r.campus == campus]
        if status is not None:
            reports = [r for r in reports if r.status == status]
        return sorted(reports, key=lambda r: r.created_at, reverse=True)

    def insert_report(self, report: ReportRecord) -> ReportRecord:
        with self._write() as data:
            data[REPORTS_KEY].append(report.model_dump(mode="json"))
        return report

    def save_report(self, report: ReportRecord) -> ReportRecord:
        row = report.model_dump(mode="json")
        with self._write() as data:
            rows = data[REPORTS_KEY]
            for index, existing in enumerate(rows):
                if existing["id"] == report.id:
                    rows[index] = row
                    break
            else:
                rows.append(row)
        return report

    def delete_report(self, report_id: str) -> bool:
        with self._lock:
            if not any(row["id"] == report_id for row in self._report_rows()):
                return False
            with self._write() as data:
                data[REPORTS_KEY] = [row for row in data[REPORTS_KEY] if row["id"] != report_id]
        return True

    def delete_reports_where(self, lecturer_id: str, status: ReportStatus) -> int:
        def doomed(row):
            return row["lecturer_id"] == lecturer_id and row["status"] == status.value

        with self._lock:
            removed = sum(1 for row in self._report_rows() if doomed(row))
            if removed:
                with self._write() as data:
                    data[REPORTS_KEY] = [row for row in data[REPORTS_KEY] if not doomed(row)]
        return removed

    def set_status_where(
        self,
        report_ids: Optional[Sequence[str]],
        from_status: ReportStatus,
        to_status: ReportStatus,
        updated_at: datetime,
    ) -> List[str]:
        wanted = set(report_ids) if report_ids is not None else None
        with self._lock:
            changed = [
                row["id"] for row in self._report_rows()
                if row["status"] == from_status.value and (wanted is None or row["id"] in wanted)
            ]
            if changed:
                targets = set(changed)
                with self._write() as data:
                    for row in data[REPORTS_KEY]:
                        if row["id"] in targets:
                            row["status"] = to_status.value
                            row["updated_at"] = updated_at.isoformat()
        return changed

    # Report logs -----------------------------------------------------------

    def insert_log(self, log: ReportLogRecord) -> ReportLogRecord:
        with self._write() as data:
            data[LOGS_KEY].append(log.model_dump(mode="json"))
        return log

    def list_logs(self, report_id: str, log_type: Optional[LogType] = None) -> List[ReportLogRecord]:
        with self._lock:
            logs = [
                ReportLogRecord.model_validate(row) for row in self._data[LOGS_KEY]
                if row["report_id"] == report_id
            ]
        if log_type is not None:
            logs = [log for log in logs if log.type == log_type]
        return sorted(logs, key=lambda log: log.created_at, reverse=True)

    # Notifications ---------------------------------------------------------

    def insert_notification(self, notification: NotificationRecord, retention_limit: int) -> NotificationRecord:
        with self._write() as data:
            rows = data[NOTIFICATIONS_KEY]
            rows.append(notification.model_dump(mode="json"))
            if len(rows) > retention_limit:
                rows.sort(key=lambda row: datetime.fromisoformat(row["created_at"]))
                evicted = len(rows) - retention_limit
                del rows[:evicted]
                logger.debug(f"Evicted {evicted} notification(s) beyond retention limit {retention_limit}")
        return notification

    def get_notification(self, notification_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            for row in self._data[NOTIFICATIONS_KEY]:
                if row["id"] == notification_id:
                    return NotificationRecord.model_validate(row)
        return None

    def list_notifications(self, campus: Optional[Campus] = None) -> List[NotificationRecord]:
        with self._lock:
            notifications = [NotificationRecord.model_validate(row) for row in self._data[NOTIFICATIONS_KEY]]
        if campus is not None:
            notifications = [n for n in notifications if n.campus is None or n.campus == campus]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    def add_reader(self, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            current = self.get_notification(notification_id)
            if current is None or user_id in current.read_by:
                return current
            with self._write() as data:
                for row in data[NOTIFICATIONS_KEY]:
                    if row["id"] == notification_id:
                        row["read_by"] = list(row.get("read_by") or []) + [user_id]
            return self.get_notification(notification_id)
