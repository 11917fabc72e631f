"""
Transparent primary/fallback store selection.

The primary (database) answers while it is reachable. A failed capability
probe or a StorageUnavailable from any primary call routes that call, and
every call for the next `reprobe_seconds`, to the fallback (local store).
Callers get the same signatures and record types whichever store answers.

The two stores are never reconciled. Writes the fallback accepted while the
primary was down stay in the fallback and are not visible once a re-probe
switches reads back to the primary; moving them over is an operator task.
"""
import time
from datetime import datetime
from typing import List, Optional, Sequence

from core.exceptions import OperationFailed, StorageUnavailable
from core.logger import get_logger
from core.schemas import NotificationRecord, ReportLogRecord, ReportRecord
from database.models import Campus, LogType, ReportStatus
from storage.base import ReportStore

logger = get_logger("storage")


class FailoverStore(ReportStore):
    """ReportStore that degrades from a primary store to a fallback store."""

    def __init__(
        self,
        primary: Optional[ReportStore],
        fallback: Optional[ReportStore],
        reprobe_seconds: int = 30
    ):
        """
        Args:
            primary: Preferred store (None for fallback-only deployments)
            fallback: Store used while the primary is unreachable (None disables degradation)
            reprobe_seconds: How long to stay on the fallback before trying the primary again
        """
        if primary is None and fallback is None:
            raise ValueError("FailoverStore needs at least one store")
        self.primary = primary
        self.fallback = fallback
        self.reprobe_seconds = reprobe_seconds
        self._primary_down_until = 0.0
        self.probe()

    # Selection -------------------------------------------------------------

    def probe(self) -> bool:
        """Capability probe of the primary store. Returns True if it is usable."""
        if self.primary is None:
            return False
        if self.primary.ping():
            self._primary_down_until = 0.0
            return True
        self._mark_primary_down("capability probe failed")
        return False

    def _mark_primary_down(self, reason: str):
        self._primary_down_until = time.monotonic() + self.reprobe_seconds
        target = self.fallback.name if self.fallback else "nothing"
        logger.warning(f"Primary store '{self.primary.name}' unavailable ({reason}); answering from {target} for {self.reprobe_seconds}s")

    def _primary_usable(self) -> bool:
        if self.primary is None:
            return False
        if not self._primary_down_until:
            return True
        if time.monotonic() < self._primary_down_until:
            return False
        # Reprobe window elapsed
        return self.probe()

    @property
    def active(self) -> ReportStore:
        """Store that would answer the next call."""
        if self._primary_usable() or self.fallback is None:
            return self.primary
        return self.fallback

    @property
    def name(self) -> str:
        return self.active.name

    def _call(self, method: str, *args, primary_only: bool = False, **kwargs):
        if self.primary is None:
            return getattr(self.fallback, method)(*args, **kwargs)
        if not primary_only and not self._primary_usable() and self.fallback is not None:
            return getattr(self.fallback, method)(*args, **kwargs)
        try:
            result = getattr(self.primary, method)(*args, **kwargs)
        except StorageUnavailable as e:
            if primary_only:
                raise OperationFailed(f"'{method}' needs the primary store, which is unavailable: {e}") from e
            if self.fallback is None:
                raise
            self._mark_primary_down(str(e))
            return getattr(self.fallback, method)(*args, **kwargs)
        self._primary_down_until = 0.0
        return result

    # ReportStore -----------------------------------------------------------

    def ping(self) -> bool:
        return self.active.ping()

    def get_report(self, report_id: str) -> Optional[ReportRecord]:
        return self._call("get_report", report_id)

    def list_reports(
        self,
        lecturer_id: Optional[str] = None,
        campus: Optional[Campus] = None,
        status: Optional[ReportStatus] = None,
    ) -> List[ReportRecord]:
        return self._call("list_reports", lecturer_id=lecturer_id, campus=campus, status=status)

    def insert_report(self, report: ReportRecord) -> ReportRecord:
        return self._call("insert_report", report)

    def save_report(self, report: ReportRecord) -> ReportRecord:
        return self._call("save_report", report)

    def delete_report(self, report_id: str) -> bool:
        return self._call("delete_report", report_id)

    def delete_reports_where(self, lecturer_id: str, status: ReportStatus) -> int:
        return self._call("delete_reports_where", lecturer_id, status)

    def set_status_where(
        self,
        report_ids: Optional[Sequence[str]],
        from_status: ReportStatus,
        to_status: ReportStatus,
        updated_at: datetime,
    ) -> List[str]:
        # A system-wide sweep (no id list) has no local equivalent once a primary exists
        return self._call(
            "set_status_where", report_ids, from_status, to_status, updated_at,
            primary_only=report_ids is None,
        )

    def insert_log(self, log: ReportLogRecord) -> ReportLogRecord:
        return self._call("insert_log", log)

    def list_logs(self, report_id: str, log_type: Optional[LogType] = None) -> List[ReportLogRecord]:
        return self._call("list_logs", report_id, log_type)

    def insert_notification(self, notification: NotificationRecord, retention_limit: int) -> NotificationRecord:
        return self._call("insert_notification", notification, retention_limit)

    def get_notification(self, notification_id: str) -> Optional[NotificationRecord]:
        return self._call("get_notification", notification_id)

    def list_notifications(self, campus: Optional[Campus] = None) -> List[NotificationRecord]:
        return self._call("list_notifications", campus)

    def add_reader(self, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        return self._call("add_reader", notification_id, user_id)
