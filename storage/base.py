"""
Store interface over the three report collections.

Every implementation answers with the same record types and ordering
(newest created_at first), so the failover store can swap them freely.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from core.schemas import NotificationRecord, ReportLogRecord, ReportRecord
from database.models import Campus, LogType, ReportStatus


class ReportStore(ABC):
    """Keyed read/write access to reports, report logs and notifications."""

    name = "store"

    @abstractmethod
    def ping(self) -> bool:
        """Capability probe: True when the store can answer requests."""

    # Reports ---------------------------------------------------------------

    @abstractmethod
    def get_report(self, report_id: str) -> Optional[ReportRecord]:
        ...

    @abstractmethod
    def list_reports(
        self,
        lecturer_id: Optional[str] = None,
        campus: Optional[Campus] = None,
        status: Optional[ReportStatus] = None,
    ) -> List[ReportRecord]:
        """Exact-match filters; None means unfiltered. Newest first."""

    @abstractmethod
    def insert_report(self, report: ReportRecord) -> ReportRecord:
        ...

    @abstractmethod
    def save_report(self, report: ReportRecord) -> ReportRecord:
        """Full-record upsert by id."""

    @abstractmethod
    def delete_report(self, report_id: str) -> bool:
        """Return False if no such report."""

    @abstractmethod
    def delete_reports_where(self, lecturer_id: str, status: ReportStatus) -> int:
        ...

    @abstractmethod
    def set_status_where(
        self,
        report_ids: Optional[Sequence[str]],
        from_status: ReportStatus,
        to_status: ReportStatus,
        updated_at: datetime,
    ) -> List[str]:
        """
        Move reports currently in `from_status` to `to_status`.

        Args:
            report_ids: Restrict to these ids; None means every report in `from_status`
            from_status: Required current status; other reports are skipped
            to_status: New status
            updated_at: Timestamp written to changed reports

        Returns:
            Ids that actually changed
        """

    # Report logs -----------------------------------------------------------

    @abstractmethod
    def insert_log(self, log: ReportLogRecord) -> ReportLogRecord:
        ...

    @abstractmethod
    def list_logs(self, report_id: str, log_type: Optional[LogType] = None) -> List[ReportLogRecord]:
        ...

    # Notifications ---------------------------------------------------------

    @abstractmethod
    def insert_notification(self, notification: NotificationRecord, retention_limit: int) -> NotificationRecord:
        """Insert, then evict the oldest rows beyond `retention_limit`."""

    @abstractmethod
    def get_notification(self, notification_id: str) -> Optional[NotificationRecord]:
        ...

    @abstractmethod
    def list_notifications(self, campus: Optional[Campus] = None) -> List[NotificationRecord]:
        """With a campus: rows for that campus plus campus-less (global) rows."""

    @abstractmethod
    def add_reader(self, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        """Union `user_id` into read_by. Safe to repeat."""
