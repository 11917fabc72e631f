"""
Primary relational store backed by SQLAlchemy.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from core.exceptions import OperationFailed, StorageUnavailable
from core.logger import get_logger
from core.schemas import NotificationRecord, ReportLogRecord, ReportRecord
from database.connection import Database
from database.models import Campus, LogType, Notification, Report, ReportLog, ReportStatus
from storage.base import ReportStore

logger = get_logger("storage")


class SqlReportStore(ReportStore):
    """Reports, logs and notifications in the relational database."""

    name = "database"

    def __init__(self, database: Database):
        self.database = database
        self._schema_ready = False

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        """Database session with driver errors mapped onto the store error taxonomy."""
        try:
            with self.database.get_session() as session:
                yield session
        except (OperationalError, DisconnectionError, PoolTimeoutError) as e:
            raise StorageUnavailable(f"Database unreachable: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Database write rejected: {e}")
            raise OperationFailed(f"Database rejected the operation: {e}") from e

    def ping(self) -> bool:
        """Liveness check; creates the tables on the first successful ping."""
        if not self.database.ping():
            return False
        if not self._schema_ready:
            try:
                self.database.create_tables()
            except SQLAlchemyError as e:
                logger.warning(f"Database reachable but schema could not be created: {e}")
                return False
            self._schema_ready = True
        return True

    # Reports ---------------------------------------------------------------

    def get_report(self, report_id: str) -> Optional[ReportRecord]:
        with self._session() as session:
            row = session.get(Report, report_id)
            return ReportRecord.model_validate(row) if row else None

    def list_reports(
        self,
        lecturer_id: Optional[str] = None,
        campus: Optional[Campus] = None,
        status: Optional[ReportStatus] = None,
    ) -> List[ReportRecord]:
        with self._session() as session:
            query = session.query(Report)
            if lecturer_id is not None:
                query = query.filter(Report.lecturer_id == lecturer_id)
            if campus is not None:
                query = query.filter(Report.campus == campus)
            if status is not None:
                query = query.filter(Report.status == status)
            rows = query.order_by(Report.created_at.desc()).all()
            return [ReportRecord.model_validate(row) for row in rows]

    def insert_report(self, report: ReportRecord) -> ReportRecord:
        with self._session() as session:
            session.add(Report(**report.model_dump()))
        return report

    def save_report(self, report: ReportRecord) -> ReportRecord:
        with self._session() as session:
            session.merge(Report(**report.model_dump()))
        return report

    def delete_report(self, report_id: str) -> bool:
        with self._session() as session:
            deleted = session.query(Report).filter(Report.id == report_id).delete(synchronize_session=False)
        return deleted > 0

    def delete_reports_where(self, lecturer_id: str, status: ReportStatus) -> int:
        with self._session() as session:
            return session.query(Report).filter(
                Report.lecturer_id == lecturer_id,
                Report.status == status,
            ).delete(synchronize_session=False)

    def set_status_where(
        self,
        report_ids: Optional[Sequence[str]],
        from_status: ReportStatus,
        to_status: ReportStatus,
        updated_at: datetime,
    ) -> List[str]:
        with self._session() as session:
            query = session.query(Report).filter(Report.status == from_status)
            if report_ids is not None:
                if not report_ids:
                    return []
                query = query.filter(Report.id.in_(list(report_ids)))
            rows = query.with_for_update().all()
            for row in rows:
                row.status = to_status
                row.updated_at = updated_at
            return [row.id for row in rows]

    # Report logs -----------------------------------------------------------

    def insert_log(self, log: ReportLogRecord) -> ReportLogRecord:
        with self._session() as session:
            session.add(ReportLog(**log.model_dump()))
        return log

    def list_logs(self, report_id: str, log_type: Optional[LogType] = None) -> List[ReportLogRecord]:
        with self._session() as session:
            query = session.query(ReportLog).filter(ReportLog.report_id == report_id)
            if log_type is not None:
                query = query.filter(ReportLog.type == log_type)
            rows = query.order_by(ReportLog.created_at.desc()).all()
            return [ReportLogRecord.model_validate(row) for row in rows]

    # Notifications ---------------------------------------------------------

    def insert_notification(self, notification: NotificationRecord, retention_limit: int) -> NotificationRecord:
        with self._session() as session:
            session.add(Notification(**notification.model_dump()))
            session.flush()
            stale_ids = [
                row_id for (row_id,) in session.query(Notification.id)
                .order_by(Notification.created_at.desc())
                .offset(retention_limit)
                .all()
            ]
            if stale_ids:
                session.query(Notification).filter(Notification.id.in_(stale_ids)).delete(synchronize_session=False)
                logger.debug(f"Evicted {len(stale_ids)} notification(s) beyond retention limit {retention_limit}")
        return notification

    def get_notification(self, notification_id: str) -> Optional[NotificationRecord]:
        with self._session() as session:
            row = session.get(Notification, notification_id)
            return NotificationRecord.model_validate(row) if row else None

    def list_notifications(self, campus: Optional[Campus] = None) -> List[NotificationRecord]:
        with self._session() as session:
            query = session.query(Notification)
            if campus is not None:
                query = query.filter(or_(Notification.campus == campus, Notification.campus.is_(None)))
            rows = query.order_by(Notification.created_at.desc()).all()
            return [NotificationRecord.model_validate(row) for row in rows]

    def add_reader(self, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        with self._session() as session:
            row = (
                session.query(Notification)
                .filter(Notification.id == notification_id)
                .with_for_update()
                .first()
            )
            if row is None:
                return None
            readers = list(row.read_by or [])
            if user_id not in readers:
                # Reassign: in-place mutation of a JSON column is not tracked
                row.read_by = readers + [user_id]
            return NotificationRecord.model_validate(row)
