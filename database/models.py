"""
Database models for the academic-warning report service.
"""
from datetime import datetime
from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, JSON, Index, TypeDecorator
)
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Enums - Must be defined before models that use them
# ============================================================================

class ReportStatus(str, enum.Enum):
    """Report lifecycle status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    FINALIZED = "finalized"


class DvsvStatus(str, enum.Enum):
    """Student-affairs care outcome."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class StudyStatus(str, enum.Enum):
    """Student's current enrolment state."""
    STUDYING = "studying"
    REPEATING = "repeating"
    ON_HOLD = "on-hold"
    WITHDRAWN = "withdrawn"


class UserRole(str, enum.Enum):
    """Roles supplied by the identity provider."""
    LECTURER = "gv"
    DEPARTMENT_MANAGER = "cnbm"
    HEAD_OF_DISCIPLINE = "truong_nganh"
    HEAD_OFFICE = "ho"
    STUDENT_AFFAIRS = "dvsv"
    HEAD_OF_TRAINING = "tbdt"
    GUEST = "guest"


class Campus(str, enum.Enum):
    """Physical training sites."""
    HN = "HN"
    DN = "DN"
    HCM = "HCM"
    CT = "CT"


class LogType(str, enum.Enum):
    """Report log entry kinds: three per-field note threads plus full-cycle snapshots."""
    STATUS_DETAIL = "status_detail"
    TEACHER_NOTE = "teacher_note"
    DVSV_NOTE = "dvsv_note"
    FULL_UPDATE = "full_update"


class NotificationType(str, enum.Enum):
    """Notification event kinds."""
    REPORT_CREATED = "report_created"
    REPORT_UPDATED = "report_updated"
    REPORT_APPROVED = "report_approved"
    REPORT_REJECTED = "report_rejected"


NOTE_FIELDS = (LogType.STATUS_DETAIL, LogType.TEACHER_NOTE, LogType.DVSV_NOTE)

CAMPUS_NAMES = {
    Campus.HN: "Hà Nội",
    Campus.DN: "Đà Nẵng",
    Campus.HCM: "Hồ Chí Minh",
    Campus.CT: "Cần Thơ",
}

ROLE_NAMES = {
    UserRole.LECTURER: "Giảng viên",
    UserRole.DEPARTMENT_MANAGER: "Chủ nhiệm bộ môn",
    UserRole.HEAD_OF_DISCIPLINE: "Trưởng ngành",
    UserRole.HEAD_OFFICE: "Head Office",
    UserRole.STUDENT_AFFAIRS: "Dịch vụ sinh viên",
    UserRole.HEAD_OF_TRAINING: "Trưởng ban đào tạo",
    UserRole.GUEST: "Khách tham quan",
}

# Labels used by the spreadsheet the reports were originally kept in
STUDY_STATUS_LABELS = {
    StudyStatus.STUDYING: "Học đi",
    StudyStatus.REPEATING: "Học lại",
    StudyStatus.ON_HOLD: "Bảo lưu",
    StudyStatus.WITHDRAWN: "Nghỉ học",
}


# ============================================================================
# Models
# ============================================================================

class Report(Base):
    """Academic-warning record for one student in one subject, owned by one lecturer."""
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True)  # UUID
    lecturer_id = Column(String(100), nullable=False)
    campus = Column(EnumValue(Campus, 10), nullable=False)  # Immutable after creation
    student_code = Column(String(50), nullable=False)
    student_name = Column(String(255), nullable=False)
    class_name = Column(String(100), default="", nullable=False)
    subject = Column(String(255), default="", nullable=False)

    # Warning flags (independent; banned does not imply warn_20 here)
    warn_10 = Column(Boolean, default=False, nullable=False)
    warn_15_17 = Column(Boolean, default=False, nullable=False)
    warn_20 = Column(Boolean, default=False, nullable=False)
    banned = Column(Boolean, default=False, nullable=False)

    # Cached latest value of each note thread (history lives in report_logs)
    status_detail = Column(Text, default="", nullable=False)
    teacher_note = Column(Text, default="", nullable=False)
    dvsv_note = Column(Text, default="", nullable=False)

    study_status = Column(EnumValue(StudyStatus, 20), default=StudyStatus.STUDYING, nullable=False)
    assessment_date = Column(String(10), nullable=False)  # dd/mm/YYYY, display only
    dvsv_status = Column(EnumValue(DvsvStatus, 20), default=DvsvStatus.PENDING, nullable=False)
    status = Column(EnumValue(ReportStatus, 20), default=ReportStatus.DRAFT, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_report_lecturer', 'lecturer_id'),
        Index('idx_report_campus', 'campus'),
        Index('idx_report_status', 'status'),
        Index('idx_report_campus_status', 'campus', 'status'),
        Index('idx_report_created', 'created_at'),
    )


class ReportLog(Base):
    """Append-only note/snapshot history for a report."""
    __tablename__ = "report_logs"

    id = Column(String(36), primary_key=True)
    # No FK: logs outlive a deleted report
    report_id = Column(String(36), nullable=False)
    user_id = Column(String(100), nullable=True)
    user_name = Column(String(255), nullable=True)
    type = Column(EnumValue(LogType, 20), nullable=False)
    content = Column(Text, nullable=False)  # Free text, or versioned JSON snapshot for full_update
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_log_report', 'report_id'),
        Index('idx_log_report_type', 'report_id', 'type'),
    )


class Notification(Base):
    """Campus-scoped broadcast event. read_by only ever grows."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True)
    campus = Column(EnumValue(Campus, 10), nullable=True)  # NULL = global
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(EnumValue(NotificationType, 30), nullable=False)
    related_id = Column(String(36), nullable=True)  # Weak reference to a report
    read_by = Column(JSON, default=list, nullable=False)  # List of user ids
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_notification_campus', 'campus'),
    )
