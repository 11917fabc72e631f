"""
Domain records exchanged between services and stores.

Stores accept and return these regardless of the backend answering, so
callers never see whether the relational store or the local fallback served them.
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from database.models import (
    Campus, DvsvStatus, LogType, NotificationType, ReportStatus, StudyStatus, UserRole
)


class ReportRecord(BaseModel):
    """One academic-warning record."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    lecturer_id: str
    campus: Campus
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
    dvsv_note: str = ""
    study_status: StudyStatus = StudyStatus.STUDYING
    assessment_date: str = ""
    dvsv_status: DvsvStatus = DvsvStatus.PENDING
    status: ReportStatus = ReportStatus.DRAFT
    created_at: datetime
    updated_at: datetime


class ReportLogRecord(BaseModel):
    """Immutable audit entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    report_id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    type: LogType
    content: str
    created_at: datetime


class NotificationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    campus: Optional[Campus] = None
    title: str
    message: str
    type: NotificationType
    related_id: Optional[str] = None
    read_by: List[str] = Field(default_factory=list)
    created_at: datetime

    def is_read_by(self, user_id: str) -> bool:
        return user_id in self.read_by


# ============================================================================
# Full-cycle snapshot payloads (content of full_update logs)
# ============================================================================

class SnapshotV1(BaseModel):
    """Report state archived before an assessment cycle was rolled forward."""
    kind: Literal["snapshot"] = "snapshot"
    version: Literal[1] = 1
    assessment_date: str = ""
    warn_10: bool = False
    warn_15_17: bool = False
    warn_20: bool = False
    banned: bool = False
    status_detail: str = ""
    teacher_note: str = ""
    note: str = ""


class RawNote(BaseModel):
    """Fallback for full_update content that could not be parsed as a snapshot."""
    kind: Literal["raw"] = "raw"
    note: str


CyclePayload = Annotated[Union[SnapshotV1, RawNote], Field(discriminator="kind")]


class CycleEntry(BaseModel):
    """One archived assessment cycle as shown in the history viewer."""
    log_id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    created_at: datetime
    payload: CyclePayload


# ============================================================================
# Identity
# ============================================================================

class Actor(BaseModel):
    """Current user as supplied by the identity provider. Treated as opaque input."""
    user_id: str
    role: UserRole
    campus: Optional[Campus] = None
    display_name: str = ""

    @property
    def name(self) -> str:
        return self.display_name or self.user_id
