"""
Input validation utilities for report records.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from core.exceptions import ValidationError
from database.models import Campus, DvsvStatus, LogType, NOTE_FIELDS, StudyStatus, STUDY_STATUS_LABELS

DISPLAY_DATE_FORMAT = "%d/%m/%Y"

REQUIRED_DRAFT_FIELDS = ("lecturer_id", "campus", "student_code", "student_name")
TEXT_FIELDS = ("class_name", "subject", "status_detail", "teacher_note", "dvsv_note")
FLAG_FIELDS = ("warn_10", "warn_15_17", "warn_20", "banned")

MAX_NAME_LENGTH = 255
MAX_CODE_LENGTH = 50


def parse_campus(value: Any) -> Campus:
    """Accept a Campus or its code (case-insensitive)."""
    if isinstance(value, Campus):
        return value
    try:
        return Campus(str(value).strip().upper())
    except ValueError:
        raise ValidationError("campus", f"Unknown campus: {value}. Use: {', '.join(c.value for c in Campus)}")


def parse_study_status(value: Any) -> StudyStatus:
    """Accept an enum value or the Vietnamese label used in the source spreadsheet."""
    if isinstance(value, StudyStatus):
        return value
    text = str(value).strip()
    for status, label in STUDY_STATUS_LABELS.items():
        if text.lower() in (status.value, label.lower()):
            return status
    raise ValidationError("study_status", f"Unknown study status: {value}")


def parse_dvsv_status(value: Any) -> DvsvStatus:
    if isinstance(value, DvsvStatus):
        return value
    try:
        return DvsvStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError("dvsv_status", f"Invalid care status: {value}. Use: pending, success, failed")


def parse_note_field(value: Any) -> LogType:
    """Per-field note threads only exist for status_detail, teacher_note and dvsv_note."""
    try:
        field = LogType(value)
    except ValueError:
        field = None
    if field not in NOTE_FIELDS:
        raise ValidationError("type", f"Notes are kept for {', '.join(f.value for f in NOTE_FIELDS)} only, not {value}")
    return field


def format_assessment_date(value: Union[str, date, datetime, None]) -> str:
    """
    Normalize an assessment date to dd/mm/YYYY.

    Args:
        value: date/datetime, ISO string (YYYY-MM-DD) or dd/mm/YYYY string; None means today

    Returns:
        Display-formatted date string
    """
    if value is None or value == "":
        return date.today().strftime(DISPLAY_DATE_FORMAT)
    if isinstance(value, datetime):
        return value.date().strftime(DISPLAY_DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DISPLAY_DATE_FORMAT)
    text = str(value).strip()
    for fmt in (DISPLAY_DATE_FORMAT, "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).strftime(DISPLAY_DATE_FORMAT)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).strftime(DISPLAY_DATE_FORMAT)
    except ValueError:
        raise ValidationError("assessment_date", f"Invalid date: {value}. Use YYYY-MM-DD or dd/mm/YYYY.")


def _require_text(fields: Dict[str, Any], name: str, max_length: int) -> str:
    value = fields.get(name)
    if value is None or not str(value).strip():
        raise ValidationError(name, "This field is required")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(name, f"Must be at most {max_length} characters")
    return text


def validate_draft(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and normalize the fields of a new report.

    Unknown keys are ignored. Lifecycle fields (status, dvsv_status) are not
    accepted from callers; new reports always start as draft/pending.

    Raises:
        ValidationError: on the first missing or malformed field
    """
    clean: Dict[str, Any] = {
        "lecturer_id": _require_text(fields, "lecturer_id", 100),
        "campus": parse_campus(fields.get("campus") or ""),
        "student_code": _require_text(fields, "student_code", MAX_CODE_LENGTH),
        "student_name": _require_text(fields, "student_name", MAX_NAME_LENGTH),
    }
    for name in TEXT_FIELDS:
        clean[name] = str(fields.get(name) or "")
    for name in FLAG_FIELDS:
        clean[name] = bool(fields.get(name) or False)
    clean["study_status"] = parse_study_status(fields.get("study_status") or StudyStatus.STUDYING)
    clean["assessment_date"] = format_assessment_date(fields.get("assessment_date"))
    return clean


def ensure_note_content(content: Optional[str]) -> str:
    if content is None or not content.strip():
        raise ValidationError("content", "Note cannot be empty")
    return content.strip()
