"""
Tests for recording student-affairs care outcomes.
"""
import pytest

from core.exceptions import PermissionDenied, ValidationError
from core.schemas import Actor
from database.models import DvsvStatus, UserRole


def test_care_outcome_with_note_syncs_thread(student_affairs, audit, make_report, dvsv_hn):
    report = make_report()

    updated = student_affairs.record_care_outcome(dvsv_hn, report.id, "success", "Da gap sinh vien")

    assert updated.dvsv_status == DvsvStatus.SUCCESS
    assert updated.dvsv_note == "Da gap sinh vien"
    notes = audit.list_notes(report.id, "dvsv_note")
    assert [n.content for n in notes] == ["Da gap sinh vien"]
    assert notes[0].user_id == dvsv_hn.user_id


def test_care_outcome_without_note_writes_no_log(student_affairs, audit, make_report, dvsv_hn):
    report = make_report()

    updated = student_affairs.record_care_outcome(dvsv_hn, report.id, DvsvStatus.FAILED)

    assert updated.dvsv_status == DvsvStatus.FAILED
    assert audit.list_logs(report.id) == []


def test_other_campus_is_denied(student_affairs, make_report, lecturer_dn, dvsv_hn):
    report = make_report(owner=lecturer_dn)
    with pytest.raises(PermissionDenied):
        student_affairs.record_care_outcome(dvsv_hn, report.id, "success")


def test_only_student_affairs(student_affairs, make_report, manager_hn):
    report = make_report()
    with pytest.raises(PermissionDenied):
        student_affairs.record_care_outcome(manager_hn, report.id, "success")


def test_unknown_status(student_affairs, make_report, dvsv_hn):
    report = make_report()
    with pytest.raises(ValidationError) as exc_info:
        student_affairs.record_care_outcome(dvsv_hn, report.id, "done")
    assert exc_info.value.field == "dvsv_status"


def test_dvsv_without_campus_is_denied(student_affairs, make_report):
    report = make_report()
    floating = Actor(user_id="dvsv-x", role=UserRole.STUDENT_AFFAIRS, campus=None)
    with pytest.raises(PermissionDenied):
        student_affairs.record_care_outcome(floating, report.id, "success")
