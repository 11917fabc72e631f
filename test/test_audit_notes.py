"""
Tests for per-field note threads.
"""
import pytest

from core.exceptions import ReportFinalized, ReportNotFound, ValidationError
from database.models import LogType, ReportStatus


class TestAppendNote:

    def test_note_becomes_newest_entry_and_field_value(self, audit, repository, make_report, lecturer):
        report = make_report()

        audit.append_note(report.id, lecturer, "teacher_note", "Da lien he phu huynh")
        audit.append_note(report.id, lecturer, "teacher_note", "Sinh vien hua di hoc lai")

        notes = audit.list_notes(report.id, "teacher_note")
        assert [n.content for n in notes] == ["Sinh vien hua di hoc lai", "Da lien he phu huynh"]
        assert repository.get(report.id).teacher_note == "Sinh vien hua di hoc lai"

    def test_threads_are_independent(self, audit, repository, make_report, lecturer):
        report = make_report(teacher_note="unchanged")

        audit.append_note(report.id, lecturer, LogType.STATUS_DETAIL, "Vang 4 buoi")

        assert audit.list_notes(report.id, "teacher_note") == []
        stored = repository.get(report.id)
        assert stored.status_detail == "Vang 4 buoi"
        assert stored.teacher_note == "unchanged"

    def test_note_records_author(self, audit, make_report, lecturer):
        report = make_report()

        log = audit.append_note(report.id, lecturer, "status_detail", "  padded  ")

        assert log.user_id == lecturer.user_id
        assert log.user_name == "Tran Thi B"
        assert log.content == "padded"

    def test_note_does_not_roll_the_cycle(self, audit, versioning, repository, make_report, lecturer):
        report = make_report(assessment_date="2024-05-01", warn_10=True)

        audit.append_note(report.id, lecturer, "teacher_note", "incremental remark")

        stored = repository.get(report.id)
        assert stored.assessment_date == "01/05/2024"
        assert stored.warn_10 is True
        assert versioning.list_cycles(report.id) == []

    def test_blank_content_rejected(self, audit, make_report, lecturer):
        report = make_report()
        with pytest.raises(ValidationError) as exc_info:
            audit.append_note(report.id, lecturer, "teacher_note", "   ")
        assert exc_info.value.field == "content"

    def test_full_update_is_not_a_note_thread(self, audit, make_report, lecturer):
        report = make_report()
        with pytest.raises(ValidationError):
            audit.append_note(report.id, lecturer, "full_update", "{}")

    def test_missing_report(self, audit, lecturer):
        with pytest.raises(ReportNotFound):
            audit.append_note("nope", lecturer, "teacher_note", "hello")

    def test_finalized_report_takes_no_notes(self, audit, repository, make_report, lecturer, store):
        report = make_report()
        for status in (ReportStatus.SUBMITTED, ReportStatus.APPROVED, ReportStatus.FINALIZED):
            repository.bulk_set_status([report.id], status)

        with pytest.raises(ReportFinalized):
            audit.append_note(report.id, lecturer, "teacher_note", "too late")
        assert store.list_logs(report.id) == []

    def test_list_logs_mixes_types_newest_first(self, audit, versioning, make_report, lecturer):
        report = make_report()
        audit.append_note(report.id, lecturer, "teacher_note", "one")
        versioning.record_new_cycle(report.id, {"status_detail": "two"}, lecturer)
        audit.append_note(report.id, lecturer, "status_detail", "three")

        types = [log.type for log in audit.list_logs(report.id)]

        assert types == [LogType.STATUS_DETAIL, LogType.FULL_UPDATE, LogType.TEACHER_NOTE]
