"""
Tests for primary/fallback store selection and the store implementations.
"""
import json
from unittest.mock import MagicMock

import pytest

from core.exceptions import OperationFailed, StorageUnavailable
from core.utils import utcnow
from database.models import Campus, ReportStatus
from services.notification_service import NotificationDispatcher
from services.report_repository import ReportRepository
from storage.failover import FailoverStore
from storage.local_store import LocalReportStore
from storage.sql_store import SqlReportStore


def _draft(**overrides):
    fields = {
        "lecturer_id": "gv-1",
        "campus": "HN",
        "student_code": "SV9",
        "student_name": "Pham Thi D",
    }
    fields.update(overrides)
    return fields


def _repository(store):
    return ReportRepository(store, NotificationDispatcher(store))


class TestFailoverStore:

    def test_uses_primary_when_reachable(self, database):
        fallback = LocalReportStore()
        store = FailoverStore(SqlReportStore(database), fallback)

        report = _repository(store).create(_draft())

        assert store.name == "database"
        assert fallback.get_report(report.id) is None
        assert store.get_report(report.id).id == report.id

    def test_failed_probe_routes_to_fallback(self):
        primary = MagicMock()
        primary.name = "database"
        primary.ping.return_value = False
        fallback = LocalReportStore()

        store = FailoverStore(primary, fallback, reprobe_seconds=60)
        report = _repository(store).create(_draft())

        assert store.name == "local"
        assert fallback.get_report(report.id) is not None
        primary.insert_report.assert_not_called()

    def test_unavailable_call_is_answered_by_fallback(self):
        primary = MagicMock()
        primary.name = "database"
        primary.ping.return_value = True
        primary.list_reports.side_effect = StorageUnavailable("timeout")
        fallback = LocalReportStore()
        store = FailoverStore(primary, fallback, reprobe_seconds=60)

        assert store.list_reports(campus=Campus.HN) == []
        assert store.name == "local"

    def test_primary_is_reprobed_after_window(self):
        primary = MagicMock()
        primary.name = "database"
        primary.ping.side_effect = [False, True]
        primary.list_reports.return_value = []
        store = FailoverStore(primary, LocalReportStore(), reprobe_seconds=0)

        store.list_reports()

        primary.list_reports.assert_called_once()
        assert primary.ping.call_count == 2

    def test_global_finalize_has_no_fallback(self):
        primary = MagicMock()
        primary.name = "database"
        primary.ping.return_value = True
        primary.set_status_where.side_effect = StorageUnavailable("connection refused")
        fallback = MagicMock()
        store = FailoverStore(primary, fallback)

        with pytest.raises(OperationFailed):
            store.set_status_where(None, ReportStatus.APPROVED, ReportStatus.FINALIZED, utcnow())
        fallback.set_status_where.assert_not_called()

    def test_targeted_status_change_falls_back(self):
        primary = MagicMock()
        primary.name = "database"
        primary.ping.return_value = True
        primary.set_status_where.side_effect = StorageUnavailable("connection refused")
        fallback = LocalReportStore()
        store = FailoverStore(primary, fallback)

        assert store.set_status_where(["x"], ReportStatus.DRAFT, ReportStatus.SUBMITTED, utcnow()) == []

    def test_without_fallback_unavailability_propagates(self):
        primary = MagicMock()
        primary.name = "database"
        primary.ping.return_value = True
        primary.get_report.side_effect = StorageUnavailable("down")
        store = FailoverStore(primary, None)

        with pytest.raises(StorageUnavailable):
            store.get_report("r1")

    def test_needs_a_store(self):
        with pytest.raises(ValueError):
            FailoverStore(None, None)


class TestSqlStoreErrors:

    def test_unreachable_database_maps_to_storage_unavailable(self):
        from database.connection import Database
        broken = Database("sqlite:////nonexistent-dir/sub/db.sqlite")
        store = SqlReportStore(broken)

        assert store.ping() is False
        with pytest.raises(StorageUnavailable):
            store.get_report("r1")


class TestLocalStorePersistence:

    def test_reloads_from_file(self, tmp_path):
        path = tmp_path / "store.json"
        report = _repository(LocalReportStore(path)).create(_draft())

        reopened = LocalReportStore(path)

        assert reopened.get_report(report.id).student_name == "Pham Thi D"
        assert len(reopened.list_notifications()) == 1
        with open(path, encoding="utf-8") as f:
            assert set(json.load(f)) == {"reports", "report_logs", "notifications"}

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")

        assert LocalReportStore(path).list_reports() == []


def _unwritable_path(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    return blocker / "store.json"


class TestLocalStoreFailedWrites:
    """A write the store reports as failed must leave nothing behind."""

    def test_failed_create_is_not_visible(self, tmp_path):
        store = LocalReportStore(_unwritable_path(tmp_path))

        with pytest.raises(OperationFailed):
            _repository(store).create(_draft())

        assert store.list_reports() == []
        assert store.list_notifications() == []

    def test_failed_updates_keep_previous_state(self, tmp_path):
        store = LocalReportStore(tmp_path / "store.json")
        report = _repository(store).create(_draft())
        notification = store.list_notifications()[0]
        store.path = _unwritable_path(tmp_path)

        with pytest.raises(OperationFailed):
            store.set_status_where([report.id], ReportStatus.DRAFT, ReportStatus.SUBMITTED, utcnow())
        with pytest.raises(OperationFailed):
            store.add_reader(notification.id, "cnbm-hn")
        with pytest.raises(OperationFailed):
            store.delete_report(report.id)
        with pytest.raises(OperationFailed):
            store.save_report(report.model_copy(update={"subject": "changed"}))

        kept = store.get_report(report.id)
        assert kept.status == ReportStatus.DRAFT
        assert kept.subject == report.subject
        assert store.get_notification(notification.id).read_by == []

    def test_noop_writes_do_not_touch_disk(self, tmp_path):
        store = LocalReportStore(tmp_path / "store.json")
        report = _repository(store).create(_draft())
        store.path = _unwritable_path(tmp_path)

        assert store.delete_report("missing") is False
        assert store.set_status_where([report.id], ReportStatus.APPROVED, ReportStatus.FINALIZED, utcnow()) == []


class _SwitchableSqlStore(SqlReportStore):
    """Database store whose reachability the test controls."""

    reachable = True

    def ping(self):
        return self.reachable and super().ping()


def test_fallback_writes_stay_in_fallback_after_recovery(database):
    primary = _SwitchableSqlStore(database)
    primary.reachable = False
    fallback = LocalReportStore()
    store = FailoverStore(primary, fallback, reprobe_seconds=60)
    report = _repository(store).create(_draft())

    primary.reachable = True
    assert store.probe() is True

    assert store.name == "database"
    assert store.get_report(report.id) is None
    assert fallback.get_report(report.id) is not None
