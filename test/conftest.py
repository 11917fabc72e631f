"""
Shared fixtures: stores, services and actors for the report lifecycle tests.

Service-level tests run against both the relational store (in-memory SQLite)
and the local fallback store, so both honour the same contract.
"""
import pytest

from core.schemas import Actor
from database.connection import Database
from database.models import Campus, UserRole
from services.audit_service import AuditLogService
from services.lifecycle_service import ReportLifecycleService
from services.notification_service import NotificationDispatcher
from services.report_repository import ReportRepository
from services.student_affairs_service import StudentAffairsService
from services.versioning_service import ReportVersioningService
from storage.failover import FailoverStore
from storage.local_store import LocalReportStore
from storage.sql_store import SqlReportStore


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture(params=["database", "local"])
def store(request, database):
    """Failover store answering from the database, or from the local store only."""
    if request.param == "database":
        return FailoverStore(SqlReportStore(database), LocalReportStore())
    return FailoverStore(None, LocalReportStore())


@pytest.fixture
def notifications(store):
    return NotificationDispatcher(store, retention_limit=50, default_campus=Campus.HN)


@pytest.fixture
def repository(store, notifications):
    return ReportRepository(store, notifications)


@pytest.fixture
def audit(store, repository):
    return AuditLogService(store, repository)


@pytest.fixture
def versioning(store, repository, notifications):
    return ReportVersioningService(store, repository, notifications, preview_length=50)


@pytest.fixture
def lifecycle(repository, notifications):
    return ReportLifecycleService(repository, notifications)


@pytest.fixture
def student_affairs(repository, audit):
    return StudentAffairsService(repository, audit)


# =============================================================================
# Actors
# =============================================================================

@pytest.fixture
def lecturer():
    return Actor(user_id="gv-hn-1", role=UserRole.LECTURER, campus=Campus.HN, display_name="Tran Thi B")


@pytest.fixture
def lecturer_dn():
    return Actor(user_id="gv-dn-1", role=UserRole.LECTURER, campus=Campus.DN, display_name="Le Van C")


@pytest.fixture
def manager_hn():
    return Actor(user_id="cnbm-hn", role=UserRole.DEPARTMENT_MANAGER, campus=Campus.HN, display_name="CNBM HN")


@pytest.fixture
def manager_dn():
    return Actor(user_id="cnbm-dn", role=UserRole.DEPARTMENT_MANAGER, campus=Campus.DN, display_name="CNBM DN")


@pytest.fixture
def head_office():
    return Actor(user_id="ho-1", role=UserRole.HEAD_OFFICE, campus=None, display_name="Head Office")


@pytest.fixture
def dvsv_hn():
    return Actor(user_id="dvsv-hn", role=UserRole.STUDENT_AFFAIRS, campus=Campus.HN, display_name="DVSV HN")


@pytest.fixture
def make_report(repository, lecturer):
    """Factory creating a draft report; fields override the defaults."""
    def _make(owner=None, **fields):
        owner = owner or lecturer
        draft = {
            "lecturer_id": owner.user_id,
            "campus": owner.campus,
            "student_code": "SV001",
            "student_name": "Nguyen Van A",
            "class_name": "K18-CNTT",
            "subject": "Lap trinh Python",
        }
        draft.update(fields)
        return repository.create(draft)
    return _make
