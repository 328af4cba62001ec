import threading
import time

from app.services.reconciliation_service import CycleReport
from app.services.scheduler import ReconciliationScheduler
from app.tests.factories import NOW


class _FakeSession:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class _FakeService:
    def __init__(self, fail_first=False):
        self.calls = []
        self.fail_first = fail_first
        self.ran = threading.Event()

    def run_cycle(self, db, now=None, force_project_id=None):
        self.calls.append((db, now, force_project_id))
        if self.fail_first and len(self.calls) == 1:
            raise RuntimeError("database unavailable")
        self.ran.set()
        return CycleReport(started_at=NOW, finished_at=NOW)


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_run_once_opens_and_closes_its_own_session():
    sessions = []

    def factory():
        s = _FakeSession()
        sessions.append(s)
        return s

    service = _FakeService()
    scheduler = ReconciliationScheduler(service, factory, interval_seconds=60)

    report = scheduler.run_once(now=NOW)

    assert scheduler.last_report is report
    assert len(sessions) == 1 and sessions[0].closed
    assert service.calls[0][1] == NOW


def test_run_once_leaves_caller_session_open():
    service = _FakeService()
    scheduler = ReconciliationScheduler(service, _FakeSession, interval_seconds=60)
    db = _FakeSession()

    scheduler.run_once(db, force_project_id="p-1")

    assert db.closed is False
    assert service.calls[0] == (db, None, "p-1")


def test_status_reports_last_cycle():
    scheduler = ReconciliationScheduler(_FakeService(), _FakeSession, interval_seconds=30)
    assert scheduler.status() == {
        "running": False,
        "intervalSeconds": 30,
        "lastError": None,
        "lastReport": None,
    }

    scheduler.run_once()
    out = scheduler.status()
    assert out["lastReport"]["counters"]["winnersSelected"] == 0


def test_start_runs_immediately_and_stop_joins():
    service = _FakeService()
    scheduler = ReconciliationScheduler(service, _FakeSession, interval_seconds=60)

    scheduler.start()
    try:
        assert service.ran.wait(2.0)
        assert scheduler.is_running
        scheduler.start()  # second start is a no-op
    finally:
        scheduler.stop(timeout=2.0)

    assert not scheduler.is_running
    assert len(service.calls) == 1


def test_loop_survives_a_failing_cycle():
    service = _FakeService(fail_first=True)
    scheduler = ReconciliationScheduler(service, _FakeSession, interval_seconds=0.01)

    scheduler.start()
    try:
        assert service.ran.wait(2.0)
    finally:
        scheduler.stop(timeout=2.0)

    assert len(service.calls) >= 2
    assert _wait_for(lambda: scheduler.last_report is not None)
