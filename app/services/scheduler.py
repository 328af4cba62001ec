# app/services/scheduler.py
from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.services.reconciliation_service import CycleReport, ReconciliationService

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """
    Periodic driver for the reconciliation cycle.

    Owned by the application (created in the lifespan hook), never a module
    global. Runs one cycle immediately on start, then every interval on a
    daemon thread. A failing cycle is logged and the loop carries on.
    Cycles from the same handle never overlap, including on-demand ones.
    """

    def __init__(
        self,
        service: ReconciliationService,
        session_factory: Callable[[], Session],
        interval_seconds: float,
    ):
        self.service = service
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds

        self.last_report: Optional[CycleReport] = None
        self.last_error: Optional[str] = None

        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="reconciliation-scheduler", daemon=True
        )
        self._thread.start()
        logger.info(
            "reconciliation scheduler started",
            extra={"interval_seconds": self.interval_seconds},
        )

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        logger.info("reconciliation scheduler stopped")

    def run_once(
        self,
        db: Optional[Session] = None,
        *,
        now: Optional[datetime] = None,
        force_project_id: Optional[uuid.UUID] = None,
    ) -> CycleReport:
        """
        Runs one cycle now. Uses the given session, or opens and closes one
        from the session factory.
        """
        with self._cycle_lock:
            owned = db is None
            if owned:
                db = self.session_factory()
            try:
                report = self.service.run_cycle(db, now=now, force_project_id=force_project_id)
            finally:
                if owned:
                    db.close()
            self.last_report = report
            self.last_error = None
            return report

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "intervalSeconds": self.interval_seconds,
            "lastError": self.last_error,
            "lastReport": self.last_report.as_dict() if self.last_report else None,
        }

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                self.last_error = str(e)
                logger.exception("reconciliation cycle failed")
            self._stop_event.wait(self.interval_seconds)
