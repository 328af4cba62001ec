# app/services/reconciliation_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import PreconditionNotMet, ValidationError
from app.services.contract_workflow_service import ContractWorkflowService
from app.services.document_service import DocumentGenerator, LocalDocumentGenerator
from app.services.notice_service import DbNoticeEmitter, NoticeEmitter, emit_all
from app.services.project_lifecycle_service import ProjectLifecycleService
from app.services.transition import Transition

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


CYCLE_COUNTERS = (
    "draftedToPending",
    "draftedToActive",
    "round1Completed",
    "round1Failed",
    "round2Started",
    "winnersSelected",
    "round2Failed",
    "contractsCreated",
    "selectionsExpired",
    "contractsToSeller",
    "contractsToAdmin",
    "correctionsResolved",
    "contractsCancelled",
    "projectsCompleted",
    "certificatesGenerated",
    "projectsArchived",
    "bidsUpdated",
    "noticesEmitted",
    "noticeFailures",
    "validationErrors",
)


@dataclass
class CycleFailure:
    phase: str
    entity_id: str
    error: str


@dataclass
class CycleReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    counters: Dict[str, int] = field(default_factory=lambda: {k: 0 for k in CYCLE_COUNTERS})
    failures: List[CycleFailure] = field(default_factory=list)

    def add(self, counters: Dict[str, int]) -> None:
        for key, n in counters.items():
            self.counters[key] = self.counters.get(key, 0) + n

    def fail(self, phase: str, entity_id: str, error: Exception) -> None:
        self.counters["validationErrors"] += 1
        self.failures.append(CycleFailure(phase=phase, entity_id=entity_id, error=str(error)))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "counters": dict(self.counters),
            "failures": [
                {"phase": f.phase, "entityId": f.entity_id, "error": f.error}
                for f in self.failures
            ],
        }


# (phase name, candidate lister, transition)
Phase = Tuple[str, Callable[[], Iterable[Any]], Callable[[Any], Transition]]


class ReconciliationService:
    """
    One reconciliation cycle: every phase in order, every candidate in its
    own unit of work.

    A transition is committed before its notices go out. Guards that do not
    hold are skipped quietly; any other per-entity error is rolled back,
    logged and counted, and the entity is retried next cycle. Errors while
    listing candidates propagate to the caller.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        lifecycle: ProjectLifecycleService,
        contracts: ContractWorkflowService,
        emitter: NoticeEmitter,
    ):
        self.settings = settings
        self.lifecycle = lifecycle
        self.contracts = contracts
        self.emitter = emitter

    def phases(self, db: Session, now: datetime) -> List[Phase]:
        lc = self.lifecycle
        cw = self.contracts
        return [
            ("auto_submit", lambda: lc.list_stale_drafts(db, now),
             lambda p: lc.auto_submit(db, project=p, now=now)),
            ("activate", lambda: lc.list_approved_pending(db),
             lambda p: lc.activate(db, project=p, now=now)),
            ("close_round1", lambda: lc.list_round1_due(db, now),
             lambda p: lc.close_round1(db, project=p, now=now)),
            ("resolve_selection", lambda: lc.list_in_selection(db),
             lambda p: lc.resolve_selection(db, project=p, now=now)),
            ("close_round2", lambda: lc.list_round2_due(db, now),
             lambda p: lc.close_round2(db, project=p, now=now)),
            ("expire_selection", lambda: lc.list_selection_expired(db, now),
             lambda p: lc.expire_selection(db, project=p, now=now)),
            ("contract_intake", lambda: cw.list_for_intake(db),
             lambda c: cw.advance_intake(db, contract=c, now=now)),
            ("correction_deadline", lambda: cw.list_correcting(db),
             lambda c: cw.expire_correction(db, contract=c, now=now)),
            ("complete", lambda: lc.list_completable(db, now),
             lambda p: lc.complete(db, project=p, now=now)),
            ("archive", lambda: lc.list_archivable(db, now),
             lambda p: lc.archive(db, project=p, now=now)),
        ]

    def run_cycle(
        self,
        db: Session,
        now: Optional[datetime] = None,
        force_project_id: Optional[uuid.UUID] = None,
    ) -> CycleReport:
        now = now or _now()
        report = CycleReport(started_at=_now())

        if force_project_id is not None:
            self.lifecycle.force_deadlines(db, project_id=force_project_id, now=now)
            db.commit()

        for name, candidates, step in self.phases(db, now):
            for entity in candidates():
                self._process(db, report, name, entity, step)

        report.finished_at = _now()
        logger.info(
            "reconciliation cycle finished",
            extra={"counters": report.counters, "failures": len(report.failures)},
        )
        return report

    def _process(
        self,
        db: Session,
        report: CycleReport,
        phase: str,
        entity: Any,
        step: Callable[[Any], Transition],
    ) -> None:
        entity_id = str(entity.id)
        try:
            t = step(entity)
            db.commit()
        except PreconditionNotMet:
            db.rollback()
            return
        except ValidationError as e:
            db.rollback()
            logger.debug(
                "draft left untouched",
                extra={"phase": phase, "entity_id": entity_id, "missing": e.missing_fields},
            )
            return
        except Exception as e:
            db.rollback()
            logger.exception(
                "reconciliation step failed",
                extra={"phase": phase, "entity_id": entity_id},
            )
            report.fail(phase, entity_id, e)
            return

        report.add(t.counters)
        emitted, failed = emit_all(self.emitter, db, t.notices)
        report.add({"noticesEmitted": emitted, "noticeFailures": failed})


def build_reconciliation_service(
    settings: Settings,
    *,
    documents: Optional[DocumentGenerator] = None,
    emitter: Optional[NoticeEmitter] = None,
) -> ReconciliationService:
    documents = documents or LocalDocumentGenerator(
        settings.document_storage_dir, settings.document_public_base_url
    )
    emitter = emitter or DbNoticeEmitter(settings.notice_lifetime)
    contracts = ContractWorkflowService(settings, documents)
    lifecycle = ProjectLifecycleService(settings, contracts, documents)
    return ReconciliationService(
        settings, lifecycle=lifecycle, contracts=contracts, emitter=emitter
    )
