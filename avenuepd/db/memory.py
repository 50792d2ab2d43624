"""
In-process storage for Avenue PD.
"""

import copy
import threading
import uuid
from typing import Dict, List, Optional

from avenuepd.db.base import Store
from avenuepd.log import get_logger
from avenuepd.model import (
    ArrestDraft,
    ArrestReport,
    ChangeEvent,
    ChangeKind,
    Officer,
    StatuteViolation,
    ValidationError,
)

logger = get_logger(__name__)


class MemoryStore(Store):
    """
    Thread-safe store that keeps everything in memory.

    Records are copied on the way in and on the way out so callers can
    never mutate stored history.
    """

    def __init__(self, reports: Optional[List[ArrestReport]] = None,
                 officers: Optional[List[Officer]] = None):
        super().__init__()
        self._lock = threading.Lock()
        self._reports: List[ArrestReport] = copy.deepcopy(reports or [])
        self._officers: Dict[str, Officer] = {}
        self._statutes: Dict[str, StatuteViolation] = {}
        self._last_number = max((r.get("report_number", 0) for r in self._reports), default=0)

        for officer in officers or []:
            self._officers[officer["id"]] = copy.deepcopy(officer)

    def create_arrest_report(self, draft: ArrestDraft) -> ArrestReport:
        with self._lock:
            self._last_number += 1
            report: ArrestReport = copy.deepcopy(draft)
            report["id"] = uuid.uuid4().hex
            report["report_number"] = self._last_number
            self._reports.append(report)
            created = copy.deepcopy(report)

        logger.info(f"Created arrest report #{created['report_number']}")
        self.notify(ChangeEvent(ChangeKind.ARREST_REPORTS, {"operation": "insert", "id": created["id"]}))
        return created

    def list_arrest_reports(self) -> List[ArrestReport]:
        with self._lock:
            return copy.deepcopy(self._reports)

    def count_arrest_reports_by_officer(self, officer_id: str) -> int:
        with self._lock:
            return sum(1 for r in self._reports if r["officer"]["id_number"] == officer_id)

    def list_officers(self) -> List[Officer]:
        with self._lock:
            return copy.deepcopy(list(self._officers.values()))

    def save_officer(self, officer: Officer) -> Officer:
        saved = copy.deepcopy(officer)
        if not saved.get("id"):
            saved["id"] = uuid.uuid4().hex

        with self._lock:
            for other in self._officers.values():
                if other["id"] != saved["id"] and other.get("id_number") == saved.get("id_number"):
                    raise ValidationError([f"Id number already registered: {saved.get('id_number')}"])
            self._officers[saved["id"]] = saved

        self.notify(ChangeEvent(ChangeKind.OFFICERS, {"operation": "upsert", "id": saved["id"]}))
        return copy.deepcopy(saved)

    def delete_officer(self, officer_id: str) -> None:
        with self._lock:
            removed = self._officers.pop(officer_id, None)

        if removed is not None:
            self.notify(ChangeEvent(ChangeKind.OFFICERS, {"operation": "delete", "id": officer_id}))

    def list_statutes(self) -> List[StatuteViolation]:
        with self._lock:
            return copy.deepcopy(list(self._statutes.values()))

    def save_statute(self, statute: StatuteViolation) -> StatuteViolation:
        with self._lock:
            self._statutes[statute["id"]] = copy.deepcopy(statute)

        self.notify(ChangeEvent(ChangeKind.STATUTES, {"operation": "upsert", "id": statute["id"]}))
        return copy.deepcopy(statute)

    def delete_statute(self, statute_id: str) -> None:
        with self._lock:
            removed = self._statutes.pop(statute_id, None)

        if removed is not None:
            self.notify(ChangeEvent(ChangeKind.STATUTES, {"operation": "delete", "id": statute_id}))
