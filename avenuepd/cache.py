"""
Snapshot cache for report views.

A ReportCache belongs to whoever drives fetching and rendering. It is passed
around explicitly; nothing is cached at module level.
"""

import copy
from typing import Dict, List, Optional

from avenuepd.db.base import Store
from avenuepd.log import get_logger
from avenuepd.model import ArrestReport, ChangeEvent, ChangeKind, Officer

logger = get_logger(__name__)


class ReportCache:
    """Lazily fetched snapshots of the arrest history and officer roster."""

    def __init__(self):
        self._entries: Dict[ChangeKind, List] = {}

    def reports(self, store: Store) -> List[ArrestReport]:
        if ChangeKind.ARREST_REPORTS not in self._entries:
            self._entries[ChangeKind.ARREST_REPORTS] = store.list_arrest_reports()
            logger.debug(f"Fetched {len(self._entries[ChangeKind.ARREST_REPORTS])} arrest reports")
        return copy.deepcopy(self._entries[ChangeKind.ARREST_REPORTS])

    def officers(self, store: Store) -> List[Officer]:
        if ChangeKind.OFFICERS not in self._entries:
            self._entries[ChangeKind.OFFICERS] = store.list_officers()
            logger.debug(f"Fetched {len(self._entries[ChangeKind.OFFICERS])} officers")
        return copy.deepcopy(self._entries[ChangeKind.OFFICERS])

    def is_cached(self, kind: ChangeKind) -> bool:
        return kind in self._entries

    def invalidate(self, kind: Optional[ChangeKind] = None) -> None:
        """
        Drop cached snapshots.

        Args:
            kind: Entry to drop, or None for everything
        """
        if kind is None:
            self._entries.clear()
        else:
            self._entries.pop(kind, None)

    def refresh(self, store: Store) -> None:
        """Drop everything and fetch again."""
        self.invalidate()
        self.reports(store)
        self.officers(store)

    def handle_change(self, event: ChangeEvent) -> None:
        """Store subscriber: drop the snapshot the event makes stale."""
        logger.debug(f"Invalidating cache on {event!r}")
        self.invalidate(event.kind)
