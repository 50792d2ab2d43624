"""
Storage interface for Avenue PD.

Every backend assigns report numbers itself and tells subscribers when the
record set changes. Callers never number reports.
"""

import threading
from typing import Callable, List

from avenuepd.log import get_logger
from avenuepd.model import ArrestDraft, ArrestReport, ChangeEvent, Officer, StatuteViolation

logger = get_logger(__name__)

Subscriber = Callable[[ChangeEvent], None]


class Store:
    """
    Base class for arrest report storage.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a change callback.

        Args:
            callback: Called with a ChangeEvent whenever the record set changes

        Returns:
            A function that removes the subscription
        """
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, event: ChangeEvent) -> None:
        """
        Deliver an event to every subscriber.

        Args:
            event: Change event
        """
        with self._subscribers_lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Change subscriber failed on {event!r}: {e}")

    def create_arrest_report(self, draft: ArrestDraft) -> ArrestReport:
        raise NotImplementedError

    def list_arrest_reports(self) -> List[ArrestReport]:
        raise NotImplementedError

    def count_arrest_reports_by_officer(self, officer_id: str) -> int:
        raise NotImplementedError

    def list_officers(self) -> List[Officer]:
        raise NotImplementedError

    def save_officer(self, officer: Officer) -> Officer:
        """
        Insert or replace a roster entry.

        Raises:
            ValidationError: Another officer already has the same id_number
        """
        raise NotImplementedError

    def delete_officer(self, officer_id: str) -> None:
        raise NotImplementedError

    def list_statutes(self) -> List[StatuteViolation]:
        raise NotImplementedError

    def save_statute(self, statute: StatuteViolation) -> StatuteViolation:
        raise NotImplementedError

    def delete_statute(self, statute_id: str) -> None:
        raise NotImplementedError
