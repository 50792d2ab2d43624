"""
Tests for the in-memory store and the change subscription interface.
"""

import threading
from unittest.mock import MagicMock

import pytest

from avenuepd.db.base import Store
from avenuepd.db.memory import MemoryStore
from avenuepd.model import ChangeKind, ValidationError


@pytest.fixture
def draft(make_report):
    """Return an unnumbered arrest report."""
    report = make_report()
    del report["id"]
    del report["report_number"]
    return report


def test_create_assigns_numbers(memory_store, draft):
    """Test the store numbers reports sequentially."""
    first = memory_store.create_arrest_report(draft)
    second = memory_store.create_arrest_report(draft)

    assert first["report_number"] == 1
    assert second["report_number"] == 2
    assert first["id"] != second["id"]
    assert "report_number" not in draft


def test_numbers_continue_after_existing_history(make_report, draft):
    """Test numbering continues from the highest existing number."""
    store = MemoryStore(reports=[make_report(3), make_report(41)])

    assert store.create_arrest_report(draft)["report_number"] == 42


def test_concurrent_submissions_get_distinct_numbers(memory_store, draft):
    """Test concurrent creates never share a number."""
    numbers = []
    lock = threading.Lock()

    def worker():
        for _ in range(25):
            report = memory_store.create_arrest_report(draft)
            with lock:
                numbers.append(report["report_number"])

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(numbers) == list(range(1, 201))


def test_history_cannot_be_mutated(memory_store, draft):
    """Test returned records are copies."""
    created = memory_store.create_arrest_report(draft)
    created["totals"]["fine_final"] = 0
    memory_store.list_arrest_reports()[0]["accused"]["name"] = "Changed"

    stored = memory_store.list_arrest_reports()[0]
    assert stored["totals"]["fine_final"] == 1500
    assert stored["accused"]["name"] == "John Smith"


def test_count_by_officer(memory_store, make_report):
    """Test counting reports per officer."""
    for number, officer_id in enumerate(["2", "7", "2"], 1):
        report = make_report(number, officer=("Officer", officer_id))
        memory_store.create_arrest_report(report)

    assert memory_store.count_arrest_reports_by_officer("2") == 2
    assert memory_store.count_arrest_reports_by_officer("7") == 1
    assert memory_store.count_arrest_reports_by_officer("9") == 0


def test_save_officer(memory_store):
    """Test the officer roster."""
    saved = memory_store.save_officer({"name": "Maria Silva", "id_number": "2", "role": "policial", "active": True})
    saved["active"] = False
    memory_store.save_officer(saved)

    officers = memory_store.list_officers()
    assert len(officers) == 1
    assert officers[0]["active"] is False


def test_subscribers_are_notified(memory_store, draft):
    """Test every change is delivered to subscribers."""
    events = []
    memory_store.subscribe(events.append)

    report = memory_store.create_arrest_report(draft)
    memory_store.save_officer({"name": "Maria Silva", "id_number": "2"})
    memory_store.save_statute({"id": "x", "article": "X", "description": "X", "fine": 0, "penalty": 0, "bail": 0})
    memory_store.delete_statute("x")
    memory_store.delete_statute("x")

    assert [e.kind for e in events] == [
        ChangeKind.ARREST_REPORTS,
        ChangeKind.OFFICERS,
        ChangeKind.STATUTES,
        ChangeKind.STATUTES,
    ]
    assert events[0].payload == {"operation": "insert", "id": report["id"]}
    assert events[3].payload["operation"] == "delete"


def test_unsubscribe(memory_store, draft):
    """Test unsubscribed callbacks are not called."""
    callback = MagicMock()
    unsubscribe = memory_store.subscribe(callback)

    unsubscribe()
    unsubscribe()
    memory_store.create_arrest_report(draft)

    callback.assert_not_called()


def test_failing_subscriber_does_not_break_others(memory_store, draft):
    """Test one failing subscriber does not stop delivery."""
    failing = MagicMock(side_effect=RuntimeError("boom"))
    working = MagicMock()
    memory_store.subscribe(failing)
    memory_store.subscribe(working)

    report = memory_store.create_arrest_report(draft)

    assert report["report_number"] == 1
    working.assert_called_once()


def test_base_store_is_abstract(draft):
    """Test the base store has no storage of its own."""
    store = Store()

    with pytest.raises(NotImplementedError):
        store.create_arrest_report(draft)
    with pytest.raises(NotImplementedError):
        store.list_arrest_reports()


def test_save_officer_rejects_duplicate_id_number(memory_store):
    """Test two officers cannot share an id number."""
    first = memory_store.save_officer({"name": "Maria Silva", "id_number": "2"})

    with pytest.raises(ValidationError):
        memory_store.save_officer({"name": "Carlos Lima", "id_number": "2"})

    first["name"] = "Maria Souza Silva"
    memory_store.save_officer(first)

    assert [o["name"] for o in memory_store.list_officers()] == ["Maria Souza Silva"]


def test_delete_officer(memory_store):
    """Test removing an officer notifies once."""
    saved = memory_store.save_officer({"name": "Maria Silva", "id_number": "2"})
    events = []
    memory_store.subscribe(events.append)

    memory_store.delete_officer(saved["id"])
    memory_store.delete_officer(saved["id"])

    assert memory_store.list_officers() == []
    assert [(e.kind, e.payload["operation"]) for e in events] == [(ChangeKind.OFFICERS, "delete")]
