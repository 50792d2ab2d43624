"""
Tests for the penalty calculator.
"""

from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from avenuepd.calculator import (
    ArrestForm,
    SubmissionResult,
    add_violation,
    compute_totals,
    remove_violation,
    round_half_up,
    submit,
    validate_id_number,
    validate_name,
    validate_submission,
)
from avenuepd.model import PersistenceError


def select(table, *ids):
    selection = []
    for violation_id in ids:
        selection = add_violation(selection, violation_id, table)
    return selection


def test_add_violation(sample_statutes):
    """Test adding statutes keeps insertion order."""
    selection = select(sample_statutes, "art-157", "art-28")

    assert [v["id"] for v in selection] == ["art-157", "art-28"]


def test_add_violation_is_idempotent(sample_statutes):
    """Test adding a statute twice keeps one copy."""
    selection = select(sample_statutes, "art-28", "art-28")

    assert [v["id"] for v in selection] == ["art-28"]


def test_add_violation_unknown_id(sample_statutes):
    """Test unknown ids are ignored."""
    selection = select(sample_statutes, "art-28")

    assert add_violation(selection, "art-999", sample_statutes) == selection


def test_add_violation_copies_by_value(sample_statutes):
    """Test later table edits do not change the selection."""
    selection = select(sample_statutes, "art-28")
    sample_statutes[0]["fine"] = 99999

    assert selection[0]["fine"] == 500


def test_remove_violation(sample_statutes):
    """Test removing statutes."""
    selection = select(sample_statutes, "art-28", "art-157")

    assert [v["id"] for v in remove_violation(selection, "art-28")] == ["art-157"]
    assert remove_violation(selection, "art-999") == selection


def test_scenario_no_reductions(sample_statutes):
    """Test totals without any reduction."""
    selection = select(sample_statutes, "art-28", "art-157")

    totals, reductions = compute_totals(selection)

    assert totals == {
        "fine_base": 1500,
        "sentence_base": 6,
        "bail_total": 1000,
        "fine_final": 1500,
        "sentence_final": 6,
    }
    assert reductions == {"attorney_applied": False, "cooperation_applied": False}


def test_scenario_attorney_and_cooperation(sample_statutes):
    """Test both reductions compound instead of adding up."""
    selection = select(sample_statutes, "art-28", "art-157")

    totals, reductions = compute_totals(selection, True, "Ana Souza", "321", True)

    assert totals["fine_final"] == 840
    assert totals["sentence_final"] == 3
    assert totals["fine_final"] != round(1500 * 0.5)
    assert reductions == {"attorney_applied": True, "cooperation_applied": True}


def test_attorney_only(sample_statutes):
    """Test the attorney reduction alone."""
    selection = select(sample_statutes, "art-28", "art-157")

    totals, _ = compute_totals(selection, True, "Ana Souza", "321", False)

    assert totals["fine_final"] == 1050
    assert totals["sentence_final"] == 4  # 4.2


def test_cooperation_only(sample_statutes):
    """Test the cooperation reduction alone."""
    selection = select(sample_statutes, "art-28", "art-157")

    totals, reductions = compute_totals(selection, cooperation=True)

    assert totals["fine_final"] == 1200
    assert totals["sentence_final"] == 5  # 4.8
    assert reductions["attorney_applied"] is False


@pytest.mark.parametrize("name,attorney_id", [("", "321"), ("Ana Souza", ""), ("  ", "321"), (None, None)])
def test_attorney_needs_name_and_id(sample_statutes, name, attorney_id):
    """Test the attorney reduction needs both fields."""
    selection = select(sample_statutes, "art-28")

    totals, reductions = compute_totals(selection, True, name, attorney_id)

    assert reductions["attorney_applied"] is False
    assert totals["fine_final"] == 500


def test_attorney_flag_off_ignores_fields(sample_statutes):
    """Test attorney fields without the flag do nothing."""
    selection = select(sample_statutes, "art-28")

    _, reductions = compute_totals(selection, False, "Ana Souza", "321")

    assert reductions["attorney_applied"] is False


def test_bail_only_counts_positive_entries(sample_statutes):
    """Test no-bail and not-applicable entries add nothing."""
    selection = select(sample_statutes, "art-157", "art-330")

    totals, _ = compute_totals(selection, True, "Ana Souza", "321", True)

    assert totals["bail_total"] == 0


def test_bail_is_never_discounted(sample_statutes):
    """Test bail is the same with and without reductions."""
    selection = select(sample_statutes, "art-28", "art-157", "art-330")

    plain, _ = compute_totals(selection)
    reduced, _ = compute_totals(selection, True, "Ana Souza", "321", True)

    assert plain["bail_total"] == reduced["bail_total"] == 1000


def test_reductions_never_increase_totals(sample_statutes):
    """Test every flag combination stays at or below the base."""
    selection = select(sample_statutes, "art-28", "art-157", "art-330")

    for attorney in (False, True):
        for cooperation in (False, True):
            totals, _ = compute_totals(selection, attorney, "Ana Souza", "321", cooperation)
            assert totals["fine_final"] <= totals["fine_base"]
            assert totals["sentence_final"] <= totals["sentence_base"]


def test_empty_selection():
    """Test an empty selection totals to zero."""
    totals, _ = compute_totals([], True, "Ana Souza", "321", True)

    assert totals == {"fine_base": 0, "sentence_base": 0, "bail_total": 0, "fine_final": 0, "sentence_final": 0}


def test_round_half_up():
    """Test halves round up."""
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("3.5")) == 4
    assert round_half_up(Decimal("3.36")) == 3
    assert round_half_up(Decimal("17.5")) == 18


def test_attorney_reduction_rounds_half_up():
    """Test a half after the attorney reduction rounds up."""
    statute = {"id": "x", "article": "X", "description": "X", "category": "X", "fine": 25, "penalty": 5, "bail": 0}

    totals, _ = compute_totals([statute], True, "Ana Souza", "321")

    assert totals["fine_final"] == 18  # 17.5
    assert totals["sentence_final"] == 4  # 3.5


@pytest.mark.parametrize("name,valid", [
    ("José da Silva", True),
    ("Ângela Müller", True),
    ("John Smith", True),
    ("José123", False),
    ("John_Smith", False),
    ("", False),
    ("   ", False),
    (None, False),
])
def test_validate_name(name, valid):
    """Test name validation."""
    assert validate_name(name) is valid


@pytest.mark.parametrize("id_number,valid", [
    ("1", True),
    ("123456789012", True),
    ("1234567890123", False),
    ("12345678901234", False),
    ("12a", False),
    ("", False),
    ("123\n", False),
    (None, False),
])
def test_validate_id_number(id_number, valid):
    """Test id validation."""
    assert validate_id_number(id_number) is valid


def test_validate_submission_ok(sample_statutes, officer):
    """Test a valid submission has no reasons."""
    reasons = validate_submission({"name": "John Smith", "id_number": "1001"}, officer,
                                  select(sample_statutes, "art-28"))
    assert reasons == []


def test_validate_submission_collects_reasons(officer):
    """Test every failed rule is reported."""
    reasons = validate_submission({"name": "José123", "id_number": "12345678901234"}, officer, [])

    assert len(reasons) == 3
    assert any("name" in r for r in reasons)
    assert any("id" in r for r in reasons)
    assert any("statute" in r for r in reasons)


def test_validate_submission_rejects_bad_attorney(sample_statutes, officer):
    """Test a bad attorney is rejected, not dropped."""
    reasons = validate_submission({"name": "John Smith", "id_number": "1001"}, officer,
                                  select(sample_statutes, "art-28"), True,
                                  {"name": "Ana 2", "id_number": "abc"})
    assert len(reasons) == 2


def test_validate_submission_partial_attorney_not_checked(sample_statutes, officer):
    """Test a half-filled attorney is not validated."""
    reasons = validate_submission({"name": "John Smith", "id_number": "1001"}, officer,
                                  select(sample_statutes, "art-28"), True,
                                  {"name": "Ana 2", "id_number": ""})
    assert reasons == []


def test_validate_submission_requires_officer(sample_statutes):
    """Test the officer identity is required."""
    reasons = validate_submission({"name": "John Smith", "id_number": "1001"}, {"name": "", "id_number": ""},
                                  select(sample_statutes, "art-28"))
    assert reasons == ["Officer name and id are required"]


def test_submit(memory_store, sample_statutes, officer):
    """Test submitting a report."""
    selection = select(sample_statutes, "art-28", "art-157")
    totals, reductions = compute_totals(selection, True, "Ana Souza", "321", True)

    result = submit(memory_store, {"name": " John Smith ", "id_number": "1001"}, officer, selection,
                    totals, reductions, attorney_present=True,
                    attorney={"name": "Ana Souza", "id_number": "321"}, notes="  ",
                    now=datetime(2025, 3, 10, 14, 30))

    assert result.ok
    report = result.report
    assert report["report_number"] == 1
    assert report["accused"]["name"] == "John Smith"
    assert report["attorney"] == {"name": "Ana Souza", "id_number": "321"}
    assert report["totals"]["fine_final"] == 840
    assert report["reductions"]["attorney_applied"] is True
    assert report["notes"] is None
    assert report["created_at"].startswith("2025-03-10T14:30:00")
    assert "#1" in result.get_message()


def test_submit_without_attorney_records_none(memory_store, sample_statutes, officer):
    """Test no attorney is recorded without both fields."""
    selection = select(sample_statutes, "art-28")
    totals, reductions = compute_totals(selection, True, "Ana Souza", "")

    result = submit(memory_store, {"name": "John Smith", "id_number": "1001"}, officer, selection,
                    totals, reductions, attorney_present=True, attorney={"name": "Ana Souza", "id_number": ""})

    assert result.ok
    assert result.report["attorney"] is None


def test_submit_snapshots_violations(memory_store, sample_statutes, officer):
    """Test stored violations are copies."""
    selection = select(sample_statutes, "art-28")
    totals, reductions = compute_totals(selection)

    result = submit(memory_store, {"name": "John Smith", "id_number": "1001"}, officer, selection,
                    totals, reductions)
    selection[0]["fine"] = 1

    assert memory_store.list_arrest_reports()[0]["violations"][0]["fine"] == 500
    assert result.report["violations"][0]["fine"] == 500


def test_submit_validation_failure_skips_store(sample_statutes, officer):
    """Test the store is not called when validation fails."""
    store = MagicMock()
    selection = select(sample_statutes, "art-28")
    totals, reductions = compute_totals(selection)

    result = submit(store, {"name": "José123", "id_number": "1001"}, officer, selection, totals, reductions)

    assert not result.ok
    assert result.persistence_failed is False
    assert "rejected" in result.get_message()
    store.create_arrest_report.assert_not_called()


def test_submit_persistence_failure(sample_statutes, officer):
    """Test a store failure comes back as a result, without retry."""
    store = MagicMock()
    store.create_arrest_report.side_effect = PersistenceError("connection refused")
    selection = select(sample_statutes, "art-28")
    totals, reductions = compute_totals(selection)

    result = submit(store, {"name": "John Smith", "id_number": "1001"}, officer, selection, totals, reductions)

    assert not result.ok
    assert result.persistence_failed is True
    assert result.errors == ["connection refused"]
    store.create_arrest_report.assert_called_once()


def test_submission_result_to_dict():
    """Test converting a result to a dictionary."""
    result = SubmissionResult(errors=["Select at least one statute"])

    data = result.to_dict()

    assert data["ok"] is False
    assert data["report"] is None
    assert data["errors"] == ["Select at least one statute"]
    assert data["message"] == "Arrest report rejected: Select at least one statute"


def test_form_totals_follow_state(sample_statutes, officer):
    """Test form totals recompute on every change."""
    form = ArrestForm(sample_statutes, officer)
    form.add_violation("art-28")
    form.add_violation("art-157")

    assert form.totals()[0]["fine_final"] == 1500

    form.cooperation = True
    assert form.totals()[0]["fine_final"] == 1200

    form.remove_violation("art-157")
    assert form.totals()[0]["fine_final"] == 400


def test_form_reset_keeps_officer(sample_statutes, officer):
    """Test reset clears the form but keeps the session officer."""
    form = ArrestForm(sample_statutes, officer)
    form.add_violation("art-28")
    form.accused_name = "John Smith"
    form.attorney_present = True
    form.cooperation = True

    form.reset(officer)

    assert form.selection == []
    assert form.accused_name == ""
    assert form.attorney_present is False
    assert form.cooperation is False
    assert form.officer_name == "Maria Silva"
    assert form.officer_id == "2"


def test_form_submit(memory_store, sample_statutes, officer):
    """Test a successful form submission resets the form."""
    form = ArrestForm(sample_statutes, officer)
    form.add_violation("art-28")
    form.accused_name = "John Smith"
    form.accused_id = "1001"

    result = form.submit(memory_store)

    assert result.ok
    assert form.selection == []
    assert form.officer_id == "2"


def test_form_submit_failure_keeps_state(memory_store, sample_statutes, officer):
    """Test a rejected form keeps its state."""
    form = ArrestForm(sample_statutes, officer)
    form.add_violation("art-28")
    form.accused_name = "José123"
    form.accused_id = "1001"

    result = form.submit(memory_store)

    assert not result.ok
    assert form.accused_name == "José123"
    assert [v["id"] for v in form.selection] == ["art-28"]
    assert memory_store.list_arrest_reports() == []
