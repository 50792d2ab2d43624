"""
Penalty calculator for Avenue PD.

Turns a selection of statutes and the two discount flags into the totals
stored on an arrest report, and submits finished reports to a store.
"""

import copy
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple

from avenuepd.db.base import Store
from avenuepd.log import get_logger
from avenuepd.model import (
    ArrestDraft,
    ArrestReport,
    Person,
    PersistenceError,
    Reductions,
    StatuteViolation,
    Totals,
)

logger = get_logger(__name__)

ATTORNEY_FACTOR = Decimal("0.70")  # 30% off fine and sentence
COOPERATION_FACTOR = Decimal("0.80")  # 20% off, compounds with the attorney discount

NAME_REGEX = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")
ID_NUMBER_REGEX = re.compile(r"^[0-9]{1,12}$")


def add_violation(selection: List[StatuteViolation], violation_id: str,
                  table: List[StatuteViolation]) -> List[StatuteViolation]:
    """
    Add a statute to a selection.

    Unknown ids and ids already selected leave the selection unchanged.

    Args:
        selection: Current selection
        violation_id: Statute id to add
        table: Reference table to look the id up in

    Returns:
        Updated selection
    """
    if any(v["id"] == violation_id for v in selection):
        return selection

    for statute in table:
        if statute["id"] == violation_id:
            return selection + [copy.deepcopy(statute)]

    logger.debug(f"Ignoring unknown statute id {violation_id}")
    return selection


def remove_violation(selection: List[StatuteViolation], violation_id: str) -> List[StatuteViolation]:
    """Remove a statute from a selection by id."""
    return [v for v in selection if v["id"] != violation_id]


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def attorney_applies(attorney_present: bool, attorney_name: Optional[str],
                     attorney_id: Optional[str]) -> bool:
    return bool(attorney_present and (attorney_name or "").strip() and (attorney_id or "").strip())


def compute_totals(selection: List[StatuteViolation], attorney_present: bool = False,
                   attorney_name: Optional[str] = None, attorney_id: Optional[str] = None,
                   cooperation: bool = False) -> Tuple[Totals, Reductions]:
    """
    Compute the penalties for a selection.

    The attorney discount is applied first and the cooperation discount on
    top of it, so both together leave 0.7 * 0.8 = 56% of the base. Bail is
    never discounted and only positive bail amounts count towards it.

    Args:
        selection: Selected statutes
        attorney_present: Whether an attorney is present
        attorney_name: Attorney name
        attorney_id: Attorney id number
        cooperation: Whether the accused cooperated

    Returns:
        Tuple of (totals, reductions)
    """
    fine_base = sum(v["fine"] for v in selection)
    sentence_base = sum(v["penalty"] for v in selection)
    bail_total = sum(v["bail"] for v in selection if v["bail"] > 0)

    fine = Decimal(fine_base)
    sentence = Decimal(sentence_base)

    reductions: Reductions = {
        "attorney_applied": attorney_applies(attorney_present, attorney_name, attorney_id),
        "cooperation_applied": bool(cooperation),
    }

    if reductions["attorney_applied"]:
        fine *= ATTORNEY_FACTOR
        sentence *= ATTORNEY_FACTOR

    if reductions["cooperation_applied"]:
        fine *= COOPERATION_FACTOR
        sentence *= COOPERATION_FACTOR

    totals: Totals = {
        "fine_base": fine_base,
        "sentence_base": sentence_base,
        "bail_total": bail_total,
        "fine_final": round_half_up(fine),
        "sentence_final": round_half_up(sentence),
    }
    return totals, reductions


def validate_name(name: Optional[str]) -> bool:
    """Letters (accented Latin included) and spaces only."""
    return bool(name and name.strip() and NAME_REGEX.fullmatch(name))


def validate_id_number(id_number: Optional[str]) -> bool:
    """One to twelve digits."""
    return bool(id_number and ID_NUMBER_REGEX.fullmatch(id_number))


def validate_submission(accused: Person, officer: Person, selection: List[StatuteViolation],
                        attorney_present: bool = False,
                        attorney: Optional[Person] = None) -> List[str]:
    """
    Check everything a report needs before it goes to the store.

    Args:
        accused: Accused identity
        officer: Officer identity
        selection: Selected statutes
        attorney_present: Whether the attorney flag is set
        attorney: Attorney identity

    Returns:
        List of reasons, empty when the submission is valid
    """
    reasons = []

    if not validate_name(accused.get("name")):
        reasons.append("Accused name must contain only letters and spaces")
    if not validate_id_number(accused.get("id_number")):
        reasons.append("Accused id must be 1 to 12 digits")

    if not (officer.get("name") or "").strip() or not (officer.get("id_number") or "").strip():
        reasons.append("Officer name and id are required")

    attorney = attorney or {}
    if attorney_applies(attorney_present, attorney.get("name"), attorney.get("id_number")):
        if not validate_name(attorney["name"]):
            reasons.append("Attorney name must contain only letters and spaces")
        if not validate_id_number(attorney["id_number"]):
            reasons.append("Attorney id must be 1 to 12 digits")

    if not selection:
        reasons.append("Select at least one statute")

    return reasons


class SubmissionResult:
    """Outcome of submitting an arrest report."""

    def __init__(self, report: Optional[ArrestReport] = None, errors: Optional[List[str]] = None,
                 persistence_failed: bool = False):
        self.report = report
        self.errors = errors or []
        self.persistence_failed = persistence_failed

    @property
    def ok(self) -> bool:
        return self.report is not None

    def get_message(self) -> str:
        if self.ok:
            return f"Arrest report #{self.report['report_number']} recorded."
        if self.persistence_failed:
            return "Could not save the arrest report: " + "; ".join(self.errors)
        return "Arrest report rejected: " + "; ".join(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "report": self.report,
            "errors": self.errors,
            "persistence_failed": self.persistence_failed,
            "message": self.get_message(),
        }


def submit(store: Store, accused: Person, officer: Person, selection: List[StatuteViolation],
           totals: Totals, reductions: Reductions, attorney_present: bool = False,
           attorney: Optional[Person] = None, notes: Optional[str] = None,
           photo: Optional[str] = None, now: Optional[datetime] = None) -> SubmissionResult:
    """
    Validate and record an arrest report.

    The store assigns the report number. The store is not called when
    validation fails, and a failed write is not retried.

    Returns:
        Submission result
    """
    reasons = validate_submission(accused, officer, selection, attorney_present, attorney)
    if reasons:
        logger.info(f"Rejected arrest report for {accused.get('name')!r}: {'; '.join(reasons)}")
        return SubmissionResult(errors=reasons)

    attorney = attorney or {}
    recorded_attorney = None
    if attorney_applies(attorney_present, attorney.get("name"), attorney.get("id_number")):
        recorded_attorney = {"name": attorney["name"].strip(), "id_number": attorney["id_number"]}

    created_at = (now or datetime.now()).astimezone().isoformat()
    draft: ArrestDraft = {
        "accused": {
            "name": accused["name"].strip(),
            "id_number": accused["id_number"],
            "photo": accused.get("photo"),
        },
        "officer": {"name": officer["name"].strip(), "id_number": officer["id_number"].strip()},
        "attorney": recorded_attorney,
        "violations": copy.deepcopy(selection),
        "totals": dict(totals),
        "reductions": dict(reductions),
        "notes": (notes or "").strip() or None,
        "photo": photo,
        "created_at": created_at,
    }

    try:
        report = store.create_arrest_report(draft)
    except PersistenceError as e:
        logger.error(f"Failed to save arrest report: {e}")
        return SubmissionResult(errors=[str(e)], persistence_failed=True)

    logger.info(f"Recorded arrest report #{report['report_number']} by officer {officer['id_number']}")
    return SubmissionResult(report=report)


class ArrestForm:
    """
    In-progress arrest report.

    Totals are recomputed from the current state on every call.
    """

    def __init__(self, table: List[StatuteViolation], officer: Optional[Person] = None):
        self.table = table
        self.reset(officer)

    def reset(self, officer: Optional[Person] = None) -> None:
        """Clear the form, keeping the session officer's identity."""
        self.selection: List[StatuteViolation] = []
        self.accused_name = ""
        self.accused_id = ""
        self.accused_photo: Optional[str] = None
        self.attorney_present = False
        self.attorney_name = ""
        self.attorney_id = ""
        self.cooperation = False
        self.notes = ""
        self.photo: Optional[str] = None
        officer = officer or {}
        self.officer_name = officer.get("name", "")
        self.officer_id = officer.get("id_number", "")

    def add_violation(self, violation_id: str) -> None:
        self.selection = add_violation(self.selection, violation_id, self.table)

    def remove_violation(self, violation_id: str) -> None:
        self.selection = remove_violation(self.selection, violation_id)

    def totals(self) -> Tuple[Totals, Reductions]:
        return compute_totals(self.selection, self.attorney_present, self.attorney_name,
                              self.attorney_id, self.cooperation)

    def submit(self, store: Store, now: Optional[datetime] = None) -> SubmissionResult:
        """
        Submit the form.

        The form is reset after a successful submission and left as is
        otherwise so the user can correct it.
        """
        totals, reductions = self.totals()
        result = submit(
            store,
            accused={"name": self.accused_name, "id_number": self.accused_id, "photo": self.accused_photo},
            officer={"name": self.officer_name, "id_number": self.officer_id},
            selection=self.selection,
            totals=totals,
            reductions=reductions,
            attorney_present=self.attorney_present,
            attorney={"name": self.attorney_name, "id_number": self.attorney_id},
            notes=self.notes,
            photo=self.photo,
            now=now,
        )
        if result.ok:
            self.reset({"name": self.officer_name, "id_number": self.officer_id})
        return result
