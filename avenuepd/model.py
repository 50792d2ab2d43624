"""
Data models for Avenue PD.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict


class StatuteViolation(TypedDict):
    """
    Represents one line of the penal code table.
    """

    id: str  # Stable identifier, e.g. "art-121"
    article: str  # Statute label shown on reports
    description: str  # Free-text offense description
    category: str  # Display grouping only
    fine: int  # Currency units, >= 0
    penalty: int  # Sentence in months, >= 0
    bail: int  # > 0 amount, 0 not applicable, -1 no bail allowed


class Person(TypedDict, total=False):
    """
    Identity of an accused, officer or attorney.
    """

    name: str
    id_number: str  # 1-12 digits
    photo: Optional[str]  # Opaque photo reference


class Totals(TypedDict):
    """
    Computed penalties embedded in an arrest report.
    """

    fine_base: int
    sentence_base: int
    bail_total: int  # Sum of positive bail entries only
    fine_final: int
    sentence_final: int


class Reductions(TypedDict):
    """
    Discounts applied to an arrest report.
    """

    attorney_applied: bool
    cooperation_applied: bool


class ArrestDraft(TypedDict, total=False):
    """
    An arrest report before the store assigns its id and number.
    """

    accused: Person
    officer: Person
    attorney: Optional[Person]
    violations: List[StatuteViolation]  # Snapshots copied by value
    totals: Totals
    reductions: Reductions
    notes: Optional[str]
    photo: Optional[str]
    created_at: str  # ISO 8601 (legacy rows may hold DD/MM/YYYY HH:MM:SS)


class ArrestReport(ArrestDraft, total=False):
    """
    A persisted arrest report.
    """

    id: str
    report_number: int  # Global, strictly increasing, assigned by the store


class Officer(TypedDict, total=False):
    """
    Represents a roster entry.
    """

    id: str
    name: str
    id_number: str
    role: str  # See avenuepd.roles.Role
    active: bool
    rank: Optional[str]


class PeriodFilter(Enum):
    """
    Period filters for reports.
    """

    ALL = "all"
    CURRENT_MONTH = "current_month"
    PREVIOUS_MONTH = "previous_month"


class ChangeKind(Enum):
    """
    Kinds of change emitted by a store.
    """

    OFFICERS = "officers"
    ARREST_REPORTS = "arrest_reports"
    STATUTES = "statutes"


class ChangeEvent:
    """A change in the backing record set."""

    def __init__(self, kind: ChangeKind, payload: Optional[Dict[str, Any]] = None):
        self.kind = kind
        self.payload = payload

    def __repr__(self) -> str:
        return f"ChangeEvent({self.kind.value!r})"


class AvenuePDError(Exception):
    """Base class for all avenuepd exceptions."""

    pass


class ValidationError(AvenuePDError):
    """Exception raised when input fails validation."""

    def __init__(self, reasons: List[str]):
        super().__init__("; ".join(reasons))
        self.reasons = reasons


class PersistenceError(AvenuePDError):
    """Exception raised for storage errors."""

    pass


class ConfigError(AvenuePDError):
    """Exception raised for configuration errors."""

    pass


class OutputError(AvenuePDError):
    """Exception raised for output errors."""

    pass


class PermissionDenied(AvenuePDError):
    """Exception raised when a role may not perform an operation."""

    pass
