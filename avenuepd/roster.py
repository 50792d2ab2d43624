"""
Officer roster administration for Avenue PD.

Officers are addressed by their id number (passport). The store rejects a
second officer with an id number that is already registered.
"""

from typing import List, Optional

from avenuepd.calculator import validate_id_number, validate_name
from avenuepd.db.base import Store
from avenuepd.log import get_logger
from avenuepd.model import Officer, ValidationError
from avenuepd.roles import Role, parse_role

logger = get_logger(__name__)


def validate_officer(officer: Officer) -> List[str]:
    """
    Validate a roster entry.

    Args:
        officer: Officer to validate

    Returns:
        List of validation errors
    """
    errors = []

    if not validate_name(officer.get("name")):
        errors.append("Officer name must contain only letters and spaces")
    if not validate_id_number(officer.get("id_number")):
        errors.append("Officer id must be 1 to 12 digits")

    try:
        parse_role(officer.get("role") or "")
    except ValueError:
        errors.append(f"Unknown role: {officer.get('role')}")

    return errors


def list_roster(store: Store, active_only: bool = False) -> List[Officer]:
    officers = store.list_officers()
    if active_only:
        officers = [o for o in officers if o.get("active")]
    return officers


def find_officer(store: Store, id_number: str) -> Optional[Officer]:
    for officer in store.list_officers():
        if officer.get("id_number") == id_number:
            return officer
    return None


def _require_officer(store: Store, id_number: str) -> Officer:
    officer = find_officer(store, id_number)
    if officer is None:
        raise ValidationError([f"Unknown officer: {id_number}"])
    return officer


def add_officer(store: Store, name: str, id_number: str, role: str = Role.OFFICER.value,
                rank: Optional[str] = None) -> Officer:
    """
    Register a new, active officer.

    Args:
        store: Store
        name: Officer name
        id_number: Passport number, unique across the roster
        role: Role value or name
        rank: Optional rank

    Returns:
        The stored officer
    """
    officer: Officer = {
        "name": (name or "").strip(),
        "id_number": (id_number or "").strip(),
        "role": role,
        "active": True,
        "rank": rank,
    }

    errors = validate_officer(officer)
    if find_officer(store, officer["id_number"]) is not None:
        errors.append(f"Id number already registered: {officer['id_number']}")
    if errors:
        raise ValidationError(errors)

    officer["role"] = parse_role(role).value
    saved = store.save_officer(officer)
    logger.info(f"Registered officer {saved['id_number']} ({saved['name']})")
    return saved


def set_active(store: Store, id_number: str, active: bool) -> Officer:
    """Activate or deactivate an officer."""
    officer = _require_officer(store, id_number)
    officer["active"] = active
    saved = store.save_officer(officer)
    logger.info(f"Officer {id_number} {'activated' if active else 'deactivated'}")
    return saved


def remove_officer(store: Store, id_number: str) -> Officer:
    """
    Remove an officer from the roster.

    Arrest reports filed by the officer keep their copy of the officer's
    identity.

    Returns:
        The removed officer
    """
    officer = _require_officer(store, id_number)
    store.delete_officer(officer["id"])
    logger.info(f"Removed officer {id_number}")
    return officer
