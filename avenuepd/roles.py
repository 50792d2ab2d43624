"""
Roles and the operations each role may perform.
"""

from enum import Enum
from typing import Dict, FrozenSet, Union

from avenuepd.model import PermissionDenied


class Role(Enum):
    """
    Roster roles.
    """

    OFFICER = "policial"
    COMMAND = "comando"
    ATTORNEY = "advogado"
    DEV = "dev"


class Operation(Enum):
    """
    Gated operations.
    """

    VIEW_DASHBOARD = "view_dashboard"
    EDIT_PROFILE = "edit_profile"
    USE_CALCULATOR = "use_calculator"
    VIEW_REPORTS = "view_reports"
    ADMINISTER = "administer"  # Roster and statute table


_EVERYONE = frozenset({Operation.VIEW_DASHBOARD, Operation.EDIT_PROFILE})

PERMISSIONS: Dict[Role, FrozenSet[Operation]] = {
    Role.OFFICER: _EVERYONE | {Operation.USE_CALCULATOR},
    Role.COMMAND: _EVERYONE | {Operation.USE_CALCULATOR, Operation.VIEW_REPORTS},
    Role.ATTORNEY: _EVERYONE | {Operation.VIEW_REPORTS},
    Role.DEV: frozenset(Operation),
}


def parse_role(value: Union[str, Role]) -> Role:
    """
    Parse a role by value ("policial") or name ("OFFICER").

    Raises:
        ValueError: Unknown role
    """
    if isinstance(value, Role):
        return value
    try:
        return Role(value.lower())
    except ValueError:
        try:
            return Role[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown role: {value}") from None


def permitted_operations(role: Union[str, Role]) -> FrozenSet[Operation]:
    return PERMISSIONS[parse_role(role)]


def can(role: Union[str, Role], operation: Operation) -> bool:
    return operation in permitted_operations(role)


def require(role: Union[str, Role], operation: Operation) -> None:
    """Raise PermissionDenied unless the role may perform the operation."""
    if not can(role, operation):
        raise PermissionDenied(f"Role {parse_role(role).value} may not {operation.value}")
