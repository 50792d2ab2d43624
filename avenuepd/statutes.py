"""
Penal code reference table for Avenue PD.

The bundled table ships with the package. Administrators can add, edit and
retire entries; those edits live in the store so every officer sees the same
table. Arrest reports keep their own copies of the statutes they cite, so
editing the table never changes history.
"""

import copy
import uuid
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from avenuepd.config import Config
from avenuepd.db.base import Store
from avenuepd.log import get_logger
from avenuepd.model import ConfigError, PersistenceError, StatuteViolation, ValidationError

logger = get_logger(__name__)

BUILTIN_TABLE = Path(__file__).parent / "data" / "statutes.yaml"

CUSTOM_CATEGORY = "Custom"


def validate_statute(statute: Dict) -> List[str]:
    """
    Validate a statute entry.

    Args:
        statute: Statute to validate

    Returns:
        List of validation errors
    """
    errors = []
    label = statute.get("id") or statute.get("article") or "?"

    if not statute.get("id"):
        errors.append(f"Statute {label}: Missing id")
    if not str(statute.get("article", "")).strip():
        errors.append(f"Statute {label}: Missing article")
    if not str(statute.get("description", "")).strip():
        errors.append(f"Statute {label}: Missing description")

    for field, minimum in (("fine", 0), ("penalty", 0), ("bail", -1)):
        value = statute.get(field)
        if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
            errors.append(f"Statute {label}: {field} must be an integer >= {minimum}, got {value!r}")

    return errors


def load_statutes(path: Optional[str] = None) -> List[StatuteViolation]:
    """
    Load a statute table from YAML.

    Args:
        path: Table file, defaults to the bundled table

    Returns:
        Ordered list of statutes
    """
    table_path = Path(path) if path else BUILTIN_TABLE
    logger.debug(f"Loading statutes from {table_path}")

    try:
        with open(table_path, "r", encoding="utf-8") as f:
            entries = yaml.safe_load(f) or []
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading statutes from {table_path}: {e}") from e

    statutes: List[StatuteViolation] = []
    seen = set()
    errors = []
    for entry in entries:
        entry.setdefault("category", CUSTOM_CATEGORY)
        errors.extend(validate_statute(entry))
        if entry.get("id") in seen:
            errors.append(f"Statute {entry['id']}: Duplicate id")
        seen.add(entry.get("id"))
        statutes.append(entry)

    if errors:
        raise ConfigError(f"Invalid statute table {table_path}: " + "; ".join(errors))

    logger.info(f"Loaded {len(statutes)} statutes from {table_path}")
    return statutes


class StatuteTable:
    """Bundled statutes merged with the administrator edits kept in the store."""

    def __init__(self, builtin: List[StatuteViolation], store: Optional[Store] = None):
        self.builtin = copy.deepcopy(builtin)
        self.store = store

    @classmethod
    def from_config(cls, cfg: Config, store: Optional[Store] = None) -> "StatuteTable":
        return cls(load_statutes(cfg.statutes.path), store)

    def list_violations(self) -> List[StatuteViolation]:
        """
        List the current table.

        Stored entries replace bundled ones with the same id in place; new
        entries follow the bundled ones; retired entries are left out.

        Returns:
            Ordered list of statutes
        """
        stored = {s["id"]: s for s in self.store.list_statutes()} if self.store else {}

        table = []
        for statute in self.builtin:
            entry = stored.pop(statute["id"], statute)
            if not entry.get("retired"):
                table.append(copy.deepcopy(entry))

        for entry in stored.values():
            if not entry.get("retired"):
                table.append(copy.deepcopy(entry))

        return table

    def get(self, statute_id: str) -> Optional[StatuteViolation]:
        for statute in self.list_violations():
            if statute["id"] == statute_id:
                return statute
        return None

    def categories(self) -> Dict[str, List[StatuteViolation]]:
        """Group the table by category for display."""
        grouped: Dict[str, List[StatuteViolation]] = {}
        for statute in self.list_violations():
            grouped.setdefault(statute.get("category", CUSTOM_CATEGORY), []).append(statute)
        return grouped

    def add_statute(self, article: str, description: str, fine: int = 0, penalty: int = 0,
                    bail: int = 0, category: str = CUSTOM_CATEGORY) -> StatuteViolation:
        """
        Add a custom statute.

        Returns:
            The stored statute
        """
        statute: StatuteViolation = {
            "id": f"art-custom-{uuid.uuid4().hex[:12]}",
            "article": article.strip(),
            "description": description.strip(),
            "category": category,
            "fine": fine,
            "penalty": penalty,
            "bail": bail,
        }
        return self._save(statute)

    def update_statute(self, statute: StatuteViolation) -> StatuteViolation:
        """
        Replace an existing statute.

        Returns:
            The stored statute
        """
        if self.get(statute["id"]) is None:
            raise ValidationError([f"Unknown statute: {statute['id']}"])
        return self._save(copy.deepcopy(statute))

    def remove_statute(self, statute_id: str) -> None:
        """
        Remove a statute from the table.

        Bundled statutes cannot be deleted from the package, so they are
        retired with a marker entry instead.
        """
        self._require_store()
        current = self.get(statute_id)
        if current is None:
            raise ValidationError([f"Unknown statute: {statute_id}"])

        if any(s["id"] == statute_id for s in self.builtin):
            current["retired"] = True
            self.store.save_statute(current)
        else:
            self.store.delete_statute(statute_id)

        logger.info(f"Removed statute {statute_id}")

    def _save(self, statute: StatuteViolation) -> StatuteViolation:
        self._require_store()
        errors = validate_statute(statute)
        if errors:
            raise ValidationError(errors)

        saved = self.store.save_statute(statute)
        logger.info(f"Saved statute {statute['id']} ({statute['article']})")
        return saved

    def _require_store(self) -> None:
        if self.store is None:
            raise PersistenceError("Statute edits need a store")
