"""
Pytest configuration and fixtures.
"""

import tempfile
from typing import List

import pytest

from avenuepd.config import Config
from avenuepd.db.memory import MemoryStore
from avenuepd.model import ArrestReport, StatuteViolation


@pytest.fixture
def sample_config():
    """Return a sample configuration."""
    return Config()


@pytest.fixture
def sample_statutes() -> List[StatuteViolation]:
    """Return a small statute table."""
    return [
        {
            "id": "art-28",
            "article": "Art. 28",
            "description": "Drug possession for personal use",
            "category": "Narcotics",
            "fine": 500,
            "penalty": 2,
            "bail": 1000,
        },
        {
            "id": "art-157",
            "article": "Art. 157",
            "description": "Armed robbery",
            "category": "Crimes against property",
            "fine": 1000,
            "penalty": 4,
            "bail": -1,
        },
        {
            "id": "art-330",
            "article": "Art. 330",
            "description": "Disobedience",
            "category": "Crimes against public administration",
            "fine": 1000,
            "penalty": 5,
            "bail": 0,
        },
    ]


@pytest.fixture
def make_report():
    """Return a factory for arrest reports."""

    def factory(number=1, accused=("John Smith", "1001"), officer=("Maria Silva", "2"),
                attorney=None, created_at="2025-03-10T14:30:00", fine_final=1500,
                sentence_final=6, articles=(("Art. 28", 500), ("Art. 157", 1000)),
                attorney_applied=None, cooperation_applied=False) -> ArrestReport:
        if attorney_applied is None:
            attorney_applied = attorney is not None
        return {
            "id": f"report-{number}",
            "report_number": number,
            "accused": {"name": accused[0], "id_number": accused[1]},
            "officer": {"name": officer[0], "id_number": officer[1]},
            "attorney": {"name": attorney[0], "id_number": attorney[1]} if attorney else None,
            "violations": [
                {
                    "id": article.lower().replace(". ", "-"),
                    "article": article,
                    "description": f"Offense {article}",
                    "category": "Test",
                    "fine": fine,
                    "penalty": 1,
                    "bail": 0,
                }
                for article, fine in articles
            ],
            "totals": {
                "fine_base": sum(fine for _, fine in articles),
                "sentence_base": sentence_final,
                "bail_total": 0,
                "fine_final": fine_final,
                "sentence_final": sentence_final,
            },
            "reductions": {
                "attorney_applied": attorney_applied,
                "cooperation_applied": cooperation_applied,
            },
            "notes": None,
            "photo": None,
            "created_at": created_at,
        }

    return factory


@pytest.fixture
def memory_store():
    """Return an empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def officer():
    """Return the session officer."""
    return {"name": "Maria Silva", "id_number": "2"}


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield tmp_dir
