"""
Avenue PD - Arrest Ledger.

Penalty calculation, arrest report recording and reporting for the Avenue City
roleplay police department.
"""

__version__ = "0.1.0"

from avenuepd.model import ArrestReport, StatuteViolation, Totals, Reductions, PeriodFilter
from avenuepd.config import Config, MongoDBConfig, load_config
from avenuepd.calculator import ArrestForm, SubmissionResult, compute_totals, submit
from avenuepd.reports import (
    build_report,
    filter_reports,
    compute_stats,
    top_statutes,
    officer_ranking,
    attorney_ranking,
    distinct_officers,
)
from avenuepd.statutes import StatuteTable, load_statutes
from avenuepd.roster import add_officer, list_roster, remove_officer, set_active
from avenuepd.db import MemoryStore, MongoStore, Store

__all__ = [
    "ArrestReport",
    "StatuteViolation",
    "Totals",
    "Reductions",
    "PeriodFilter",
    "Config",
    "MongoDBConfig",
    "load_config",
    "ArrestForm",
    "SubmissionResult",
    "compute_totals",
    "submit",
    "build_report",
    "filter_reports",
    "compute_stats",
    "top_statutes",
    "officer_ranking",
    "attorney_ranking",
    "distinct_officers",
    "StatuteTable",
    "load_statutes",
    "add_officer",
    "list_roster",
    "remove_officer",
    "set_active",
    "MemoryStore",
    "MongoStore",
    "Store",
]
