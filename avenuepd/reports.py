"""
Report aggregation for Avenue PD.

Every function here is a pure function of the records passed in: nothing is
fetched, cached or mutated. Dirty historical data never raises: records with
an unreadable timestamp stay visible in filtered views and format as
INVALID_DATE.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, TypedDict

from avenuepd.config import ReportsConfig
from avenuepd.log import get_logger
from avenuepd.model import ArrestReport, Officer, PeriodFilter

logger = get_logger(__name__)

ALL_OFFICERS = "all"
INVALID_DATE = "invalid date"

# pt-BR toLocaleString writes a comma after the date
_LEGACY_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y, %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y, %H:%M",
    "%d/%m/%Y",
)


class Stats(TypedDict):
    count: int
    total_fine_collected: int
    total_sentence_months: int
    average_fine: int
    attorney_case_count: int
    cooperation_case_count: int


class StatuteCount(TypedDict):
    article: str
    description: str
    count: int
    total_fine: int


class OfficerRank(TypedDict):
    officer_id: str
    officer_name: str
    arrest_count: int
    total_fine_collected: int


class AttorneyRank(TypedDict):
    attorney_id: str
    attorney_name: str
    case_count: int
    reduction_applied_count: int


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a report timestamp into a naive local datetime.

    Accepts ISO 8601 (with or without offset) and DD/MM/YYYY[,][ HH:MM[:SS]].

    Args:
        value: Timestamp string

    Returns:
        Local datetime, or None when the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str) or not value.strip():
        return None
    elif "/" in value:
        text = value.strip()
        for fmt in _LEGACY_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            return None
    else:
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_timestamp(value: Any) -> str:
    """
    Format a report timestamp as DD/MM/YYYY HH:MM.

    Returns:
        Formatted timestamp, or INVALID_DATE
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        logger.warning(f"Invalid report timestamp: {value!r}")
        return INVALID_DATE
    return parsed.strftime("%d/%m/%Y %H:%M")


def _previous_month(now: datetime):
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1


def in_period(record: ArrestReport, period: PeriodFilter, now: Optional[datetime] = None) -> bool:
    """
    Check whether a record falls in a period.

    Records whose timestamp cannot be parsed are always in the period.
    """
    if period == PeriodFilter.ALL:
        return True

    created = parse_timestamp(record.get("created_at"))
    if created is None:
        logger.debug(f"Keeping report {record.get('report_number')} with unreadable timestamp")
        return True

    now = now or datetime.now()
    if period == PeriodFilter.CURRENT_MONTH:
        return (created.year, created.month) == (now.year, now.month)
    return (created.year, created.month) == _previous_month(now)


def matches_search(record: ArrestReport, search_term: str) -> bool:
    """Case-insensitive substring match on accused and officer name or id."""
    if not search_term:
        return True

    term = search_term.lower()
    accused = record.get("accused") or {}
    officer = record.get("officer") or {}
    fields = (
        accused.get("name"),
        accused.get("id_number"),
        officer.get("name"),
        officer.get("id_number"),
    )
    return any(term in str(field).lower() for field in fields if field)


def filter_reports(records: List[ArrestReport], period: PeriodFilter = PeriodFilter.ALL,
                   officer_id: str = ALL_OFFICERS, search_term: str = "",
                   now: Optional[datetime] = None) -> List[ArrestReport]:
    """
    Filter records by period, officer and search term.

    Args:
        records: Arrest reports
        period: Period filter, evaluated in local time
        officer_id: Officer id number, or ALL_OFFICERS
        search_term: Free-text search
        now: Reference time for the period filter

    Returns:
        Records passing all three filters, in input order
    """
    now = now or datetime.now()
    return [
        record for record in records
        if in_period(record, period, now)
        and (officer_id == ALL_OFFICERS or (record.get("officer") or {}).get("id_number") == officer_id)
        and matches_search(record, search_term)
    ]


def _totals(record: ArrestReport) -> Dict:
    return record.get("totals") or {}


def _reductions(record: ArrestReport) -> Dict:
    return record.get("reductions") or {}


def compute_stats(filtered: List[ArrestReport]) -> Stats:
    """
    Compute headline statistics.

    Args:
        filtered: Arrest reports

    Returns:
        Statistics
    """
    count = len(filtered)
    total_fine = sum(_totals(r).get("fine_final", 0) for r in filtered)
    total_sentence = sum(_totals(r).get("sentence_final", 0) for r in filtered)

    average = 0
    if count:
        average = int((Decimal(total_fine) / Decimal(count)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    return {
        "count": count,
        "total_fine_collected": total_fine,
        "total_sentence_months": total_sentence,
        "average_fine": average,
        "attorney_case_count": sum(1 for r in filtered if _reductions(r).get("attorney_applied")),
        "cooperation_case_count": sum(1 for r in filtered if _reductions(r).get("cooperation_applied")),
    }


def top_statutes(filtered: List[ArrestReport], limit: int = 10) -> List[StatuteCount]:
    """
    Rank the most frequently cited statutes.

    Ties keep the order in which statutes were first seen.
    """
    counts: Dict[str, StatuteCount] = {}
    for record in filtered:
        for violation in record.get("violations") or []:
            key = violation.get("article", "")
            if key not in counts:
                counts[key] = {
                    "article": key,
                    "description": violation.get("description", ""),
                    "count": 0,
                    "total_fine": 0,
                }
            counts[key]["count"] += 1
            counts[key]["total_fine"] += violation.get("fine", 0)

    return sorted(counts.values(), key=lambda e: e["count"], reverse=True)[:limit]


def officer_ranking(all_records: List[ArrestReport], limit: int = 10) -> List[OfficerRank]:
    """
    Rank officers by number of arrests.

    The ranking covers every record it is given; callers pass the full
    history, not a filtered view.
    """
    ranks: Dict[str, OfficerRank] = {}
    for record in all_records:
        officer = record.get("officer") or {}
        key = officer.get("id_number", "")
        if key not in ranks:
            ranks[key] = {
                "officer_id": key,
                "officer_name": officer.get("name", ""),
                "arrest_count": 0,
                "total_fine_collected": 0,
            }
        ranks[key]["arrest_count"] += 1
        ranks[key]["total_fine_collected"] += _totals(record).get("fine_final", 0)

    return sorted(ranks.values(), key=lambda e: e["arrest_count"], reverse=True)[:limit]


def attorney_ranking(all_records: List[ArrestReport], limit: int = 10) -> List[AttorneyRank]:
    """Rank attorneys by number of cases, over records that have one."""
    ranks: Dict[str, AttorneyRank] = {}
    for record in all_records:
        attorney = record.get("attorney")
        if not attorney:
            continue

        key = attorney.get("id_number", "")
        if key not in ranks:
            ranks[key] = {
                "attorney_id": key,
                "attorney_name": attorney.get("name", ""),
                "case_count": 0,
                "reduction_applied_count": 0,
            }
        ranks[key]["case_count"] += 1
        if _reductions(record).get("attorney_applied"):
            ranks[key]["reduction_applied_count"] += 1

    return sorted(ranks.values(), key=lambda e: e["case_count"], reverse=True)[:limit]


def distinct_officers(all_records: List[ArrestReport]) -> List[Dict[str, str]]:
    """Unique officers in first-seen order, for the officer filter."""
    seen: Dict[str, Dict[str, str]] = {}
    for record in all_records:
        officer = record.get("officer") or {}
        key = officer.get("id_number", "")
        if key not in seen:
            seen[key] = {"id_number": key, "name": officer.get("name", "")}
    return list(seen.values())


def arrests_today(records: List[ArrestReport], now: Optional[datetime] = None) -> int:
    """Count records created on today's local date."""
    today = (now or datetime.now()).date()
    count = 0
    for record in records:
        created = parse_timestamp(record.get("created_at"))
        if created is not None and created.date() == today:
            count += 1
    return count


def recent_reports(filtered: List[ArrestReport], limit: int = 20) -> List[ArrestReport]:
    """Newest records first; records with unreadable timestamps go last."""
    dated = []
    undated = []
    for record in filtered:
        created = parse_timestamp(record.get("created_at"))
        if created is None:
            undated.append(record)
        else:
            dated.append((created, record))

    dated.sort(key=lambda item: item[0], reverse=True)
    return ([record for _, record in dated] + undated)[:limit]


class Report:
    """Everything the reports screen shows for one set of filters."""

    def __init__(self, stats: Stats, top_statutes: List[StatuteCount],
                 officer_ranking: List[OfficerRank], attorney_ranking: List[AttorneyRank],
                 officers: List[Dict[str, str]], recent: List[ArrestReport],
                 arrests_today: int, roster_size: int, active_officers: int,
                 generated_at: datetime):
        self.stats = stats
        self.top_statutes = top_statutes
        self.officer_ranking = officer_ranking
        self.attorney_ranking = attorney_ranking
        self.officers = officers
        self.recent = recent
        self.arrests_today = arrests_today
        self.roster_size = roster_size
        self.active_officers = active_officers
        self.generated_at = generated_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "stats": self.stats,
            "arrests_today": self.arrests_today,
            "roster_size": self.roster_size,
            "active_officers": self.active_officers,
            "top_statutes": self.top_statutes,
            "officer_ranking": self.officer_ranking,
            "attorney_ranking": self.attorney_ranking,
            "officers": self.officers,
            "recent": [
                {
                    "report_number": r.get("report_number"),
                    "accused": (r.get("accused") or {}).get("name"),
                    "officer": (r.get("officer") or {}).get("name"),
                    "fine_final": _totals(r).get("fine_final", 0),
                    "sentence_final": _totals(r).get("sentence_final", 0),
                    "created_at": format_timestamp(r.get("created_at")),
                }
                for r in self.recent
            ],
        }


def build_report(records: List[ArrestReport], roster: Optional[List[Officer]] = None,
                 period: PeriodFilter = PeriodFilter.ALL, officer_id: str = ALL_OFFICERS,
                 search_term: str = "", cfg: Optional[ReportsConfig] = None,
                 now: Optional[datetime] = None) -> Report:
    """
    Build a full report.

    Statistics, the statute leaderboard and the recent list follow the
    filters; rankings and the officer list always cover the whole history.

    Args:
        records: Full arrest history
        roster: Registered officers
        period: Period filter
        officer_id: Officer filter
        search_term: Free-text search
        cfg: Report limits
        now: Reference time

    Returns:
        Report
    """
    cfg = cfg or ReportsConfig()
    now = now or datetime.now()
    roster = roster or []
    filtered = filter_reports(records, period, officer_id, search_term, now)

    logger.debug(f"Report over {len(filtered)} of {len(records)} arrest reports")
    return Report(
        stats=compute_stats(filtered),
        top_statutes=top_statutes(filtered, cfg.top_statutes_limit),
        officer_ranking=officer_ranking(records, cfg.ranking_limit),
        attorney_ranking=attorney_ranking(records, cfg.ranking_limit),
        officers=distinct_officers(records),
        recent=recent_reports(filtered, cfg.recent_limit),
        arrests_today=arrests_today(records, now),
        roster_size=len(roster),
        active_officers=sum(1 for o in roster if o.get("active")),
        generated_at=now,
    )
