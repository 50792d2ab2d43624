"""
Output writers for Avenue PD.
"""

import csv
import json
import os
import re
from datetime import datetime
from typing import Dict, List, Optional

from avenuepd.config import Config
from avenuepd.log import get_logger
from avenuepd.model import ArrestReport, Officer, OutputError, StatuteViolation
from avenuepd.reports import Report, format_timestamp, parse_timestamp

logger = get_logger(__name__)


def write_outputs(reports: List[ArrestReport], cfg: Config) -> None:
    """
    Write arrest reports to all configured output formats.

    Args:
        reports: Arrest reports to write
        cfg: Application configuration
    """
    logger.info(f"Writing {len(reports)} arrest reports to outputs")

    for warning in validate_reports(reports):
        logger.warning(f"Validation warning: {warning}")

    if cfg.output.json_path:
        write_json(reports, cfg.output.json_path, cfg.output.pretty_json)

    if cfg.output.csv_path:
        write_csv(reports, cfg.output.csv_path)

    if cfg.output.ndjson_path:
        write_ndjson(reports, cfg.output.ndjson_path)


def _prepare_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)


def write_json(reports: List[ArrestReport], path: str, pretty: bool = True) -> None:
    """
    Write arrest reports to a JSON file.

    Args:
        reports: Arrest reports to write
        path: Output file path
        pretty: Whether to pretty-print the JSON
    """
    logger.info(f"Writing JSON to {path}")

    try:
        _prepare_dir(path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(reports, f, indent=2 if pretty else None, ensure_ascii=False, default=str)

        logger.info(f"Wrote {len(reports)} arrest reports to {path}")
    except Exception as e:
        logger.error(f"Error writing JSON to {path}: {e}")
        raise OutputError(f"Error writing JSON to {path}: {e}")


def write_csv(reports: List[ArrestReport], path: str) -> None:
    """
    Write arrest reports to a CSV file, one row per cited statute.

    Args:
        reports: Arrest reports to write
        path: Output file path
    """
    logger.info(f"Writing CSV to {path}")

    fieldnames = ['report_number', 'created_at', 'accused_name', 'accused_id',
                  'officer_name', 'officer_id', 'attorney_name', 'attorney_id',
                  'article', 'description', 'fine', 'penalty', 'bail',
                  'fine_final', 'sentence_final', 'bail_total',
                  'attorney_applied', 'cooperation_applied']

    try:
        _prepare_dir(path)
        with open(path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()

            row_count = 0
            for report in reports:
                accused = report.get("accused") or {}
                officer = report.get("officer") or {}
                attorney = report.get("attorney") or {}
                totals = report.get("totals") or {}
                reductions = report.get("reductions") or {}

                for violation in report.get("violations", []):
                    writer.writerow({
                        'report_number': report.get("report_number", ""),
                        'created_at': format_timestamp(report.get("created_at")),
                        'accused_name': accused.get("name", ""),
                        'accused_id': accused.get("id_number", ""),
                        'officer_name': officer.get("name", ""),
                        'officer_id': officer.get("id_number", ""),
                        'attorney_name': attorney.get("name", ""),
                        'attorney_id': attorney.get("id_number", ""),
                        'article': violation.get("article", ""),
                        'description': violation.get("description", ""),
                        'fine': violation.get("fine", 0),
                        'penalty': violation.get("penalty", 0),
                        'bail': violation.get("bail", 0),
                        'fine_final': totals.get("fine_final", 0),
                        'sentence_final': totals.get("sentence_final", 0),
                        'bail_total': totals.get("bail_total", 0),
                        'attorney_applied': reductions.get("attorney_applied", False),
                        'cooperation_applied': reductions.get("cooperation_applied", False),
                    })
                    row_count += 1

        logger.info(f"Wrote {row_count} rows to {path}")
    except Exception as e:
        logger.error(f"Error writing CSV to {path}: {e}")
        raise OutputError(f"Error writing CSV to {path}: {e}")


def write_ndjson(reports: List[ArrestReport], path: str) -> None:
    """
    Write arrest reports to an NDJSON file, one report per line.

    Args:
        reports: Arrest reports to write
        path: Output file path
    """
    logger.info(f"Writing NDJSON to {path}")

    try:
        _prepare_dir(path)
        with open(path, 'w', encoding='utf-8') as f:
            for report in reports:
                f.write(json.dumps(report, ensure_ascii=False, default=str) + '\n')

        logger.info(f"Wrote {len(reports)} lines to {path}")
    except Exception as e:
        logger.error(f"Error writing NDJSON to {path}: {e}")
        raise OutputError(f"Error writing NDJSON to {path}: {e}")


def write_report_json(report: Report, path: str, pretty: bool = True) -> None:
    """
    Write a built report to a JSON file.

    Args:
        report: Report to write
        path: Output file path
        pretty: Whether to pretty-print the JSON
    """
    logger.info(f"Writing report to {path}")

    try:
        _prepare_dir(path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2 if pretty else None, ensure_ascii=False)
    except Exception as e:
        logger.error(f"Error writing report to {path}: {e}")
        raise OutputError(f"Error writing report to {path}: {e}")


def write_backup(officers: List[Officer], statutes: List[StatuteViolation], reports: List[ArrestReport],
                 path: str, pretty: bool = True, now: Optional[datetime] = None) -> None:
    """
    Write a full backup of the roster, the statute table and the arrest history.

    Args:
        officers: Officer roster
        statutes: Current statute table
        reports: Arrest reports
        path: Output file path
        pretty: Whether to pretty-print the JSON
        now: Backup timestamp
    """
    logger.info(f"Writing backup to {path}")

    backup = {
        "officers": officers,
        "statutes": statutes,
        "arrest_reports": reports,
        "timestamp": (now or datetime.now()).astimezone().isoformat(),
    }

    try:
        _prepare_dir(path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(backup, f, indent=2 if pretty else None, ensure_ascii=False, default=str)

        logger.info(f"Backed up {len(officers)} officers, {len(statutes)} statutes "
                    f"and {len(reports)} arrest reports to {path}")
    except Exception as e:
        logger.error(f"Error writing backup to {path}: {e}")
        raise OutputError(f"Error writing backup to {path}: {e}")


def validate_reports(reports: List[ArrestReport]) -> List[str]:
    """
    Check stored arrest reports for broken invariants.

    Args:
        reports: Arrest reports to validate

    Returns:
        List of warnings
    """
    warnings = []
    seen_numbers: Dict[int, int] = {}

    for i, report in enumerate(reports):
        number = report.get("report_number")
        label = f"Report #{number}" if number is not None else f"Report {i}"

        if number is None:
            warnings.append(f"{label}: Missing report number")
        elif number in seen_numbers:
            warnings.append(f"{label}: Duplicate report number (also at position {seen_numbers[number]})")
        else:
            seen_numbers[number] = i

        accused = report.get("accused") or {}
        if not accused.get("name"):
            warnings.append(f"{label}: Missing accused name")
        if not re.fullmatch(r"\d{1,12}", str(accused.get("id_number", ""))):
            warnings.append(f"{label}: Invalid accused id: {accused.get('id_number')}")

        if not report.get("violations"):
            warnings.append(f"{label}: No statutes cited")

        if parse_timestamp(report.get("created_at")) is None:
            warnings.append(f"{label}: Invalid timestamp: {report.get('created_at')}")

    return warnings
