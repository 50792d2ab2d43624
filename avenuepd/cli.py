"""
Command-line interface for Avenue PD.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from avenuepd.calculator import compute_totals, submit
from avenuepd.config import Config, load_config
from avenuepd.db.base import Store
from avenuepd.db.mongo import MongoStore, setup_mongodb
from avenuepd.log import configure_logging
from avenuepd.model import AvenuePDError, ConfigError, PeriodFilter
from avenuepd.reports import ALL_OFFICERS, build_report, format_timestamp
from avenuepd.roles import Operation, Role, require
from avenuepd.roster import add_officer, list_roster, remove_officer, set_active
from avenuepd.statutes import StatuteTable
from avenuepd.writers import write_backup, write_outputs, write_report_json

logger = logging.getLogger(__name__)


def open_store(config: Config) -> Store:
    """
    Open the configured store.

    Args:
        config: Configuration

    Returns:
        Store
    """
    if config.mongodb is None or not config.mongodb.enabled:
        raise ConfigError("No store configured: enable the mongodb section of the configuration")
    return MongoStore(config.mongodb)


def _optional_store(config: Config) -> Optional[Store]:
    if config.mongodb is None or not config.mongodb.enabled:
        return None
    return open_store(config)


def _select(table: StatuteTable, statute_ids):
    violations = table.list_violations()
    by_id = {v["id"]: v for v in violations}
    unknown = [s for s in statute_ids if s not in by_id]
    if unknown:
        raise ConfigError(f"Unknown statute ids: {', '.join(unknown)}")

    selection = []
    for statute_id in statute_ids:
        if all(v["id"] != statute_id for v in selection):
            selection.append(by_id[statute_id])
    return selection


def _print_totals(totals, reductions) -> None:
    bail = f"${totals['bail_total']:,}" if totals["bail_total"] > 0 else "No bail"
    print(f"Fine:     ${totals['fine_base']:,} -> ${totals['fine_final']:,}")
    print(f"Sentence: {totals['sentence_base']} -> {totals['sentence_final']} months")
    print(f"Bail:     {bail}")
    print(f"Attorney reduction (-30%):    {'yes' if reductions['attorney_applied'] else 'no'}")
    print(f"Cooperation reduction (-20%): {'yes' if reductions['cooperation_applied'] else 'no'}")


def process_command(args: argparse.Namespace) -> int:
    """
    Process command-line arguments.

    Args:
        args: Command-line arguments

    Returns:
        Exit code
    """
    config = load_config(args.config)
    configure_logging(config, args.log_level)

    if args.command == "statutes":
        table = StatuteTable.from_config(config, _optional_store(config))
        if args.json:
            print(json.dumps(table.list_violations(), indent=2, ensure_ascii=False))
        else:
            for category, statutes in table.categories().items():
                print(f"\n{category}")
                for s in statutes:
                    bail = "no bail" if s["bail"] < 0 else (f"bail ${s['bail']:,}" if s["bail"] else "-")
                    print(f"  {s['id']:<16} {s['article']:<12} {s['description']} "
                          f"(${s['fine']:,}, {s['penalty']} months, {bail})")
        return 0

    elif args.command == "add-statute":
        require(args.role, Operation.ADMINISTER)
        table = StatuteTable.from_config(config, open_store(config))
        statute = table.add_statute(args.article, args.description, args.fine, args.penalty,
                                    args.bail, args.category)
        print(f"Added statute {statute['id']}")
        return 0

    elif args.command == "remove-statute":
        require(args.role, Operation.ADMINISTER)
        table = StatuteTable.from_config(config, open_store(config))
        table.remove_statute(args.statute_id)
        print(f"Removed statute {args.statute_id}")
        return 0

    elif args.command == "officers":
        require(args.role, Operation.ADMINISTER)
        officers = list_roster(open_store(config), args.active_only)
        if args.json:
            print(json.dumps(officers, indent=2, ensure_ascii=False))
        else:
            for o in officers:
                status = "active" if o.get("active") else "inactive"
                rank = f" {o['rank']}" if o.get("rank") else ""
                print(f"  {o.get('id_number', ''):<12} {o.get('name', '')}{rank} ({o.get('role', '')}, {status})")
        return 0

    elif args.command == "add-officer":
        require(args.role, Operation.ADMINISTER)
        officer = add_officer(open_store(config), args.name, args.id_number, args.officer_role, args.rank)
        print(f"Registered officer {officer['id_number']} ({officer['name']})")
        return 0

    elif args.command in ("activate", "deactivate"):
        require(args.role, Operation.ADMINISTER)
        officer = set_active(open_store(config), args.id_number, args.command == "activate")
        print(f"Officer {officer['id_number']} is now {'active' if officer['active'] else 'inactive'}")
        return 0

    elif args.command == "remove-officer":
        require(args.role, Operation.ADMINISTER)
        officer = remove_officer(open_store(config), args.id_number)
        print(f"Removed officer {officer['id_number']} ({officer['name']})")
        return 0

    elif args.command == "backup":
        require(args.role, Operation.ADMINISTER)
        store = open_store(config)
        table = StatuteTable.from_config(config, store)
        write_backup(store.list_officers(), table.list_violations(), store.list_arrest_reports(),
                     args.path, config.output.pretty_json)
        print(f"Backup written to {args.path}")
        return 0

    elif args.command == "calculate":
        table = StatuteTable.from_config(config, _optional_store(config))
        selection = _select(table, args.statutes)
        attorney = args.attorney or [None, None]
        totals, reductions = compute_totals(selection, bool(args.attorney), attorney[0], attorney[1],
                                            args.cooperation)
        if args.json:
            print(json.dumps({"totals": totals, "reductions": reductions}, indent=2))
        else:
            _print_totals(totals, reductions)
        return 0

    elif args.command == "submit":
        require(args.role, Operation.USE_CALCULATOR)
        store = open_store(config)
        table = StatuteTable.from_config(config, store)
        selection = _select(table, args.statutes)
        attorney = args.attorney or [None, None]
        totals, reductions = compute_totals(selection, bool(args.attorney), attorney[0], attorney[1],
                                            args.cooperation)

        result = submit(
            store,
            accused={"name": args.accused_name, "id_number": args.accused_id},
            officer={"name": args.officer_name, "id_number": args.officer_id},
            selection=selection,
            totals=totals,
            reductions=reductions,
            attorney_present=bool(args.attorney),
            attorney={"name": attorney[0], "id_number": attorney[1]},
            notes=args.notes,
            photo=args.photo,
        )

        if not result.ok:
            logger.error(result.get_message())
            return 1

        print(result.get_message())
        _print_totals(totals, reductions)
        count = store.count_arrest_reports_by_officer(args.officer_id)
        print(f"Arrests recorded by {args.officer_name}: {count}")
        return 0

    elif args.command == "report":
        require(args.role, Operation.VIEW_REPORTS)
        store = open_store(config)
        report = build_report(
            store.list_arrest_reports(),
            store.list_officers(),
            period=PeriodFilter(args.period),
            officer_id=args.officer,
            search_term=args.search,
            cfg=config.reports,
        )

        if args.output:
            write_report_json(report, args.output, config.output.pretty_json)
        if args.json:
            print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
            return 0

        stats = report.stats
        print(f"Arrests:            {stats['count']} ({report.arrests_today} today)")
        print(f"Fines collected:    ${stats['total_fine_collected']:,}")
        print(f"Sentence months:    {stats['total_sentence_months']}")
        print(f"Average fine:       ${stats['average_fine']:,}")
        print(f"With attorney:      {stats['attorney_case_count']}")
        print(f"With cooperation:   {stats['cooperation_case_count']}")

        print("\nMost cited statutes:")
        for i, entry in enumerate(report.top_statutes, 1):
            print(f"  {i}. {entry['article']} - {entry['description']} ({entry['count']}x, ${entry['total_fine']:,})")

        print("\nOfficer ranking:")
        for i, entry in enumerate(report.officer_ranking, 1):
            print(f"  {i}. {entry['officer_name']} ({entry['arrest_count']} arrests, "
                  f"${entry['total_fine_collected']:,})")

        print("\nAttorney ranking:")
        for i, entry in enumerate(report.attorney_ranking, 1):
            print(f"  {i}. {entry['attorney_name']} ({entry['case_count']} cases, "
                  f"{entry['reduction_applied_count']} reductions)")

        print("\nRecent arrests:")
        for r in report.recent:
            accused = (r.get("accused") or {}).get("name") or "?"
            officer = (r.get("officer") or {}).get("name") or "?"
            print(f"  #{r.get('report_number')} {format_timestamp(r.get('created_at'))} {accused} by {officer}")
        return 0

    elif args.command == "export":
        require(args.role, Operation.VIEW_REPORTS)
        store = open_store(config)
        reports = store.list_arrest_reports()
        write_outputs(reports, config)
        logger.info(f"Exported {len(reports)} arrest reports")
        return 0

    elif args.command == "watch":
        require(args.role, Operation.ADMINISTER)
        store = open_store(config)
        unsubscribe = store.subscribe(lambda event: print(f"{event.kind.value}: {event.payload}"))
        try:
            store.watch_changes(args.max_events)
        finally:
            unsubscribe()
        return 0

    elif args.command == "setup-db":
        require(args.role, Operation.ADMINISTER)
        if config.mongodb is None:
            logger.error("No mongodb section in the configuration")
            return 1
        setup_mongodb(config.mongodb)
        return 0

    logger.error(f"Unknown command: {args.command}")
    return 1


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(description="Avenue PD arrest ledger")
    parser.add_argument("--config", default=None, help="Path to configuration file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], help="Logging level")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.required = True

    statutes_parser = subparsers.add_parser("statutes", help="List the penal code table")
    statutes_parser.add_argument("--json", action="store_true", help="Output as JSON")

    add_parser = subparsers.add_parser("add-statute", help="Add a custom statute")
    add_parser.add_argument("article", help="Statute label")
    add_parser.add_argument("description", help="Offense description")
    add_parser.add_argument("--fine", type=int, default=0, help="Fine")
    add_parser.add_argument("--penalty", type=int, default=0, help="Sentence in months")
    add_parser.add_argument("--bail", type=int, default=0, help="Bail (-1 for no bail, 0 for not applicable)")
    add_parser.add_argument("--category", default="Custom", help="Display category")
    add_parser.add_argument("--role", default="dev", help="Role of the caller")

    remove_parser = subparsers.add_parser("remove-statute", help="Remove a statute")
    remove_parser.add_argument("statute_id", help="Statute id")
    remove_parser.add_argument("--role", default="dev", help="Role of the caller")

    officers_parser = subparsers.add_parser("officers", help="List the officer roster")
    officers_parser.add_argument("--active-only", action="store_true", help="Only active officers")
    officers_parser.add_argument("--json", action="store_true", help="Output as JSON")
    officers_parser.add_argument("--role", default="dev", help="Role of the caller")

    add_officer_parser = subparsers.add_parser("add-officer", help="Register an officer")
    add_officer_parser.add_argument("name", help="Officer name")
    add_officer_parser.add_argument("id_number", help="Passport number")
    add_officer_parser.add_argument("--officer-role", choices=[r.value for r in Role], default=Role.OFFICER.value, help="Role of the new officer")
    add_officer_parser.add_argument("--rank", help="Rank")
    add_officer_parser.add_argument("--role", default="dev", help="Role of the caller")

    for command, help_text in (("activate", "Activate an officer"), ("deactivate", "Deactivate an officer"),
                               ("remove-officer", "Remove an officer from the roster")):
        officer_parser = subparsers.add_parser(command, help=help_text)
        officer_parser.add_argument("id_number", help="Passport number")
        officer_parser.add_argument("--role", default="dev", help="Role of the caller")

    backup_parser = subparsers.add_parser("backup", help="Back up the roster, statutes and arrest reports")
    backup_parser.add_argument("path", help="Backup JSON file")
    backup_parser.add_argument("--role", default="dev", help="Role of the caller")

    calc_parser = subparsers.add_parser("calculate", help="Compute penalties for statutes")
    calc_parser.add_argument("statutes", nargs="+", help="Statute ids")
    calc_parser.add_argument("--attorney", nargs=2, metavar=("NAME", "ID"), help="Attorney present")
    calc_parser.add_argument("--cooperation", action="store_true", help="Accused cooperated")
    calc_parser.add_argument("--json", action="store_true", help="Output as JSON")

    submit_parser = subparsers.add_parser("submit", help="Record an arrest report")
    submit_parser.add_argument("--accused-name", required=True, help="Accused name")
    submit_parser.add_argument("--accused-id", required=True, help="Accused id number")
    submit_parser.add_argument("--officer-name", required=True, help="Officer name")
    submit_parser.add_argument("--officer-id", required=True, help="Officer id number")
    submit_parser.add_argument("--statute", dest="statutes", action="append", required=True, help="Statute id (repeatable)")
    submit_parser.add_argument("--attorney", nargs=2, metavar=("NAME", "ID"), help="Attorney present")
    submit_parser.add_argument("--cooperation", action="store_true", help="Accused cooperated")
    submit_parser.add_argument("--notes", help="Free-text notes")
    submit_parser.add_argument("--photo", help="Photo reference")
    submit_parser.add_argument("--role", default="policial", help="Role of the caller")

    report_parser = subparsers.add_parser("report", help="Show statistics and rankings")
    report_parser.add_argument("--period", choices=[p.value for p in PeriodFilter], default=PeriodFilter.ALL.value, help="Period")
    report_parser.add_argument("--officer", default=ALL_OFFICERS, help="Officer id number")
    report_parser.add_argument("--search", default="", help="Search accused/officer name or id")
    report_parser.add_argument("--json", action="store_true", help="Output as JSON")
    report_parser.add_argument("--output", help="Also write the report to this JSON file")
    report_parser.add_argument("--role", default="comando", help="Role of the caller")

    export_parser = subparsers.add_parser("export", help="Export arrest reports to the configured outputs")
    export_parser.add_argument("--role", default="comando", help="Role of the caller")

    watch_parser = subparsers.add_parser("watch", help="Print store change events")
    watch_parser.add_argument("--max-events", type=int, help="Stop after this many events")
    watch_parser.add_argument("--role", default="dev", help="Role of the caller")

    setup_parser = subparsers.add_parser("setup-db", help="Create MongoDB collections and indexes")
    setup_parser.add_argument("--role", default="dev", help="Role of the caller")

    args = parser.parse_args(argv)

    try:
        return process_command(args)
    except AvenuePDError as e:
        logger.error(f"Error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
