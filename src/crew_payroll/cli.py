"""Crew payroll command line interface.

Runs the engine over JSON files without a database:
- Daily report
- Daily CSV export
- Review queue listing

Usage:
    crew-payroll report --records records.json --rates rates.json --date 2025-01-10
    crew-payroll export --records records.json --rates rates.json --date 2025-01-10 --output out.csv
    crew-payroll review --records records.json --rates rates.json

The records file holds a JSON list of raw time records (the same shape the
HTTP API accepts). The rates file holds a JSON list of rate profiles, each
with ``base_rate`` or all three of ``regular_rate``, ``overtime_rate`` and
``double_time_rate``, plus optional ``employee_id`` / ``project_id``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from crew_payroll.api.schemas import DailyReportResponse, RawTimeRecordIn
from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.calculators.types import RawTimeRecord
from crew_payroll.config import get_settings
from crew_payroll.exceptions import PayrollError
from crew_payroll.services.entry_store import InMemoryEntryStore
from crew_payroll.services.payroll_service import PayrollService

logger = logging.getLogger(__name__)

_RECORDS_ADAPTER = TypeAdapter(list[RawTimeRecordIn])


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def load_json(path: str) -> Any:
    with Path(path).open(encoding="utf-8") as f:
        return json.load(f)


def load_records(path: str) -> list[RawTimeRecord]:
    """Read and validate raw time records from a JSON file."""
    return [r.to_record() for r in _RECORDS_ADAPTER.validate_python(load_json(path))]


def load_rates(path: str) -> RateBook:
    """Read rate profiles from a JSON file."""
    return RateBook.from_dicts(load_json(path), default_thresholds=get_settings().default_thresholds)


class CrewPayrollCli:
    """Crew payroll command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="crew-payroll",
            description="Classify crew hours and produce payroll reports",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            default=None,
            help="Logging level (defaults to LOG_LEVEL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        inputs = argparse.ArgumentParser(add_help=False)
        inputs.add_argument(
            "--records",
            type=str,
            required=True,
            help="JSON file with raw time records",
        )
        inputs.add_argument(
            "--rates",
            type=str,
            required=True,
            help="JSON file with rate profiles",
        )

        # report command
        report = subparsers.add_parser(
            "report",
            parents=[inputs],
            help="Print the daily report as JSON",
        )
        report.add_argument(
            "--date",
            type=parse_date,
            required=True,
            help="Report date (YYYY-MM-DD)",
        )
        report.add_argument(
            "--project-id",
            type=str,
            help="Restrict the report to one project",
        )

        # export command
        export = subparsers.add_parser(
            "export",
            parents=[inputs],
            help="Export the daily report as CSV",
        )
        export.add_argument(
            "--date",
            type=parse_date,
            required=True,
            help="Report date (YYYY-MM-DD)",
        )
        export.add_argument(
            "--output",
            type=str,
            help="Output file path (stdout if omitted)",
        )

        # review command
        review = subparsers.add_parser(
            "review",
            parents=[inputs],
            help="List entries that have not been reviewed",
        )
        review.add_argument(
            "--project-id",
            type=str,
            help="Restrict the queue to one project",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        logging.basicConfig(
            level=(parsed.log_level or get_settings().log_level).upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[..., Awaitable[int]]] = {
            "report": self._cmd_report,
            "export": self._cmd_export,
            "review": self._cmd_review,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            service = self._load_service(parsed)
            return asyncio.run(handler(service, parsed))
        except (OSError, ValueError) as e:
            print(f"Could not read input: {e}", file=sys.stderr)
            return 2
        except PayrollError as e:
            print(f"Error [{e.code}]: {e}", file=sys.stderr)
            return 1

    def _load_service(self, args: argparse.Namespace) -> PayrollService:
        return PayrollService(InMemoryEntryStore(), load_rates(args.rates))

    async def _ingest(self, service: PayrollService, args: argparse.Namespace) -> None:
        result = await service.ingest(load_records(args.records))
        for failure in result.failures:
            logger.warning("Record %s skipped: %s", failure.record_id, failure.error)

    async def _cmd_report(self, service: PayrollService, args: argparse.Namespace) -> int:
        """Print the daily report."""
        await self._ingest(service, args)
        report = await service.get_daily_report(args.date, args.project_id)
        print(DailyReportResponse.model_validate(report).model_dump_json(indent=2))
        return 0

    async def _cmd_export(self, service: PayrollService, args: argparse.Namespace) -> int:
        """Write the daily CSV."""
        await self._ingest(service, args)
        body = await service.export_daily(args.date)
        if args.output:
            # newline="" keeps the CSV's \r\n terminators intact
            with Path(args.output).open("w", encoding="utf-8", newline="") as f:
                f.write(body)
            print(f"Exported {args.date.isoformat()} to {args.output}", file=sys.stderr)
        else:
            sys.stdout.write(body)
        return 0

    async def _cmd_review(self, service: PayrollService, args: argparse.Namespace) -> int:
        """List open entries with their review reasons."""
        await self._ingest(service, args)
        entries = await service.list_needs_review(args.project_id)
        for entry in entries:
            reasons = "; ".join(entry.review_reasons) or "-"
            print(
                f"{entry.work_date.isoformat()}\t{entry.review_state.value}\t"
                f"{entry.project_name}\t{entry.employee_name}\t{entry.total_hours}\t{reasons}"
            )
        print(f"\n{len(entries)} entries awaiting review", file=sys.stderr)
        return 0


def main() -> int:
    """CLI entry point."""
    cli = CrewPayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
