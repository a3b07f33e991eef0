"""Payroll operations: ingestion, reports, exports and review actions."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import date

from crew_payroll.calculators.entry_builder import BuildFailure, EntryBuilder
from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.calculators.types import (
    DailyReport,
    EmployeeTimesheet,
    PayrollEntry,
    ProjectLaborCosts,
    RawTimeRecord,
)
from crew_payroll.exceptions import InvalidCorrection, NotFound, PayrollError
from crew_payroll.reports.aggregator import (
    aggregate_daily,
    build_employee_timesheet,
    build_project_labor_costs,
)
from crew_payroll.reports.exporter import (
    export_daily_csv,
    export_project_costs_csv,
    export_timesheet_csv,
)
from crew_payroll.services.entry_store import EntryStore, superseded_ids
from crew_payroll.services.review_queue import ReviewQueue

logger = logging.getLogger(__name__)

RateBookLoader = Callable[[], Awaitable[RateBook]]


@dataclass
class IngestResult:
    """Outcome of ingesting a batch of raw records."""

    entries: list[PayrollEntry] = field(default_factory=list)
    failures: list[BuildFailure] = field(default_factory=list)

    @property
    def created(self) -> int:
        return len(self.entries)

    @property
    def flagged(self) -> int:
        return sum(1 for entry in self.entries if entry.needs_review)


class PayrollService:
    """Entry point for callers (API, CLI) of the hours engine.

    Holds no state of its own beyond its collaborators: an entry store and
    a rate source (a fixed RateBook or an async loader called per batch).
    """

    def __init__(
        self,
        store: EntryStore,
        rates: RateBook | RateBookLoader,
        builder_factory: Callable[[RateBook], EntryBuilder] = EntryBuilder,
    ):
        self.store = store
        self.rates = rates
        self.builder_factory = builder_factory
        self.review_queue = ReviewQueue(store)

    async def _rate_book(self) -> RateBook:
        if isinstance(self.rates, RateBook):
            return self.rates
        return await self.rates()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(self, records: Iterable[RawTimeRecord]) -> IngestResult:
        """Build and store entries; one bad record never aborts the batch."""
        builder = self.builder_factory(await self._rate_book())
        batch = builder.build_batch(records)

        result = IngestResult(failures=list(batch.failures))
        for entry in batch.entries:
            try:
                await self.store.put(entry)
            except PayrollError as e:
                logger.error("Could not store entry %s: %s", entry.entry_id, e)
                result.failures.append(
                    BuildFailure(record_id=entry.source_record_id or entry.entry_id, error=str(e))
                )
                continue
            result.entries.append(entry)

        logger.info(
            "Ingested %d entries (%d flagged, %d failed)",
            result.created,
            result.flagged,
            len(result.failures),
        )
        return result

    async def supersede(self, entry_id: str, record: RawTimeRecord) -> PayrollEntry:
        """Replace an entry with a corrected one.

        The old entry stays in history; reports count only the new one,
        which starts its own review lifecycle.

        Raises:
            NotFound: If the entry does not exist
            InvalidCorrection: If the record is for another employee or date,
                or the entry was already superseded
        """
        original = await self.get_entry(entry_id)
        if record.employee_id != original.employee_id:
            raise InvalidCorrection(entry_id, "employee does not match")
        if record.work_date != original.work_date:
            raise InvalidCorrection(entry_id, "work date does not match")

        # Corrections keep the work date, so any existing one is on this date
        for existing in await self.store.get_by_date(original.work_date):
            if existing.supersedes_entry_id == entry_id:
                raise InvalidCorrection(
                    entry_id, f"already superseded by {existing.entry_id}"
                )

        builder = self.builder_factory(await self._rate_book())
        entry = builder.build(record, supersedes_entry_id=entry_id)
        await self.store.put(entry)
        logger.info("Entry %s superseded by %s", entry_id, entry.entry_id)
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_entry(self, entry_id: str) -> PayrollEntry:
        entry = await self.store.get_by_id(entry_id)
        if entry is None:
            raise NotFound("Payroll entry", entry_id)
        return entry

    async def get_daily_report(self, report_date: date, project_id: str | None = None) -> DailyReport:
        """Recompute the report for a date. An empty date is an empty report.

        The whole date is read so a correction filed under another project
        still retires the entry it replaces.
        """
        entries = await self.store.get_by_date(report_date)
        return aggregate_daily(entries, report_date, project_id)

    async def get_employee_timesheet(
        self, employee_id: str, start_date: date, end_date: date
    ) -> EmployeeTimesheet:
        entries = await self.store.get_by_range(start_date, end_date, employee_id=employee_id)
        return build_employee_timesheet(entries, employee_id, start_date, end_date)

    async def get_report_entries(self, report_id: str) -> list[PayrollEntry]:
        """Current entries created from one source report, in report order.

        Raises:
            NotFound: If no entry came from the report
        """
        entries = await self.store.get_by_report(report_id)
        if not entries:
            raise NotFound("Source report", report_id)
        # A correction may come from another report
        superseded = await superseded_ids(self.store, (e.work_date for e in entries))
        current = [e for e in entries if e.entry_id not in superseded]
        return sorted(current, key=lambda e: (e.work_date, *e.sort_key))

    async def get_project_labor_costs(
        self, project_id: str, start_date: date, end_date: date
    ) -> ProjectLaborCosts:
        # Unfiltered for the same reason as get_daily_report
        entries = await self.store.get_by_range(start_date, end_date)
        return build_project_labor_costs(entries, project_id, start_date, end_date)

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def list_needs_review(self, project_id: str | None = None) -> list[PayrollEntry]:
        return await self.review_queue.list_needs_review(project_id)

    async def mark_reviewed(self, entry_id: str) -> PayrollEntry:
        return await self.review_queue.mark_reviewed(entry_id)

    async def flag_for_review(self, entry_id: str, reason: str | None = None) -> PayrollEntry:
        return await self.review_queue.flag_for_review(entry_id, reason)

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    async def export_daily(self, report_date: date) -> str:
        """CSV for a date; header row only when the date has no entries."""
        return export_daily_csv(await self.get_daily_report(report_date))

    async def export_employee_timesheet(self, employee_id: str, start_date: date, end_date: date) -> str:
        return export_timesheet_csv(await self.get_employee_timesheet(employee_id, start_date, end_date))

    async def export_project_labor_costs(self, project_id: str, start_date: date, end_date: date) -> str:
        return export_project_costs_csv(await self.get_project_labor_costs(project_id, start_date, end_date))
