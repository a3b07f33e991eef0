"""Tests for the payroll service operations."""

from datetime import date
from decimal import Decimal

import pytest

from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.exceptions import InvalidCorrection, NotFound, PersistenceUnavailable
from crew_payroll.services.entry_store import InMemoryEntryStore
from crew_payroll.services.payroll_service import PayrollService
from crew_payroll.services.state_machine import ReviewState

from .conftest import WORK_DATE, make_record

pytestmark = pytest.mark.asyncio


def _day():
    return [
        make_record(record_id="r1", total_hours=Decimal("10")),
        make_record(
            record_id="r2",
            employee_id="emp-2",
            employee_name="Ben Okafor",
            employee_number="1002",
            total_hours=None,
            arrival_time="06:00",
            departure_time="19:00",
        ),
        make_record(
            record_id="r3",
            employee_id="emp-3",
            employee_name="Cy Ng",
            total_hours=None,
            arrival_time="07:00",
        ),
    ]


class TestIngest:
    """Test batch ingestion."""

    async def test_ingest_stores_every_entry(self, service: PayrollService, store: InMemoryEntryStore):
        result = await service.ingest(_day())

        assert result.created == 3
        assert result.flagged == 1
        assert result.failures == []
        assert len(store) == 3

    async def test_ingest_accepts_generators(self, service: PayrollService):
        result = await service.ingest(r for r in _day())

        assert result.created == 3

    async def test_rate_loader_called_per_batch(self, store: InMemoryEntryStore, rate_book: RateBook):
        calls = []

        async def loader() -> RateBook:
            calls.append(1)
            return rate_book

        service = PayrollService(store, loader)
        await service.ingest(_day())
        await service.ingest([make_record(record_id="r9", employee_id="emp-9")])

        assert len(calls) == 2

    async def test_oversized_total_is_flagged_not_failed(self, service: PayrollService):
        result = await service.ingest([make_record(total_hours=Decimal("1e27"))])
        entry = result.entries[0]

        assert result.created == 1
        assert result.flagged == 1
        assert result.failures == []
        assert entry.total_hours == Decimal("0")
        assert entry.total_cost == Decimal("0")

    async def test_negative_zero_total_exports_as_zero(self, service: PayrollService):
        await service.ingest([make_record(total_hours=Decimal("-0"))])
        body = await service.export_daily(WORK_DATE)

        assert "-0.0" not in body
        assert "Harbor Bridge,0.0,0.0,0.0,0.0,0.00" in body

    async def test_store_failure_is_isolated(self, rate_book: RateBook):
        class FlakyStore(InMemoryEntryStore):
            async def put(self, entry):
                if entry.source_record_id == "r2":
                    raise PersistenceUnavailable("put")
                await super().put(entry)

        service = PayrollService(FlakyStore(), rate_book)
        result = await service.ingest(_day())

        assert result.created == 2
        assert [f.record_id for f in result.failures] == ["r2"]


class TestDailyReport:
    """Test report and export operations."""

    async def test_daily_report(self, service: PayrollService):
        await service.ingest(_day())
        report = await service.get_daily_report(WORK_DATE)

        # 10h -> 220.00, 13h -> 320.00, missing departure -> 0
        assert report.total_entries == 3
        assert report.total_employees == 3
        assert report.total_cost == Decimal("540.00")
        assert report.total_hours == Decimal("23")
        assert report.total_double_time_hours == Decimal("1")

    async def test_empty_date(self, service: PayrollService):
        report = await service.get_daily_report(date(2030, 1, 1))

        assert report.total_entries == 0
        assert report.total_cost == Decimal("0")

    async def test_export_daily(self, service: PayrollService):
        await service.ingest(_day())
        body = await service.export_daily(WORK_DATE)
        lines = body.split("\r\n")

        assert lines[0].startswith("Employee Name,")
        assert lines[1].startswith("Ana Torres,1001,Harbor Bridge,8.0,2.0,0.0,10.0,220.00")
        assert len([line for line in lines if line]) == 4

    async def test_export_is_repeatable(self, service: PayrollService):
        await service.ingest(_day())

        assert await service.export_daily(WORK_DATE) == await service.export_daily(WORK_DATE)


class TestReviewOperations:
    """Test review operations through the service."""

    async def test_review_flow(self, service: PayrollService):
        result = await service.ingest(_day())
        flagged = next(e for e in result.entries if e.needs_review)

        open_entries = await service.list_needs_review()
        assert len(open_entries) == 3

        reviewed = await service.mark_reviewed(flagged.entry_id)
        assert reviewed.review_state == ReviewState.REVIEWED
        assert flagged.entry_id not in [e.entry_id for e in await service.list_needs_review()]

    async def test_get_entry_not_found(self, service: PayrollService):
        with pytest.raises(NotFound):
            await service.get_entry("PAY-404")


class TestSupersede:
    """Test corrections."""

    async def test_correction_replaces_entry_in_reports(self, service: PayrollService):
        result = await service.ingest(_day())
        broken = next(e for e in result.entries if e.source_record_id == "r3")

        fixed = await service.supersede(
            broken.entry_id,
            make_record(
                record_id="r3-fix",
                employee_id="emp-3",
                employee_name="Cy Ng",
                total_hours=None,
                arrival_time="07:00",
                departure_time="15:00",
            ),
        )
        report = await service.get_daily_report(WORK_DATE)

        assert fixed.supersedes_entry_id == broken.entry_id
        assert fixed.review_state == ReviewState.PENDING
        assert broken.entry_id not in [e.entry_id for e in report.entries]
        assert report.total_entries == 3
        assert report.total_cost == Decimal("700.00")
        # History is kept
        assert (await service.get_entry(broken.entry_id)).entry_id == broken.entry_id

    async def test_correction_must_match_employee(self, service: PayrollService):
        result = await service.ingest(_day())

        with pytest.raises(InvalidCorrection):
            await service.supersede(result.entries[0].entry_id, make_record(employee_id="emp-2"))

    async def test_correction_must_match_date(self, service: PayrollService):
        result = await service.ingest(_day())

        with pytest.raises(InvalidCorrection):
            await service.supersede(result.entries[0].entry_id, make_record(work_date=date(2025, 1, 11)))

    async def test_correction_to_another_project(self, service: PayrollService):
        result = await service.ingest([make_record(record_id="a")])
        original = result.entries[0]

        await service.supersede(
            original.entry_id,
            make_record(record_id="b", project_id="proj-2", project_name="Dock Yard"),
        )
        old_project = await service.get_daily_report(WORK_DATE, "proj-1")
        new_project = await service.get_daily_report(WORK_DATE, "proj-2")
        whole_day = await service.get_daily_report(WORK_DATE)

        assert old_project.total_entries == 0
        assert old_project.total_cost == Decimal("0")
        assert new_project.total_entries == 1
        assert new_project.total_cost == Decimal("160.00")
        assert whole_day.total_entries == 1
        assert whole_day.total_cost == Decimal("160.00")

    async def test_correction_to_another_project_in_labor_costs(self, service: PayrollService):
        result = await service.ingest([make_record(record_id="a")])

        await service.supersede(
            result.entries[0].entry_id,
            make_record(record_id="b", project_id="proj-2", project_name="Dock Yard"),
        )
        costs = await service.get_project_labor_costs("proj-2", WORK_DATE, WORK_DATE)

        assert costs.total_cost == Decimal("160.00")
        with pytest.raises(NotFound):
            await service.get_project_labor_costs("proj-1", WORK_DATE, WORK_DATE)

    async def test_entry_can_only_be_superseded_once(self, service: PayrollService, store: InMemoryEntryStore):
        result = await service.ingest([make_record(record_id="a")])
        original = result.entries[0]
        await service.supersede(original.entry_id, make_record(record_id="b"))

        with pytest.raises(InvalidCorrection, match="already superseded"):
            await service.supersede(original.entry_id, make_record(record_id="c"))

        report = await service.get_daily_report(WORK_DATE)
        assert len(store) == 2
        assert report.total_entries == 1
        assert report.total_cost == Decimal("160.00")

    async def test_correction_can_itself_be_superseded(self, service: PayrollService):
        result = await service.ingest([make_record(record_id="a")])
        first = await service.supersede(result.entries[0].entry_id, make_record(record_id="b"))

        second = await service.supersede(
            first.entry_id, make_record(record_id="c", total_hours=Decimal("10"))
        )
        report = await service.get_daily_report(WORK_DATE)

        assert [e.entry_id for e in report.entries] == [second.entry_id]
        assert report.total_cost == Decimal("220.00")

    async def test_superseded_entry_leaves_review_queue(self, service: PayrollService):
        result = await service.ingest(_day())
        broken = next(e for e in result.entries if e.source_record_id == "r3")

        fixed = await service.supersede(
            broken.entry_id,
            make_record(record_id="r3-fix", employee_id="emp-3", employee_name="Cy Ng"),
        )
        open_ids = [e.entry_id for e in await service.list_needs_review()]

        assert broken.entry_id not in open_ids
        assert fixed.entry_id in open_ids
        assert len(open_ids) == 3

    async def test_superseded_entry_stays_out_after_correction_is_reviewed(self, service: PayrollService):
        result = await service.ingest(_day())
        broken = next(e for e in result.entries if e.source_record_id == "r3")
        fixed = await service.supersede(
            broken.entry_id,
            make_record(record_id="r3-fix", employee_id="emp-3", employee_name="Cy Ng"),
        )

        await service.mark_reviewed(fixed.entry_id)
        open_ids = [e.entry_id for e in await service.list_needs_review()]

        assert broken.entry_id not in open_ids
        assert fixed.entry_id not in open_ids
        assert len(open_ids) == 2


class TestReportEntries:
    """Test the source report lookup."""

    async def test_entries_for_report(self, service: PayrollService):
        await service.ingest(
            [
                make_record(record_id="r1", report_id="VR-1", employee_id="emp-2", employee_name="Ben Okafor"),
                make_record(record_id="r2", report_id="VR-1"),
                make_record(record_id="r3", report_id="VR-2", employee_id="emp-3", employee_name="Cy Ng"),
            ]
        )

        entries = await service.get_report_entries("VR-1")

        assert [e.source_record_id for e in entries] == ["r2", "r1"]

    async def test_superseded_entries_left_out(self, service: PayrollService):
        result = await service.ingest([make_record(record_id="r1", report_id="VR-1")])
        await service.supersede(
            result.entries[0].entry_id,
            make_record(record_id="r1-fix", report_id="VR-9", total_hours=Decimal("9")),
        )

        assert await service.get_report_entries("VR-1") == []
        assert [e.source_record_id for e in await service.get_report_entries("VR-9")] == ["r1-fix"]

    async def test_unknown_report(self, service: PayrollService):
        with pytest.raises(NotFound):
            await service.get_report_entries("VR-404")


class TestRangeViews:
    """Test the employee and project views."""

    async def test_employee_timesheet(self, service: PayrollService):
        await service.ingest(_day())
        await service.ingest([make_record(record_id="r4", work_date=date(2025, 1, 11), total_hours=Decimal("8"))])

        sheet = await service.get_employee_timesheet("emp-1", WORK_DATE, date(2025, 1, 11))
        body = await service.export_employee_timesheet("emp-1", WORK_DATE, date(2025, 1, 11))

        assert sheet.total_hours == Decimal("18")
        assert sheet.total_cost == Decimal("380.00")
        assert body.rstrip("\r\n").split("\r\n")[-1].startswith("TOTAL,")

    async def test_project_costs(self, service: PayrollService):
        await service.ingest(_day())

        costs = await service.get_project_labor_costs("proj-1", WORK_DATE, WORK_DATE)
        body = await service.export_project_labor_costs("proj-1", WORK_DATE, WORK_DATE)

        assert costs.unique_employees == 3
        assert costs.total_cost == Decimal("540.00")
        assert "TOTAL,3,16.0,6.0,1.0,23.0,540.00" in body

    async def test_unknown_employee(self, service: PayrollService):
        with pytest.raises(NotFound):
            await service.get_employee_timesheet("emp-404", WORK_DATE, WORK_DATE)
