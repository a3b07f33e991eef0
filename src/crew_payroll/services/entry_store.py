"""Entry persistence: the store protocol and its implementations.

The engine itself is stateless. Entries, and the one mutable field on
them (review_state), live in a store. Stores hand out whole immutable
PayrollEntry snapshots, never partially loaded rows.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crew_payroll.calculators.types import PayrollEntry
from crew_payroll.exceptions import DuplicateEntryError, PersistenceUnavailable
from crew_payroll.models import PayrollEntryRecord
from crew_payroll.services.state_machine import ReviewState

logger = logging.getLogger(__name__)


class EntryStore(Protocol):
    """Protocol for payroll entry persistence.

    ``cas_update_state`` must be a single atomic conditional update: it
    succeeds only if the stored state still equals ``expected``.
    """

    async def put(self, entry: PayrollEntry) -> None:
        """Insert a new entry. Raises DuplicateEntryError if the id exists."""
        ...

    async def get_by_id(self, entry_id: str) -> PayrollEntry | None:
        ...

    async def get_by_date(self, work_date: date, project_id: str | None = None) -> list[PayrollEntry]:
        ...

    async def get_by_report(self, report_id: str) -> list[PayrollEntry]:
        ...

    async def get_by_range(
        self,
        start_date: date,
        end_date: date,
        employee_id: str | None = None,
        project_id: str | None = None,
    ) -> list[PayrollEntry]:
        ...

    async def list_by_states(
        self,
        states: Iterable[ReviewState],
        project_id: str | None = None,
    ) -> list[PayrollEntry]:
        ...

    async def cas_update_state(
        self,
        entry_id: str,
        expected: ReviewState,
        new: ReviewState,
    ) -> bool:
        """Set review_state to ``new`` iff it is ``expected``. Returns success."""
        ...


class InMemoryEntryStore:
    """Dict-backed store for tests, the CLI and single-process use."""

    def __init__(self, entries: Iterable[PayrollEntry] = ()):
        self._entries: dict[str, PayrollEntry] = {}
        self._lock = threading.Lock()
        for entry in entries:
            self._entries[entry.entry_id] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def _snapshot(self) -> list[PayrollEntry]:
        with self._lock:
            return list(self._entries.values())

    async def put(self, entry: PayrollEntry) -> None:
        with self._lock:
            if entry.entry_id in self._entries:
                raise DuplicateEntryError(entry.entry_id)
            self._entries[entry.entry_id] = entry

    async def get_by_id(self, entry_id: str) -> PayrollEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    async def get_by_date(self, work_date: date, project_id: str | None = None) -> list[PayrollEntry]:
        return [
            e
            for e in self._snapshot()
            if e.work_date == work_date and (project_id is None or e.project_id == project_id)
        ]

    async def get_by_report(self, report_id: str) -> list[PayrollEntry]:
        return [e for e in self._snapshot() if e.report_id == report_id]

    async def get_by_range(
        self,
        start_date: date,
        end_date: date,
        employee_id: str | None = None,
        project_id: str | None = None,
    ) -> list[PayrollEntry]:
        return [
            e
            for e in self._snapshot()
            if start_date <= e.work_date <= end_date
            and (employee_id is None or e.employee_id == employee_id)
            and (project_id is None or e.project_id == project_id)
        ]

    async def list_by_states(
        self,
        states: Iterable[ReviewState],
        project_id: str | None = None,
    ) -> list[PayrollEntry]:
        wanted = set(states)
        return [
            e
            for e in self._snapshot()
            if e.review_state in wanted and (project_id is None or e.project_id == project_id)
        ]

    async def cas_update_state(
        self,
        entry_id: str,
        expected: ReviewState,
        new: ReviewState,
    ) -> bool:
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None or current.review_state != expected:
                return False
            self._entries[entry_id] = current.with_review_state(new)
            return True


class SqlEntryStore:
    """Async SQLAlchemy store over the payroll_entry table.

    Every database failure surfaces as PersistenceUnavailable; retries are
    left to the caller.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("Entry store failure during %s: %s", operation, e.__class__.__name__)
            raise PersistenceUnavailable(operation, e) from e

    async def _select(self, *criteria) -> list[PayrollEntry]:
        async with self.session_factory() as session:
            result = await session.execute(select(PayrollEntryRecord).where(*criteria))
            return [record.to_entry() for record in result.scalars().all()]

    async def put(self, entry: PayrollEntry) -> None:
        try:
            async with self.session_factory() as session:
                session.add(PayrollEntryRecord.from_entry(entry))
                await session.commit()
        except IntegrityError as e:
            raise DuplicateEntryError(entry.entry_id) from e
        except SQLAlchemyError as e:
            logger.error("Entry store failure during put: %s", e.__class__.__name__)
            raise PersistenceUnavailable("put", e) from e

    async def get_by_id(self, entry_id: str) -> PayrollEntry | None:
        with self._guard("get_by_id"):
            async with self.session_factory() as session:
                record = await session.get(PayrollEntryRecord, entry_id)
                return record.to_entry() if record is not None else None

    async def get_by_date(self, work_date: date, project_id: str | None = None) -> list[PayrollEntry]:
        criteria = [PayrollEntryRecord.work_date == work_date]
        if project_id is not None:
            criteria.append(PayrollEntryRecord.project_id == project_id)
        with self._guard("get_by_date"):
            return await self._select(*criteria)

    async def get_by_report(self, report_id: str) -> list[PayrollEntry]:
        with self._guard("get_by_report"):
            return await self._select(PayrollEntryRecord.report_id == report_id)

    async def get_by_range(
        self,
        start_date: date,
        end_date: date,
        employee_id: str | None = None,
        project_id: str | None = None,
    ) -> list[PayrollEntry]:
        criteria = [
            PayrollEntryRecord.work_date >= start_date,
            PayrollEntryRecord.work_date <= end_date,
        ]
        if employee_id is not None:
            criteria.append(PayrollEntryRecord.employee_id == employee_id)
        if project_id is not None:
            criteria.append(PayrollEntryRecord.project_id == project_id)
        with self._guard("get_by_range"):
            return await self._select(*criteria)

    async def list_by_states(
        self,
        states: Iterable[ReviewState],
        project_id: str | None = None,
    ) -> list[PayrollEntry]:
        criteria = [PayrollEntryRecord.review_state.in_([s.value for s in states])]
        if project_id is not None:
            criteria.append(PayrollEntryRecord.project_id == project_id)
        with self._guard("list_by_states"):
            return await self._select(*criteria)

    async def cas_update_state(
        self,
        entry_id: str,
        expected: ReviewState,
        new: ReviewState,
    ) -> bool:
        stmt = (
            update(PayrollEntryRecord)
            .where(
                PayrollEntryRecord.entry_id == entry_id,
                PayrollEntryRecord.review_state == expected.value,
            )
            .values(
                review_state=new.value,
                reviewed_at=datetime.now(timezone.utc) if new == ReviewState.REVIEWED else None,
            )
            .execution_options(synchronize_session=False)
        )
        with self._guard("cas_update_state"):
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount == 1


async def superseded_ids(store: EntryStore, work_dates: Iterable[date]) -> set[str]:
    """Ids of entries replaced by a correction on any of ``work_dates``.

    Corrections keep the work date of the entry they replace, so the dates
    of a set of entries bound where their corrections can be.
    """
    superseded: set[str] = set()
    for work_date in sorted(set(work_dates)):
        for entry in await store.get_by_date(work_date):
            if entry.supersedes_entry_id is not None:
                superseded.add(entry.supersedes_entry_id)
    return superseded
