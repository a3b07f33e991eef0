"""Loading rate profiles from the rate_profile table."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.calculators.types import HourThresholds
from crew_payroll.exceptions import PersistenceUnavailable
from crew_payroll.models import RateProfileRecord


async def load_rate_book(
    session_factory: async_sessionmaker[AsyncSession],
    default_thresholds: HourThresholds | None = None,
) -> RateBook:
    """Read every rate profile into an immutable RateBook.

    The engine only reads rates; the book is a snapshot taken per call so
    one ingestion batch sees one consistent set of rates.
    """
    defaults = default_thresholds or HourThresholds()
    try:
        async with session_factory() as session:
            result = await session.execute(
                select(RateProfileRecord).order_by(RateProfileRecord.profile_id)
            )
            records = result.scalars().all()
    except SQLAlchemyError as e:
        raise PersistenceUnavailable("load_rate_book", e) from e
    return RateBook((r.to_profile(defaults) for r in records), default_thresholds=defaults)
