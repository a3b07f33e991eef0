"""Review queue: open entries and the review state transitions."""

from __future__ import annotations

import logging

from crew_payroll.calculators.types import PayrollEntry
from crew_payroll.exceptions import NotFound, PersistenceUnavailable
from crew_payroll.services.entry_store import EntryStore, superseded_ids
from crew_payroll.services.state_machine import ReviewState, ReviewStateMachine

logger = logging.getLogger(__name__)

# Each state can be left at most once, so a lost race is retried at most
# once per remaining state.
MAX_CAS_ATTEMPTS = len(ReviewState)


class ReviewQueue:
    """View over entries that are not yet reviewed, plus their transitions.

    The queue is not stored anywhere: it is recomputed from the entry
    store on every read.
    """

    def __init__(self, store: EntryStore):
        self.store = store

    async def list_needs_review(self, project_id: str | None = None) -> list[PayrollEntry]:
        """All current entries with review_state != reviewed, oldest date first.

        Entries replaced by a correction are left out even while their own
        state is still open.
        """
        entries = await self.store.list_by_states(ReviewStateMachine.OPEN_STATES, project_id)
        superseded = await superseded_ids(self.store, (e.work_date for e in entries))
        return sorted(
            (e for e in entries if e.entry_id not in superseded),
            key=lambda e: (e.work_date, *e.sort_key),
        )

    async def mark_reviewed(self, entry_id: str) -> PayrollEntry:
        """Mark an entry reviewed. Repeating the call is a no-op.

        Raises:
            NotFound: If the entry does not exist
        """
        return await self._advance(entry_id, ReviewState.REVIEWED)

    async def flag_for_review(self, entry_id: str, reason: str | None = None) -> PayrollEntry:
        """Promote a pending entry to needs_review.

        Raises:
            NotFound: If the entry does not exist
            InvalidTransitionError: If the entry was already reviewed
        """
        entry = await self._advance(entry_id, ReviewState.NEEDS_REVIEW)
        if reason:
            logger.info("Entry %s flagged for review: %s", entry_id, reason)
        return entry

    async def _advance(self, entry_id: str, target: ReviewState) -> PayrollEntry:
        for _ in range(MAX_CAS_ATTEMPTS):
            entry = await self.store.get_by_id(entry_id)
            if entry is None:
                raise NotFound("Payroll entry", entry_id)
            if entry.review_state == target:
                return entry

            ReviewStateMachine.validate_transition(entry.review_state, target)
            if await self.store.cas_update_state(entry_id, entry.review_state, target):
                logger.info(
                    "Entry %s moved %s -> %s",
                    entry_id,
                    entry.review_state.value,
                    target.value,
                )
                return entry.with_review_state(target)

            logger.debug("Entry %s changed concurrently, re-reading", entry_id)

        raise PersistenceUnavailable(f"transition to {target.value}")
