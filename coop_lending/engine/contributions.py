"""Contribution ledger: references, status changes, matching, recurrence."""

from __future__ import annotations

import logging
import random
import string
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable

from coop_lending.catalog import get_tier_by_amount
from coop_lending.config import LendingConfig
from coop_lending.engine.amortization import HUNDRED, shift_by_frequency
from coop_lending.events import EventPublisher
from coop_lending.exceptions import InvalidStateTransitionError, ReferenceCollisionError
from coop_lending.models.lending import (
    Contribution,
    ContributionCategory,
    ContributionFrequency,
    ContributionMatching,
    ContributionMetadata,
    ContributionMethod,
    ContributionSchedule,
    ContributionStatus,
    ContributionTier,
    ContributionTimeline,
    ContributionType,
)

if TYPE_CHECKING:
    from coop_lending.store import LendingDataStore

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_lowercase
REFERENCE_LOCK = "contribution-references"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_reference(prefix: str = "CON", now: datetime | None = None) -> str:
    """Build a ``CON-<base36 ms>-<6 base36 chars>`` reference, upper-cased."""
    millis = int((now or datetime.now()).timestamp() * 1000)
    suffix = "".join(random.choices(BASE36_ALPHABET, k=6))
    return f"{prefix}-{to_base36(millis)}-{suffix}".upper()


class ContributionLedger:
    """Append-mostly ledger of member contributions.

    Parameters
    ----------
    store : LendingDataStore
        Persistence collaborator; enforces reference uniqueness.
    publisher : EventPublisher | None
        Receives ``contribution.*`` events.
    config : LendingConfig | None
        Reference prefix and retry limit.
    reference_factory : Callable[[], str] | None
        Source of candidate references (default: ``generate_reference``).
    """

    def __init__(
        self,
        store: LendingDataStore,
        publisher: EventPublisher | None = None,
        config: LendingConfig | None = None,
        reference_factory: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.publisher = publisher or EventPublisher()
        self.config = config or LendingConfig()
        self.reference_factory = reference_factory or (
            lambda: generate_reference(self.config.reference_prefix)
        )

    def _unique_reference(self) -> str:
        for _ in range(self.config.reference_max_attempts):
            reference = self.reference_factory()
            if not self.store.has_reference(reference):
                return reference
            logger.debug("Contribution reference %s already taken, retrying", reference)
        raise ReferenceCollisionError(
            "Could not generate a unique contribution reference after "
            f"{self.config.reference_max_attempts} attempts"
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(
        self,
        user_id: str,
        cooperative_id: str,
        amount: Decimal,
        contribution_type: ContributionType = ContributionType.SAVINGS,
        method: ContributionMethod = ContributionMethod.BANK_TRANSFER,
        frequency: ContributionFrequency = ContributionFrequency.ONE_TIME,
        category: ContributionCategory = ContributionCategory.REGULAR,
        description: str = "",
        match_rate: Decimal = Decimal("0"),
        end_date: datetime | None = None,
        metadata: ContributionMetadata | None = None,
        now: datetime | None = None,
    ) -> Contribution:
        """Add a pending contribution with a fresh unique reference.

        Non one-time frequencies make the entry recurring; its first cycle
        falls due one period after ``now``.
        """
        if amount <= 0:
            raise ValueError(f"Contribution amount must be positive, got {amount}")
        now = now or datetime.now()

        recurring = frequency != ContributionFrequency.ONE_TIME
        schedule = ContributionSchedule(is_recurring=recurring)
        if recurring:
            schedule.start_date = now
            schedule.end_date = end_date
            schedule.next_due_date = shift_by_frequency(now, frequency)

        matching = ContributionMatching()
        if match_rate > 0:
            matching = ContributionMatching(
                is_eligible=True,
                match_rate=match_rate,
                match_amount=amount * match_rate / HUNDRED,
            )

        with self.store.lock(REFERENCE_LOCK):
            contribution = Contribution(
                contribution_id=str(uuid.uuid4()),
                user_id=user_id,
                cooperative_id=cooperative_id,
                amount=amount,
                contribution_type=contribution_type,
                method=method,
                reference=self._unique_reference(),
                created_at=now,
                timeline=ContributionTimeline(initiated_at=now),
                category=category,
                tier=get_tier_by_amount(amount),
                frequency=frequency,
                description=description,
                schedule=schedule,
                matching=matching,
                metadata=metadata or ContributionMetadata(),
            )
            self.store.add_contribution(contribution)

        logger.info(
            "Contribution %s recorded for %s: %s (%s)",
            contribution.reference, user_id, amount, frequency.value,
        )
        self._publish("contribution.recorded", contribution)
        return contribution

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def confirm(
        self,
        contribution_id: str,
        verified_by: str | None = None,
        notes: str = "",
        now: datetime | None = None,
    ) -> Contribution:
        now = now or datetime.now()

        def apply(c: Contribution) -> None:
            c.timeline.processed_at = c.timeline.processed_at or now
            c.timeline.confirmed_at = now
            c.verified_by = verified_by
            c.verification_notes = notes

        return self._settle(contribution_id, ContributionStatus.CONFIRMED, apply)

    def fail(self, contribution_id: str, reason: str = "", now: datetime | None = None) -> Contribution:
        now = now or datetime.now()

        def apply(c: Contribution) -> None:
            c.timeline.processed_at = c.timeline.processed_at or now
            c.timeline.failed_at = now
            c.verification_notes = reason

        return self._settle(contribution_id, ContributionStatus.FAILED, apply)

    def cancel(self, contribution_id: str, now: datetime | None = None) -> Contribution:
        now = now or datetime.now()

        def apply(c: Contribution) -> None:
            c.timeline.cancelled_at = now
            c.schedule.next_due_date = None

        return self._settle(contribution_id, ContributionStatus.CANCELLED, apply)

    def _settle(
        self,
        contribution_id: str,
        target: ContributionStatus,
        apply: Callable[[Contribution], None],
    ) -> Contribution:
        # Only pending entries can be settled; the ledger is append-mostly
        with self.store.lock(contribution_id):
            contribution = self.store.get_contribution(contribution_id)
            if not contribution.is_pending():
                raise InvalidStateTransitionError(
                    "contribution", contribution.status.value, target.value
                )
            contribution.status = target
            apply(contribution)
            self.store.save_contribution(contribution)

        logger.info("Contribution %s %s", contribution.reference, target.value)
        self._publish(f"contribution.{target.value}", contribution)
        return contribution

    def apply_matching(
        self,
        contribution_id: str,
        match_rate: Decimal,
        matched_by: str,
        now: datetime | None = None,
    ) -> Contribution:
        """Match a contribution at ``match_rate`` percent."""
        if match_rate <= 0:
            raise ValueError(f"Match rate must be positive, got {match_rate}")

        with self.store.lock(contribution_id):
            contribution = self.store.get_contribution(contribution_id)
            contribution.matching = ContributionMatching(
                is_eligible=True,
                match_rate=match_rate,
                match_amount=contribution.amount * match_rate / HUNDRED,
                matched_by=matched_by,
                matched_at=now or datetime.now(),
            )
            self.store.save_contribution(contribution)

        self._publish("contribution.matched", contribution)
        return contribution

    # ------------------------------------------------------------------
    # Recurrence
    # ------------------------------------------------------------------

    def process_recurring(self, now: datetime | None = None) -> list[Contribution]:
        """Run one cycle for every recurring contribution that has fallen due.

        Each due schedule gets a new pending ledger entry, and its next due
        date moves forward one period from this processing time. Schedules
        past their end date stop recurring.

        Returns
        -------
        list[Contribution]
            The cycle entries created.
        """
        now = now or datetime.now()
        created: list[Contribution] = []

        for candidate in self.store.find_due_contributions(now):
            with self.store.lock(candidate.contribution_id):
                parent = self.store.get_contribution(candidate.contribution_id)
                if not parent.is_due(now):
                    continue

                schedule = parent.schedule
                schedule.last_processed = now
                schedule.processed_count += 1
                schedule.next_due_date = shift_by_frequency(now, parent.frequency)
                if schedule.end_date is not None and schedule.next_due_date > schedule.end_date:
                    schedule.next_due_date = None
                    schedule.is_recurring = False

                # The cycle entry goes in first; a failed reference leaves the parent as it was
                entry = self.record(
                    parent.user_id,
                    parent.cooperative_id,
                    parent.amount,
                    contribution_type=parent.contribution_type,
                    method=parent.method,
                    category=parent.category,
                    description=f"Recurring contribution, cycle {schedule.processed_count}",
                    match_rate=parent.matching.match_rate if parent.matching.is_eligible else Decimal("0"),
                    metadata=ContributionMetadata(source=parent.reference),
                    now=now,
                )
                self.store.save_contribution(parent)
            created.append(entry)

        if created:
            logger.info("Processed %d recurring contributions", len(created))
        return created

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def due_contributions(self, now: datetime | None = None, user_id: str | None = None) -> list[Contribution]:
        due = self.store.find_due_contributions(now or datetime.now())
        if user_id is not None:
            due = [c for c in due if c.user_id == user_id]
        return due

    def total_confirmed(self, user_id: str, cooperative_id: str) -> Decimal:
        return self.store.total_contributions(user_id, cooperative_id)

    def effective_tier(self, user_id: str, cooperative_id: str) -> ContributionTier:
        """Tier earned by the member's confirmed total."""
        return get_tier_by_amount(self.total_confirmed(user_id, cooperative_id))

    def member_summary(self, user_id: str, cooperative_id: str) -> dict[str, Any]:
        contributions = self.store.get_member_contributions(user_id, cooperative_id)
        summary: dict[str, Any] = {
            "total_contributions": len(contributions),
            "total_amount": Decimal("0"),
            "total_matching": Decimal("0"),
            "confirmed_amount": Decimal("0"),
            "pending_amount": Decimal("0"),
            "type_breakdown": {},
            "frequency_breakdown": {},
        }
        for c in contributions:
            summary["total_amount"] += c.amount
            summary["total_matching"] += c.matching.match_amount
            types = summary["type_breakdown"]
            types[c.contribution_type.value] = types.get(c.contribution_type.value, 0) + 1
            frequencies = summary["frequency_breakdown"]
            frequencies[c.frequency.value] = frequencies.get(c.frequency.value, 0) + 1
            if c.is_confirmed():
                summary["confirmed_amount"] += c.amount
            elif c.is_pending():
                summary["pending_amount"] += c.amount
        return summary

    def _publish(self, event_type: str, contribution: Contribution) -> None:
        self.publisher.publish(
            event_type,
            subject=contribution.contribution_id,
            data={**contribution.summary(), "user_id": contribution.user_id},
            metadata={"cooperative_id": contribution.cooperative_id},
        )
