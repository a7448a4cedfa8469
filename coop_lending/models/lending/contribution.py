"""Contribution ledger models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from coop_lending.models.lending.enums import (
    ContributionCategory,
    ContributionFrequency,
    ContributionMethod,
    ContributionStatus,
    ContributionTier,
    ContributionType,
)


@dataclass
class ContributionSchedule:
    """Recurrence settings; ``next_due_date`` advances once per cycle."""

    is_recurring: bool = False
    start_date: datetime | None = None
    end_date: datetime | None = None
    next_due_date: datetime | None = None
    last_processed: datetime | None = None
    processed_count: int = 0


@dataclass
class ContributionMatching:
    is_eligible: bool = False
    match_rate: Decimal = Decimal("0")  # percent
    match_amount: Decimal = Decimal("0")
    matched_by: str | None = None
    matched_at: datetime | None = None


@dataclass
class ContributionTimeline:
    initiated_at: datetime
    processed_at: datetime | None = None
    confirmed_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None


@dataclass
class ContributionMetadata:
    loan_id: str | None = None
    external_reference: str | None = None
    source: str | None = None  # parent reference for generated cycle entries
    destination: str | None = None


@dataclass
class Contribution:
    """Ledger entry for money a member puts into the cooperative."""

    contribution_id: str
    user_id: str
    cooperative_id: str
    amount: Decimal
    contribution_type: ContributionType
    method: ContributionMethod
    reference: str
    created_at: datetime
    timeline: ContributionTimeline
    category: ContributionCategory = ContributionCategory.REGULAR
    tier: ContributionTier = ContributionTier.BASIC
    frequency: ContributionFrequency = ContributionFrequency.ONE_TIME
    status: ContributionStatus = ContributionStatus.PENDING
    description: str = ""
    schedule: ContributionSchedule = field(default_factory=ContributionSchedule)
    matching: ContributionMatching = field(default_factory=ContributionMatching)
    metadata: ContributionMetadata = field(default_factory=ContributionMetadata)
    verified_by: str | None = None
    verification_notes: str = ""
    updated_at: datetime | None = None
    version: int = 0

    def is_confirmed(self) -> bool:
        return self.status == ContributionStatus.CONFIRMED

    def is_pending(self) -> bool:
        return self.status == ContributionStatus.PENDING

    def is_recurring(self) -> bool:
        return self.schedule.is_recurring

    def is_due(self, now: datetime | None = None) -> bool:
        if not self.is_recurring() or self.schedule.next_due_date is None:
            return False
        return (now or datetime.now()) >= self.schedule.next_due_date

    def total_amount(self) -> Decimal:
        """Contribution plus any matched amount."""
        return self.amount + self.matching.match_amount

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.contribution_id,
            "type": self.contribution_type,
            "amount": self.amount,
            "status": self.status,
            "method": self.method,
            "reference": self.reference,
            "total_amount": self.total_amount(),
            "is_recurring": self.is_recurring(),
            "created_at": self.created_at,
            "confirmed_at": self.timeline.confirmed_at,
        }
