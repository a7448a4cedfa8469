"""Contribution generator."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from coop_lending.generators.base import BaseGenerator
from coop_lending.models.lending import (
    ContributionFrequency,
    ContributionMethod,
    ContributionType,
)


@dataclass
class ContributionDraft:
    """Inputs for ``ContributionLedger.record``."""

    amount: Decimal
    contribution_type: ContributionType
    method: ContributionMethod
    frequency: ContributionFrequency
    description: str
    match_rate: Decimal = Decimal("0")


class ContributionGenerator(BaseGenerator):
    """Generate member contributions around the tier thresholds."""

    AMOUNTS = [Decimal("1000"), Decimal("3000"), Decimal("5000"), Decimal("10000"), Decimal("20000")]
    AMOUNT_WEIGHTS = [0.25, 0.30, 0.20, 0.15, 0.10]

    TYPES = [ContributionType.SAVINGS, ContributionType.EMERGENCY_FUND, ContributionType.INVESTMENT]
    TYPE_WEIGHTS = [0.70, 0.20, 0.10]

    METHODS = [ContributionMethod.BANK_TRANSFER, ContributionMethod.MOBILE_MONEY, ContributionMethod.WALLET]

    def generate(self, recurring_rate: float = 0.4) -> ContributionDraft:
        frequency = ContributionFrequency.ONE_TIME
        if self.rng.random() < recurring_rate:
            frequency = self.rng.choice([ContributionFrequency.MONTHLY, ContributionFrequency.WEEKLY])

        return ContributionDraft(
            amount=self.rng.choices(self.AMOUNTS, weights=self.AMOUNT_WEIGHTS, k=1)[0],
            contribution_type=self.rng.choices(self.TYPES, weights=self.TYPE_WEIGHTS, k=1)[0],
            method=self.rng.choice(self.METHODS),
            frequency=frequency,
            description=self.fake.sentence(nb_words=5),
            match_rate=Decimal("10") if self.rng.random() < 0.1 else Decimal("0"),
        )
