"""Cooperative member generator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from dateutil.relativedelta import relativedelta

from coop_lending.generators.base import BaseGenerator
from coop_lending.models.lending import CooperativeMembership, MembershipStatus


@dataclass
class MemberProfile:
    """A synthetic member and their cooperative membership."""

    user_id: str
    name: str
    email: str
    phone: str
    business_name: str
    membership: CooperativeMembership


class MemberGenerator(BaseGenerator):
    """Generate cooperative members with a spread of tenures."""

    # Tenure buckets in months, weighted toward newer members
    TENURE_BUCKETS = [(0, 5), (6, 23), (24, 60)]
    TENURE_WEIGHTS = [0.45, 0.35, 0.20]

    def generate(self, cooperative_id: str, now: datetime | None = None) -> MemberProfile:
        """Generate a single member of ``cooperative_id``."""
        now = now or datetime.now()
        low, high = self.rng.choices(self.TENURE_BUCKETS, weights=self.TENURE_WEIGHTS, k=1)[0]
        months = self.rng.randint(low, high)
        joined_at = now - relativedelta(months=months, days=self.rng.randint(0, 27))

        user_id = self.fake.uuid4()
        return MemberProfile(
            user_id=user_id,
            name=self.fake.name(),
            email=self.fake.email(),
            phone=self.fake.phone_number(),
            business_name=self.fake.company(),
            membership=CooperativeMembership(
                user_id=user_id,
                cooperative_id=cooperative_id,
                joined_at=joined_at,
                status=MembershipStatus.ACTIVE,
            ),
        )

    def generate_batch(
        self, cooperative_id: str, count: int, now: datetime | None = None
    ) -> Iterator[MemberProfile]:
        for _ in range(count):
            yield self.generate(cooperative_id, now)
