"""Catalog entry models: loan tiers and contribution tiers."""

from dataclasses import dataclass, field
from decimal import Decimal

from coop_lending.models.lending.enums import ContributionTier, LoanCategory


@dataclass(frozen=True)
class LoanTier:
    """Static bracket of loan terms for one loan category."""

    name: str
    category: LoanCategory
    min_amount: Decimal
    max_amount: Decimal
    min_interest_rate: Decimal  # whole-number percent
    max_interest_rate: Decimal
    min_repayment_months: int
    max_repayment_months: int
    eligibility_months: int  # minimum membership age
    monthly_contribution_options: tuple[Decimal, ...] = ()
    features: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContributionBenefits:
    """Perks unlocked by a contribution tier."""

    discount_percentage: Decimal = Decimal("0")
    priority_support: bool = False
    advanced_analytics: bool = False
    featured_listing: bool = False
    bulk_upload_tools: bool = False
    marketing_support: bool = False
    monthly_business_reviews: bool = False
    exclusive_events: bool = False
    mentorship_programs: bool = False


@dataclass(frozen=True)
class ContributionTierDefinition:
    """Contribution tier with its entry threshold."""

    name: str
    tier: ContributionTier
    min_amount: Decimal
    description: str
    benefits: ContributionBenefits = field(default_factory=ContributionBenefits)
