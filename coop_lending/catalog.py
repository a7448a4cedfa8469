"""Static lending catalog: loan tiers, contribution tiers and plan presets.

The tables are built once at import time and exposed read-only. Lookups
return ``None`` for unknown keys; callers treat that as "not eligible".
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from coop_lending.models.lending import (
    ContributionBenefits,
    ContributionTier,
    ContributionTierDefinition,
    LoanAccess,
    LoanCategory,
    LoanTier,
    MembershipPlanTemplate,
    PlanBenefits,
    PlanCategory,
    PlanEligibility,
    PlanFeature,
    Pricing,
    RepaymentTerms,
    SupportLevel,
)

LOAN_TIERS: Mapping[LoanCategory, LoanTier] = MappingProxyType(
    {
        LoanCategory.EMERGENCY: LoanTier(
            name="Emergency Support Loans",
            category=LoanCategory.EMERGENCY,
            min_amount=Decimal("10000"),
            max_amount=Decimal("500000"),
            min_interest_rate=Decimal("0"),
            max_interest_rate=Decimal("2"),
            min_repayment_months=3,
            max_repayment_months=6,
            eligibility_months=0,  # open to all registered members
            monthly_contribution_options=(Decimal("3000"), Decimal("5000"), Decimal("10000")),
            features=(
                "Quick approval within 48 hours",
                "No Collateral required",
                "Immediate financial aid for urgent business needs",
            ),
        ),
        LoanCategory.GROWTH: LoanTier(
            name="Growth Loans",
            category=LoanCategory.GROWTH,
            min_amount=Decimal("1000000"),
            max_amount=Decimal("5000000"),
            min_interest_rate=Decimal("2"),
            max_interest_rate=Decimal("4"),
            min_repayment_months=6,
            max_repayment_months=24,
            eligibility_months=6,
            monthly_contribution_options=(Decimal("20000"), Decimal("30000"), Decimal("50000")),
            features=(
                "Business mentorship included",
                "Access to training workshops",
                "Quarterly business reviews",
                "Marketplace priority listing",
            ),
        ),
        LoanCategory.LARGE_SCALE: LoanTier(
            name="Large-Scale Investment Loans",
            category=LoanCategory.LARGE_SCALE,
            min_amount=Decimal("5000000"),
            max_amount=Decimal("15000000"),
            min_interest_rate=Decimal("3"),
            max_interest_rate=Decimal("5"),
            min_repayment_months=36,
            max_repayment_months=60,
            eligibility_months=24,
            monthly_contribution_options=(Decimal("100000"), Decimal("150000"), Decimal("250000")),
            features=(
                "Dedicated business adviser",
                "Investment planning support",
                "Market expansion guidance and support",
                "Premium Marketplace support",
            ),
        ),
    }
)

CONTRIBUTION_TIERS: Mapping[ContributionTier, ContributionTierDefinition] = MappingProxyType(
    {
        ContributionTier.BASIC: ContributionTierDefinition(
            name="Basic Tier",
            tier=ContributionTier.BASIC,
            min_amount=Decimal("1000"),
            description="Entry-level membership with basic benefits",
        ),
        ContributionTier.STANDARD: ContributionTierDefinition(
            name="Standard Tier",
            tier=ContributionTier.STANDARD,
            min_amount=Decimal("5000"),
            description="Enhanced membership with priority support and analytics",
            benefits=ContributionBenefits(
                discount_percentage=Decimal("5"),
                priority_support=True,
                advanced_analytics=True,
                featured_listing=True,
                bulk_upload_tools=True,
                exclusive_events=True,
                mentorship_programs=True,
            ),
        ),
        ContributionTier.PREMIUM: ContributionTierDefinition(
            name="Premium Tier",
            tier=ContributionTier.PREMIUM,
            min_amount=Decimal("15000"),
            description="Full-featured membership with complete benefits package",
            benefits=ContributionBenefits(
                discount_percentage=Decimal("10"),
                priority_support=True,
                advanced_analytics=True,
                featured_listing=True,
                bulk_upload_tools=True,
                marketing_support=True,
                monthly_business_reviews=True,
                exclusive_events=True,
                mentorship_programs=True,
            ),
        ),
    }
)


def get_loan_tiers() -> Mapping[LoanCategory, LoanTier]:
    """Return the full loan tier table."""
    return LOAN_TIERS


def get_loan_tier_by_category(category: LoanCategory | str) -> LoanTier | None:
    """Look up a loan tier; unknown categories yield ``None``."""
    try:
        key = LoanCategory(category)
    except ValueError:
        return None
    return LOAN_TIERS.get(key)


def get_contribution_tiers() -> Mapping[ContributionTier, ContributionTierDefinition]:
    return CONTRIBUTION_TIERS


def get_tier_by_amount(amount: Decimal) -> ContributionTier:
    """Highest contribution tier whose threshold ``amount`` reaches."""
    if amount >= CONTRIBUTION_TIERS[ContributionTier.PREMIUM].min_amount:
        return ContributionTier.PREMIUM
    if amount >= CONTRIBUTION_TIERS[ContributionTier.STANDARD].min_amount:
        return ContributionTier.STANDARD
    return ContributionTier.BASIC


def _feature_list(*pairs: tuple[str, str]) -> list[PlanFeature]:
    return [PlanFeature(name=name, description=description) for name, description in pairs]


def build_plan_template(
    category: PlanCategory | str,
    template_id: str,
    cooperative_id: str,
    created_by: str,
    created_at: datetime | None = None,
) -> MembershipPlanTemplate:
    """Build one of the stock basic/premium/enterprise plan templates.

    Parameters
    ----------
    category : PlanCategory | str
        Which preset to build.
    template_id : str
        Identifier for the new template.
    cooperative_id : str
        Owning cooperative.
    created_by : str
        Administrator creating the template.
    created_at : datetime | None
        Creation time (default: now).

    Returns
    -------
    MembershipPlanTemplate
        A fresh, independent template instance.
    """
    category = PlanCategory(category)
    created_at = created_at or datetime.now()

    if category == PlanCategory.BASIC:
        return MembershipPlanTemplate(
            template_id=template_id,
            cooperative_id=cooperative_id,
            name="Basic Community Access",
            description="Basic membership with essential features for small businesses starting their journey",
            category=category,
            pricing=Pricing(monthly_fee=Decimal("29"), setup_fee=Decimal("0"), currency="USD"),
            loan_access=LoanAccess(
                enabled=True,
                min_amount=Decimal("500"),
                max_amount=Decimal("5000"),
                interest_rate=Decimal("3"),
                repayment_terms=RepaymentTerms(min_months=6, max_months=12),
            ),
            eligibility=PlanEligibility(),
            benefits=PlanBenefits(
                support_level=SupportLevel.BASIC,
                financial_advisory=True,
                exclusive_content=True,
            ),
            features=_feature_list(
                ("Up to $5,000 loan limit", "Maximum loan amount available for basic members"),
                ("3% interest rate", "Competitive low interest rate"),
                ("Basic financial support", "Access to financial guidance and resources"),
                ("Email support", "Customer support via email during business hours"),
            ),
            created_by=created_by,
            created_at=created_at,
            is_popular=True,
            display_order=1,
        )

    if category == PlanCategory.PREMIUM:
        return MembershipPlanTemplate(
            template_id=template_id,
            cooperative_id=cooperative_id,
            name="Premium Pro Community Access",
            description="Premium membership with enhanced features and higher loan limits",
            category=category,
            pricing=Pricing(monthly_fee=Decimal("149"), setup_fee=Decimal("25"), currency="USD"),
            loan_access=LoanAccess(
                enabled=True,
                min_amount=Decimal("1000"),
                max_amount=Decimal("50000"),
                interest_rate=Decimal("1.5"),
                repayment_terms=RepaymentTerms(min_months=6, max_months=24),
            ),
            eligibility=PlanEligibility(
                minimum_membership_months=3,
                minimum_contribution=Decimal("1000"),
                requires_collateral=True,
            ),
            benefits=PlanBenefits(
                support_level=SupportLevel.WHITE_GLOVE,
                financial_advisory=True,
                personal_financial_advisor=True,
                business_mentorship=True,
                marketplace_boost=True,
                networking_events=True,
                investment_opportunities=True,
                custom_financial_solutions=True,
                exclusive_content=True,
                priority_support=True,
            ),
            features=_feature_list(
                ("Up to $50,000 loan limit", "Substantial loan amounts at preferential rates"),
                ("1.5% interest rate", "Lowest interest rate for premium members"),
                ("Personal financial advisor", "Dedicated financial advisor for personalized guidance"),
                ("Exclusive networking events", "Access to premium networking and business events"),
            ),
            created_by=created_by,
            created_at=created_at,
            display_order=2,
        )

    return MembershipPlanTemplate(
        template_id=template_id,
        cooperative_id=cooperative_id,
        name="Enterprise Scale",
        description="Enterprise-level membership for established businesses requiring substantial capital",
        category=category,
        pricing=Pricing(monthly_fee=Decimal("299"), setup_fee=Decimal("100"), currency="USD"),
        loan_access=LoanAccess(
            enabled=True,
            min_amount=Decimal("10000"),
            max_amount=Decimal("100000"),
            interest_rate=Decimal("1"),
            repayment_terms=RepaymentTerms(min_months=12, max_months=36),
        ),
        eligibility=PlanEligibility(
            minimum_membership_months=12,
            minimum_contribution=Decimal("5000"),
            requires_guarantor=True,
            requires_collateral=True,
        ),
        benefits=PlanBenefits(
            support_level=SupportLevel.WHITE_GLOVE,
            financial_advisory=True,
            personal_financial_advisor=True,
            business_mentorship=True,
            marketplace_boost=True,
            networking_events=True,
            investment_opportunities=True,
            custom_financial_solutions=True,
            exclusive_content=True,
            priority_support=True,
        ),
        features=_feature_list(
            ("Up to $100,000 loan limit", "Maximum loan amounts for major business investments"),
            ("1% interest rate", "Lowest possible interest rate"),
            ("Dedicated account manager", "Personal account manager for all your needs"),
            ("24/7 white-glove support", "Round-the-clock premium support"),
        ),
        created_by=created_by,
        created_at=created_at,
        display_order=3,
    )
