"""Tests for the static lending catalog."""

import dataclasses
from decimal import Decimal

import pytest

from coop_lending.catalog import (
    CONTRIBUTION_TIERS,
    LOAN_TIERS,
    build_plan_template,
    get_contribution_tiers,
    get_loan_tier_by_category,
    get_loan_tiers,
    get_tier_by_amount,
)
from coop_lending.models.lending import (
    ContributionTier,
    LoanCategory,
    PlanCategory,
    SupportLevel,
)


class TestLoanTiers:
    """Tests for the loan tier table."""

    def test_three_tiers(self) -> None:
        assert set(get_loan_tiers()) == {
            LoanCategory.EMERGENCY,
            LoanCategory.GROWTH,
            LoanCategory.LARGE_SCALE,
        }

    @pytest.mark.parametrize(
        ("category", "minimum", "maximum", "months"),
        [
            (LoanCategory.EMERGENCY, "10000", "500000", 0),
            (LoanCategory.GROWTH, "1000000", "5000000", 6),
            (LoanCategory.LARGE_SCALE, "5000000", "15000000", 24),
        ],
    )
    def test_tier_bounds(self, category, minimum, maximum, months) -> None:
        tier = get_loan_tier_by_category(category)

        assert tier.min_amount == Decimal(minimum)
        assert tier.max_amount == Decimal(maximum)
        assert tier.eligibility_months == months

    def test_lookup_by_string(self) -> None:
        assert get_loan_tier_by_category("growth").name == "Growth Loans"

    def test_unknown_category(self) -> None:
        assert get_loan_tier_by_category("microloan") is None

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            LOAN_TIERS[LoanCategory.EMERGENCY] = None  # type: ignore[index]

    def test_tiers_are_frozen(self) -> None:
        tier = get_loan_tier_by_category(LoanCategory.EMERGENCY)

        with pytest.raises(dataclasses.FrozenInstanceError):
            tier.max_amount = Decimal("1")  # type: ignore[misc]


class TestContributionTiers:
    """Tests for contribution tier thresholds."""

    def test_table(self) -> None:
        assert get_contribution_tiers() is CONTRIBUTION_TIERS
        assert CONTRIBUTION_TIERS[ContributionTier.STANDARD].min_amount == Decimal("5000")

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            ("0", ContributionTier.BASIC),
            ("4999.99", ContributionTier.BASIC),
            ("5000", ContributionTier.STANDARD),
            ("14999", ContributionTier.STANDARD),
            ("15000", ContributionTier.PREMIUM),
            ("1000000", ContributionTier.PREMIUM),
        ],
    )
    def test_tier_by_amount(self, amount: str, expected: ContributionTier) -> None:
        assert get_tier_by_amount(Decimal(amount)) == expected

    def test_premium_benefits(self) -> None:
        benefits = CONTRIBUTION_TIERS[ContributionTier.PREMIUM].benefits

        assert benefits.discount_percentage == Decimal("10")
        assert benefits.marketing_support is True


class TestPlanTemplatePresets:
    """Tests for the stock plan templates."""

    def test_basic(self, now) -> None:
        template = build_plan_template(PlanCategory.BASIC, "t-1", "coop-1", "admin", created_at=now)

        assert template.pricing.monthly_fee == Decimal("29")
        assert template.pricing.currency == "USD"
        assert template.loan_access.max_amount == Decimal("5000")
        assert template.eligibility.minimum_membership_months == 0
        assert template.is_popular is True
        assert template.created_at == now

    def test_premium(self) -> None:
        template = build_plan_template("premium", "t-2", "coop-1", "admin")

        assert template.category == PlanCategory.PREMIUM
        assert template.loan_access.interest_rate == Decimal("1.5")
        assert template.benefits.support_level == SupportLevel.WHITE_GLOVE
        assert template.eligibility.requires_collateral is True

    def test_enterprise(self) -> None:
        template = build_plan_template(PlanCategory.ENTERPRISE, "t-3", "coop-1", "admin")

        assert template.loan_access.repayment_terms.min_months == 12
        assert template.eligibility.requires_guarantor is True
        assert template.display_order == 3

    def test_each_call_builds_a_fresh_template(self) -> None:
        first = build_plan_template(PlanCategory.BASIC, "t-1", "coop-1", "admin")
        second = build_plan_template(PlanCategory.BASIC, "t-1", "coop-1", "admin")

        first.loan_access.max_amount = Decimal("1")
        first.features.clear()

        assert second.loan_access.max_amount == Decimal("5000")
        assert len(second.features) == 4

    def test_unknown_category(self) -> None:
        with pytest.raises(ValueError):
            build_plan_template("platinum", "t-4", "coop-1", "admin")

    def test_summary(self) -> None:
        summary = build_plan_template(PlanCategory.BASIC, "t-1", "coop-1", "admin").summary()

        assert summary["id"] == "t-1"
        assert summary["repayment_terms"] == "6-12 months"
        assert summary["features"][0] == "Up to $5,000 loan limit"
