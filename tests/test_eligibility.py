"""Tests for loan tier and membership plan eligibility rules."""

from datetime import datetime
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from coop_lending.engine.eligibility import (
    EligibilityResult,
    check_plan_eligibility,
    plan_loan_eligibility,
    validate_loan_application,
)
from coop_lending.exceptions import (
    ActiveLoanExistsError,
    AmountOutOfRangeError,
    ErrorKind,
    InsufficientTenureError,
    InvalidCategoryError,
    PlanNotActiveError,
)
from coop_lending.models.lending import (
    Billing,
    LoanAccess,
    LoanCategory,
    MembershipPlan,
    MembershipPlanTemplate,
    PlanPaymentStatus,
    PlanSnapshot,
    PlanStatus,
)


def make_plan(template: MembershipPlanTemplate, now: datetime) -> MembershipPlan:
    return MembershipPlan(
        plan_id="plan-001",
        user_id="user-001",
        cooperative_id=template.cooperative_id,
        template_id=template.template_id,
        plan_details=PlanSnapshot.from_template(template),
        billing=Billing(start_date=now, next_billing_date=now + relativedelta(months=1)),
        created_at=now,
    )


class TestValidateLoanApplication:
    """Tests for tier checks on a loan request."""

    def test_valid_emergency_request(self) -> None:
        """Test that a new member can ask for an emergency loan."""
        tier = validate_loan_application(LoanCategory.EMERGENCY, Decimal("50000"), 0)

        assert tier.category == LoanCategory.EMERGENCY
        assert tier.name == "Emergency Support Loans"

    def test_accepts_category_string(self) -> None:
        """Test that plain category strings resolve to their tier."""
        tier = validate_loan_application("large-scale", Decimal("5000000"), 24)

        assert tier.category == LoanCategory.LARGE_SCALE

    def test_unknown_category(self) -> None:
        """Test that an unknown category fails closed."""
        with pytest.raises(InvalidCategoryError) as exc_info:
            validate_loan_application("unsecured", Decimal("50000"), 12)

        assert exc_info.value.kind == ErrorKind.INVALID_CATEGORY
        assert "unsecured" in exc_info.value.reason

    def test_amount_below_tier(self) -> None:
        """Test that the message names both tier bounds."""
        with pytest.raises(AmountOutOfRangeError) as exc_info:
            validate_loan_application(LoanCategory.GROWTH, Decimal("500000"), 12)

        assert exc_info.value.reason == (
            "Loan amount must be between NGN 1,000,000 and NGN 5,000,000"
        )

    def test_amount_above_tier(self) -> None:
        with pytest.raises(AmountOutOfRangeError):
            validate_loan_application(LoanCategory.EMERGENCY, Decimal("500001"), 0)

    @pytest.mark.parametrize("amount", [Decimal("10000"), Decimal("500000")])
    def test_bounds_are_inclusive(self, amount: Decimal) -> None:
        assert validate_loan_application(LoanCategory.EMERGENCY, amount, 0)

    def test_insufficient_tenure(self) -> None:
        """Test that growth loans need six months of membership."""
        with pytest.raises(InsufficientTenureError) as exc_info:
            validate_loan_application(LoanCategory.GROWTH, Decimal("2000000"), 3)

        assert exc_info.value.required_months == 6
        assert exc_info.value.reason == "Requires 6 months of cooperative membership"

    def test_amount_checked_before_tenure(self) -> None:
        """Test that the first failing rule is the one reported."""
        with pytest.raises(AmountOutOfRangeError):
            validate_loan_application(LoanCategory.LARGE_SCALE, Decimal("100"), 0)

    def test_custom_currency_in_message(self) -> None:
        with pytest.raises(AmountOutOfRangeError) as exc_info:
            validate_loan_application(LoanCategory.EMERGENCY, Decimal("1"), 0, currency="KES")

        assert "KES 10,000" in exc_info.value.reason


class TestPlanLoanEligibility:
    """Tests for the plan loan guard."""

    def test_eligible(self, premium_template, now) -> None:
        result = plan_loan_eligibility(make_plan(premium_template, now), Decimal("10000"))

        assert result.eligible is True
        assert result.reason is None
        assert result.kind is None

    def test_amount_over_plan_limit(self, premium_template, now) -> None:
        result = plan_loan_eligibility(make_plan(premium_template, now), Decimal("60000"))

        assert result.eligible is False
        assert result.kind == ErrorKind.AMOUNT_OUT_OF_RANGE
        assert result.reason == "Loan amount exceeds plan limit of USD 50,000"

    def test_limit_is_inclusive(self, premium_template, now) -> None:
        result = plan_loan_eligibility(make_plan(premium_template, now), Decimal("50000"))

        assert result.eligible is True

    def test_active_loan_reported_regardless_of_amount(self, premium_template, now) -> None:
        """Test that a held loan slot is reported even for over-limit amounts."""
        plan = make_plan(premium_template, now)
        plan.loan_usage.current_active_loans = 1

        for amount in (Decimal("10000"), Decimal("60000")):
            result = plan_loan_eligibility(plan, amount)
            assert result.kind == ErrorKind.ACTIVE_LOAN_EXISTS
            assert result.reason == "You already have an active loan"

    def test_loan_access_disabled(self, premium_template, now) -> None:
        plan = make_plan(premium_template, now)
        plan.plan_details.loan_access = LoanAccess(enabled=False)

        result = plan_loan_eligibility(plan, Decimal("10000"))

        assert result.kind == ErrorKind.LOAN_ACCESS_DISABLED
        assert result.reason == "Loan access is not included in your membership plan"

    @pytest.mark.parametrize("status", [PlanStatus.SUSPENDED, PlanStatus.CANCELLED, PlanStatus.EXPIRED])
    def test_inactive_plan(self, premium_template, now, status: PlanStatus) -> None:
        plan = make_plan(premium_template, now)
        plan.status = status

        result = plan_loan_eligibility(plan, Decimal("10000"))

        assert result.kind == ErrorKind.PLAN_NOT_ACTIVE
        assert result.reason == "Membership plan is not active"

    def test_overdue_plan_is_not_active(self, premium_template, now) -> None:
        plan = make_plan(premium_template, now)
        plan.payment_status = PlanPaymentStatus.OVERDUE

        result = plan_loan_eligibility(plan, Decimal("10000"))

        assert result.kind == ErrorKind.PLAN_NOT_ACTIVE

    def test_raise_for_status(self, premium_template, now) -> None:
        plan = make_plan(premium_template, now)
        plan.loan_usage.current_active_loans = 1

        with pytest.raises(ActiveLoanExistsError, match="You already have an active loan"):
            plan_loan_eligibility(plan, Decimal("10000")).raise_for_status()

    def test_raise_for_status_maps_kind(self) -> None:
        result = EligibilityResult.fail(ErrorKind.PLAN_NOT_ACTIVE, "Membership plan is not active")

        with pytest.raises(PlanNotActiveError):
            result.raise_for_status()

    def test_ok_does_not_raise(self) -> None:
        EligibilityResult.ok().raise_for_status()

    def test_failure_is_logged(self, premium_template, now, caplog) -> None:
        plan = make_plan(premium_template, now)
        plan.status = PlanStatus.SUSPENDED

        with caplog.at_level("WARNING", logger="coop_lending.engine.eligibility"):
            plan_loan_eligibility(plan, Decimal("10000"))

        assert "plan-001" in caplog.text


class TestCheckPlanEligibility:
    """Tests for plan subscription requirements."""

    def test_basic_plan_open_to_all(self, basic_template) -> None:
        assert check_plan_eligibility(basic_template).eligible is True

    def test_insufficient_tenure(self, premium_template) -> None:
        result = check_plan_eligibility(premium_template, membership_months=2)

        assert result.kind == ErrorKind.INSUFFICIENT_TENURE
        assert result.reason == "Requires 3 months of membership"

    def test_insufficient_contribution(self, premium_template) -> None:
        result = check_plan_eligibility(
            premium_template, membership_months=3, total_contributions=Decimal("999")
        )

        assert result.kind == ErrorKind.INSUFFICIENT_CONTRIBUTION
        assert result.reason == "Requires minimum contribution of USD 1,000"

    def test_requirements_met(self, premium_template) -> None:
        result = check_plan_eligibility(
            premium_template, membership_months=3, total_contributions=Decimal("1000")
        )

        assert result.eligible is True
