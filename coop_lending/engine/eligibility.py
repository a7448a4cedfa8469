"""Eligibility rules for loan tiers and membership plans."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from coop_lending.catalog import get_loan_tier_by_category
from coop_lending.engine.amortization import format_amount
from coop_lending.exceptions import (
    ELIGIBILITY_ERRORS,
    AmountOutOfRangeError,
    ErrorKind,
    InsufficientTenureError,
    InvalidCategoryError,
)
from coop_lending.models.lending import (
    LoanCategory,
    LoanTier,
    MembershipPlan,
    MembershipPlanTemplate,
)

logger = logging.getLogger(__name__)


class MembershipDirectory(Protocol):
    """Source of a member's tenure and contribution history."""

    def membership_months(
        self, user_id: str, cooperative_id: str, now: datetime | None = None
    ) -> int: ...

    def total_contributions(self, user_id: str, cooperative_id: str) -> Decimal: ...


@dataclass(frozen=True)
class EligibilityResult:
    """Fail-closed outcome of an eligibility check."""

    eligible: bool
    reason: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls) -> "EligibilityResult":
        return cls(eligible=True)

    @classmethod
    def fail(cls, kind: ErrorKind, reason: str) -> "EligibilityResult":
        return cls(eligible=False, reason=reason, kind=kind)

    def raise_for_status(self) -> None:
        """Raise the matching ``EligibilityError`` if not eligible."""
        if self.eligible:
            return
        raise ELIGIBILITY_ERRORS[self.kind](self.reason)


def validate_loan_application(
    category: LoanCategory | str,
    amount: Decimal,
    membership_months: int,
    currency: str = "NGN",
) -> LoanTier:
    """Check a loan request against its tier.

    Checks run in order and stop at the first failure: the category must
    exist, the amount must lie within the tier bounds (inclusive), and the
    member must have been in the cooperative long enough.

    Parameters
    ----------
    category : LoanCategory | str
        Requested loan category.
    amount : Decimal
        Requested principal.
    membership_months : int
        Whole months the member has belonged to the cooperative.
    currency : str
        Currency code used in error messages.

    Returns
    -------
    LoanTier
        The tier the request was validated against.

    Raises
    ------
    InvalidCategoryError, AmountOutOfRangeError, InsufficientTenureError
    """
    tier = get_loan_tier_by_category(category)
    if tier is None:
        raise InvalidCategoryError(f"Invalid loan category: {getattr(category, 'value', category)!r}")

    if amount < tier.min_amount or amount > tier.max_amount:
        raise AmountOutOfRangeError(
            f"Loan amount must be between {format_amount(currency, tier.min_amount)} "
            f"and {format_amount(currency, tier.max_amount)}",
            minimum=tier.min_amount,
            maximum=tier.max_amount,
        )

    if membership_months < tier.eligibility_months:
        raise InsufficientTenureError(
            f"Requires {tier.eligibility_months} months of cooperative membership",
            required_months=tier.eligibility_months,
        )

    return tier


def plan_loan_eligibility(plan: MembershipPlan, amount: Decimal) -> EligibilityResult:
    """Fail-closed guard for taking a loan through a membership plan.

    Has no side effects; the loan itself is created by the loan lifecycle.
    """
    access = plan.plan_details.loan_access

    if not plan.is_active():
        result = EligibilityResult.fail(ErrorKind.PLAN_NOT_ACTIVE, "Membership plan is not active")
    elif not access.enabled:
        result = EligibilityResult.fail(
            ErrorKind.LOAN_ACCESS_DISABLED,
            "Loan access is not included in your membership plan",
        )
    elif plan.loan_usage.current_active_loans > 0:
        # One concurrent loan per plan, whatever the amount asked for
        result = EligibilityResult.fail(ErrorKind.ACTIVE_LOAN_EXISTS, "You already have an active loan")
    elif amount > access.max_amount:
        result = EligibilityResult.fail(
            ErrorKind.AMOUNT_OUT_OF_RANGE,
            "Loan amount exceeds plan limit of "
            f"{format_amount(plan.plan_details.currency, access.max_amount)}",
        )
    else:
        return EligibilityResult.ok()

    logger.warning("Plan %s cannot take a loan: %s", plan.plan_id, result.reason)
    return result


def check_plan_eligibility(
    template: MembershipPlanTemplate,
    membership_months: int = 0,
    total_contributions: Decimal = Decimal("0"),
) -> EligibilityResult:
    """Check whether a member qualifies for a membership plan."""
    rules = template.eligibility

    if membership_months < rules.minimum_membership_months:
        result = EligibilityResult.fail(
            ErrorKind.INSUFFICIENT_TENURE,
            f"Requires {rules.minimum_membership_months} months of membership",
        )
    elif total_contributions < rules.minimum_contribution:
        result = EligibilityResult.fail(
            ErrorKind.INSUFFICIENT_CONTRIBUTION,
            "Requires minimum contribution of "
            f"{format_amount(template.pricing.currency, rules.minimum_contribution)}",
        )
    else:
        return EligibilityResult.ok()

    logger.warning("Plan %s eligibility failed: %s", template.template_id, result.reason)
    return result
