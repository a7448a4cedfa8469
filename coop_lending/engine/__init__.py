"""Lending engine: eligibility, amortization and lifecycles."""

from coop_lending.engine.amortization import (
    TermOption,
    amortized_monthly_payment,
    amortizing_term_options,
    due_date_for_installment,
    flat_installment_schedule,
    flat_interest_totals,
    next_payment_amount,
)
from coop_lending.engine.contributions import ContributionLedger, generate_reference
from coop_lending.engine.eligibility import (
    EligibilityResult,
    MembershipDirectory,
    check_plan_eligibility,
    plan_loan_eligibility,
    validate_loan_application,
)
from coop_lending.engine.loan_lifecycle import LoanLifecycle
from coop_lending.engine.membership_lifecycle import MembershipPlanLifecycle

__all__ = [
    "ContributionLedger",
    "EligibilityResult",
    "LoanLifecycle",
    "MembershipDirectory",
    "MembershipPlanLifecycle",
    "TermOption",
    "amortized_monthly_payment",
    "amortizing_term_options",
    "check_plan_eligibility",
    "due_date_for_installment",
    "flat_installment_schedule",
    "flat_interest_totals",
    "generate_reference",
    "next_payment_amount",
    "plan_loan_eligibility",
    "validate_loan_application",
]
