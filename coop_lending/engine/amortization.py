"""Interest, installment and due-date calculations.

Two interest policies live side by side and are kept apart on purpose:

- **Flat interest** (loans): ``principal * rate * term / 100`` over the
  whole term, with the rate as a whole-number percent per term unit.
- **Amortizing** (membership plan loan menus): equal monthly installments
  from the annuity formula on an annual percentage rate.

A third, simpler routine splits a loan's flat total into equal
installments for the repayment schedule.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from coop_lending.exceptions import AmountOutOfRangeError, LoanAccessDisabledError
from coop_lending.models.lending import Loan, ScheduledInstallment

if TYPE_CHECKING:
    from coop_lending.models.lending import MembershipPlanTemplate

HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")
CENT = Decimal("0.01")
UNIT = Decimal("1")

# Calendar step per repayment plan / contribution frequency value
_PERIODS: dict[str, relativedelta] = {
    "daily": relativedelta(days=1),
    "weekly": relativedelta(days=7),
    "biweekly": relativedelta(days=14),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "annually": relativedelta(years=1),
}


@dataclass(frozen=True)
class TermOption:
    """One entry of an amortizing loan-terms menu (whole currency units)."""

    months: int
    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal


def round_currency(value: Decimal) -> Decimal:
    """Round half-up to the nearest whole currency unit."""
    return value.quantize(UNIT, rounding=ROUND_HALF_UP)


def format_amount(currency: str, amount: Decimal) -> str:
    """Render ``NGN 10,000`` style amounts for error messages."""
    if amount == amount.to_integral_value():
        return f"{currency} {int(amount):,}"
    return f"{currency} {amount:,}"


# ---------------------------------------------------------------------------
# Flat-interest policy
# ---------------------------------------------------------------------------


def flat_interest_totals(
    principal: Decimal, interest_rate: Decimal, term: int
) -> tuple[Decimal, Decimal]:
    """Return ``(total_interest, total_amount)`` under the flat policy.

    The rate is multiplied directly by the term, with no annualisation.
    Pure: the same inputs always give the same totals.
    """
    total_interest = principal * interest_rate * Decimal(term) / HUNDRED
    return total_interest, principal + total_interest


def refresh_loan_totals(loan: Loan) -> Loan:
    """Recompute the derived money fields of ``loan`` in place."""
    loan.total_interest, loan.total_amount = flat_interest_totals(
        loan.amount, loan.interest_rate, loan.term
    )
    loan.remaining_balance = max(Decimal("0"), loan.total_amount - loan.amount_paid)
    return loan


def next_payment_amount(loan: Loan) -> Decimal:
    """Suggested next repayment for an active loan, rounded up."""
    if not loan.is_active() or loan.amount <= 0:
        return Decimal("0")

    remaining_payments = (loan.remaining_balance / loan.amount).to_integral_value(
        rounding=ROUND_CEILING
    )
    if remaining_payments <= 0:
        return Decimal("0")
    return (loan.remaining_balance / remaining_payments).to_integral_value(
        rounding=ROUND_CEILING
    )


# ---------------------------------------------------------------------------
# Amortizing policy
# ---------------------------------------------------------------------------


def amortized_monthly_payment(
    principal: Decimal, annual_rate: Decimal, months: int
) -> Decimal:
    """Equal monthly installment for ``principal`` over ``months``.

    A zero rate degenerates to ``principal / months`` instead of dividing
    by zero.
    """
    if months < 1:
        raise ValueError(f"months must be positive, got {months}")

    monthly_rate = annual_rate / HUNDRED / MONTHS_PER_YEAR
    if monthly_rate == 0:
        return principal / Decimal(months)

    growth = (1 + monthly_rate) ** months
    return principal * (monthly_rate * growth) / (growth - 1)


def amortizing_term_options(
    template: MembershipPlanTemplate,
    amount: Decimal,
    step_months: int = 6,
) -> list[TermOption]:
    """Build the menu of repayment options a plan offers for ``amount``.

    Options step from the plan's minimum to maximum term (inclusive) in
    ``step_months`` increments.

    Raises
    ------
    LoanAccessDisabledError
        If the plan does not include loan access.
    AmountOutOfRangeError
        If ``amount`` falls outside the plan's loan bounds.
    """
    access = template.loan_access
    currency = template.pricing.currency

    if not access.enabled:
        raise LoanAccessDisabledError("Loan access is not included in this membership plan")

    if amount < access.min_amount or amount > access.max_amount:
        raise AmountOutOfRangeError(
            f"Loan amount must be between {format_amount(currency, access.min_amount)} "
            f"and {format_amount(currency, access.max_amount)}",
            minimum=access.min_amount,
            maximum=access.max_amount,
        )

    options: list[TermOption] = []
    for months in range(
        access.repayment_terms.min_months, access.repayment_terms.max_months + 1, step_months
    ):
        monthly_payment = amortized_monthly_payment(amount, access.interest_rate, months)
        total_payment = monthly_payment * months
        options.append(
            TermOption(
                months=months,
                monthly_payment=round_currency(monthly_payment),
                total_payment=round_currency(total_payment),
                total_interest=round_currency(total_payment - amount),
            )
        )
    return options


# ---------------------------------------------------------------------------
# Flat installment schedule and due dates
# ---------------------------------------------------------------------------


def shift_by_frequency(moment: datetime, frequency: str, count: int = 1) -> datetime:
    """Move ``moment`` forward by ``count`` periods of ``frequency``.

    Month-based steps clamp to the last day of shorter months. Unknown
    frequencies (e.g. ``custom``) leave ``moment`` unchanged.
    """
    step = _PERIODS.get(getattr(frequency, "value", frequency))
    if step is None:
        return moment
    return moment + step * count


def due_date_for_installment(
    disbursement_date: datetime | None,
    repayment_plan: str,
    installment_index: int,
) -> datetime | None:
    """Due date of installment ``installment_index`` (1-based)."""
    if disbursement_date is None:
        return None
    return shift_by_frequency(disbursement_date, repayment_plan, installment_index)


def flat_installment_schedule(
    total_amount: Decimal,
    term: int,
    disbursement_date: datetime | None,
    repayment_plan: str,
) -> list[ScheduledInstallment]:
    """Split ``total_amount`` into ``term`` equal installments.

    Installments are rounded to cents; the last one absorbs the rounding
    remainder so the schedule always ends at a zero balance.
    """
    if not total_amount or term < 1:
        return []

    payment = (total_amount / Decimal(term)).quantize(CENT, rounding=ROUND_HALF_UP)
    remaining = total_amount
    schedule: list[ScheduledInstallment] = []

    for i in range(1, term + 1):
        amount = remaining if i == term else min(payment, remaining)
        remaining -= amount
        schedule.append(
            ScheduledInstallment(
                installment=i,
                amount=amount,
                due_date=due_date_for_installment(disbursement_date, repayment_plan, i),
                remaining_balance=remaining,
            )
        )
    return schedule


def loan_payment_schedule(loan: Loan) -> list[ScheduledInstallment]:
    """Flat repayment schedule for a loan's current totals."""
    return flat_installment_schedule(
        loan.total_amount, loan.term, loan.disbursement_date, loan.repayment_plan
    )


def next_unpaid_installment(loan: Loan) -> ScheduledInstallment | None:
    """First schedule row not fully covered by ``loan.amount_paid``."""
    for row in loan_payment_schedule(loan):
        if loan.amount_paid < loan.total_amount - row.remaining_balance:
            return row
    return None
