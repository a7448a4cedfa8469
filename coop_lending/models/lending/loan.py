"""Loan models for cooperative lending."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from coop_lending.models.lending.enums import (
    OPEN_LOAN_STATUSES,
    TERMINAL_LOAN_STATUSES,
    CollateralType,
    LoanCategory,
    LoanPaymentType,
    LoanStatus,
    LoanType,
    RepaymentPlan,
    TermUnit,
)
from coop_lending.models.lending.tier import LoanTier


@dataclass
class CollateralDocument:
    document_type: str
    url: str
    uploaded_at: datetime | None = None


@dataclass
class Collateral:
    """Asset pledged against a loan."""

    collateral_type: CollateralType
    description: str = ""
    value: Decimal = Decimal("0")
    documents: list[CollateralDocument] = field(default_factory=list)


@dataclass
class Guarantor:
    """Person vouching for the borrower."""

    name: str
    user_id: str | None = None
    relationship: str = ""
    phone: str | None = None
    email: str | None = None
    income: Decimal | None = None
    approved: bool = False
    approved_at: datetime | None = None


@dataclass(frozen=True)
class LoanApproval:
    """Immutable record of an approval or rejection decision.

    ``approved_amount`` is ``None`` for rejections; the reason then lives
    in ``notes``.
    """

    approved_by: str
    approved_at: datetime
    approved_amount: Decimal | None = None
    approved_term: int | None = None
    approved_interest_rate: Decimal | None = None
    conditions: tuple[str, ...] = ()
    notes: str = ""

    @property
    def is_rejection(self) -> bool:
        return self.approved_amount is None


@dataclass
class LoanPayment:
    """A single repayment applied to a loan."""

    amount: Decimal
    date: datetime
    payment_type: LoanPaymentType = LoanPaymentType.PRINCIPAL
    reference: str | None = None
    payment_method: str | None = None
    transaction_id: str | None = None
    notes: str = ""


@dataclass
class ScheduledInstallment:
    """One row of a flat repayment schedule."""

    installment: int  # 1, 2, 3, ...
    amount: Decimal
    due_date: datetime | None
    remaining_balance: Decimal


@dataclass
class LoanRequest:
    """Borrower-supplied fields for a new loan request."""

    cooperative_id: str
    category: LoanCategory
    loan_type: LoanType
    amount: Decimal
    interest_rate: Decimal  # whole-number percent per term unit
    term: int
    term_unit: TermUnit
    repayment_plan: RepaymentPlan
    membership_plan_id: str | None = None
    collateral: Collateral | None = None
    guarantors: list[Guarantor] = field(default_factory=list)
    image_url: str = ""
    notes: str = ""


@dataclass
class ApprovalDecision:
    """Administrator-supplied terms for approving a loan."""

    approved_amount: Decimal
    approved_term: int
    approved_interest_rate: Decimal
    conditions: list[str] = field(default_factory=list)
    notes: str = ""


@dataclass
class Loan:
    """Loan contract entity.

    ``total_interest``, ``total_amount`` and ``remaining_balance`` are
    derived from ``amount``, ``interest_rate``, ``term`` and
    ``amount_paid``; they are recomputed from scratch on every write.
    """

    loan_id: str
    user_id: str
    cooperative_id: str
    loan_type: LoanType
    category: LoanCategory
    amount: Decimal
    interest_rate: Decimal
    term: int
    term_unit: TermUnit
    repayment_plan: RepaymentPlan
    created_at: datetime
    status: LoanStatus = LoanStatus.PENDING
    loan_tier: LoanTier | None = None
    membership_plan_id: str | None = None
    disbursement_date: datetime | None = None
    due_date: datetime | None = None
    next_payment_date: datetime | None = None
    total_interest: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")
    remaining_balance: Decimal = Decimal("0")
    payments: list[LoanPayment] = field(default_factory=list)
    collateral: Collateral | None = None
    guarantors: list[Guarantor] = field(default_factory=list)
    approval: LoanApproval | None = None
    image_url: str = ""
    notes: str = ""
    updated_at: datetime | None = None
    version: int = 0

    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    def is_open(self) -> bool:
        """Pending, approved or active loans block a new request."""
        return self.status in OPEN_LOAN_STATUSES

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_LOAN_STATUSES

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Active loan whose final due date has passed."""
        if self.due_date is None or not self.is_active():
            return False
        return (now or datetime.now()) > self.due_date

    def can_be_disbursed(self) -> bool:
        return self.status == LoanStatus.APPROVED and self.disbursement_date is None

    def summary(self) -> dict[str, Any]:
        """Client-safe projection of the loan."""
        return {
            "id": self.loan_id,
            "type": self.loan_type,
            "category": self.category,
            "amount": self.amount,
            "status": self.status,
            "interest_rate": self.interest_rate,
            "term": self.term,
            "term_unit": self.term_unit,
            "total_amount": self.total_amount,
            "remaining_balance": self.remaining_balance,
            "due_date": self.due_date,
            "next_payment_date": self.next_payment_date,
        }
