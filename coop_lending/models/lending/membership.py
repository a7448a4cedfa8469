"""Membership plan templates, subscriptions and cooperative memberships."""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from coop_lending.exceptions import ConfigurationError
from coop_lending.models.lending.enums import (
    BillingPaymentStatus,
    MembershipStatus,
    PaymentMethod,
    PlanCategory,
    PlanPaymentStatus,
    PlanStatus,
    SupportLevel,
)


@dataclass
class Pricing:
    monthly_fee: Decimal
    setup_fee: Decimal = Decimal("0")
    currency: str = "NGN"


@dataclass
class RepaymentTerms:
    """Repayment window offered by a plan, in months."""

    min_months: int = 1
    max_months: int = 12

    def __post_init__(self) -> None:
        if self.min_months < 1:
            raise ConfigurationError("Repayment terms must start at 1 month or more")
        if self.min_months >= self.max_months:
            raise ConfigurationError(
                f"Repayment min_months ({self.min_months}) must be below "
                f"max_months ({self.max_months})"
            )


@dataclass
class LoanAccess:
    """Loan product bundled with a plan."""

    enabled: bool = False
    min_amount: Decimal = Decimal("0")
    max_amount: Decimal = Decimal("0")
    interest_rate: Decimal = Decimal("0")  # annual, whole-number percent
    repayment_terms: RepaymentTerms = field(default_factory=RepaymentTerms)

    def __post_init__(self) -> None:
        if self.enabled and self.min_amount >= self.max_amount:
            raise ConfigurationError(
                f"Loan access min_amount ({self.min_amount}) must be below "
                f"max_amount ({self.max_amount})"
            )


@dataclass
class PlanEligibility:
    minimum_membership_months: int = 0
    minimum_contribution: Decimal = Decimal("0")
    credit_score_required: int = 0
    requires_guarantor: bool = False
    requires_collateral: bool = False


@dataclass
class PlanBenefits:
    support_level: SupportLevel = SupportLevel.BASIC
    financial_advisory: bool = False
    personal_financial_advisor: bool = False
    business_mentorship: bool = False
    marketplace_boost: bool = False
    networking_events: bool = False
    investment_opportunities: bool = False
    custom_financial_solutions: bool = False
    exclusive_content: bool = False
    priority_support: bool = False


@dataclass
class PlanFeature:
    name: str
    description: str
    included: bool = True


@dataclass
class MembershipPlanTemplate:
    """Per-cooperative catalog entry that members subscribe to."""

    template_id: str
    cooperative_id: str
    name: str
    description: str
    category: PlanCategory
    pricing: Pricing
    created_by: str
    created_at: datetime
    loan_access: LoanAccess = field(default_factory=LoanAccess)
    eligibility: PlanEligibility = field(default_factory=PlanEligibility)
    benefits: PlanBenefits = field(default_factory=PlanBenefits)
    features: list[PlanFeature] = field(default_factory=list)
    is_active: bool = True
    is_popular: bool = False
    display_order: int = 0
    updated_at: datetime | None = None

    def summary(self) -> dict[str, Any]:
        """Client-safe projection of the template."""
        terms = self.loan_access.repayment_terms
        return {
            "id": self.template_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "monthly_fee": self.pricing.monthly_fee,
            "currency": self.pricing.currency,
            "loan_access": self.loan_access.enabled,
            "max_loan_amount": self.loan_access.max_amount,
            "interest_rate": self.loan_access.interest_rate,
            "repayment_terms": (
                f"{terms.min_months}-{terms.max_months} months"
                if self.loan_access.enabled
                else "N/A"
            ),
            "is_popular": self.is_popular,
            "features": [f.name for f in self.features if f.included],
        }


@dataclass
class PlanSnapshot:
    """Template terms frozen into a subscription at subscribe time."""

    name: str
    category: PlanCategory
    monthly_fee: Decimal
    currency: str
    loan_access: LoanAccess
    benefits: PlanBenefits
    features: list[PlanFeature] = field(default_factory=list)

    @classmethod
    def from_template(cls, template: MembershipPlanTemplate) -> "PlanSnapshot":
        """Value-copy the template so later template edits never leak in."""
        return cls(
            name=template.name,
            category=template.category,
            monthly_fee=template.pricing.monthly_fee,
            currency=template.pricing.currency,
            loan_access=copy.deepcopy(template.loan_access),
            benefits=copy.deepcopy(template.benefits),
            features=[copy.copy(f) for f in template.features if f.included],
        )


@dataclass
class Billing:
    start_date: datetime
    next_billing_date: datetime
    last_payment_date: datetime | None = None
    total_paid: Decimal = Decimal("0")
    currency: str = "NGN"


@dataclass
class PlanPayment:
    amount: Decimal
    date: datetime
    status: BillingPaymentStatus = BillingPaymentStatus.PENDING
    payment_method: PaymentMethod | None = None
    transaction_id: str | None = None
    reference: str | None = None


@dataclass
class LoanUsage:
    """Cached loan counters for a plan.

    Only the lifecycles call these mutators, so every change to the
    counters goes through one of the three methods below.
    """

    total_loans_applied: int = 0
    total_loans_approved: int = 0
    total_amount_borrowed: Decimal = Decimal("0")
    current_active_loans: int = 0
    last_loan_date: datetime | None = None

    def record_application(self, at: datetime) -> None:
        self.total_loans_applied += 1
        self.last_loan_date = at

    def record_approval(self, amount: Decimal) -> None:
        self.total_loans_approved += 1
        self.total_amount_borrowed += amount
        self.current_active_loans += 1

    def release_active_loan(self) -> None:
        self.current_active_loans = max(0, self.current_active_loans - 1)


@dataclass
class AutoRenewal:
    enabled: bool = True
    payment_method_id: str | None = None


@dataclass
class Cancellation:
    cancelled_at: datetime
    cancelled_by: str
    reason: str = ""
    refund_amount: Decimal = Decimal("0")


@dataclass
class MembershipPlan:
    """Subscription of one user to one cooperative's plan."""

    plan_id: str
    user_id: str
    cooperative_id: str
    template_id: str
    plan_details: PlanSnapshot
    billing: Billing
    created_at: datetime
    status: PlanStatus = PlanStatus.ACTIVE
    payment_status: PlanPaymentStatus = PlanPaymentStatus.CURRENT
    payments: list[PlanPayment] = field(default_factory=list)
    loan_usage: LoanUsage = field(default_factory=LoanUsage)
    auto_renewal: AutoRenewal = field(default_factory=AutoRenewal)
    cancellation: Cancellation | None = None
    updated_at: datetime | None = None
    version: int = 0

    def is_active(self) -> bool:
        """Active and paid up."""
        return self.status == PlanStatus.ACTIVE and self.payment_status == PlanPaymentStatus.CURRENT

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.payment_status == PlanPaymentStatus.OVERDUE:
            return True
        return (now or datetime.now()) > self.billing.next_billing_date

    def summary(self) -> dict[str, Any]:
        """Client-safe projection of the subscription."""
        return {
            "id": self.plan_id,
            "plan_name": self.plan_details.name,
            "category": self.plan_details.category,
            "monthly_fee": self.plan_details.monthly_fee,
            "loan_access": self.plan_details.loan_access,
            "benefits": self.plan_details.benefits,
            "status": self.status,
            "payment_status": self.payment_status,
            "next_billing_date": self.billing.next_billing_date,
            "total_paid": self.billing.total_paid,
            "loan_usage": self.loan_usage,
        }


@dataclass
class CooperativeMembership:
    """A user's membership of a cooperative; source of tenure."""

    user_id: str
    cooperative_id: str
    joined_at: datetime
    status: MembershipStatus = MembershipStatus.ACTIVE
