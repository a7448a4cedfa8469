"""Cooperative lending domain models."""

from coop_lending.models.lending.contribution import (
    Contribution,
    ContributionMatching,
    ContributionMetadata,
    ContributionSchedule,
    ContributionTimeline,
)
from coop_lending.models.lending.enums import (
    OPEN_LOAN_STATUSES,
    TERMINAL_LOAN_STATUSES,
    BillingPaymentStatus,
    CollateralType,
    ContributionCategory,
    ContributionFrequency,
    ContributionMethod,
    ContributionStatus,
    ContributionTier,
    ContributionType,
    LoanCategory,
    LoanPaymentType,
    LoanStatus,
    LoanType,
    MembershipStatus,
    PaymentMethod,
    PlanCategory,
    PlanPaymentStatus,
    PlanStatus,
    RepaymentPlan,
    SupportLevel,
    TermUnit,
)
from coop_lending.models.lending.loan import (
    ApprovalDecision,
    Collateral,
    CollateralDocument,
    Guarantor,
    Loan,
    LoanApproval,
    LoanPayment,
    LoanRequest,
    ScheduledInstallment,
)
from coop_lending.models.lending.membership import (
    AutoRenewal,
    Billing,
    Cancellation,
    CooperativeMembership,
    LoanAccess,
    LoanUsage,
    MembershipPlan,
    MembershipPlanTemplate,
    PlanBenefits,
    PlanEligibility,
    PlanFeature,
    PlanPayment,
    PlanSnapshot,
    Pricing,
    RepaymentTerms,
)
from coop_lending.models.lending.tier import (
    ContributionBenefits,
    ContributionTierDefinition,
    LoanTier,
)

__all__ = [
    "OPEN_LOAN_STATUSES",
    "TERMINAL_LOAN_STATUSES",
    "ApprovalDecision",
    "AutoRenewal",
    "Billing",
    "BillingPaymentStatus",
    "Cancellation",
    "Collateral",
    "CollateralDocument",
    "CollateralType",
    "Contribution",
    "ContributionBenefits",
    "ContributionCategory",
    "ContributionFrequency",
    "ContributionMatching",
    "ContributionMetadata",
    "ContributionMethod",
    "ContributionSchedule",
    "ContributionStatus",
    "ContributionTier",
    "ContributionTierDefinition",
    "ContributionTimeline",
    "ContributionType",
    "CooperativeMembership",
    "Guarantor",
    "Loan",
    "LoanAccess",
    "LoanApproval",
    "LoanCategory",
    "LoanPayment",
    "LoanPaymentType",
    "LoanRequest",
    "LoanStatus",
    "LoanTier",
    "LoanType",
    "LoanUsage",
    "MembershipPlan",
    "MembershipPlanTemplate",
    "MembershipStatus",
    "PaymentMethod",
    "PlanBenefits",
    "PlanCategory",
    "PlanEligibility",
    "PlanFeature",
    "PlanPayment",
    "PlanPaymentStatus",
    "PlanSnapshot",
    "PlanStatus",
    "Pricing",
    "RepaymentPlan",
    "RepaymentTerms",
    "ScheduledInstallment",
    "SupportLevel",
    "TermUnit",
]
