"""Enumeration types for cooperative lending entities."""

from enum import Enum


class LoanCategory(str, Enum):
    EMERGENCY = "emergency"
    GROWTH = "growth"
    LARGE_SCALE = "large-scale"


class LoanType(str, Enum):
    BUSINESS = "business"
    AGRICULTURAL = "agricultural"
    EMERGENCY = "emergency"
    EDUCATION = "education"
    HOUSING = "housing"
    EQUIPMENT = "equipment"
    OTHER = "other"


class LoanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"
    CANCELLED = "cancelled"


# Statuses that block a new loan request from the same user
OPEN_LOAN_STATUSES = frozenset({LoanStatus.PENDING, LoanStatus.APPROVED, LoanStatus.ACTIVE})

TERMINAL_LOAN_STATUSES = frozenset(
    {LoanStatus.COMPLETED, LoanStatus.REJECTED, LoanStatus.CANCELLED, LoanStatus.DEFAULTED}
)


class RepaymentPlan(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"
    CUSTOM = "custom"


class TermUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class LoanPaymentType(str, Enum):
    PRINCIPAL = "principal"
    INTEREST = "interest"
    PENALTY = "penalty"
    OTHER = "other"


class CollateralType(str, Enum):
    PROPERTY = "property"
    VEHICLE = "vehicle"
    EQUIPMENT = "equipment"
    SAVINGS = "savings"
    GUARANTOR = "guarantor"
    OTHER = "other"


class PlanCategory(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PlanPaymentStatus(str, Enum):
    CURRENT = "current"
    OVERDUE = "overdue"
    FAILED = "failed"


class BillingPaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    WALLET = "wallet"


class SupportLevel(str, Enum):
    BASIC = "basic"
    PRIORITY = "priority"
    PREMIUM = "premium"
    WHITE_GLOVE = "white-glove"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ContributionType(str, Enum):
    SAVINGS = "savings"
    LOAN_REPAYMENT = "loan_repayment"
    EMERGENCY_FUND = "emergency_fund"
    INVESTMENT = "investment"
    DONATION = "donation"
    FEE = "fee"
    OTHER = "other"


class ContributionCategory(str, Enum):
    REGULAR = "regular"
    SPECIAL = "special"
    MATCHING = "matching"
    VOLUNTARY = "voluntary"
    MANDATORY = "mandatory"


class ContributionTier(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


class ContributionFrequency(str, Enum):
    ONE_TIME = "one_time"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class ContributionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ContributionMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    WALLET = "wallet"
    CHECK = "check"
    OTHER = "other"
