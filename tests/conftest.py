"""Pytest configuration and fixtures."""

from datetime import datetime
from decimal import Decimal
from typing import Callable

import pytest
from dateutil.relativedelta import relativedelta

from coop_lending.catalog import build_plan_template
from coop_lending.engine import ContributionLedger, LoanLifecycle, MembershipPlanLifecycle
from coop_lending.events import EventPublisher
from coop_lending.models.lending import (
    CooperativeMembership,
    LoanCategory,
    LoanRequest,
    LoanType,
    MembershipPlanTemplate,
    PlanCategory,
    RepaymentPlan,
    TermUnit,
)
from coop_lending.store import LendingDataStore

COOP_ID = "coop-test-001"
USER_ID = "user-test-001"
ADMIN_ID = "admin-test-001"


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def now() -> datetime:
    """Fixed clock for lifecycle tests."""
    return datetime(2025, 1, 15, 10, 0, 0)


@pytest.fixture
def store() -> LendingDataStore:
    """Create a fresh store for each test."""
    return LendingDataStore()


@pytest.fixture
def publisher() -> EventPublisher:
    """Publisher with no sinks; events are kept in ``published``."""
    return EventPublisher(keep_history=True)


@pytest.fixture
def add_member(store: LendingDataStore, now: datetime) -> Callable[..., CooperativeMembership]:
    """Register a member of ``COOP_ID`` with the given tenure in months."""

    def _add(user_id: str = USER_ID, months: int = 0) -> CooperativeMembership:
        membership = CooperativeMembership(
            user_id=user_id,
            cooperative_id=COOP_ID,
            joined_at=now - relativedelta(months=months),
        )
        store.add_membership(membership)
        return membership

    return _add


@pytest.fixture
def loans(store: LendingDataStore, publisher: EventPublisher) -> LoanLifecycle:
    return LoanLifecycle(store, publisher=publisher)


@pytest.fixture
def plans(store: LendingDataStore, publisher: EventPublisher) -> MembershipPlanLifecycle:
    return MembershipPlanLifecycle(store, publisher=publisher)


@pytest.fixture
def ledger(store: LendingDataStore, publisher: EventPublisher) -> ContributionLedger:
    return ContributionLedger(store, publisher=publisher)


@pytest.fixture
def emergency_request() -> LoanRequest:
    """50,000 emergency loan request, 2% over 6 months."""
    return LoanRequest(
        cooperative_id=COOP_ID,
        category=LoanCategory.EMERGENCY,
        loan_type=LoanType.EMERGENCY,
        amount=Decimal("50000"),
        interest_rate=Decimal("2"),
        term=6,
        term_unit=TermUnit.MONTHS,
        repayment_plan=RepaymentPlan.MONTHLY,
    )


@pytest.fixture
def basic_template(now: datetime) -> MembershipPlanTemplate:
    return build_plan_template(PlanCategory.BASIC, "tmpl-basic", COOP_ID, ADMIN_ID, created_at=now)


@pytest.fixture
def premium_template(now: datetime) -> MembershipPlanTemplate:
    return build_plan_template(PlanCategory.PREMIUM, "tmpl-premium", COOP_ID, ADMIN_ID, created_at=now)
