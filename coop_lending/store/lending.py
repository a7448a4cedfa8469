"""Lending data store with referential integrity and optimistic locking."""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterator

from dateutil.relativedelta import relativedelta

from coop_lending.engine.amortization import refresh_loan_totals
from coop_lending.exceptions import (
    ConcurrentModificationError,
    DuplicateMembershipError,
    EntityNotFoundError,
    ReferenceCollisionError,
    ReferentialIntegrityError,
)
from coop_lending.models.lending import (
    Contribution,
    ContributionStatus,
    CooperativeMembership,
    Loan,
    LoanStatus,
    MembershipPlan,
    MembershipPlanTemplate,
    MembershipStatus,
    PlanCategory,
    PlanPaymentStatus,
    PlanStatus,
)


@dataclass
class _HeldLock:
    lock: threading.RLock = field(default_factory=threading.RLock)
    holders: int = 0


@dataclass
class LendingDataStore:
    """In-memory store for lending aggregates.

    Reads hand out deep copies and writes compare the caller's ``version``
    with the stored one, so a lifecycle operation that fails part-way
    never leaves a half-mutated aggregate behind. Mutations of one
    aggregate are serialised with ``lock(entity_id)``.
    """

    # Primary entities
    memberships: dict[tuple[str, str], CooperativeMembership] = field(default_factory=dict)
    templates: dict[str, MembershipPlanTemplate] = field(default_factory=dict)
    plans: dict[str, MembershipPlan] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)
    contributions: dict[str, Contribution] = field(default_factory=dict)

    # Relationship indexes
    _user_loans: dict[str, list[str]] = field(default_factory=dict)
    _member_plans: dict[tuple[str, str], list[str]] = field(default_factory=dict)
    _member_contributions: dict[tuple[str, str], list[str]] = field(default_factory=dict)
    _contribution_refs: dict[str, str] = field(default_factory=dict)

    _locks: dict[str, _HeldLock] = field(default_factory=dict, repr=False)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    # ------------------------------------------------------------------
    # Concurrency
    # ------------------------------------------------------------------

    @contextmanager
    def lock(self, entity_id: str) -> Iterator[None]:
        """Hold the per-aggregate lock for ``entity_id``.

        Entries live only while some thread holds or waits for them.
        """
        with self._locks_guard:
            held = self._locks.get(entity_id)
            if held is None:
                held = self._locks[entity_id] = _HeldLock()
            held.holders += 1
        try:
            with held.lock:
                yield
        finally:
            with self._locks_guard:
                held.holders -= 1
                if held.holders == 0:
                    del self._locks[entity_id]

    def lock_count(self) -> int:
        """Number of aggregate locks currently held or awaited."""
        with self._locks_guard:
            return len(self._locks)

    def _write(self, table: dict, key, entity, label: str) -> None:
        stored = table.get(key)
        if stored is None:
            raise EntityNotFoundError(f"{label} {key} not found")
        if stored.version != entity.version:
            raise ConcurrentModificationError(
                f"{label} {key} was modified concurrently "
                f"(expected version {entity.version}, found {stored.version})"
            )
        entity.version += 1
        entity.updated_at = datetime.now()
        table[key] = copy.deepcopy(entity)

    def _insert(self, table: dict, key, entity) -> None:
        entity.version = 1
        if entity.updated_at is None:
            entity.updated_at = entity.created_at
        table[key] = copy.deepcopy(entity)

    # ------------------------------------------------------------------
    # Cooperative memberships (tenure source)
    # ------------------------------------------------------------------

    def add_membership(self, membership: CooperativeMembership) -> None:
        """Add a cooperative membership to the store."""
        key = (membership.user_id, membership.cooperative_id)
        self.memberships[key] = membership
        self._member_plans.setdefault(key, [])
        self._member_contributions.setdefault(key, [])

    def membership_months(
        self, user_id: str, cooperative_id: str, now: datetime | None = None
    ) -> int:
        """Whole calendar months since the member joined (0 if not a member)."""
        membership = self.memberships.get((user_id, cooperative_id))
        if membership is None or membership.status != MembershipStatus.ACTIVE:
            return 0
        delta = relativedelta(now or datetime.now(), membership.joined_at)
        return max(0, delta.years * 12 + delta.months)

    def total_contributions(self, user_id: str, cooperative_id: str) -> Decimal:
        """Sum of confirmed contributions for a member."""
        return sum(
            (c.amount for c in self._iter_member_contributions(user_id, cooperative_id) if c.is_confirmed()),
            Decimal("0"),
        )

    # ------------------------------------------------------------------
    # Membership plan templates
    # ------------------------------------------------------------------

    def add_template(self, template: MembershipPlanTemplate) -> None:
        """Add or replace a plan template."""
        self.templates[template.template_id] = copy.deepcopy(template)

    def get_template(self, template_id: str) -> MembershipPlanTemplate:
        if template_id not in self.templates:
            raise EntityNotFoundError(f"Membership plan template {template_id} not found")
        return copy.deepcopy(self.templates[template_id])

    def get_active_templates(self, cooperative_id: str) -> list[MembershipPlanTemplate]:
        """Active templates of a cooperative in display order."""
        templates = [
            t for t in self.templates.values()
            if t.cooperative_id == cooperative_id and t.is_active
        ]
        templates.sort(key=lambda t: (t.display_order, t.created_at))
        return [copy.deepcopy(t) for t in templates]

    def get_template_by_category(
        self, cooperative_id: str, category: PlanCategory
    ) -> MembershipPlanTemplate | None:
        for template in self.get_active_templates(cooperative_id):
            if template.category == category:
                return template
        return None

    # ------------------------------------------------------------------
    # Membership plans
    # ------------------------------------------------------------------

    def add_plan(self, plan: MembershipPlan) -> None:
        """Add a subscription; one active plan per (user, cooperative)."""
        if plan.template_id not in self.templates:
            raise ReferentialIntegrityError(f"Membership plan template {plan.template_id} not found")

        key = (plan.user_id, plan.cooperative_id)
        if self.get_active_plan(*key) is not None:
            raise DuplicateMembershipError(
                f"User {plan.user_id} already has an active plan in cooperative {plan.cooperative_id}"
            )

        self._insert(self.plans, plan.plan_id, plan)
        self._member_plans.setdefault(key, []).append(plan.plan_id)

    def save_plan(self, plan: MembershipPlan) -> None:
        self._write(self.plans, plan.plan_id, plan, "Membership plan")

    def get_plan(self, plan_id: str) -> MembershipPlan:
        if plan_id not in self.plans:
            raise EntityNotFoundError(f"Membership plan {plan_id} not found")
        return copy.deepcopy(self.plans[plan_id])

    def get_active_plan(self, user_id: str, cooperative_id: str) -> MembershipPlan | None:
        for plan_id in self._member_plans.get((user_id, cooperative_id), []):
            plan = self.plans[plan_id]
            if plan.status == PlanStatus.ACTIVE:
                return copy.deepcopy(plan)
        return None

    def find_plans_past_billing(self, now: datetime) -> list[MembershipPlan]:
        """Active plans past their billing date that are not yet flagged overdue."""
        return [
            copy.deepcopy(p) for p in self.plans.values()
            if p.status == PlanStatus.ACTIVE
            and p.billing.next_billing_date < now
            and p.payment_status != PlanPaymentStatus.OVERDUE
        ]

    def find_plans_due_for_renewal(self, now: datetime, days_ahead: int = 3) -> list[MembershipPlan]:
        horizon = now + timedelta(days=days_ahead)
        return [
            copy.deepcopy(p) for p in self.plans.values()
            if p.status == PlanStatus.ACTIVE
            and p.billing.next_billing_date <= horizon
            and p.auto_renewal.enabled
        ]

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    def add_loan(self, loan: Loan) -> None:
        """Add a loan to the store."""
        if loan.membership_plan_id and loan.membership_plan_id not in self.plans:
            raise ReferentialIntegrityError(f"Membership plan {loan.membership_plan_id} not found")

        refresh_loan_totals(loan)
        self._insert(self.loans, loan.loan_id, loan)
        self._user_loans.setdefault(loan.user_id, []).append(loan.loan_id)

    def save_loan(self, loan: Loan) -> None:
        """Write back a loan; derived totals are recomputed first."""
        refresh_loan_totals(loan)
        self._write(self.loans, loan.loan_id, loan, "Loan")

    def get_loan(self, loan_id: str) -> Loan:
        if loan_id not in self.loans:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return copy.deepcopy(self.loans[loan_id])

    def get_user_loans(self, user_id: str) -> list[Loan]:
        """Get all loans for a user."""
        return [copy.deepcopy(self.loans[lid]) for lid in self._user_loans.get(user_id, [])]

    def count_active_loans(self, user_id: str) -> int:
        """Loans of a user that are pending, approved or active."""
        return sum(1 for lid in self._user_loans.get(user_id, []) if self.loans[lid].is_open())

    def find_overdue_loans(self, now: datetime) -> list[Loan]:
        return [copy.deepcopy(l) for l in self.loans.values() if l.is_overdue(now)]

    def find_loans_due_soon(self, now: datetime, days: int = 7) -> list[Loan]:
        horizon = now + timedelta(days=days)
        return [
            copy.deepcopy(l) for l in self.loans.values()
            if l.status == LoanStatus.ACTIVE
            and l.due_date is not None
            and now <= l.due_date <= horizon
        ]

    # ------------------------------------------------------------------
    # Contributions
    # ------------------------------------------------------------------

    def has_reference(self, reference: str) -> bool:
        return reference in self._contribution_refs

    def add_contribution(self, contribution: Contribution) -> None:
        """Add a contribution; references are globally unique."""
        if self.has_reference(contribution.reference):
            raise ReferenceCollisionError(f"Contribution reference {contribution.reference} already exists")

        self._insert(self.contributions, contribution.contribution_id, contribution)
        self._contribution_refs[contribution.reference] = contribution.contribution_id
        key = (contribution.user_id, contribution.cooperative_id)
        self._member_contributions.setdefault(key, []).append(contribution.contribution_id)

    def save_contribution(self, contribution: Contribution) -> None:
        self._write(self.contributions, contribution.contribution_id, contribution, "Contribution")

    def get_contribution(self, contribution_id: str) -> Contribution:
        if contribution_id not in self.contributions:
            raise EntityNotFoundError(f"Contribution {contribution_id} not found")
        return copy.deepcopy(self.contributions[contribution_id])

    def get_member_contributions(self, user_id: str, cooperative_id: str) -> list[Contribution]:
        return [copy.deepcopy(c) for c in self._iter_member_contributions(user_id, cooperative_id)]

    def find_due_contributions(self, now: datetime) -> list[Contribution]:
        """Recurring contributions whose next due date has arrived."""
        return [
            copy.deepcopy(c) for c in self.contributions.values()
            if c.is_due(now)
            and c.status in (ContributionStatus.CONFIRMED, ContributionStatus.PENDING)
        ]

    def _iter_member_contributions(self, user_id: str, cooperative_id: str) -> Iterator[Contribution]:
        for cid in self._member_contributions.get((user_id, cooperative_id), []):
            yield self.contributions[cid]

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "memberships": len(self.memberships),
            "templates": len(self.templates),
            "plans": len(self.plans),
            "loans": len(self.loans),
            "contributions": len(self.contributions),
        }
