"""Cooperative portfolio scenario driving the real lifecycles end to end."""

from __future__ import annotations

import logging
import random
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Any

from coop_lending.catalog import build_plan_template, get_loan_tier_by_category
from coop_lending.config import CoopLendingConfig, LendingConfig, ScenarioConfig
from coop_lending.engine import ContributionLedger, LoanLifecycle, MembershipPlanLifecycle
from coop_lending.events import EventPublisher
from coop_lending.exceptions import EligibilityError
from coop_lending.generators import (
    ContributionGenerator,
    LoanRequestGenerator,
    MemberGenerator,
    MemberProfile,
)
from coop_lending.models.lending import (
    LoanStatus,
    MembershipPlan,
    PaymentMethod,
    PlanCategory,
)
from coop_lending.store import LendingDataStore

logger = logging.getLogger(__name__)

ADMIN_ID = "admin-credit-committee"


class CooperativePortfolioScenario:
    """Simulate one cooperative's members, plans, contributions and loans.

    Members join with a spread of tenures, contribute, may subscribe to a
    membership plan and may request a loan. Requests go through the same
    eligibility rules and state machine production code uses, so rejected
    requests are part of the output too.
    """

    def __init__(
        self,
        cooperative_id: str = "coop-001",
        num_members: int = 50,
        loan_penetration: float = 0.40,
        approval_rate: float = 0.80,
        repayment_rate: float = 0.60,
        plan_penetration: float = 0.50,
        seed: int | None = None,
        publisher: EventPublisher | None = None,
        lending_config: LendingConfig | None = None,
        now: datetime | None = None,
    ) -> None:
        """Initialize the scenario.

        Parameters
        ----------
        cooperative_id : str
            Cooperative all members belong to.
        num_members : int
            Number of members to generate.
        loan_penetration : float
            Share of members who request a loan.
        approval_rate : float
            Share of eligible requests that get approved.
        repayment_rate : float
            Share of disbursed loans that receive repayments.
        plan_penetration : float
            Share of members who try to subscribe to a plan.
        seed : int | None
            Random seed for reproducibility.
        publisher : EventPublisher | None
            Receives every lifecycle event.
        lending_config : LendingConfig | None
            Business defaults passed to the lifecycles.
        now : datetime | None
            Simulation clock (default: now).
        """
        self.cooperative_id = cooperative_id
        self.num_members = num_members
        self.loan_penetration = loan_penetration
        self.approval_rate = approval_rate
        self.repayment_rate = repayment_rate
        self.plan_penetration = plan_penetration
        self.now = now or datetime.now()
        self.rng = random.Random(seed)

        self.store = LendingDataStore()
        self.publisher = publisher or EventPublisher()
        config = lending_config or LendingConfig()
        self.loans = LoanLifecycle(self.store, publisher=self.publisher, config=config)
        self.plans = MembershipPlanLifecycle(self.store, publisher=self.publisher, config=config)
        self.ledger = ContributionLedger(self.store, publisher=self.publisher, config=config)

        self._member_gen = MemberGenerator(seed=seed)
        self._loan_gen = LoanRequestGenerator(seed=seed)
        self._contribution_gen = ContributionGenerator(seed=seed)

        self.members: list[MemberProfile] = []
        self.eligibility_failures: Counter[str] = Counter()

    @classmethod
    def from_config(
        cls,
        scenario: ScenarioConfig,
        config: CoopLendingConfig,
        publisher: EventPublisher | None = None,
    ) -> "CooperativePortfolioScenario":
        return cls(
            cooperative_id=scenario.labels.get("cooperative_id", "coop-001"),
            num_members=scenario.num_members,
            loan_penetration=scenario.loan_penetration,
            approval_rate=scenario.approval_rate,
            repayment_rate=scenario.repayment_rate,
            seed=config.seed,
            publisher=publisher,
            lending_config=config.lending,
        )

    def generate(self) -> LendingDataStore:
        """Run the simulation.

        Returns
        -------
        LendingDataStore
            Store holding every entity the lifecycles created.
        """
        logger.info(
            "Starting cooperative portfolio scenario: %d members in %s",
            self.num_members,
            self.cooperative_id,
        )

        for category in PlanCategory:
            template = build_plan_template(
                category,
                template_id=f"{self.cooperative_id}-{category.value}",
                cooperative_id=self.cooperative_id,
                created_by=ADMIN_ID,
                created_at=self.now,
            )
            self.plans.publish_template(template)

        for profile in self._member_gen.generate_batch(self.cooperative_id, self.num_members, self.now):
            self._simulate_member(profile)

        summary = self.store.summary()
        logger.info(
            "Generated portfolio: %d members, %d plans, %d contributions, %d loans",
            summary["memberships"],
            summary["plans"],
            summary["contributions"],
            summary["loans"],
        )
        return self.store

    def _simulate_member(self, profile: MemberProfile) -> None:
        self.store.add_membership(profile.membership)
        self.members.append(profile)

        for _ in range(self.rng.randint(1, 3)):
            draft = self._contribution_gen.generate()
            contribution = self.ledger.record(
                profile.user_id,
                self.cooperative_id,
                draft.amount,
                contribution_type=draft.contribution_type,
                method=draft.method,
                frequency=draft.frequency,
                description=draft.description,
                match_rate=draft.match_rate,
                now=self.now,
            )
            if self.rng.random() < 0.85:
                self.ledger.confirm(contribution.contribution_id, verified_by=ADMIN_ID, now=self.now)
            else:
                self.ledger.fail(contribution.contribution_id, reason="Transfer reversed", now=self.now)

        plan = None
        if self.rng.random() < self.plan_penetration:
            plan = self._subscribe(profile)

        if self.rng.random() < self.loan_penetration:
            self._simulate_loan(profile, plan)

    def _subscribe(self, profile: MemberProfile) -> MembershipPlan | None:
        template = self.rng.choice(self.plans.active_templates(self.cooperative_id))
        try:
            plan = self.plans.subscribe(profile.user_id, template.template_id, now=self.now)
        except EligibilityError as exc:
            self.eligibility_failures[exc.kind.value] += 1
            logger.debug("Member %s not subscribed to %s: %s", profile.user_id, template.name, exc.reason)
            return None

        self.plans.process_payment(
            plan.plan_id,
            template.pricing.monthly_fee,
            payment_method=PaymentMethod.CARD,
            transaction_id=self._member_gen.fake.uuid4(),
            now=self.now,
        )
        return self.store.get_plan(plan.plan_id)

    def _simulate_loan(self, profile: MemberProfile, plan: MembershipPlan | None) -> None:
        months = self.store.membership_months(profile.user_id, self.cooperative_id, self.now)
        category = self._loan_gen.pick_category(months)
        tier = get_loan_tier_by_category(category)

        plan_id = None
        max_amount = None
        if plan is not None:
            access = plan.plan_details.loan_access
            if access.enabled and access.max_amount >= tier.min_amount:
                plan_id, max_amount = plan.plan_id, access.max_amount

        request = self._loan_gen.generate(self.cooperative_id, category, plan_id, max_amount)
        try:
            loan = self.loans.submit(profile.user_id, request, now=self.now)
        except EligibilityError as exc:
            self.eligibility_failures[exc.kind.value] += 1
            logger.debug("Loan request from %s refused: %s", profile.user_id, exc.reason)
            return

        if self.rng.random() >= self.approval_rate:
            self.loans.reject(loan.loan_id, ADMIN_ID, "Insufficient business documentation", now=self.now)
            return

        loan = self.loans.approve(loan.loan_id, ADMIN_ID, self._loan_gen.decision_for(loan), now=self.now)
        loan = self.loans.disburse(loan.loan_id, now=self.now)

        if self.rng.random() < self.repayment_rate:
            schedule = self.loans.payment_schedule(loan.loan_id)
            for installment in schedule[: self.rng.randint(1, len(schedule))]:
                self.loans.record_payment(
                    loan.loan_id,
                    installment.amount,
                    payment_method="bank_transfer",
                    transaction_id=self._loan_gen.fake.uuid4(),
                    now=installment.due_date,
                )

    def export(self, sinks: list[Any]) -> None:
        """Export generated entities to sinks.

        Parameters
        ----------
        sinks : list[Any]
            Sink instances (ConsoleSink, JsonFileSink, KafkaSink).
        """
        for sink in sinks:
            sink.write_batch("templates", list(self.store.templates.values()))
            sink.write_batch("memberships", list(self.store.memberships.values()))
            sink.write_batch("plans", list(self.store.plans.values()))
            sink.write_batch("contributions", list(self.store.contributions.values()))
            sink.write_batch("loans", list(self.store.loans.values()))

        logger.info("Exported cooperative portfolio to %d sinks", len(sinks))

    def get_summary(self) -> dict[str, Any]:
        """Get summary statistics for the generated portfolio."""
        loans = list(self.store.loans.values())
        disbursed = [l for l in loans if l.disbursement_date is not None]
        confirmed = [c for c in self.store.contributions.values() if c.is_confirmed()]

        return {
            **{f"total_{name}": count for name, count in self.store.summary().items()},
            "loans_by_status": dict(Counter(l.status.value for l in loans)),
            "total_disbursed": sum((l.amount for l in disbursed), Decimal("0")),
            "total_repaid": sum((l.amount_paid for l in loans), Decimal("0")),
            "total_outstanding": sum(
                (l.remaining_balance for l in loans if l.status == LoanStatus.ACTIVE), Decimal("0")
            ),
            "total_confirmed_contributions": sum((c.amount for c in confirmed), Decimal("0")),
            "eligibility_failures": dict(self.eligibility_failures),
            "events_published": self.publisher.total_published,
        }
