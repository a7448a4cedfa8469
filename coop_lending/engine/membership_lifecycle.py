"""Membership plan templates and subscriptions."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from dateutil.relativedelta import relativedelta

from coop_lending.config import LendingConfig
from coop_lending.engine.amortization import TermOption, amortizing_term_options
from coop_lending.engine.eligibility import (
    EligibilityResult,
    MembershipDirectory,
    check_plan_eligibility,
    plan_loan_eligibility,
)
from coop_lending.events import EventPublisher
from coop_lending.exceptions import InvalidEntityStateError, InvalidStateTransitionError
from coop_lending.models.lending import (
    AutoRenewal,
    Billing,
    BillingPaymentStatus,
    Cancellation,
    MembershipPlan,
    MembershipPlanTemplate,
    PaymentMethod,
    PlanCategory,
    PlanPayment,
    PlanPaymentStatus,
    PlanSnapshot,
    PlanStatus,
)

if TYPE_CHECKING:
    from coop_lending.store import LendingDataStore

logger = logging.getLogger(__name__)

BILLING_PERIOD = relativedelta(months=1)

# Allowed plan status transitions
_TRANSITIONS: dict[PlanStatus, frozenset[PlanStatus]] = {
    PlanStatus.ACTIVE: frozenset({PlanStatus.SUSPENDED, PlanStatus.CANCELLED, PlanStatus.EXPIRED}),
    PlanStatus.SUSPENDED: frozenset({PlanStatus.ACTIVE, PlanStatus.CANCELLED, PlanStatus.EXPIRED}),
    PlanStatus.CANCELLED: frozenset(),
    PlanStatus.EXPIRED: frozenset(),
}


class MembershipPlanLifecycle:
    """Subscribe members to plans, bill them and guard plan loans."""

    def __init__(
        self,
        store: LendingDataStore,
        directory: MembershipDirectory | None = None,
        publisher: EventPublisher | None = None,
        config: LendingConfig | None = None,
    ) -> None:
        self.store = store
        self.directory = directory or store
        self.publisher = publisher or EventPublisher()
        self.config = config or LendingConfig()

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def publish_template(self, template: MembershipPlanTemplate) -> MembershipPlanTemplate:
        """Add or update a template. Existing subscriptions keep their snapshot."""
        template.updated_at = datetime.now()
        self.store.add_template(template)
        logger.info(
            "Template %s (%s) published for %s",
            template.template_id, template.name, template.cooperative_id,
        )
        self.publisher.publish("template.published", template.template_id, template.summary())
        return template

    def active_templates(self, cooperative_id: str) -> list[MembershipPlanTemplate]:
        return self.store.get_active_templates(cooperative_id)

    def template_summaries(self, cooperative_id: str) -> list[dict[str, Any]]:
        return [t.summary() for t in self.store.get_active_templates(cooperative_id)]

    def template_by_category(
        self, cooperative_id: str, category: PlanCategory | str
    ) -> MembershipPlanTemplate | None:
        return self.store.get_template_by_category(cooperative_id, PlanCategory(category))

    def loan_terms(self, template_id: str, amount: Decimal) -> list[TermOption]:
        """Amortizing repayment menu a template offers for ``amount``."""
        return amortizing_term_options(
            self.store.get_template(template_id),
            amount,
            step_months=self.config.term_option_step_months,
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        user_id: str,
        template_id: str,
        payment_method_id: str | None = None,
        auto_renew: bool = True,
        now: datetime | None = None,
    ) -> MembershipPlan:
        """Subscribe a member to a template.

        The template's terms are copied into the plan; later template edits
        do not reach existing subscribers.

        Raises
        ------
        InvalidEntityStateError
            The template is inactive.
        InsufficientTenureError, InsufficientContributionError
            The member does not meet the template's requirements.
        DuplicateMembershipError
            The member already holds an active plan in the cooperative.
        """
        now = now or datetime.now()
        template = self.store.get_template(template_id)
        if not template.is_active:
            raise InvalidEntityStateError(f"Membership plan template {template_id} is not active")

        cooperative_id = template.cooperative_id
        check_plan_eligibility(
            template,
            membership_months=self.directory.membership_months(user_id, cooperative_id, now),
            total_contributions=self.directory.total_contributions(user_id, cooperative_id),
        ).raise_for_status()

        plan = MembershipPlan(
            plan_id=str(uuid.uuid4()),
            user_id=user_id,
            cooperative_id=cooperative_id,
            template_id=template_id,
            plan_details=PlanSnapshot.from_template(template),
            billing=Billing(
                start_date=now,
                next_billing_date=now + BILLING_PERIOD,
                currency=template.pricing.currency,
            ),
            created_at=now,
            auto_renewal=AutoRenewal(enabled=auto_renew, payment_method_id=payment_method_id),
        )

        with self.store.lock(f"member:{user_id}:{cooperative_id}"):
            self.store.add_plan(plan)

        logger.info("User %s subscribed to %s (%s)", user_id, template.name, plan.plan_id)
        self._publish("plan.subscribed", plan)
        return plan

    def process_payment(
        self,
        plan_id: str,
        amount: Decimal,
        payment_method: PaymentMethod | None = None,
        transaction_id: str | None = None,
        reference: str | None = None,
        now: datetime | None = None,
    ) -> PlanPayment:
        """Record a completed billing payment and roll billing forward one month."""
        if amount <= 0:
            raise ValueError(f"Payment amount must be positive, got {amount}")
        now = now or datetime.now()

        with self.store.lock(plan_id):
            plan = self.store.get_plan(plan_id)
            if plan.status in (PlanStatus.CANCELLED, PlanStatus.EXPIRED):
                raise InvalidEntityStateError(
                    f"Cannot take payment on membership plan {plan_id}: plan is '{plan.status.value}'"
                )

            payment = PlanPayment(
                amount=amount,
                date=now,
                status=BillingPaymentStatus.COMPLETED,
                payment_method=payment_method,
                transaction_id=transaction_id,
                reference=reference,
            )
            plan.payments.append(payment)
            plan.billing.last_payment_date = now
            plan.billing.total_paid += amount
            plan.billing.next_billing_date = plan.billing.next_billing_date + BILLING_PERIOD
            plan.payment_status = PlanPaymentStatus.CURRENT
            self.store.save_plan(plan)

        logger.info(
            "Plan %s payment of %s processed, next billing %s",
            plan_id, amount, plan.billing.next_billing_date,
        )
        self._publish("plan.payment_processed", plan, amount=amount, transaction_id=transaction_id)
        return payment

    def can_apply_for_loan(self, plan_id: str, amount: Decimal) -> EligibilityResult:
        """Whether the plan can take a loan of ``amount``. Never raises for ineligibility."""
        return plan_loan_eligibility(self.store.get_plan(plan_id), amount)

    def is_overdue(self, plan_id: str, now: datetime | None = None) -> bool:
        return self.store.get_plan(plan_id).is_overdue(now)

    def active_plan(self, user_id: str, cooperative_id: str) -> MembershipPlan | None:
        return self.store.get_active_plan(user_id, cooperative_id)

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def cancel(
        self,
        plan_id: str,
        cancelled_by: str,
        reason: str = "",
        refund_amount: Decimal = Decimal("0"),
        now: datetime | None = None,
    ) -> MembershipPlan:
        now = now or datetime.now()

        def apply(plan: MembershipPlan) -> None:
            plan.cancellation = Cancellation(
                cancelled_at=now,
                cancelled_by=cancelled_by,
                reason=reason,
                refund_amount=refund_amount,
            )
            plan.auto_renewal.enabled = False

        return self._transition(plan_id, PlanStatus.CANCELLED, "plan.cancelled", apply)

    def suspend(self, plan_id: str) -> MembershipPlan:
        return self._transition(plan_id, PlanStatus.SUSPENDED, "plan.suspended")

    def reactivate(self, plan_id: str) -> MembershipPlan:
        return self._transition(plan_id, PlanStatus.ACTIVE, "plan.reactivated")

    def expire(self, plan_id: str) -> MembershipPlan:
        def apply(plan: MembershipPlan) -> None:
            plan.auto_renewal.enabled = False

        return self._transition(plan_id, PlanStatus.EXPIRED, "plan.expired", apply)

    def _transition(self, plan_id, target: PlanStatus, event_type: str, apply=None) -> MembershipPlan:
        with self.store.lock(plan_id):
            plan = self.store.get_plan(plan_id)
            if target not in _TRANSITIONS[plan.status]:
                raise InvalidStateTransitionError("membership plan", plan.status.value, target.value)

            if target == PlanStatus.ACTIVE:
                # Reactivation must not break the one-active-plan rule
                other = self.store.get_active_plan(plan.user_id, plan.cooperative_id)
                if other is not None and other.plan_id != plan_id:
                    raise InvalidStateTransitionError("membership plan", plan.status.value, target.value)

            plan.status = target
            if apply is not None:
                apply(plan)
            self.store.save_plan(plan)

        logger.info("Plan %s is now %s", plan_id, target.value)
        self._publish(event_type, plan)
        return plan

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    def flag_overdue_memberships(self, now: datetime | None = None) -> list[MembershipPlan]:
        """Mark active plans past their billing date as overdue."""
        now = now or datetime.now()
        flagged: list[MembershipPlan] = []

        for candidate in self.store.find_plans_past_billing(now):
            with self.store.lock(candidate.plan_id):
                plan = self.store.get_plan(candidate.plan_id)
                # Re-check under the lock; a payment may have landed meanwhile
                if plan.status != PlanStatus.ACTIVE or plan.billing.next_billing_date >= now:
                    continue
                plan.payment_status = PlanPaymentStatus.OVERDUE
                self.store.save_plan(plan)
            flagged.append(plan)
            self._publish("plan.overdue", plan)

        if flagged:
            logger.info("Flagged %d membership plans as overdue", len(flagged))
        return flagged

    def memberships_due_for_renewal(
        self, now: datetime | None = None, days_ahead: int | None = None
    ) -> list[MembershipPlan]:
        """Auto-renewing active plans billed within ``days_ahead`` days."""
        days_ahead = self.config.renewal_lookahead_days if days_ahead is None else days_ahead
        return self.store.find_plans_due_for_renewal(now or datetime.now(), days_ahead)

    def _publish(self, event_type: str, plan: MembershipPlan, **extra) -> None:
        self.publisher.publish(
            event_type,
            subject=plan.plan_id,
            data={**plan.summary(), "user_id": plan.user_id, **extra},
            metadata={"cooperative_id": plan.cooperative_id},
        )
