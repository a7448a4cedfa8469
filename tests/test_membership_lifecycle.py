"""Tests for membership plan templates and subscriptions."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from coop_lending.exceptions import (
    DuplicateMembershipError,
    EntityNotFoundError,
    ErrorKind,
    InsufficientContributionError,
    InsufficientTenureError,
    InvalidEntityStateError,
    InvalidStateTransitionError,
)
from coop_lending.models.lending import (
    BillingPaymentStatus,
    LoanAccess,
    PaymentMethod,
    PlanCategory,
    PlanPaymentStatus,
    PlanStatus,
    RepaymentTerms,
)

from tests.conftest import ADMIN_ID, COOP_ID, USER_ID


@pytest.fixture
def basic_plan(plans, add_member, basic_template, now):
    add_member()
    plans.publish_template(basic_template)
    return plans.subscribe(USER_ID, basic_template.template_id, payment_method_id="pm-1", now=now)


class TestTemplates:
    """Tests for the plan catalog of a cooperative."""

    def test_publish(self, plans, store, publisher, basic_template) -> None:
        plans.publish_template(basic_template)

        assert store.get_template(basic_template.template_id).name == "Basic Community Access"
        [event] = publisher.events_of("template.published")
        assert event.subject == basic_template.template_id
        assert event.data["max_loan_amount"] == "5000"

    def test_active_templates_in_display_order(self, plans, basic_template, premium_template) -> None:
        plans.publish_template(premium_template)
        plans.publish_template(basic_template)

        names = [t.category for t in plans.active_templates(COOP_ID)]

        assert names == [PlanCategory.BASIC, PlanCategory.PREMIUM]

    def test_inactive_templates_are_hidden(self, plans, basic_template, premium_template) -> None:
        premium_template.is_active = False
        plans.publish_template(basic_template)
        plans.publish_template(premium_template)

        assert [s["id"] for s in plans.template_summaries(COOP_ID)] == ["tmpl-basic"]
        assert plans.template_by_category(COOP_ID, "premium") is None

    def test_other_cooperatives_are_hidden(self, plans, basic_template) -> None:
        plans.publish_template(basic_template)

        assert plans.active_templates("coop-other") == []

    def test_template_by_category(self, plans, basic_template) -> None:
        plans.publish_template(basic_template)

        assert plans.template_by_category(COOP_ID, PlanCategory.BASIC).template_id == "tmpl-basic"

    def test_loan_terms(self, plans, premium_template) -> None:
        plans.publish_template(premium_template)

        options = plans.loan_terms(premium_template.template_id, Decimal("10000"))

        assert [o.months for o in options] == [6, 12, 18, 24]
        assert all(o.total_interest > 0 for o in options)

    def test_loan_terms_unknown_template(self, plans) -> None:
        with pytest.raises(EntityNotFoundError):
            plans.loan_terms("missing", Decimal("10000"))


class TestSubscribe:
    """Tests for plan subscription."""

    def test_creates_active_plan(self, basic_plan, publisher, now) -> None:
        assert basic_plan.status == PlanStatus.ACTIVE
        assert basic_plan.payment_status == PlanPaymentStatus.CURRENT
        assert basic_plan.billing.start_date == now
        assert basic_plan.billing.next_billing_date == now + relativedelta(months=1)
        assert basic_plan.billing.currency == "USD"
        assert basic_plan.auto_renewal.payment_method_id == "pm-1"
        assert basic_plan.plan_details.loan_access.max_amount == Decimal("5000")
        assert len(publisher.events_of("plan.subscribed")) == 1

    def test_snapshot_ignores_later_template_edits(self, plans, store, basic_plan, basic_template) -> None:
        """Test that subscribers keep the terms they signed up for."""
        basic_template.loan_access = LoanAccess(
            enabled=True,
            min_amount=Decimal("500"),
            max_amount=Decimal("9000"),
            interest_rate=Decimal("3"),
            repayment_terms=RepaymentTerms(min_months=6, max_months=12),
        )
        plans.publish_template(basic_template)

        assert store.get_plan(basic_plan.plan_id).plan_details.loan_access.max_amount == Decimal("5000")

    def test_inactive_template(self, plans, add_member, basic_template, now) -> None:
        add_member()
        basic_template.is_active = False
        plans.publish_template(basic_template)

        with pytest.raises(InvalidEntityStateError):
            plans.subscribe(USER_ID, basic_template.template_id, now=now)

    def test_unknown_template(self, plans, add_member, now) -> None:
        add_member()

        with pytest.raises(EntityNotFoundError):
            plans.subscribe(USER_ID, "missing", now=now)

    def test_premium_requires_tenure(self, plans, add_member, premium_template, now) -> None:
        add_member(months=1)
        plans.publish_template(premium_template)

        with pytest.raises(InsufficientTenureError, match="Requires 3 months of membership"):
            plans.subscribe(USER_ID, premium_template.template_id, now=now)

    def test_premium_requires_contributions(self, plans, ledger, add_member, premium_template, now) -> None:
        """Test that only confirmed contributions count toward the minimum."""
        add_member(months=6)
        ledger.record(USER_ID, COOP_ID, Decimal("5000"), now=now)
        plans.publish_template(premium_template)

        with pytest.raises(InsufficientContributionError):
            plans.subscribe(USER_ID, premium_template.template_id, now=now)

    def test_one_active_plan_per_cooperative(self, plans, basic_plan, now) -> None:
        with pytest.raises(DuplicateMembershipError):
            plans.subscribe(USER_ID, "tmpl-basic", now=now)

    def test_concurrent_subscriptions(self, plans, add_member, basic_template, now) -> None:
        add_member()
        plans.publish_template(basic_template)

        def attempt(_):
            try:
                return plans.subscribe(USER_ID, basic_template.template_id, now=now)
            except DuplicateMembershipError:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(16)))

        assert sum(1 for r in results if r is not None) == 1


class TestBilling:
    """Tests for plan payments and overdue detection."""

    def test_process_payment(self, plans, store, basic_plan, now) -> None:
        paid_at = now + relativedelta(days=20)

        payment = plans.process_payment(
            basic_plan.plan_id,
            Decimal("29"),
            payment_method=PaymentMethod.CARD,
            transaction_id="tx-1",
            now=paid_at,
        )

        plan = store.get_plan(basic_plan.plan_id)
        assert payment.status == BillingPaymentStatus.COMPLETED
        assert plan.billing.total_paid == Decimal("29")
        assert plan.billing.last_payment_date == paid_at
        assert plan.billing.next_billing_date == now + relativedelta(months=2)
        assert len(plan.payments) == 1

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-29")])
    def test_rejects_non_positive_amount(self, plans, basic_plan, amount: Decimal) -> None:
        with pytest.raises(ValueError):
            plans.process_payment(basic_plan.plan_id, amount)

    def test_no_payment_on_cancelled_plan(self, plans, basic_plan) -> None:
        plans.cancel(basic_plan.plan_id, cancelled_by=USER_ID)

        with pytest.raises(InvalidEntityStateError):
            plans.process_payment(basic_plan.plan_id, Decimal("29"))

    def test_is_overdue(self, plans, basic_plan, now) -> None:
        assert plans.is_overdue(basic_plan.plan_id, now) is False
        assert plans.is_overdue(basic_plan.plan_id, now + relativedelta(months=1, days=1)) is True

    def test_flag_overdue(self, plans, store, publisher, basic_plan, now) -> None:
        """Test that the sweep flags late plans once and blocks plan loans."""
        late = now + relativedelta(months=1, days=1)

        flagged = plans.flag_overdue_memberships(late)

        assert [p.plan_id for p in flagged] == [basic_plan.plan_id]
        assert store.get_plan(basic_plan.plan_id).payment_status == PlanPaymentStatus.OVERDUE
        assert len(publisher.events_of("plan.overdue")) == 1
        assert plans.flag_overdue_memberships(late) == []

        result = plans.can_apply_for_loan(basic_plan.plan_id, Decimal("1000"))
        assert result.kind == ErrorKind.PLAN_NOT_ACTIVE

    def test_payment_clears_overdue(self, plans, store, basic_plan, now) -> None:
        late = now + relativedelta(months=1, days=1)
        plans.flag_overdue_memberships(late)

        plans.process_payment(basic_plan.plan_id, Decimal("29"), now=late)

        assert store.get_plan(basic_plan.plan_id).payment_status == PlanPaymentStatus.CURRENT

    def test_flag_overdue_skips_current_plans(self, plans, basic_plan, now) -> None:
        assert plans.flag_overdue_memberships(now) == []

    def test_due_for_renewal(self, plans, basic_plan, now) -> None:
        billing_date = basic_plan.billing.next_billing_date

        assert plans.memberships_due_for_renewal(now) == []
        due = plans.memberships_due_for_renewal(billing_date - relativedelta(days=2))
        assert [p.plan_id for p in due] == [basic_plan.plan_id]
        assert plans.memberships_due_for_renewal(billing_date - relativedelta(days=5), days_ahead=3) == []

    def test_manual_renewal_excluded(self, plans, add_member, basic_template, now) -> None:
        add_member()
        plans.publish_template(basic_template)
        plan = plans.subscribe(USER_ID, basic_template.template_id, auto_renew=False, now=now)

        assert plans.memberships_due_for_renewal(plan.billing.next_billing_date) == []


class TestStatusChanges:
    """Tests for cancel, suspend, reactivate and expire."""

    def test_cancel(self, plans, publisher, basic_plan, now) -> None:
        plan = plans.cancel(
            basic_plan.plan_id,
            cancelled_by=ADMIN_ID,
            reason="Moving away",
            refund_amount=Decimal("10"),
            now=now,
        )

        assert plan.status == PlanStatus.CANCELLED
        assert plan.cancellation.reason == "Moving away"
        assert plan.cancellation.refund_amount == Decimal("10")
        assert plan.auto_renewal.enabled is False
        assert len(publisher.events_of("plan.cancelled")) == 1

    def test_cancelled_plan_is_terminal(self, plans, basic_plan) -> None:
        plans.cancel(basic_plan.plan_id, cancelled_by=USER_ID)

        with pytest.raises(InvalidStateTransitionError):
            plans.cancel(basic_plan.plan_id, cancelled_by=USER_ID)
        with pytest.raises(InvalidStateTransitionError):
            plans.reactivate(basic_plan.plan_id)

    def test_resubscribe_after_cancel(self, plans, basic_plan, now) -> None:
        plans.cancel(basic_plan.plan_id, cancelled_by=USER_ID)

        plan = plans.subscribe(USER_ID, "tmpl-basic", now=now)

        assert plans.active_plan(USER_ID, COOP_ID).plan_id == plan.plan_id

    def test_suspend_and_reactivate(self, plans, basic_plan) -> None:
        assert plans.suspend(basic_plan.plan_id).status == PlanStatus.SUSPENDED
        assert plans.active_plan(USER_ID, COOP_ID) is None

        assert plans.reactivate(basic_plan.plan_id).status == PlanStatus.ACTIVE

    def test_reactivate_blocked_by_newer_plan(self, plans, basic_plan, now) -> None:
        plans.suspend(basic_plan.plan_id)
        plans.subscribe(USER_ID, "tmpl-basic", now=now)

        with pytest.raises(InvalidStateTransitionError):
            plans.reactivate(basic_plan.plan_id)

    def test_reactivate_active_plan(self, plans, basic_plan) -> None:
        with pytest.raises(InvalidStateTransitionError):
            plans.reactivate(basic_plan.plan_id)

    def test_expire(self, plans, basic_plan) -> None:
        plan = plans.expire(basic_plan.plan_id)

        assert plan.status == PlanStatus.EXPIRED
        assert plan.auto_renewal.enabled is False
        with pytest.raises(InvalidStateTransitionError):
            plans.suspend(basic_plan.plan_id)

    def test_can_apply_for_loan(self, plans, basic_plan) -> None:
        assert plans.can_apply_for_loan(basic_plan.plan_id, Decimal("5000")).eligible is True

        result = plans.can_apply_for_loan(basic_plan.plan_id, Decimal("5001"))
        assert result.eligible is False
        assert result.reason == "Loan amount exceeds plan limit of USD 5,000"
