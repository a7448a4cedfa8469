"""Loan state machine: submit, approve, reject, disburse, repay, cancel.

State transitions::

    pending  -> approved | rejected | cancelled
    approved -> active (disbursement) | cancelled
    active   -> completed | defaulted | cancelled

``completed``, ``rejected``, ``cancelled`` and ``defaulted`` are terminal.
Overdue is a query over active loans, never a stored state.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from coop_lending.config import LendingConfig
from coop_lending.engine.amortization import (
    loan_payment_schedule,
    next_payment_amount,
    next_unpaid_installment,
    refresh_loan_totals,
)
from coop_lending.engine.eligibility import (
    MembershipDirectory,
    plan_loan_eligibility,
    validate_loan_application,
)
from coop_lending.events import EventPublisher
from coop_lending.exceptions import (
    DuplicateActiveLoanError,
    InvalidEntityStateError,
    InvalidStateTransitionError,
)
from coop_lending.models.lending import (
    ApprovalDecision,
    Loan,
    LoanApproval,
    LoanPayment,
    LoanPaymentType,
    LoanRequest,
    LoanStatus,
    ScheduledInstallment,
)

if TYPE_CHECKING:
    from coop_lending.store import LendingDataStore

logger = logging.getLogger(__name__)

REJECTION_NOTE = "Loan request rejected"


class LoanLifecycle:
    """Drive loans through their lifecycle against a ``LendingDataStore``.

    Every mutation runs under the loan's lock and writes back with a
    version check, so concurrent approvals or payments on one loan are
    serialised and never lose an update.

    Parameters
    ----------
    store : LendingDataStore
        Persistence collaborator.
    directory : MembershipDirectory | None
        Tenure and contribution lookup (default: the store itself).
    publisher : EventPublisher | None
        Receives ``loan.*`` events.
    config : LendingConfig | None
        Business defaults (currency, due-soon window).
    """

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
    # Transitions
    # ------------------------------------------------------------------

    def submit(self, user_id: str, request: LoanRequest, now: datetime | None = None) -> Loan:
        """Create a pending loan after eligibility checks.

        Raises
        ------
        InvalidCategoryError, AmountOutOfRangeError, InsufficientTenureError
            The request does not fit its tier.
        DuplicateActiveLoanError
            The user already has a pending, approved or active loan.
        EligibilityError
            The linked membership plan cannot take a loan.
        """
        now = now or datetime.now()
        months = self.directory.membership_months(user_id, request.cooperative_id, now)
        tier = validate_loan_application(
            request.category, request.amount, months, currency=self.config.currency
        )

        with self.store.lock(f"user:{user_id}"):
            if self.store.count_active_loans(user_id) > 0:
                raise DuplicateActiveLoanError("You already have an active loan request")

            loan = Loan(
                loan_id=str(uuid.uuid4()),
                user_id=user_id,
                cooperative_id=request.cooperative_id,
                loan_type=request.loan_type,
                category=tier.category,
                amount=request.amount,
                interest_rate=request.interest_rate,
                term=request.term,
                term_unit=request.term_unit,
                repayment_plan=request.repayment_plan,
                created_at=now,
                loan_tier=tier,
                membership_plan_id=request.membership_plan_id,
                collateral=request.collateral,
                guarantors=list(request.guarantors),
                image_url=request.image_url,
                notes=request.notes,
            )
            refresh_loan_totals(loan)

            if request.membership_plan_id:
                self._apply_through_plan(user_id, request, now, loan)
            else:
                self.store.add_loan(loan)

        logger.info(
            "Loan %s submitted by %s: %s %s",
            loan.loan_id, user_id, tier.category.value, request.amount,
        )
        self._publish("loan.submitted", loan)
        return loan

    def _apply_through_plan(self, user_id: str, request: LoanRequest, now: datetime, loan: Loan) -> None:
        with self.store.lock(request.membership_plan_id):
            plan = self.store.get_plan(request.membership_plan_id)
            if plan.user_id != user_id or plan.cooperative_id != request.cooperative_id:
                raise InvalidEntityStateError(
                    f"Membership plan {plan.plan_id} does not belong to user {user_id} "
                    f"in cooperative {request.cooperative_id}"
                )
            plan_loan_eligibility(plan, request.amount).raise_for_status()

            self.store.add_loan(loan)
            plan.loan_usage.record_application(now)
            self.store.save_plan(plan)

    def approve(
        self,
        loan_id: str,
        approver_id: str,
        decision: ApprovalDecision,
        now: datetime | None = None,
    ) -> Loan:
        """Approve a pending loan on the approver's terms.

        The approved amount, term and rate replace the requested ones and
        the totals are recomputed under the flat-interest policy.
        """
        if decision.approved_amount <= 0 or decision.approved_term < 1:
            raise ValueError("Approved amount and term must be positive")
        now = now or datetime.now()

        with self.store.lock(loan_id):
            loan = self.store.get_loan(loan_id)
            self._require_status(loan, LoanStatus.PENDING, LoanStatus.APPROVED)

            loan.amount = decision.approved_amount
            loan.term = decision.approved_term
            loan.interest_rate = decision.approved_interest_rate
            loan.status = LoanStatus.APPROVED
            loan.approval = LoanApproval(
                approved_by=approver_id,
                approved_at=now,
                approved_amount=decision.approved_amount,
                approved_term=decision.approved_term,
                approved_interest_rate=decision.approved_interest_rate,
                conditions=tuple(decision.conditions),
                notes=decision.notes,
            )
            refresh_loan_totals(loan)

            if loan.membership_plan_id:
                with self.store.lock(loan.membership_plan_id):
                    plan = self.store.get_plan(loan.membership_plan_id)
                    plan.loan_usage.record_approval(loan.amount)
                    self.store.save_loan(loan)
                    self.store.save_plan(plan)
            else:
                self.store.save_loan(loan)

        logger.info(
            "Loan %s approved by %s: amount=%s rate=%s term=%d total=%s",
            loan_id, approver_id, loan.amount, loan.interest_rate, loan.term, loan.total_amount,
        )
        self._publish("loan.approved", loan)
        return loan

    def reject(
        self,
        loan_id: str,
        approver_id: str,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> Loan:
        """Reject a pending loan; the reason is kept in the approval notes."""
        now = now or datetime.now()

        with self.store.lock(loan_id):
            loan = self.store.get_loan(loan_id)
            self._require_status(loan, LoanStatus.PENDING, LoanStatus.REJECTED)

            loan.status = LoanStatus.REJECTED
            loan.approval = LoanApproval(
                approved_by=approver_id,
                approved_at=now,
                notes=notes or REJECTION_NOTE,
            )
            self.store.save_loan(loan)

        logger.info("Loan %s rejected by %s: %s", loan_id, approver_id, loan.approval.notes)
        self._publish("loan.rejected", loan)
        return loan

    def disburse(self, loan_id: str, now: datetime | None = None) -> Loan:
        """Pay out an approved loan and start its repayment schedule."""
        now = now or datetime.now()

        with self.store.lock(loan_id):
            loan = self.store.get_loan(loan_id)
            if not loan.can_be_disbursed():
                raise InvalidStateTransitionError("loan", loan.status.value, LoanStatus.ACTIVE.value)

            loan.status = LoanStatus.ACTIVE
            loan.disbursement_date = now
            schedule = loan_payment_schedule(loan)
            if schedule:
                loan.next_payment_date = schedule[0].due_date
                loan.due_date = schedule[-1].due_date
            self.store.save_loan(loan)

        logger.info("Loan %s disbursed, due %s", loan_id, loan.due_date)
        self._publish("loan.disbursed", loan)
        return loan

    def record_payment(
        self,
        loan_id: str,
        amount: Decimal,
        payment_method: str | None = None,
        transaction_id: str | None = None,
        reference: str | None = None,
        payment_type: LoanPaymentType = LoanPaymentType.PRINCIPAL,
        now: datetime | None = None,
    ) -> Loan:
        """Apply a repayment to an active loan.

        Overpayment is accepted; the remaining balance floors at zero. A
        payment that clears the balance completes the loan.
        """
        if amount <= 0:
            raise ValueError(f"Payment amount must be positive, got {amount}")
        now = now or datetime.now()

        with self.store.lock(loan_id):
            loan = self.store.get_loan(loan_id)
            if not loan.is_active():
                raise InvalidEntityStateError(
                    f"Payments can only be recorded on active loans; loan {loan_id} is '{loan.status.value}'"
                )

            loan.payments.append(
                LoanPayment(
                    amount=amount,
                    date=now,
                    payment_type=payment_type,
                    reference=reference,
                    payment_method=payment_method,
                    transaction_id=transaction_id,
                )
            )
            loan.amount_paid += amount
            refresh_loan_totals(loan)

            upcoming = next_unpaid_installment(loan)
            loan.next_payment_date = upcoming.due_date if upcoming else None

            completed = loan.remaining_balance == 0
            if completed:
                loan.status = LoanStatus.COMPLETED
                self._save_releasing_plan(loan)
            else:
                self.store.save_loan(loan)

        logger.info(
            "Payment of %s recorded on loan %s, remaining %s", amount, loan_id, loan.remaining_balance
        )
        self._publish("loan.payment_recorded", loan, amount=amount, transaction_id=transaction_id)
        if completed:
            logger.info("Loan %s fully repaid", loan_id)
            self._publish("loan.completed", loan)
        return loan

    def cancel(self, loan_id: str, notes: str = "", now: datetime | None = None) -> Loan:
        """Cancel any non-terminal loan. Balances are left untouched."""
        with self.store.lock(loan_id):
            loan = self.store.get_loan(loan_id)
            if loan.is_terminal():
                raise InvalidStateTransitionError("loan", loan.status.value, LoanStatus.CANCELLED.value)

            held_plan_slot = loan.status in (LoanStatus.APPROVED, LoanStatus.ACTIVE)
            loan.status = LoanStatus.CANCELLED
            if notes:
                loan.notes = notes
            if held_plan_slot:
                self._save_releasing_plan(loan)
            else:
                self.store.save_loan(loan)

        logger.info("Loan %s cancelled", loan_id)
        self._publish("loan.cancelled", loan)
        return loan

    def mark_defaulted(self, loan_id: str) -> Loan:
        """Write off an active loan."""
        with self.store.lock(loan_id):
            loan = self.store.get_loan(loan_id)
            self._require_status(loan, LoanStatus.ACTIVE, LoanStatus.DEFAULTED)
            loan.status = LoanStatus.DEFAULTED
            self._save_releasing_plan(loan)

        logger.info("Loan %s marked defaulted with %s outstanding", loan_id, loan.remaining_balance)
        self._publish("loan.defaulted", loan)
        return loan

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, loan_id: str) -> Loan:
        return self.store.get_loan(loan_id)

    def is_overdue(self, loan_id: str, now: datetime | None = None) -> bool:
        return self.store.get_loan(loan_id).is_overdue(now)

    def overdue_loans(self, now: datetime | None = None) -> list[Loan]:
        return self.store.find_overdue_loans(now or datetime.now())

    def loans_due_soon(self, now: datetime | None = None, days: int | None = None) -> list[Loan]:
        """Active loans whose final due date falls within the next ``days``."""
        days = self.config.due_soon_days if days is None else days
        return self.store.find_loans_due_soon(now or datetime.now(), days)

    def payment_schedule(self, loan_id: str) -> list[ScheduledInstallment]:
        return loan_payment_schedule(self.store.get_loan(loan_id))

    def next_payment(self, loan_id: str) -> Decimal:
        return next_payment_amount(self.store.get_loan(loan_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_status(loan: Loan, expected: LoanStatus, requested: LoanStatus) -> None:
        if loan.status != expected:
            raise InvalidStateTransitionError("loan", loan.status.value, requested.value)

    def _save_releasing_plan(self, loan: Loan) -> None:
        """Save ``loan`` and free its slot on the linked plan, if any."""
        if not loan.membership_plan_id:
            self.store.save_loan(loan)
            return
        with self.store.lock(loan.membership_plan_id):
            plan = self.store.get_plan(loan.membership_plan_id)
            plan.loan_usage.release_active_loan()
            self.store.save_loan(loan)
            self.store.save_plan(plan)

    def _publish(self, event_type: str, loan: Loan, **extra) -> None:
        self.publisher.publish(
            event_type,
            subject=loan.loan_id,
            data={**loan.summary(), "user_id": loan.user_id, **extra},
            metadata={"cooperative_id": loan.cooperative_id},
        )
