"""Loan request and approval decision generator."""

from __future__ import annotations

from decimal import Decimal

from coop_lending.catalog import get_loan_tier_by_category
from coop_lending.generators.base import BaseGenerator
from coop_lending.models.lending import (
    ApprovalDecision,
    Collateral,
    CollateralType,
    Guarantor,
    Loan,
    LoanCategory,
    LoanRequest,
    LoanType,
    RepaymentPlan,
    TermUnit,
)


class LoanRequestGenerator(BaseGenerator):
    """Generate loan requests that fall inside their tier's bounds."""

    CATEGORIES = [LoanCategory.EMERGENCY, LoanCategory.GROWTH, LoanCategory.LARGE_SCALE]
    CATEGORY_WEIGHTS = [0.60, 0.30, 0.10]

    LOAN_TYPES = {
        LoanCategory.EMERGENCY: [LoanType.EMERGENCY, LoanType.BUSINESS, LoanType.EDUCATION],
        LoanCategory.GROWTH: [LoanType.BUSINESS, LoanType.AGRICULTURAL, LoanType.EQUIPMENT],
        LoanCategory.LARGE_SCALE: [LoanType.BUSINESS, LoanType.HOUSING, LoanType.EQUIPMENT],
    }

    REPAYMENT_PLANS = [RepaymentPlan.MONTHLY, RepaymentPlan.WEEKLY, RepaymentPlan.BIWEEKLY]
    REPAYMENT_WEIGHTS = [0.80, 0.10, 0.10]

    # Amounts are rounded to this step
    AMOUNT_STEP = Decimal("1000")

    def pick_category(self, membership_months: int) -> LoanCategory:
        """Weighted category among those the member's tenure allows."""
        allowed = [
            (category, weight)
            for category, weight in zip(self.CATEGORIES, self.CATEGORY_WEIGHTS)
            if get_loan_tier_by_category(category).eligibility_months <= membership_months
        ]
        categories, weights = zip(*allowed)
        return self.rng.choices(categories, weights=weights, k=1)[0]

    def generate(
        self,
        cooperative_id: str,
        category: LoanCategory,
        membership_plan_id: str | None = None,
        max_amount: Decimal | None = None,
    ) -> LoanRequest:
        """Generate a request for ``category``.

        Parameters
        ----------
        cooperative_id : str
            Cooperative the loan is requested from.
        category : LoanCategory
            Tier to draw amount, rate and term from.
        membership_plan_id : str | None
            Plan to request the loan through.
        max_amount : Decimal | None
            Extra cap on the amount (e.g. a plan's loan limit).
        """
        tier = get_loan_tier_by_category(category)
        upper = tier.max_amount if max_amount is None else min(tier.max_amount, max_amount)

        steps = int((upper - tier.min_amount) / self.AMOUNT_STEP)
        amount = tier.min_amount + self.AMOUNT_STEP * self.rng.randint(0, max(steps, 0))
        rate = Decimal(self.rng.randint(int(tier.min_interest_rate * 2), int(tier.max_interest_rate * 2))) / 2
        term = self.rng.randint(tier.min_repayment_months, tier.max_repayment_months)

        guarantors = []
        collateral = None
        if category != LoanCategory.EMERGENCY:
            guarantors.append(
                Guarantor(
                    name=self.fake.name(),
                    relationship=self.rng.choice(["business partner", "family", "cooperative member"]),
                    phone=self.fake.phone_number(),
                    email=self.fake.email(),
                )
            )
        if category == LoanCategory.LARGE_SCALE:
            collateral = Collateral(
                collateral_type=self.rng.choice([CollateralType.PROPERTY, CollateralType.EQUIPMENT]),
                description=self.fake.sentence(nb_words=6),
                value=amount * Decimal("1.5"),
            )

        return LoanRequest(
            cooperative_id=cooperative_id,
            category=category,
            loan_type=self.rng.choice(self.LOAN_TYPES[category]),
            amount=amount,
            interest_rate=rate,
            term=term,
            term_unit=TermUnit.MONTHS,
            repayment_plan=self.rng.choices(self.REPAYMENT_PLANS, weights=self.REPAYMENT_WEIGHTS, k=1)[0],
            membership_plan_id=membership_plan_id,
            collateral=collateral,
            guarantors=guarantors,
            notes=self.fake.sentence(nb_words=10),
        )

    def decision_for(self, loan: Loan) -> ApprovalDecision:
        """Approval terms for ``loan``; sometimes a trimmed amount."""
        amount = loan.amount
        if self.rng.random() < 0.2 and loan.loan_tier is not None:
            trimmed = (amount * Decimal("0.8") / self.AMOUNT_STEP).to_integral_value() * self.AMOUNT_STEP
            amount = max(trimmed, loan.loan_tier.min_amount)
        return ApprovalDecision(
            approved_amount=amount,
            approved_term=loan.term,
            approved_interest_rate=loan.interest_rate,
            conditions=["Monthly business report"] if self.rng.random() < 0.3 else [],
            notes="Approved by credit committee",
        )
