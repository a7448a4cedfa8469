"""Custom exception hierarchy for coop-lending."""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds surfaced by eligibility and lifecycle checks."""

    INVALID_CATEGORY = "InvalidCategory"
    AMOUNT_OUT_OF_RANGE = "AmountOutOfRange"
    INSUFFICIENT_TENURE = "InsufficientTenure"
    INSUFFICIENT_CONTRIBUTION = "InsufficientContribution"
    DUPLICATE_ACTIVE_LOAN = "DuplicateActiveLoan"
    LOAN_ACCESS_DISABLED = "LoanAccessDisabled"
    INVALID_STATE_TRANSITION = "InvalidStateTransition"
    ACTIVE_LOAN_EXISTS = "ActiveLoanExists"
    PLAN_NOT_ACTIVE = "PlanNotActive"


class LendingError(Exception):
    """Base exception for all coop-lending errors."""


class EntityNotFoundError(LendingError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(LendingError):
    """Raised when an entity is in an invalid state for the operation."""


class InvalidStateTransitionError(InvalidEntityStateError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    kind = ErrorKind.INVALID_STATE_TRANSITION

    def __init__(self, entity: str, current: str, requested: str) -> None:
        self.entity = entity
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{requested}'"
        )


class EligibilityError(LendingError):
    """Raised when a request fails an eligibility rule.

    Carries the failure ``kind`` and a human-readable ``reason``.
    """

    kind: ErrorKind = ErrorKind.INVALID_CATEGORY

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidCategoryError(EligibilityError):
    kind = ErrorKind.INVALID_CATEGORY


class AmountOutOfRangeError(EligibilityError):
    kind = ErrorKind.AMOUNT_OUT_OF_RANGE

    def __init__(self, reason: str, minimum=None, maximum=None) -> None:
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(reason)


class InsufficientTenureError(EligibilityError):
    kind = ErrorKind.INSUFFICIENT_TENURE

    def __init__(self, reason: str, required_months: int | None = None) -> None:
        self.required_months = required_months
        super().__init__(reason)


class InsufficientContributionError(EligibilityError):
    kind = ErrorKind.INSUFFICIENT_CONTRIBUTION

    def __init__(self, reason: str, required=None) -> None:
        self.required = required
        super().__init__(reason)


class DuplicateActiveLoanError(EligibilityError):
    kind = ErrorKind.DUPLICATE_ACTIVE_LOAN


class LoanAccessDisabledError(EligibilityError):
    kind = ErrorKind.LOAN_ACCESS_DISABLED


class ActiveLoanExistsError(EligibilityError):
    kind = ErrorKind.ACTIVE_LOAN_EXISTS


class PlanNotActiveError(EligibilityError):
    kind = ErrorKind.PLAN_NOT_ACTIVE


class DuplicateMembershipError(LendingError):
    """Raised when a user already holds an active plan in the cooperative."""


class ConcurrentModificationError(LendingError):
    """Raised when an entity changed between read and write."""


class ReferenceCollisionError(LendingError):
    """Raised when no unique reference could be generated."""


class ConfigurationError(LendingError):
    """Raised when configuration is invalid or missing."""


class SinkError(LendingError):
    """Raised when a sink operation fails."""


ELIGIBILITY_ERRORS: dict[ErrorKind, type[EligibilityError]] = {
    ErrorKind.INVALID_CATEGORY: InvalidCategoryError,
    ErrorKind.AMOUNT_OUT_OF_RANGE: AmountOutOfRangeError,
    ErrorKind.INSUFFICIENT_TENURE: InsufficientTenureError,
    ErrorKind.INSUFFICIENT_CONTRIBUTION: InsufficientContributionError,
    ErrorKind.DUPLICATE_ACTIVE_LOAN: DuplicateActiveLoanError,
    ErrorKind.LOAN_ACCESS_DISABLED: LoanAccessDisabledError,
    ErrorKind.ACTIVE_LOAN_EXISTS: ActiveLoanExistsError,
    ErrorKind.PLAN_NOT_ACTIVE: PlanNotActiveError,
}
