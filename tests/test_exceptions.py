"""Tests for custom exception hierarchy."""

import pytest

from coop_lending.exceptions import (
    ELIGIBILITY_ERRORS,
    ActiveLoanExistsError,
    AmountOutOfRangeError,
    ConcurrentModificationError,
    ConfigurationError,
    DuplicateActiveLoanError,
    EligibilityError,
    EntityNotFoundError,
    ErrorKind,
    InsufficientTenureError,
    InvalidEntityStateError,
    InvalidStateTransitionError,
    LendingError,
    ReferentialIntegrityError,
    SinkError,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_lending_error_is_exception(self) -> None:
        assert isinstance(LendingError("test"), Exception)

    def test_referential_integrity_is_entity_not_found(self) -> None:
        err = ReferentialIntegrityError("test")
        assert isinstance(err, EntityNotFoundError)
        assert isinstance(err, LendingError)

    def test_state_transition_is_invalid_state(self) -> None:
        assert isinstance(InvalidStateTransitionError("loan", "pending", "active"), InvalidEntityStateError)

    @pytest.mark.parametrize(
        "error_class",
        [ConfigurationError, SinkError, ConcurrentModificationError, EligibilityError],
    )
    def test_is_lending_error(self, error_class) -> None:
        assert issubclass(error_class, LendingError)

    def test_exception_message(self) -> None:
        err = ReferentialIntegrityError("Membership plan plan-001 not found")
        assert str(err) == "Membership plan plan-001 not found"


class TestEligibilityErrors:
    """Test the kind and reason carried by eligibility failures."""

    def test_reason_and_kind(self) -> None:
        err = DuplicateActiveLoanError("You already have an active loan request")

        assert err.reason == "You already have an active loan request"
        assert str(err) == err.reason
        assert err.kind == ErrorKind.DUPLICATE_ACTIVE_LOAN

    def test_amount_bounds(self) -> None:
        err = AmountOutOfRangeError("out of range", minimum=1, maximum=2)

        assert (err.minimum, err.maximum) == (1, 2)

    def test_required_months(self) -> None:
        assert InsufficientTenureError("too new", required_months=6).required_months == 6

    def test_every_kind_but_transitions_maps_to_a_class(self) -> None:
        assert set(ELIGIBILITY_ERRORS) == set(ErrorKind) - {ErrorKind.INVALID_STATE_TRANSITION}
        for kind, error_class in ELIGIBILITY_ERRORS.items():
            assert error_class.kind == kind

    def test_kind_values(self) -> None:
        assert ActiveLoanExistsError.kind.value == "ActiveLoanExists"


class TestInvalidStateTransitionError:
    def test_fields(self) -> None:
        err = InvalidStateTransitionError("loan", "completed", "cancelled")

        assert err.entity == "loan"
        assert err.current == "completed"
        assert err.requested == "cancelled"
        assert err.kind == ErrorKind.INVALID_STATE_TRANSITION
        assert str(err) == "Cannot move loan from 'completed' to 'cancelled'"
