"""Tests for splitledger.domain.allocation pure functions."""

from decimal import Decimal

import pytest

from splitledger.domain.allocation import (
    MAX_TOTAL_AMOUNT,
    allocate,
    summarize_allocation,
    validate_split_description,
    validate_split_title,
    validate_total_amount,
)
from splitledger.domain.errors import (
    AllocationError,
    AmountMismatch,
    DuplicateParticipant,
    IncompleteAllocation,
    InsufficientParticipants,
    InvalidAmount,
    PercentageMismatch,
    ValidationError,
)
from splitledger.domain.models import AllocationStrategy, Currency, Money, ParticipantStatus, SplitId


def owed(participants: list) -> list[int]:
    return [p.amount_owed for p in participants]


class TestEqualAllocation:
    """Tests for equal allocation."""

    def test_hundred_dollars_three_ways(self) -> None:
        """Should give the remainder cent to the first participant."""
        result = allocate(Money(10000), ["alice", "bob", "carol"], AllocationStrategy.EQUAL)  # $100

        assert owed(result) == [3334, 3333, 3333]

    def test_keeps_participant_order(self) -> None:
        """Should return rows in input order, all pending."""
        result = allocate(Money(1000), ["alice", "bob"], "equal", split_id=SplitId("s1"))

        assert [p.user_id for p in result] == ["alice", "bob"]
        assert all(p.split_id == "s1" for p in result)
        assert all(p.status == ParticipantStatus.PENDING for p in result)
        assert all(p.amount_paid == 0 for p in result)

    def test_zero_share_starts_paid(self) -> None:
        """Should mark a zero share as already paid."""
        result = allocate(Money(1), ["alice", "bob"], AllocationStrategy.EQUAL)

        assert owed(result) == [1, 0]
        assert result[0].status == ParticipantStatus.PENDING
        assert result[1].status == ParticipantStatus.PAID


class TestCustomAllocation:
    """Tests for custom allocation."""

    def test_uses_given_amounts(self) -> None:
        """Should allocate exactly the given amounts."""
        result = allocate(
            Money(10000),
            ["alice", "bob"],
            AllocationStrategy.CUSTOM,
            {"alice": 7000, "bob": 3000},
        )

        assert owed(result) == [7000, 3000]

    def test_rejects_sum_mismatch(self) -> None:
        """Should report how far off the amounts are."""
        with pytest.raises(AmountMismatch) as exc_info:
            allocate(Money(10000), ["alice", "bob"], AllocationStrategy.CUSTOM, {"alice": 7000, "bob": 2999})

        assert exc_info.value.difference == -1

    def test_rejects_missing_participant(self) -> None:
        """Should name participants without an amount."""
        with pytest.raises(IncompleteAllocation) as exc_info:
            allocate(Money(10000), ["alice", "bob", "carol"], AllocationStrategy.CUSTOM, {"alice": 5000, "bob": 5000})

        assert exc_info.value.missing == ["carol"]

    def test_rejects_non_participant_entry(self) -> None:
        """Should name entries for people outside the split."""
        with pytest.raises(IncompleteAllocation) as exc_info:
            allocate(
                Money(10000),
                ["alice", "bob"],
                AllocationStrategy.CUSTOM,
                {"alice": 5000, "bob": 4000, "mallory": 1000},
            )

        assert exc_info.value.unexpected == ["mallory"]

    def test_rejects_negative_amount(self) -> None:
        """Should refuse negative custom amounts."""
        with pytest.raises(InvalidAmount):
            allocate(Money(1000), ["alice", "bob"], AllocationStrategy.CUSTOM, {"alice": 1500, "bob": -500})


class TestPercentageAllocation:
    """Tests for percentage allocation."""

    def test_residual_goes_to_largest_share(self) -> None:
        """Should correct rounding on the largest share."""
        result = allocate(
            Money(5000),  # $50
            ["alice", "bob", "carol"],
            AllocationStrategy.PERCENTAGE,
            {"alice": "33.33", "bob": "33.33", "carol": "33.34"},
        )

        assert owed(result) == [1666, 1666, 1668]
        assert sum(owed(result)) == 5000

    def test_residual_tie_goes_to_first(self) -> None:
        """Should pick the first of equal largest shares."""
        result = allocate(
            Money(100),
            ["alice", "bob", "carol"],
            AllocationStrategy.PERCENTAGE,
            {"alice": Decimal("33.33"), "bob": Decimal("33.33"), "carol": Decimal("33.34")},
        )

        # 33.33, 33.33, 33.34 -> 33, 33, 33 leaves 1 cent; all equal so first gets it
        assert owed(result) == [34, 33, 33]

    def test_accepts_within_tolerance(self) -> None:
        """Should accept a sum within 0.01 of 100."""
        result = allocate(
            Money(9000),
            ["alice", "bob", "carol"],
            AllocationStrategy.PERCENTAGE,
            {"alice": "33.33", "bob": "33.33", "carol": "33.33"},
        )

        assert sum(owed(result)) == 9000

    def test_rejects_sum_outside_tolerance(self) -> None:
        """Should refuse percentages far from 100."""
        with pytest.raises(PercentageMismatch):
            allocate(Money(1000), ["alice", "bob"], AllocationStrategy.PERCENTAGE, {"alice": "60", "bob": "30"})

    def test_rejects_out_of_range(self) -> None:
        """Should refuse percentages above 100 or below 0."""
        with pytest.raises(InvalidAmount):
            allocate(Money(1000), ["alice", "bob"], AllocationStrategy.PERCENTAGE, {"alice": "120", "bob": "-20"})

    def test_rejects_float_percentages(self) -> None:
        """Should refuse float input."""
        with pytest.raises(TypeError):
            allocate(Money(1000), ["alice", "bob"], AllocationStrategy.PERCENTAGE, {"alice": 50.0, "bob": 50.0})

    def test_sum_is_exact(self) -> None:
        """Should always sum back to the total for percentages within tolerance of 100."""
        vectors = [
            ["50", "50"],
            ["0", "100"],
            ["99.99", "0.01"],
            ["33.33", "33.33", "33.34"],
            ["33.33", "33.33", "33.33"],  # 99.99
            ["25.01", "25", "25", "25"],  # 100.01
            ["16.67", "16.67", "16.67", "16.67", "16.67", "16.66"],  # 100.01
            ["14.29", "14.29", "14.29", "14.29", "14.29", "14.29", "14.26"],
            ["12.5"] * 8,
        ]
        for total in (1, 99, 1000, 12345, 10_000_000):
            for pcts in vectors:
                people = [f"p{i}" for i in range(len(pcts))]
                result = allocate(Money(total), people, AllocationStrategy.PERCENTAGE, dict(zip(people, pcts)))

                assert sum(owed(result)) == total
                assert all(share >= 0 for share in owed(result))

    def test_rejects_non_numeric_percentages(self) -> None:
        """Should raise InvalidAmount for text or non-finite percentages."""
        for bad in ("abc", "nan", "inf"):
            with pytest.raises(InvalidAmount):
                allocate(Money(1000), ["alice", "bob"], AllocationStrategy.PERCENTAGE, {"alice": bad, "bob": "50"})


class TestPreconditions:
    """Tests shared by every strategy."""

    def test_rejects_single_participant(self) -> None:
        """Should need at least two participants."""
        with pytest.raises(InsufficientParticipants):
            allocate(Money(1000), ["alice"], AllocationStrategy.EQUAL)

    def test_rejects_duplicates(self) -> None:
        """Should name repeated participants."""
        with pytest.raises(DuplicateParticipant) as exc_info:
            allocate(Money(1000), ["alice", "bob", "alice"], AllocationStrategy.EQUAL)

        assert exc_info.value.duplicates == ["alice"]

    def test_rejects_non_positive_total(self) -> None:
        """Should refuse zero totals."""
        with pytest.raises(InvalidAmount):
            allocate(Money(0), ["alice", "bob"], AllocationStrategy.EQUAL)

    def test_errors_share_a_base(self) -> None:
        """Should raise allocation errors as validation errors."""
        assert issubclass(AmountMismatch, AllocationError)
        assert issubclass(AllocationError, ValidationError)


class TestSummarizeAllocation:
    """Tests for summarize_allocation."""

    def test_summarizes_shares(self) -> None:
        """Should report total, extremes and spread."""
        summary = summarize_allocation(allocate(Money(10000), ["a", "b", "c"], AllocationStrategy.EQUAL))

        assert summary.total == 10000
        assert summary.largest_share == 3334
        assert summary.smallest_share == 3333
        assert summary.spread == 1


class TestValidators:
    """Tests for input validators."""

    def test_total_bounds(self) -> None:
        """Should accept positive totals up to the maximum."""
        assert validate_total_amount(Money(1)) == (True, None)
        assert validate_total_amount(MAX_TOTAL_AMOUNT) == (True, None)

        is_valid, error = validate_total_amount(Money(MAX_TOTAL_AMOUNT + 1))
        assert not is_valid
        assert error is not None and "exceed" in error

        is_valid, _ = validate_total_amount(Money(0))
        assert not is_valid

    def test_total_limit_uses_currency_symbol(self) -> None:
        """Should format the limit in the split's currency."""
        _, error = validate_total_amount(Money(MAX_TOTAL_AMOUNT + 1), Currency("GBP"))

        assert error == "Amount cannot exceed £100,000.00"

    def test_title_required(self) -> None:
        """Should refuse blank or overly long titles."""
        assert validate_split_title("Dinner") == (True, None)
        assert validate_split_title("   ")[0] is False
        assert validate_split_title("x" * 101)[0] is False

    def test_description_optional(self) -> None:
        """Should accept a missing description but not an overly long one."""
        assert validate_split_description(None) == (True, None)
        assert validate_split_description("x" * 501)[0] is False
