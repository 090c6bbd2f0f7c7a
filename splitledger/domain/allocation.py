"""Pure functions for dividing a split's total among its participants.

This module contains the functional core for allocation:
- No I/O operations (no database, no console, no files)
- No side effects
- Pure data transformations
- Easy to test

All monetary amounts are in cents (Money type). Every successful allocation
sums exactly to the requested total.
"""

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from splitledger.domain.errors import (
    AmountMismatch,
    DuplicateParticipant,
    IncompleteAllocation,
    InsufficientParticipants,
    InvalidAmount,
    PercentageMismatch,
)
from splitledger.domain.models import (
    DEFAULT_CURRENCY,
    AllocationStrategy,
    Currency,
    Money,
    ParticipantStatus,
    SplitId,
    UserId,
)
from splitledger.domain.money import divide, ensure_minor_units, format_money, percentage_of, to_percentage
from splitledger.domain.splits import Participant

MIN_PARTICIPANTS = 2
PERCENTAGE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class AllocationSummary:
    """Immutable summary of an allocation result."""

    total: Money
    largest_share: Money
    smallest_share: Money

    @property
    def spread(self) -> Money:
        return Money(self.largest_share - self.smallest_share)


def check_preconditions(total: Money, participants: Sequence[str]) -> None:
    """Validate the inputs shared by every strategy.

    Raises:
        InvalidAmount: If total is not positive.
        InsufficientParticipants: If fewer than two participants.
        DuplicateParticipant: If a participant id repeats.
    """
    ensure_minor_units(total)
    if total <= 0:
        raise InvalidAmount("Amount must be greater than 0")

    if len(participants) < MIN_PARTICIPANTS:
        raise InsufficientParticipants(len(participants))

    duplicates = [pid for pid, count in Counter(participants).items() if count > 1]
    if duplicates:
        raise DuplicateParticipant(duplicates)


def check_coverage(participants: Sequence[str], strategy_input: Mapping[str, Any]) -> None:
    """Ensure strategy input has exactly one entry per participant.

    Raises:
        IncompleteAllocation: If entries are missing or refer to non-participants.
    """
    missing = [pid for pid in participants if pid not in strategy_input]
    unexpected = sorted(str(key) for key in strategy_input if key not in set(participants))
    if missing or unexpected:
        raise IncompleteAllocation(missing, unexpected)


def allocate_equal(total: Money, participants: Sequence[str]) -> list[Money]:
    """Split evenly; earlier participants absorb the remainder cents."""
    return divide(total, len(participants))


def allocate_custom(total: Money, participants: Sequence[str], amounts: Mapping[str, Any]) -> list[Money]:
    """Use caller-supplied amounts, which must sum to the total exactly.

    Raises:
        IncompleteAllocation: If the amounts don't cover the participant set.
        InvalidAmount: If any amount is negative.
        AmountMismatch: If the amounts don't sum to the total.
    """
    check_coverage(participants, amounts)

    shares = [ensure_minor_units(amounts[pid]) for pid in participants]
    if any(share < 0 for share in shares):
        raise InvalidAmount("Custom amounts cannot be negative")

    allocated = Money(sum(shares))
    if allocated != total:
        raise AmountMismatch(total, allocated)

    return shares


def allocate_percentage(total: Money, participants: Sequence[str], percentages: Mapping[str, Any]) -> list[Money]:
    """Allocate by percentage, then correct the rounding residual.

    Each share is rounded half-to-even on its own; whatever the rounded shares
    miss (or overshoot) the total by goes to the largest share, the first one
    in participant order if several are equal.

    Raises:
        IncompleteAllocation: If the percentages don't cover the participant set.
        InvalidAmount: If a percentage is outside 0-100.
        PercentageMismatch: If percentages don't sum to 100 within 0.01.
    """
    check_coverage(participants, percentages)

    pcts = [to_percentage(percentages[pid]) for pid in participants]
    if any(pct < 0 or pct > 100 for pct in pcts):
        raise InvalidAmount("Percentages must be between 0 and 100")

    total_percentage = sum(pcts, Decimal(0))
    if abs(total_percentage - 100) > PERCENTAGE_TOLERANCE:
        raise PercentageMismatch(total_percentage)

    shares = [percentage_of(total, pct) for pct in pcts]
    residual = total - sum(shares)
    if residual:
        largest = shares.index(max(shares))
        shares[largest] = Money(shares[largest] + residual)

    return shares


def allocate(
    total: Money,
    participants: Sequence[str],
    strategy: AllocationStrategy | str,
    strategy_input: Mapping[str, Any] | None = None,
    split_id: SplitId = SplitId(""),
) -> list[Participant]:
    """Produce validated participant rows for a new split.

    Args:
        total: Split total in cents.
        participants: Participant ids in display order (creator included).
        strategy: Allocation strategy.
        strategy_input: Amounts (custom) or percentages (percentage) keyed by participant.
        split_id: Split id to stamp on the rows.

    Returns:
        One Participant per id, in input order, with nothing paid yet.

    Raises:
        AllocationError: If the request cannot be allocated.
        InvalidAmount: If the total or an input value is out of range.
    """
    check_preconditions(total, participants)
    strategy = AllocationStrategy(strategy)

    if strategy == AllocationStrategy.EQUAL:
        shares = allocate_equal(total, participants)
    elif strategy == AllocationStrategy.CUSTOM:
        shares = allocate_custom(total, participants, strategy_input or {})
    else:
        shares = allocate_percentage(total, participants, strategy_input or {})

    return [
        Participant(
            split_id=split_id,
            user_id=UserId(pid),
            amount_owed=share,
            # A zero share is already settled; amount_paid == amount_owed means paid
            status=ParticipantStatus.PAID if share == 0 else ParticipantStatus.PENDING,
        )
        for pid, share in zip(participants, shares)
    ]


def summarize_allocation(participants: Sequence[Participant]) -> AllocationSummary:
    """Summarize an allocation for previews and checks."""
    owed = [p.amount_owed for p in participants]
    return AllocationSummary(
        total=Money(sum(owed)),
        largest_share=Money(max(owed, default=0)),
        smallest_share=Money(min(owed, default=0)),
    )


MAX_TOTAL_AMOUNT = Money(10_000_000)  # $100,000.00
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


def validate_total_amount(total: Money, currency: Currency = DEFAULT_CURRENCY) -> tuple[bool, str | None]:
    """Validate a split total entered by a user.

    Args:
        total: Amount in cents.
        currency: Currency of the total, used in the error message.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if total <= 0:
        return False, "Amount must be greater than 0"

    if total > MAX_TOTAL_AMOUNT:
        return False, f"Amount cannot exceed {format_money(MAX_TOTAL_AMOUNT, currency)}"

    return True, None


def validate_split_title(title: str) -> tuple[bool, str | None]:
    """Validate a split title.

    Args:
        title: Title text.

    Returns:
        Tuple of (is_valid, error_message).
    """
    stripped = title.strip()
    if not stripped:
        return False, "Title is required"

    if len(stripped) > MAX_TITLE_LENGTH:
        return False, f"Title must be {MAX_TITLE_LENGTH} characters or less"

    return True, None


def validate_split_description(description: str | None) -> tuple[bool, str | None]:
    """Validate an optional split description.

    Args:
        description: Description text or None.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if description and len(description.strip()) > MAX_DESCRIPTION_LENGTH:
        return False, f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less"

    return True, None
