"""Pure functions for apportioning payment fees among participants.

Every participant subsidizes the receiver's cost of collecting money: each fee
pool for a payment is split evenly across the whole split, not just between
payer and receiver. Results are advisory until a payment is actually recorded.

All monetary amounts are in cents (Money type).
"""

from dataclasses import dataclass
from decimal import Decimal

from splitledger.domain.models import Money
from splitledger.domain.money import divide, ensure_minor_units, percentage_of


@dataclass(frozen=True)
class FeeSchedule:
    """Immutable fee structure for one payment."""

    processor_percent: Decimal = Decimal("2.9")
    processor_fixed: Money = Money(30)  # $0.30
    payout_percent: Decimal = Decimal("1.5")  # Instant payout to the receiver
    platform_fixed: Money = Money(50)  # $0.50


DEFAULT_FEE_SCHEDULE = FeeSchedule()


@dataclass(frozen=True)
class FeeBreakdown:
    """Immutable fee breakdown for one payer."""

    amount: Money
    participant_count: int
    processor_fee: Money  # Whole processor fee for the transaction
    processor_fee_share: Money
    payout_fee_share: Money
    platform_fee_share: Money

    @property
    def user_fee(self) -> Money:
        """Total fee this payer covers."""
        return Money(self.processor_fee_share + self.payout_fee_share + self.platform_fee_share)

    @property
    def total(self) -> Money:
        """Amount the payer is charged."""
        return Money(self.amount + self.user_fee)


def payer_share(pool: Money, participant_count: int) -> Money:
    """Get the payer's share of a fee pool.

    The payer takes the first share from divide, so any remainder cent is
    collected rather than lost.
    """
    return divide(pool, participant_count)[0]


def apportion_fee(
    amount_owed: Money,
    participant_count: int,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> FeeBreakdown:
    """Calculate what a payer is charged for settling their share.

    Args:
        amount_owed: The payer's owed amount in cents.
        participant_count: Number of participants in the split, receiver included.
        schedule: Fee structure to apply.

    Returns:
        FeeBreakdown for this payer.

    Raises:
        ValueError: If participant_count < 1 or amount_owed is negative.
    """
    amount_owed = ensure_minor_units(amount_owed)
    if participant_count < 1:
        raise ValueError(f"participant_count must be at least 1, got {participant_count}")
    if amount_owed < 0:
        raise ValueError(f"amount_owed cannot be negative, got {amount_owed}")

    processor_fee = Money(percentage_of(amount_owed, schedule.processor_percent) + schedule.processor_fixed)
    payout_fee = percentage_of(amount_owed, schedule.payout_percent)

    return FeeBreakdown(
        amount=amount_owed,
        participant_count=participant_count,
        processor_fee=processor_fee,
        processor_fee_share=payer_share(processor_fee, participant_count),
        payout_fee_share=payer_share(payout_fee, participant_count),
        platform_fee_share=payer_share(schedule.platform_fixed, participant_count),
    )
