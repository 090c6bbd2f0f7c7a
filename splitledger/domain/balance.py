"""Pure functions for reducing a user's splits to a balance per currency.

All monetary amounts are in cents (Money type). Amounts in different
currencies are never added together.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from splitledger.domain.errors import CurrencyMismatch
from splitledger.domain.models import DEFAULT_CURRENCY, Currency, Money, SplitStatus
from splitledger.domain.splits import SplitLedger


@dataclass(frozen=True)
class BalanceSummary:
    """Immutable "you owe / owed to you" summary for one user in one currency."""

    you_owe: Money
    owed_to_you: Money
    active_split_count: int = 0
    currency: Currency = DEFAULT_CURRENCY

    @property
    def net_balance(self) -> Money:
        return Money(self.owed_to_you - self.you_owe)


def amount_user_owes(user_id: str, ledger: SplitLedger) -> Money:
    """Calculate what a user still owes on one split (0 if not a participant)."""
    participant = ledger.find_participant(user_id)
    if participant is None:
        return Money(0)
    return participant.outstanding


def amount_owed_to_user(user_id: str, ledger: SplitLedger) -> Money:
    """Calculate what a split's creator is still owed.

    Uses the split-level remaining amount, so web payments count as well as
    participant payments.
    """
    if ledger.split.creator_id != user_id:
        return Money(0)
    return ledger.amount_remaining


def aggregate_balances_by_currency(user_id: str, ledgers: Iterable[SplitLedger]) -> dict[Currency, BalanceSummary]:
    """Compute a user's balance across their splits, one summary per currency.

    Only active splits count; completed and cancelled splits contribute
    nothing. Recomputed in full on every call.

    Args:
        user_id: User to compute the balance for.
        ledgers: Splits the user created or participates in.

    Returns:
        BalanceSummary keyed by currency code, in code order. Empty if the
        user has no active splits.
    """
    totals: dict[Currency, list[int]] = {}

    for ledger in ledgers:
        if ledger.effective_status != SplitStatus.ACTIVE:
            continue

        running = totals.setdefault(Currency(ledger.split.currency.upper()), [0, 0, 0])
        running[0] += amount_user_owes(user_id, ledger)
        running[1] += amount_owed_to_user(user_id, ledger)
        running[2] += 1

    return {
        currency: BalanceSummary(
            you_owe=Money(you_owe),
            owed_to_you=Money(owed_to_you),
            active_split_count=active,
            currency=currency,
        )
        for currency, (you_owe, owed_to_you, active) in sorted(totals.items())
    }


def aggregate_balance(
    user_id: str,
    ledgers: Iterable[SplitLedger],
    currency: Currency = DEFAULT_CURRENCY,
) -> BalanceSummary:
    """Compute a user's balance across splits that share one currency.

    Args:
        user_id: User to compute the balance for.
        ledgers: Splits the user created or participates in.
        currency: Currency reported when there are no active splits.

    Returns:
        BalanceSummary with you_owe, owed_to_you and net_balance.

    Raises:
        CurrencyMismatch: If the active splits are in more than one currency.
            Use aggregate_balances_by_currency for those.
    """
    balances = aggregate_balances_by_currency(user_id, ledgers)
    if len(balances) > 1:
        raise CurrencyMismatch(f"Active splits span several currencies: {', '.join(balances)}")
    if not balances:
        return BalanceSummary(you_owe=Money(0), owed_to_you=Money(0), currency=Currency(currency.upper()))
    return next(iter(balances.values()))
