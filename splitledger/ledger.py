"""Split ledger service: the operations the surrounding application calls.

- allocate_split: validate and allocate a new split (no persistence)
- apportion_fee: fee preview for a payer
- SettlementTracker.record_payment: apply a payment event exactly once
- aggregate_balance: a user's "you owe / owed to you" summary (one per currency
  with aggregate_balances_by_currency)

The functional core lives in splitledger.domain; this module adds identifiers,
persistence and the transactions that serialize payment application.
"""

import logging
import threading
import uuid
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from splitledger.domain.allocation import (
    allocate,
    validate_split_description,
    validate_split_title,
    validate_total_amount,
)
from splitledger.domain.balance import BalanceSummary, aggregate_balance, aggregate_balances_by_currency
from splitledger.domain.errors import DuplicatePayment, InvalidAmount, UnknownReference, ValidationError
from splitledger.domain.fees import DEFAULT_FEE_SCHEDULE, FeeBreakdown, FeeSchedule
from splitledger.domain.fees import apportion_fee as _apportion_fee
from splitledger.domain.models import (
    DEFAULT_CURRENCY,
    AllocationStrategy,
    Currency,
    IdempotencyKey,
    Money,
    SplitId,
    SplitStatus,
    UserId,
)
from splitledger.domain.money import ensure_minor_units
from splitledger.domain.settlement import PaymentEvent, SettlementResult, apply_payment, cancel_split
from splitledger.domain.settlement import update_split_details as _update_split_details
from splitledger.domain.splits import Split, SplitLedger
from splitledger.store.queries import (
    get_split_ledger,
    get_user_split_ids,
    insert_split,
    split_transaction,
    write_settlement,
    write_split,
)
from splitledger.store.schema import get_db_path

logger = logging.getLogger(__name__)

__all__ = [
    "SettlementTracker",
    "aggregate_balance",
    "aggregate_balances_by_currency",
    "allocate_split",
    "apportion_fee",
    "new_split_id",
]


def new_split_id() -> SplitId:
    """Generate a new split id."""
    return SplitId(uuid.uuid4().hex)


def allocate_split(
    creator_id: str,
    title: str,
    total: Money,
    participant_ids: Sequence[str],
    strategy: AllocationStrategy | str = AllocationStrategy.EQUAL,
    strategy_input: Mapping[str, Any] | None = None,
    description: str | None = None,
    currency: Currency = DEFAULT_CURRENCY,
    split_id: SplitId | None = None,
    created_at: datetime | None = None,
) -> SplitLedger:
    """Validate inputs and build a new split with all participants pending.

    The creator always takes part in the split; if creator_id is missing from
    participant_ids it is placed first.

    Args:
        creator_id: User creating the split.
        title: Split title.
        total: Split total in cents.
        participant_ids: Participant ids in display order.
        strategy: Allocation strategy.
        strategy_input: Amounts (custom) or percentages (percentage) per participant.
        description: Optional description.
        currency: Currency of the total.
        split_id: Id to use. If None, a new one is generated.
        created_at: Creation time. If None, uses now (UTC).

    Returns:
        SplitLedger for the new split.

    Raises:
        ValidationError: If the title, description or total is invalid, or allocation fails.
    """
    is_valid, error = validate_split_title(title)
    if not is_valid:
        raise ValidationError(error)

    is_valid, error = validate_split_description(description)
    if not is_valid:
        raise ValidationError(error)

    is_valid, error = validate_total_amount(ensure_minor_units(total), currency)
    if not is_valid:
        raise InvalidAmount(error)

    members = list(participant_ids)
    if creator_id not in members:
        members.insert(0, creator_id)

    split_id = split_id or new_split_id()
    participants = allocate(total, members, strategy, strategy_input, split_id=split_id)

    split = Split(
        id=split_id,
        creator_id=UserId(creator_id),
        title=title.strip(),
        description=description.strip() if description and description.strip() else None,
        total_amount=total,
        currency=Currency(currency.upper()),
        allocation_strategy=AllocationStrategy(strategy),
        status=SplitStatus.ACTIVE,
        created_at=created_at or datetime.now(UTC),
    )
    return SplitLedger(split=split, participants=tuple(participants))


def apportion_fee(
    amount_owed: Money,
    participant_count: int,
    schedule: FeeSchedule | None = None,
) -> FeeBreakdown:
    """Fee preview shown to a payer before they confirm a payment.

    Args:
        amount_owed: The payer's owed amount in cents.
        participant_count: Number of participants in the split.
        schedule: Fee structure. If None, uses the default schedule.

    Returns:
        FeeBreakdown for this payer.
    """
    return _apportion_fee(amount_owed, participant_count, schedule or DEFAULT_FEE_SCHEDULE)


class SettlementTracker:
    """Persistent split ledger with exactly-once payment application.

    Every change to a stored split is read, applied and written inside one
    split_transaction, which holds the database write lock. That serializes
    writers across trackers and processes. A per-split lock additionally
    queues threads of one tracker before they reach the database.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or get_db_path()
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, split_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(split_id)
            if lock is None:
                lock = self._locks[split_id] = threading.Lock()
            return lock

    def create_split(
        self,
        creator_id: str,
        title: str,
        total: Money,
        participant_ids: Sequence[str],
        strategy: AllocationStrategy | str = AllocationStrategy.EQUAL,
        strategy_input: Mapping[str, Any] | None = None,
        description: str | None = None,
        currency: Currency = DEFAULT_CURRENCY,
    ) -> SplitLedger:
        """Allocate a split and store it with its participants atomically."""
        ledger = allocate_split(
            creator_id,
            title,
            total,
            participant_ids,
            strategy=strategy,
            strategy_input=strategy_input,
            description=description,
            currency=currency,
        )
        insert_split(ledger, self.db_path)
        logger.info(
            "Created split %s (%s, %d participants, total %d %s)",
            ledger.id,
            ledger.split.allocation_strategy,
            ledger.participant_count,
            ledger.split.total_amount,
            ledger.split.currency,
        )
        return ledger

    def get_split(self, split_id: str) -> SplitLedger:
        """Load a split.

        Raises:
            UnknownReference: If no split has this id.
        """
        ledger = get_split_ledger(split_id, self.db_path)
        if ledger is None:
            raise UnknownReference("split", split_id)
        return ledger

    def list_user_splits(self, user_id: str) -> list[SplitLedger]:
        """Load every split a user created or participates in, newest first."""
        ledgers = []
        for split_id in get_user_split_ids(user_id, self.db_path):
            ledger = get_split_ledger(split_id, self.db_path)
            if ledger is not None:
                ledgers.append(ledger)
        return ledgers

    def record_payment(
        self,
        split_id: str,
        participant_id: str | None,
        amount: Money,
        idempotency_key: str,
        payer_identity: str = "",
        currency: str | None = None,
        created_at: datetime | None = None,
    ) -> SettlementResult:
        """Apply a successful payment event exactly once.

        Args:
            split_id: Split the payment is for.
            participant_id: Paying participant, or None for a web payment.
            amount: Amount paid in cents.
            idempotency_key: Caller-supplied key identifying this event.
            payer_identity: Free-form identity of a web payer.
            currency: Currency reported by the processor, if any.
            created_at: When the payment happened. If None, uses now (UTC).

        Returns:
            SettlementResult with the new split state.

        Raises:
            UnknownReference: If the split or participant doesn't exist.
            DuplicatePayment: If the key was already applied (its result holds current state).
            ValidationError: If the payment is invalid for this split.
            sqlite3.Error: If the write fails; retry with the same key.
        """
        event = PaymentEvent(
            split_id=SplitId(split_id),
            participant_id=UserId(participant_id) if participant_id is not None else None,
            amount=amount,
            idempotency_key=IdempotencyKey(idempotency_key),
            payer_identity=payer_identity,
            currency=Currency(currency) if currency else None,
            created_at=created_at,
        )

        with self._lock_for(split_id), split_transaction(split_id, self.db_path) as (cursor, ledger):
            if ledger is None:
                logger.warning("Payment %s references unknown split %s", idempotency_key, split_id)
                raise UnknownReference("split", split_id)

            try:
                result = apply_payment(ledger, event)
            except DuplicatePayment:
                logger.info("Duplicate payment %s for split %s acknowledged", idempotency_key, split_id)
                raise
            except UnknownReference:
                logger.warning(
                    "Payment %s references unknown participant %s on split %s",
                    idempotency_key,
                    participant_id,
                    split_id,
                )
                raise

            write_settlement(cursor, result)

        logger.info(
            "Applied %s payment %s to split %s: %d received, %d remaining, status %s",
            event.channel,
            idempotency_key,
            split_id,
            event.amount,
            result.amount_remaining,
            result.split_status,
        )
        return result

    def cancel_split(self, split_id: str, actor_id: str) -> SplitLedger:
        """Cancel an active split (creator only)."""
        with self._lock_for(split_id), split_transaction(split_id, self.db_path) as (cursor, ledger):
            if ledger is None:
                raise UnknownReference("split", split_id)
            ledger = cancel_split(ledger, actor_id)
            write_split(cursor, ledger.split)
        logger.info("Cancelled split %s", split_id)
        return ledger

    def update_split_details(
        self,
        split_id: str,
        actor_id: str,
        title: str | None = None,
        description: str | None = None,
    ) -> SplitLedger:
        """Change a split's title or description (creator only)."""
        with self._lock_for(split_id), split_transaction(split_id, self.db_path) as (cursor, ledger):
            if ledger is None:
                raise UnknownReference("split", split_id)
            ledger = _update_split_details(ledger, actor_id, title, description)
            write_split(cursor, ledger.split)
        return ledger

    def balance_for(self, user_id: str, currency: Currency = DEFAULT_CURRENCY) -> BalanceSummary:
        """Recompute a user's balance from their stored splits.

        Raises:
            CurrencyMismatch: If the user's active splits are in more than one currency.
        """
        return aggregate_balance(user_id, self.list_user_splits(user_id), currency)

    def balances_for(self, user_id: str) -> dict[Currency, BalanceSummary]:
        """Recompute a user's balance per currency from their stored splits."""
        return aggregate_balances_by_currency(user_id, self.list_user_splits(user_id))
