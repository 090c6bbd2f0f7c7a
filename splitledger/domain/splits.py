"""Immutable split records and the quantities derived from them.

A SplitLedger is the unit every other component works on: one split, its
participant rows, and every payment applied to it. Nothing derived (total
paid, amount remaining, completion) is stored; it is recomputed from the
records so it cannot drift.

All monetary amounts are in cents (Money type).
"""

from dataclasses import dataclass, field
from datetime import datetime

from splitledger.domain.models import (
    AllocationStrategy,
    Currency,
    IdempotencyKey,
    Money,
    ParticipantStatus,
    SplitId,
    SplitStatus,
    UserId,
)


@dataclass(frozen=True)
class Split:
    """Immutable shared expense header."""

    id: SplitId
    creator_id: UserId
    title: str
    total_amount: Money
    currency: Currency
    allocation_strategy: AllocationStrategy
    status: SplitStatus
    created_at: datetime
    description: str | None = None


@dataclass(frozen=True)
class Participant:
    """Immutable stake of one person in a split."""

    split_id: SplitId
    user_id: UserId
    amount_owed: Money
    amount_paid: Money = Money(0)
    status: ParticipantStatus = ParticipantStatus.PENDING
    amount_received: Money = Money(0)  # Raw total received, may exceed amount_owed

    @property
    def outstanding(self) -> Money:
        """Amount still owed by this participant (never negative)."""
        return Money(max(0, self.amount_owed - self.amount_paid))


@dataclass(frozen=True)
class ParticipantPayment:
    """Immutable audit record of a payment applied to a participant row."""

    split_id: SplitId
    idempotency_key: IdempotencyKey
    participant_id: UserId
    amount: Money  # As reported by the processor
    applied_amount: Money  # Portion that reduced the participant's balance
    created_at: datetime


@dataclass(frozen=True)
class WebPayment:
    """Immutable payment from someone without a participant row."""

    split_id: SplitId
    idempotency_key: IdempotencyKey
    amount: Money
    payer_identity: str
    created_at: datetime


@dataclass(frozen=True)
class SplitLedger:
    """Immutable split together with its participants and payments."""

    split: Split
    participants: tuple[Participant, ...]
    participant_payments: tuple[ParticipantPayment, ...] = field(default_factory=tuple)
    web_payments: tuple[WebPayment, ...] = field(default_factory=tuple)

    @property
    def id(self) -> SplitId:
        return self.split.id

    @property
    def total_paid(self) -> Money:
        """Sum of participant amount_paid plus every web payment."""
        participants_paid = sum(p.amount_paid for p in self.participants)
        web_paid = sum(w.amount for w in self.web_payments)
        return Money(participants_paid + web_paid)

    @property
    def amount_remaining(self) -> Money:
        """Total minus total paid, floored at zero."""
        return Money(max(0, self.split.total_amount - self.total_paid))

    @property
    def effective_status(self) -> SplitStatus:
        """Status evaluated from the payments rather than trusted from storage."""
        if self.split.status == SplitStatus.CANCELLED:
            return SplitStatus.CANCELLED
        if self.amount_remaining == 0:
            return SplitStatus.COMPLETED
        return SplitStatus.ACTIVE

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def paid_count(self) -> int:
        return sum(1 for p in self.participants if p.status == ParticipantStatus.PAID)

    @property
    def idempotency_keys(self) -> frozenset[IdempotencyKey]:
        """Every key already applied through either payment channel."""
        keys = {p.idempotency_key for p in self.participant_payments}
        keys.update(w.idempotency_key for w in self.web_payments)
        return frozenset(keys)

    def find_participant(self, user_id: str) -> Participant | None:
        """Get a participant row by user id."""
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def creator_share(self) -> Money:
        """Amount owed by the creator's own participant row (0 if none)."""
        creator = self.find_participant(self.split.creator_id)
        return creator.amount_owed if creator else Money(0)
