"""Pure state transitions for settling a split.

Participant payments and web payments are two variants of one PaymentEvent and
go through the same transition function, so the creator's receivable and the
participants' balances are always computed from the same records.

State machines:
- Participant: pending -> paid (terminal, never regresses)
- Split: active -> completed (when nothing remains), active -> cancelled (creator only)

All monetary amounts are in cents (Money type).
"""

from dataclasses import dataclass, replace
from datetime import UTC, datetime

from splitledger.domain.allocation import validate_split_description, validate_split_title
from splitledger.domain.errors import (
    CurrencyMismatch,
    DuplicatePayment,
    InvalidAmount,
    InvalidTransition,
    PermissionDenied,
    SplitCancelled,
    UnknownReference,
    ValidationError,
)
from splitledger.domain.models import (
    Currency,
    IdempotencyKey,
    Money,
    ParticipantStatus,
    PaymentChannel,
    SplitId,
    SplitStatus,
    UserId,
)
from splitledger.domain.money import ensure_minor_units
from splitledger.domain.splits import Participant, ParticipantPayment, SplitLedger, WebPayment


@dataclass(frozen=True)
class PaymentEvent:
    """Immutable successful-payment event reported by the payment processor."""

    split_id: SplitId
    participant_id: UserId | None
    amount: Money
    idempotency_key: IdempotencyKey
    payer_identity: str = ""
    currency: Currency | None = None
    created_at: datetime | None = None

    @property
    def channel(self) -> PaymentChannel:
        return PaymentChannel.WEB if self.participant_id is None else PaymentChannel.PARTICIPANT


@dataclass(frozen=True)
class SettlementResult:
    """Immutable outcome of applying (or acknowledging) a payment event."""

    ledger: SplitLedger
    payment: ParticipantPayment | WebPayment | None
    applied: bool
    duplicate: bool = False

    @property
    def amount_remaining(self) -> Money:
        return self.ledger.amount_remaining

    @property
    def split_status(self) -> SplitStatus:
        return self.ledger.split.status

    @property
    def participant(self) -> Participant | None:
        """Participant row touched by the payment, if any."""
        if isinstance(self.payment, ParticipantPayment):
            return self.ledger.find_participant(self.payment.participant_id)
        return None

    @property
    def excess(self) -> Money:
        """Part of a participant payment beyond what that participant owed."""
        if isinstance(self.payment, ParticipantPayment):
            return Money(self.payment.amount - self.payment.applied_amount)
        return Money(0)


def credit_participant(participant: Participant, amount: Money) -> Participant:
    """Apply a payment amount to a participant row.

    amount_paid is clamped at amount_owed; the raw amount is kept in
    amount_received. A paid row stays paid.

    Args:
        participant: Current participant row.
        amount: Payment amount in cents.

    Returns:
        Updated participant row.
    """
    amount_paid = Money(min(participant.amount_owed, participant.amount_paid + amount))
    status = ParticipantStatus.PAID if amount_paid == participant.amount_owed else ParticipantStatus.PENDING
    if participant.status == ParticipantStatus.PAID:
        status = ParticipantStatus.PAID

    return replace(
        participant,
        amount_paid=amount_paid,
        amount_received=Money(participant.amount_received + amount),
        status=status,
    )


def resolve_split_status(ledger: SplitLedger) -> SplitStatus:
    """Get the status a split should hold after a change.

    Completion is evaluated from amount_remaining; cancellation is sticky.
    """
    if ledger.split.status == SplitStatus.CANCELLED:
        return SplitStatus.CANCELLED
    if ledger.amount_remaining == 0:
        return SplitStatus.COMPLETED
    return ledger.split.status


def validate_payment(ledger: SplitLedger, event: PaymentEvent) -> Money:
    """Check a payment event against a split before applying it.

    Returns:
        The validated amount in cents.

    Raises:
        UnknownReference: If the event is for another split or an unknown participant.
        DuplicatePayment: If the idempotency key was already applied.
        InvalidAmount: If the amount is not positive.
        CurrencyMismatch: If the event's currency differs from the split's.
        SplitCancelled: If the split has been cancelled.
    """
    if event.split_id != ledger.id:
        raise UnknownReference("split", event.split_id)

    if event.idempotency_key in ledger.idempotency_keys:
        raise DuplicatePayment(
            ledger.id,
            event.idempotency_key,
            result=SettlementResult(ledger=ledger, payment=None, applied=False, duplicate=True),
        )

    amount = ensure_minor_units(event.amount)
    if amount <= 0:
        raise InvalidAmount("Payment amount must be greater than 0")

    if event.currency and event.currency.upper() != ledger.split.currency.upper():
        raise CurrencyMismatch(f"Payment in {event.currency} cannot settle a {ledger.split.currency} split")

    if ledger.split.status == SplitStatus.CANCELLED:
        raise SplitCancelled(f"Split {ledger.id} is cancelled")

    if event.participant_id is not None and ledger.find_participant(event.participant_id) is None:
        raise UnknownReference("participant", event.participant_id, ledger.id)

    return amount


def apply_payment(ledger: SplitLedger, event: PaymentEvent) -> SettlementResult:
    """Apply one successful payment event to a split.

    Args:
        ledger: Current split state.
        event: Payment event from either channel.

    Returns:
        SettlementResult holding the new split state.

    Raises:
        LedgerError: See validate_payment.
    """
    amount = validate_payment(ledger, event)
    recorded_at = event.created_at or datetime.now(UTC)

    payment: ParticipantPayment | WebPayment
    if event.participant_id is not None:
        current = ledger.find_participant(event.participant_id)
        if current is None:
            raise UnknownReference("participant", event.participant_id, ledger.id)
        updated = credit_participant(current, amount)
        payment = ParticipantPayment(
            split_id=ledger.id,
            idempotency_key=event.idempotency_key,
            participant_id=current.user_id,
            amount=amount,
            applied_amount=Money(updated.amount_paid - current.amount_paid),
            created_at=recorded_at,
        )
        new_ledger = replace(
            ledger,
            participants=tuple(updated if p.user_id == current.user_id else p for p in ledger.participants),
            participant_payments=ledger.participant_payments + (payment,),
        )
    else:
        payment = WebPayment(
            split_id=ledger.id,
            idempotency_key=event.idempotency_key,
            amount=amount,
            payer_identity=event.payer_identity,
            created_at=recorded_at,
        )
        new_ledger = replace(ledger, web_payments=ledger.web_payments + (payment,))

    new_ledger = replace(new_ledger, split=replace(new_ledger.split, status=resolve_split_status(new_ledger)))
    return SettlementResult(ledger=new_ledger, payment=payment, applied=True)


def require_creator(ledger: SplitLedger, actor_id: str) -> None:
    """Raise PermissionDenied unless actor_id created the split."""
    if actor_id != ledger.split.creator_id:
        raise PermissionDenied(f"Only the creator can change split {ledger.id}")


def cancel_split(ledger: SplitLedger, actor_id: str) -> SplitLedger:
    """Cancel an active split. Participants and payments are kept for history.

    Raises:
        PermissionDenied: If actor_id is not the creator.
        InvalidTransition: If the split is not active.
    """
    require_creator(ledger, actor_id)

    current = resolve_split_status(ledger)
    if current != SplitStatus.ACTIVE:
        raise InvalidTransition(f"Cannot cancel a {current} split")

    return replace(ledger, split=replace(ledger.split, status=SplitStatus.CANCELLED))


def update_split_details(
    ledger: SplitLedger,
    actor_id: str,
    title: str | None = None,
    description: str | None = None,
) -> SplitLedger:
    """Change a split's title or description.

    The total and participants are fixed at creation and cannot be edited.

    Raises:
        PermissionDenied: If actor_id is not the creator.
        ValidationError: If the new title or description is invalid.
    """
    require_creator(ledger, actor_id)

    split = ledger.split
    if title is not None:
        is_valid, error = validate_split_title(title)
        if not is_valid:
            raise ValidationError(error)
        split = replace(split, title=title.strip())

    if description is not None:
        is_valid, error = validate_split_description(description)
        if not is_valid:
            raise ValidationError(error)
        split = replace(split, description=description.strip() or None)

    return replace(ledger, split=split)
