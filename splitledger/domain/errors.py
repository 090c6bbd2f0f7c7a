"""Error taxonomy for the split ledger.

ValidationError subclasses are caller-correctable and never retried.
SettlementReferenceError means a stale or malformed payment event and goes to an
operator. DuplicatePayment is an idempotent acknowledgement, not a failure.
MoneyContractError marks a bug upstream and is not a LedgerError.
"""

from typing import Any

from splitledger.domain.models import Money


class LedgerError(Exception):
    """Base class for recoverable ledger errors."""


class ValidationError(LedgerError):
    """Input was rejected; the caller must correct it."""


class AllocationError(ValidationError):
    """An allocation request could not be satisfied."""


class AmountMismatch(AllocationError):
    """Custom amounts do not sum to the split total."""

    def __init__(self, total: Money, allocated: Money) -> None:
        self.total = total
        self.allocated = allocated
        self.difference = Money(allocated - total)
        super().__init__(f"Custom amounts must equal total (off by {abs(self.difference)} minor units)")


class PercentageMismatch(AllocationError):
    """Percentages do not sum to 100 within tolerance."""

    def __init__(self, total_percentage: Any) -> None:
        self.total_percentage = total_percentage
        super().__init__(f"Percentages must equal 100% (currently {total_percentage}%)")


class IncompleteAllocation(AllocationError):
    """Strategy input does not cover exactly the participant set."""

    def __init__(self, missing: list[str], unexpected: list[str] | None = None) -> None:
        self.missing = missing
        self.unexpected = unexpected or []
        parts = []
        if missing:
            parts.append(f"missing entries for: {', '.join(missing)}")
        if self.unexpected:
            parts.append(f"entries for non-participants: {', '.join(self.unexpected)}")
        super().__init__("Incomplete allocation: " + "; ".join(parts))


class InsufficientParticipants(AllocationError):
    """A split needs the creator plus at least one other person."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"At least 2 participants are required (got {count})")


class DuplicateParticipant(AllocationError):
    """The same participant id appears more than once."""

    def __init__(self, duplicates: list[str]) -> None:
        self.duplicates = duplicates
        super().__init__(f"Duplicate participants: {', '.join(duplicates)}")


class InvalidAmount(ValidationError):
    """An amount or percentage is outside its allowed range."""


class CurrencyMismatch(ValidationError):
    """Amounts in different currencies met, in a payment or a balance."""


class SplitCancelled(ValidationError):
    """Payments cannot be applied to a cancelled split."""


class InvalidTransition(ValidationError):
    """The requested status change is not allowed from the current status."""


class PermissionDenied(ValidationError):
    """Only the split's creator may make structural edits."""


class SettlementReferenceError(LedgerError):
    """A payment event points at something that does not exist."""


class UnknownReference(SettlementReferenceError):
    """Unknown split id or participant id."""

    def __init__(self, kind: str, reference: str, split_id: str | None = None) -> None:
        self.kind = kind
        self.reference = reference
        self.split_id = split_id
        where = f" on split {split_id}" if split_id and kind != "split" else ""
        super().__init__(f"Unknown {kind} '{reference}'{where}")


class DuplicatePayment(LedgerError):
    """The idempotency key was already applied; nothing changed.

    ``result`` holds the current settlement state so callers can acknowledge
    the event as a successful no-op.
    """

    def __init__(self, split_id: str, idempotency_key: str, result: Any = None) -> None:
        self.split_id = split_id
        self.idempotency_key = idempotency_key
        self.result = result
        super().__init__(f"Payment '{idempotency_key}' already recorded for split {split_id}")


class MoneyContractError(TypeError):
    """A non-integer value was used where minor units are required."""
