"""Domain type definitions for splitledger.

These NewTypes and enums provide semantic clarity and help with type checking:
- Money: Amount in cents (minor units)
- Currency: ISO-4217 currency code (e.g., "AUD")
- SplitId, UserId: Identifiers for splits and participants
- IdempotencyKey: Caller-supplied token identifying one payment event
"""

from enum import StrEnum
from typing import NewType

# Money amounts are stored as cents (minor units) to avoid floating point errors
Money = NewType("Money", int)

# Currency code shared by every amount belonging to a split
Currency = NewType("Currency", str)

SplitId = NewType("SplitId", str)

# Member user id, or an external-payer token for non-members
UserId = NewType("UserId", str)

IdempotencyKey = NewType("IdempotencyKey", str)

DEFAULT_CURRENCY = Currency("AUD")


class AllocationStrategy(StrEnum):
    """Rule used to divide a split's total among participants."""

    EQUAL = "equal"
    CUSTOM = "custom"
    PERCENTAGE = "percentage"


class SplitStatus(StrEnum):
    """Lifecycle status of a split."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantStatus(StrEnum):
    """Payment status of one participant row."""

    PENDING = "pending"
    PAID = "paid"


class PaymentChannel(StrEnum):
    """Where a payment event came from."""

    PARTICIPANT = "participant"
    WEB = "web"
