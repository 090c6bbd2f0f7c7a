"""Domain models and types for splitledger.

This package contains the functional core:
- Pure functions with no side effects
- No I/O operations
- Easy to test
- Business logic separated from infrastructure
"""

from splitledger.domain.models import (
    AllocationStrategy,
    Currency,
    IdempotencyKey,
    Money,
    ParticipantStatus,
    PaymentChannel,
    SplitId,
    SplitStatus,
    UserId,
)

__all__ = [
    "AllocationStrategy",
    "Currency",
    "IdempotencyKey",
    "Money",
    "ParticipantStatus",
    "PaymentChannel",
    "SplitId",
    "SplitStatus",
    "UserId",
]
