"""Pure functions for parsing payment-processor exports.

This module contains the functional core for payment imports:
- No I/O operations (no database, no console, no files)
- No side effects
- Pure data transformations
- Easy to test

All monetary amounts are in cents (Money type).
"""

from typing import TypedDict

from splitledger.domain.money import parse_money

REQUIRED_COLUMNS = ("split_id", "amount", "idempotency_key")
OPTIONAL_COLUMNS = ("participant_id", "payer", "currency", "created_at")


class ParsedPayment(TypedDict):
    """Payment event data ready to be recorded."""

    split_id: str
    participant_id: str | None
    amount: int  # in cents
    idempotency_key: str
    payer: str
    currency: str | None
    created_at: str | None  # raw, normalized by the caller


def missing_columns(headers: list[str]) -> list[str]:
    """Get required columns absent from a CSV header row.

    Args:
        headers: List of CSV column names.

    Returns:
        Required column names not present (case-insensitive), in order.
    """
    present = {h.strip().lower() for h in headers}
    return [col for col in REQUIRED_COLUMNS if col not in present]


def parse_payment_row(row: dict[str, str]) -> ParsedPayment | None:
    """Parse a CSV row into a payment event.

    Args:
        row: CSV row as dictionary (keys are matched case-insensitively).

    Returns:
        ParsedPayment if valid, None if the row should be skipped.
    """
    fields = {str(k).strip().lower(): (v or "").strip() for k, v in row.items() if k is not None}

    split_id = fields.get("split_id", "")
    key = fields.get("idempotency_key", "")
    if not split_id or not key:
        return None

    amount = parse_money(fields.get("amount", ""))
    if amount is None or amount <= 0:
        return None

    return ParsedPayment(
        split_id=split_id,
        participant_id=fields.get("participant_id") or None,
        amount=amount,
        idempotency_key=key,
        payer=fields.get("payer", ""),
        currency=fields.get("currency", "").upper() or None,
        created_at=fields.get("created_at") or None,
    )
