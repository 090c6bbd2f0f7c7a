"""Database query functions."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

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
from splitledger.domain.settlement import SettlementResult
from splitledger.domain.splits import Participant, ParticipantPayment, Split, SplitLedger, WebPayment
from splitledger.store.schema import get_db_path


def _connect(db_path: Path | None = None) -> sqlite3.Connection:
    """Create a database connection with row factory.

    Args:
        db_path: Path to the database file. If None, uses default location.

    Returns:
        Database connection with row_factory configured.
    """
    if db_path is None:
        db_path = get_db_path()
    conn = sqlite3.connect(db_path, timeout=30)
    conn.row_factory = sqlite3.Row
    return conn


def _split_from_row(row: sqlite3.Row) -> Split:
    return Split(
        id=SplitId(row["id"]),
        creator_id=UserId(row["creator_id"]),
        title=row["title"],
        description=row["description"],
        total_amount=Money(row["total_amount"]),
        currency=Currency(row["currency"]),
        allocation_strategy=AllocationStrategy(row["allocation_strategy"]),
        status=SplitStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _participant_from_row(row: sqlite3.Row) -> Participant:
    return Participant(
        split_id=SplitId(row["split_id"]),
        user_id=UserId(row["user_id"]),
        amount_owed=Money(row["amount_owed"]),
        amount_paid=Money(row["amount_paid"]),
        status=ParticipantStatus(row["status"]),
        amount_received=Money(row["amount_received"]),
    )


def insert_split(ledger: SplitLedger, db_path: Path | None = None) -> None:
    """Insert a new split and all of its participants atomically.

    Args:
        ledger: Newly allocated split with its participants.
        db_path: Path to the database file. If None, uses default location.

    Raises:
        sqlite3.IntegrityError: If the split id already exists.
        sqlite3.Error: If database operation fails.
    """
    split = ledger.split
    with _connect(db_path) as conn:
        cursor = conn.cursor()
        try:
            cursor.execute(
                """
                INSERT INTO splits
                    (id, creator_id, title, description, total_amount, currency, allocation_strategy, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    split.id,
                    split.creator_id,
                    split.title,
                    split.description,
                    split.total_amount,
                    split.currency,
                    str(split.allocation_strategy),
                    str(split.status),
                    split.created_at.isoformat(),
                ),
            )
            cursor.executemany(
                """
                INSERT INTO participants
                    (split_id, user_id, position, amount_owed, amount_paid, status, amount_received)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (split.id, p.user_id, i, p.amount_owed, p.amount_paid, str(p.status), p.amount_received)
                    for i, p in enumerate(ledger.participants)
                ],
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise


def _read_split_ledger(cursor: sqlite3.Cursor, split_id: str) -> SplitLedger | None:
    cursor.execute("SELECT * FROM splits WHERE id = ?", (split_id,))
    split_row = cursor.fetchone()
    if not split_row:
        return None

    cursor.execute("SELECT * FROM participants WHERE split_id = ? ORDER BY position", (split_id,))
    participants = tuple(_participant_from_row(row) for row in cursor.fetchall())

    cursor.execute(
        "SELECT * FROM participant_payments WHERE split_id = ? ORDER BY created_at, rowid",
        (split_id,),
    )
    participant_payments = tuple(
        ParticipantPayment(
            split_id=SplitId(row["split_id"]),
            idempotency_key=IdempotencyKey(row["idempotency_key"]),
            participant_id=UserId(row["participant_id"]),
            amount=Money(row["amount"]),
            applied_amount=Money(row["applied_amount"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
        for row in cursor.fetchall()
    )

    cursor.execute("SELECT * FROM web_payments WHERE split_id = ? ORDER BY created_at, rowid", (split_id,))
    web_payments = tuple(
        WebPayment(
            split_id=SplitId(row["split_id"]),
            idempotency_key=IdempotencyKey(row["idempotency_key"]),
            amount=Money(row["amount"]),
            payer_identity=row["payer_identity"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
        for row in cursor.fetchall()
    )

    return SplitLedger(
        split=_split_from_row(split_row),
        participants=participants,
        participant_payments=participant_payments,
        web_payments=web_payments,
    )


def get_split_ledger(split_id: str, db_path: Path | None = None) -> SplitLedger | None:
    """Load a split with its participants and payments.

    Args:
        split_id: Split ID.
        db_path: Path to the database file. If None, uses default location.

    Returns:
        SplitLedger, or None if no split has this id.

    Raises:
        sqlite3.Error: If database operation fails.
    """
    with _connect(db_path) as conn:
        return _read_split_ledger(conn.cursor(), split_id)


def get_user_split_ids(user_id: str, db_path: Path | None = None) -> list[SplitId]:
    """Get ids of every split a user created or participates in.

    Args:
        user_id: User ID.
        db_path: Path to the database file. If None, uses default location.

    Returns:
        Split ids, newest first.

    Raises:
        sqlite3.Error: If database operation fails.
    """
    with _connect(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT DISTINCT s.id, s.created_at
            FROM splits s
            LEFT JOIN participants p ON p.split_id = s.id
            WHERE s.creator_id = ? OR p.user_id = ?
            ORDER BY s.created_at DESC
            """,
            (user_id, user_id),
        )
        return [SplitId(row["id"]) for row in cursor.fetchall()]


@contextmanager
def split_transaction(
    split_id: str, db_path: Path | None = None
) -> Iterator[tuple[sqlite3.Cursor, SplitLedger | None]]:
    """Hold the database write lock while a split is read, changed and written.

    The transaction starts with BEGIN IMMEDIATE, so the split is loaded after
    every other writer has committed and no other writer can commit until this
    one finishes. It commits when the block exits normally and rolls back if it
    raises.

    Args:
        split_id: Split ID.
        db_path: Path to the database file. If None, uses default location.

    Yields:
        Tuple of (cursor, ledger) where ledger is None if no split has this id.

    Raises:
        sqlite3.Error: If database operation fails.
    """
    if db_path is None:
        db_path = get_db_path()
    conn = sqlite3.connect(db_path, timeout=30, isolation_level=None)
    conn.row_factory = sqlite3.Row
    cursor = conn.cursor()

    try:
        cursor.execute("BEGIN IMMEDIATE")
        try:
            yield cursor, _read_split_ledger(cursor, split_id)
        except BaseException:
            cursor.execute("ROLLBACK")
            raise
        cursor.execute("COMMIT")
    finally:
        conn.close()


def write_settlement(cursor: sqlite3.Cursor, result: SettlementResult) -> None:
    """Write an applied payment inside a split_transaction.

    Writes the payment row, the touched participant row and the split status.
    The (split_id, idempotency_key) primary keys and the cross-table triggers
    reject a key already stored through either channel.

    Args:
        cursor: Cursor from split_transaction.
        result: Applied settlement result.

    Raises:
        sqlite3.IntegrityError: If the idempotency key is already stored.
        sqlite3.Error: If database operation fails.
    """
    payment = result.payment
    split = result.ledger.split

    if isinstance(payment, ParticipantPayment):
        cursor.execute(
            """
            INSERT INTO participant_payments
                (split_id, idempotency_key, participant_id, amount, applied_amount, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                payment.split_id,
                payment.idempotency_key,
                payment.participant_id,
                payment.amount,
                payment.applied_amount,
                payment.created_at.isoformat(),
            ),
        )
        participant = result.participant
        if participant is not None:
            cursor.execute(
                """
                UPDATE participants SET amount_paid = ?, amount_received = ?, status = ?
                WHERE split_id = ? AND user_id = ?
                """,
                (
                    participant.amount_paid,
                    participant.amount_received,
                    str(participant.status),
                    participant.split_id,
                    participant.user_id,
                ),
            )
    elif isinstance(payment, WebPayment):
        cursor.execute(
            """
            INSERT INTO web_payments (split_id, idempotency_key, amount, payer_identity, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                payment.split_id,
                payment.idempotency_key,
                payment.amount,
                payment.payer_identity,
                payment.created_at.isoformat(),
            ),
        )

    cursor.execute("UPDATE splits SET status = ? WHERE id = ?", (str(split.status), split.id))


def write_split(cursor: sqlite3.Cursor, split: Split) -> None:
    """Write a split's editable fields (title, description, status) inside a split_transaction.

    Args:
        cursor: Cursor from split_transaction.
        split: Split with new values.

    Raises:
        sqlite3.Error: If database operation fails.
    """
    cursor.execute(
        "UPDATE splits SET title = ?, description = ?, status = ? WHERE id = ?",
        (split.title, split.description, str(split.status), split.id),
    )
