"""Payment commands (pay, import-payments, fees)."""

import sqlite3
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pandas as pd
from rich.console import Console
from rich.table import Table

from splitledger.commands.admin import require_current_user
from splitledger.commands.splits import get_tracker
from splitledger.config import get_fee_schedule, load_config
from splitledger.domain.errors import DuplicatePayment, LedgerError
from splitledger.domain.imports import missing_columns, parse_payment_row
from splitledger.domain.models import Money, SplitStatus
from splitledger.domain.money import format_money, parse_money
from splitledger.domain.settlement import SettlementResult
from splitledger.ledger import SettlementTracker, apportion_fee

console = Console()


def normalize_payment_time(raw: str) -> datetime:
    """Normalize a processor timestamp to an aware UTC datetime.

    Processor exports mix ISO timestamps with local day-first dates, so parsing
    goes through pandas.to_datetime.

    Raises:
        ValueError: If the timestamp cannot be parsed.
    """
    try:
        return pd.to_datetime(raw, dayfirst=True, utc=True).to_pydatetime()
    except (ValueError, pd.errors.ParserError) as e:
        raise ValueError(f"Could not parse timestamp '{raw}': {e}") from e


@dataclass
class ImportStats:
    """Statistics from importing payment events."""

    applied: int = 0
    duplicates: int = 0
    skipped: int = 0
    failures: list[tuple[int, str, str]] = field(default_factory=list)  # (line, key, reason)


def render_settlement(result: SettlementResult) -> None:
    """Render the split state after a payment."""
    split = result.ledger.split
    console.print(f"  Split: {split.title} [dim]({split.id})[/dim]")
    console.print(f"  Remaining: {format_money(result.amount_remaining, split.currency)}")

    participant = result.participant
    if participant is not None:
        console.print(
            f"  {participant.user_id}: paid {format_money(participant.amount_paid, split.currency)}"
            f" of {format_money(participant.amount_owed, split.currency)} ({participant.status})"
        )
    if result.excess:
        console.print(f"  [yellow]Overpaid by {format_money(result.excess, split.currency)}[/yellow]")
    if result.split_status == SplitStatus.COMPLETED:
        console.print("  [green]Split fully settled[/green]")


def pay_command(
    split_id: str,
    amount: str,
    key: str,
    participant: str | None = None,
    payer: str | None = None,
    currency: str | None = None,
) -> None:
    """Record a successful payment event against a split.

    Without --payer the payment is attributed to a participant (the current
    user unless --participant is given). With --payer it is recorded as a web
    payment from a non-participant.
    """
    tracker = get_tracker()

    if participant and payer:
        console.print("[red]Use either --participant or --payer, not both[/red]")
        sys.exit(1)

    amount_cents = parse_money(amount)
    if amount_cents is None or amount_cents <= 0:
        console.print(f"[red]Invalid amount: {amount}[/red]")
        sys.exit(1)

    participant_id = None if payer else participant or require_current_user()

    try:
        result = tracker.record_payment(
            split_id,
            participant_id,
            Money(amount_cents),
            key,
            payer_identity=payer or "",
            currency=currency.upper() if currency else None,
        )
    except DuplicatePayment as e:
        console.print(f"[yellow]Payment '{key}' was already recorded (no change)[/yellow]")
        if e.result is not None:
            render_settlement(e.result)
        return
    except LedgerError as e:
        console.print(f"[red]Payment rejected: {e}[/red]", style="bold")
        sys.exit(1)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        console.print("[dim]Retry with the same --key; the payment is applied at most once[/dim]")
        sys.exit(1)

    channel = "web" if payer else "participant"
    console.print(
        f"[green]✓[/green] Recorded {channel} payment of {format_money(amount_cents, result.ledger.split.currency)}:"
    )
    render_settlement(result)


def import_rows(tracker: SettlementTracker, df: pd.DataFrame) -> ImportStats:
    """Record every row of a processor export, collecting per-row outcomes."""
    stats = ImportStats()

    for index, row in enumerate(df.to_dict("records")):
        line = index + 2  # header is line 1
        parsed = parse_payment_row(row)
        if parsed is None:
            stats.skipped += 1
            continue

        try:
            created_at = normalize_payment_time(parsed["created_at"]) if parsed["created_at"] else None
            tracker.record_payment(
                parsed["split_id"],
                parsed["participant_id"],
                Money(parsed["amount"]),
                parsed["idempotency_key"],
                payer_identity=parsed["payer"],
                currency=parsed["currency"],
                created_at=created_at,
            )
        except DuplicatePayment:
            stats.duplicates += 1
        except (LedgerError, ValueError) as e:
            stats.failures.append((line, parsed["idempotency_key"], str(e)))
        else:
            stats.applied += 1

    return stats


def import_payments_command(csv_file: str) -> None:
    """Import successful payment events from a processor CSV export.

    Rows are applied in file order. Replaying the same export is safe: rows
    whose idempotency key was already applied are counted as duplicates.
    """
    tracker = get_tracker()
    csv_path = Path(csv_file).expanduser()

    if not csv_path.exists():
        console.print(f"[red]File not found: {csv_path}[/red]", style="bold")
        sys.exit(1)

    try:
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        console.print(f"[red]Could not read CSV: {e}[/red]", style="bold")
        sys.exit(1)

    missing = missing_columns(list(df.columns))
    if missing:
        console.print(f"[red]CSV is missing required columns: {', '.join(missing)}[/red]", style="bold")
        sys.exit(1)

    console.print(f"[cyan]Importing {len(df)} payment rows from {csv_path.name}...[/cyan]")

    try:
        stats = import_rows(tracker, df)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        console.print("[dim]Rerun the import; already applied rows will be skipped as duplicates[/dim]")
        sys.exit(1)

    console.print(f"\n[green]✓[/green] Applied {stats.applied} payments")
    if stats.duplicates:
        console.print(f"[dim]Already recorded: {stats.duplicates}[/dim]")
    if stats.skipped:
        console.print(f"[yellow]Skipped {stats.skipped} incomplete rows[/yellow]")

    if stats.failures:
        table = Table(title=f"Rejected ({len(stats.failures)})", header_style="bold red")
        table.add_column("Line", justify="right")
        table.add_column("Key", style="dim")
        table.add_column("Reason")
        for line, key, reason in stats.failures:
            table.add_row(str(line), key, reason)
        console.print(table)
        sys.exit(1)


def fees_command(amount: str, participants: int) -> None:
    """Preview the fees a payer covers when settling their share."""
    amount_cents = parse_money(amount)
    if amount_cents is None:
        console.print(f"[red]Invalid amount: {amount}[/red]")
        sys.exit(1)

    if participants < 1:
        console.print("[red]Participant count must be at least 1[/red]")
        sys.exit(1)

    try:
        schedule = get_fee_schedule(load_config())
    except FileNotFoundError:
        schedule = None
    except (ValueError, TypeError) as e:
        console.print(f"[red]Invalid \\[fees] config: {e}[/red]", style="bold")
        sys.exit(1)

    breakdown = apportion_fee(Money(amount_cents), participants, schedule)

    table = Table(title=f"Fees for {format_money(breakdown.amount)} ({participants} participants)")
    table.add_column("Fee", style="cyan")
    table.add_column("Your share", justify="right")

    table.add_row(f"Processor (of {format_money(breakdown.processor_fee)})", format_money(breakdown.processor_fee_share))
    table.add_row("Instant payout", format_money(breakdown.payout_fee_share))
    table.add_row("Platform", format_money(breakdown.platform_fee_share))
    table.add_section()
    table.add_row("[bold]Total fee[/bold]", f"[bold]{format_money(breakdown.user_fee)}[/bold]")
    table.add_row("[bold]You pay[/bold]", f"[bold]{format_money(breakdown.total)}[/bold]")

    console.print(table)
