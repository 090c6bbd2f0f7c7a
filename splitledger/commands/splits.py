"""Split commands (create, list, show, edit, cancel)."""

import sqlite3
import sys

from rich.console import Console
from rich.table import Table

from splitledger.commands.admin import require_current_user
from splitledger.config import get_currency, load_config
from splitledger.domain.errors import LedgerError
from splitledger.domain.models import AllocationStrategy, Currency, Money, ParticipantStatus, SplitStatus
from splitledger.domain.money import format_money, parse_money
from splitledger.domain.splits import SplitLedger
from splitledger.ledger import SettlementTracker
from splitledger.store.schema import database_exists, get_db_path

console = Console()

STATUS_STYLES = {
    SplitStatus.ACTIVE: "[yellow]active[/yellow]",
    SplitStatus.COMPLETED: "[green]completed[/green]",
    SplitStatus.CANCELLED: "[dim]cancelled[/dim]",
}


def get_tracker() -> SettlementTracker:
    """Get a tracker for the default database or exit with a hint."""
    db_path = get_db_path()
    if not database_exists(db_path):
        console.print("[red]Database not found. Run 'splitledger init' first.[/red]", style="bold")
        sys.exit(1)
    return SettlementTracker(db_path)


def parse_shares(shares: list[str], strategy: AllocationStrategy) -> dict[str, object]:
    """Parse 'participant=value' options into strategy input.

    Custom values are money amounts in major units; percentage values are kept
    as strings and parsed as decimals by the allocation engine.

    Raises:
        SystemExit: If a share is malformed.
    """
    parsed: dict[str, object] = {}
    for share in shares:
        participant, sep, value = share.partition("=")
        participant, value = participant.strip(), value.strip()
        if not sep or not participant or not value:
            console.print(f"[red]Invalid share '{share}' (expected PARTICIPANT=VALUE)[/red]")
            sys.exit(1)

        if strategy == AllocationStrategy.CUSTOM:
            amount = parse_money(value)
            if amount is None:
                console.print(f"[red]Invalid amount for {participant}: {value}[/red]")
                sys.exit(1)
            parsed[participant] = amount
        else:
            parsed[participant] = value.rstrip("%")

    return parsed


def render_split(ledger: SplitLedger) -> None:
    """Render split detail with participants and payments."""
    split = ledger.split
    currency = split.currency

    console.print(f"\n[bold cyan]{split.title}[/bold cyan] [dim]({split.id})[/dim]")
    if split.description:
        console.print(f"[dim]{split.description}[/dim]")
    console.print(f"Created by {split.creator_id} on {split.created_at:%Y-%m-%d}")
    console.print(f"Total: {format_money(split.total_amount, currency)} ({split.allocation_strategy} split)")
    console.print(f"Status: {STATUS_STYLES[ledger.effective_status]}")
    console.print(
        f"Paid: {format_money(ledger.total_paid, currency)}  "
        f"Remaining: {format_money(ledger.amount_remaining, currency)}  "
        f"({ledger.paid_count}/{ledger.participant_count} participants paid)\n"
    )

    table = Table(title="Participants")
    table.add_column("Participant", style="cyan")
    table.add_column("Owes", justify="right")
    table.add_column("Paid", justify="right")
    table.add_column("Status", justify="center")

    for participant in ledger.participants:
        status = "✓" if participant.status == ParticipantStatus.PAID else "○"
        name = f"{participant.user_id} [dim](creator)[/dim]" if participant.user_id == split.creator_id else participant.user_id
        table.add_row(
            name,
            format_money(participant.amount_owed, currency),
            format_money(participant.amount_paid, currency),
            status,
        )
    console.print(table)

    if ledger.participant_payments or ledger.web_payments:
        payments = Table(title="Payments")
        payments.add_column("Date", style="cyan")
        payments.add_column("Channel")
        payments.add_column("From")
        payments.add_column("Amount", justify="right")
        payments.add_column("Key", style="dim")

        rows = [
            (p.created_at, "participant", p.participant_id, p.amount, p.idempotency_key)
            for p in ledger.participant_payments
        ] + [(w.created_at, "web", w.payer_identity or "-", w.amount, w.idempotency_key) for w in ledger.web_payments]

        for created_at, channel, payer, amount, key in sorted(rows, key=lambda r: r[0]):
            payments.add_row(f"{created_at:%Y-%m-%d %H:%M}", channel, payer, format_money(amount, currency), key)
        console.print(payments)


def create_command(
    title: str,
    amount: str,
    with_: list[str],
    strategy: str = "equal",
    shares: list[str] | None = None,
    description: str | None = None,
    currency: str | None = None,
) -> None:
    """Create a split between the current user and others."""
    creator = require_current_user()
    tracker = get_tracker()

    total = parse_money(amount)
    if total is None:
        console.print(f"[red]Invalid amount: {amount}[/red]")
        sys.exit(1)

    try:
        allocation_strategy = AllocationStrategy(strategy.lower())
    except ValueError:
        console.print(f"[red]Unknown strategy '{strategy}' (use equal, custom or percentage)[/red]")
        sys.exit(1)

    strategy_input = None
    if allocation_strategy != AllocationStrategy.EQUAL:
        strategy_input = parse_shares(shares or [], allocation_strategy)

    split_currency = Currency(currency.upper()) if currency else get_currency(load_config())

    try:
        ledger = tracker.create_split(
            creator,
            title,
            Money(total),
            [creator, *with_],
            strategy=allocation_strategy,
            strategy_input=strategy_input,
            description=description,
            currency=split_currency,
        )
    except LedgerError as e:
        console.print(f"[red]Could not create split: {e}[/red]", style="bold")
        sys.exit(1)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)

    console.print(f"[green]✓[/green] Created split [bold]{ledger.id}[/bold]")
    render_split(ledger)


def list_command(all: bool = False) -> None:
    """List the current user's splits."""
    user = require_current_user()
    tracker = get_tracker()

    try:
        ledgers = tracker.list_user_splits(user)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)

    if not all:
        ledgers = [ledger for ledger in ledgers if ledger.effective_status == SplitStatus.ACTIVE]

    if not ledgers:
        console.print("[yellow]No splits found[/yellow]")
        return

    table = Table(title=f"Splits for {user} (showing {len(ledgers)})")
    table.add_column("ID", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Total", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Paid", justify="center")
    table.add_column("Status", justify="center")

    for ledger in ledgers:
        split = ledger.split
        table.add_row(
            split.id[:8],
            f"{split.created_at:%Y-%m-%d}",
            split.title,
            format_money(split.total_amount, split.currency),
            format_money(ledger.amount_remaining, split.currency),
            f"{ledger.paid_count}/{ledger.participant_count}",
            STATUS_STYLES[ledger.effective_status],
        )

    console.print(table)


def show_command(split_id: str) -> None:
    """Show a split in detail."""
    tracker = get_tracker()

    try:
        ledger = tracker.get_split(split_id)
    except LedgerError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)

    render_split(ledger)


def edit_command(split_id: str, title: str | None = None, description: str | None = None) -> None:
    """Change a split's title or description."""
    user = require_current_user()
    tracker = get_tracker()

    if title is None and description is None:
        console.print("[yellow]Nothing to change (use --title or --description)[/yellow]")
        return

    try:
        ledger = tracker.update_split_details(split_id, user, title=title, description=description)
    except LedgerError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)

    console.print(f"[green]✓[/green] Updated split {ledger.id}")


def cancel_command(split_id: str) -> None:
    """Cancel an active split."""
    user = require_current_user()
    tracker = get_tracker()

    try:
        ledger = tracker.cancel_split(split_id, user)
    except LedgerError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)

    console.print(f"[green]✓[/green] Cancelled split {ledger.id} ({ledger.split.title})")
