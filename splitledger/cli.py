"""CLI entry point for splitledger."""

import logging

import typer
from rich.logging import RichHandler

from splitledger.commands.admin import backup_command, init_command, whoami_command
from splitledger.commands.balance import balance_command
from splitledger.commands.payments import fees_command, import_payments_command, pay_command
from splitledger.commands.splits import cancel_command, create_command, edit_command, list_command, show_command

app = typer.Typer(
    name="splitledger",
    help="Split Ledger - split a bill, track who has paid",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show ledger log messages"),
) -> None:
    """Split Ledger - split a bill, track who has paid."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.command(name="backup")
def backup(
    output_dir: str = typer.Option(None, "--output", "-o", help="Backup directory (default: next to the database)"),
) -> None:
    """Backup your database and configuration files."""
    backup_command(output_dir)


@app.command(name="init")
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing database and config"),
    migrate: bool = typer.Option(False, "--migrate", help="Update the database schema only"),
) -> None:
    """Initialize splitledger database and configuration."""
    init_command(force, migrate)


@app.command()
def whoami(
    user_id: str = typer.Argument(None, help="User id to act as"),
) -> None:
    """Show or set the user you act as."""
    whoami_command(user_id)


@app.command()
def create(
    title: str,
    amount: str = typer.Argument(..., help="Total amount (e.g. 100.00)"),
    with_: list[str] = typer.Option(None, "--with", "-w", help="Participant to split with (repeatable)"),
    strategy: str = typer.Option("equal", "--strategy", "-s", help="equal, custom or percentage"),
    shares: list[str] = typer.Option(None, "--share", help="PARTICIPANT=VALUE for custom or percentage splits"),
    description: str = typer.Option(None, "--description", "-d", help="Optional description"),
    currency: str = typer.Option(None, "--currency", help="Currency code (default from config)"),
) -> None:
    """Create a split between you and others."""
    create_command(title, amount, with_ or [], strategy, shares or [], description, currency)


@app.command(name="list")
def list_splits(
    all: bool = typer.Option(False, "--all", "-a", help="Include completed and cancelled splits"),
) -> None:
    """List your splits."""
    list_command(all)


@app.command()
def show(split_id: str) -> None:
    """Show a split with its participants and payments."""
    show_command(split_id)


@app.command()
def edit(
    split_id: str,
    title: str = typer.Option(None, "--title", help="New title"),
    description: str = typer.Option(None, "--description", "-d", help="New description"),
) -> None:
    """Change a split's title or description."""
    edit_command(split_id, title, description)


@app.command()
def cancel(split_id: str) -> None:
    """Cancel one of your active splits."""
    cancel_command(split_id)


@app.command()
def pay(
    split_id: str,
    amount: str = typer.Argument(..., help="Amount paid (e.g. 25.00)"),
    key: str = typer.Option(..., "--key", "-k", help="Idempotency key of the payment event"),
    participant: str = typer.Option(None, "--participant", "-p", help="Paying participant (default: you)"),
    payer: str = typer.Option(None, "--payer", help="Record a web payment from a non-participant"),
    currency: str = typer.Option(None, "--currency", help="Currency reported by the processor"),
) -> None:
    """Record a successful payment against a split."""
    pay_command(split_id, amount, key, participant, payer, currency)


@app.command(name="import-payments")
def import_payments(csv_file: str) -> None:
    """Import payment events from a processor CSV export."""
    import_payments_command(csv_file)


@app.command()
def fees(
    amount: str = typer.Argument(..., help="Amount owed (e.g. 25.00)"),
    participants: int = typer.Option(2, "--participants", "-n", help="Participants in the split"),
) -> None:
    """Preview the fees you cover when paying your share."""
    fees_command(amount, participants)


@app.command()
def balance(
    detail: bool = typer.Option(False, "--detail", help="Break the balance down per split"),
) -> None:
    """Show what you owe and what you are owed."""
    balance_command(detail)


if __name__ == "__main__":
    app()
