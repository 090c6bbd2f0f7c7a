"""Balance command."""

import sqlite3
import sys

from rich.console import Console
from rich.table import Table

from splitledger.commands.admin import require_current_user
from splitledger.commands.splits import get_tracker
from splitledger.config import get_currency, load_config
from splitledger.domain.balance import (
    BalanceSummary,
    aggregate_balances_by_currency,
    amount_owed_to_user,
    amount_user_owes,
)
from splitledger.domain.models import Money, SplitStatus
from splitledger.domain.money import format_money

console = Console()


def print_summary(summary: BalanceSummary) -> None:
    """Print one currency's you owe / owed to you / net lines."""
    currency = summary.currency
    net = summary.net_balance
    net_style = "green" if net > 0 else "red" if net < 0 else "white"

    console.print(f"  You owe:      [red]{format_money(summary.you_owe, currency)}[/red]")
    console.print(f"  Owed to you:  [green]{format_money(summary.owed_to_you, currency)}[/green]")
    console.print(f"  Net:          [{net_style}]{format_money(net, currency, include_sign=True)}[/{net_style}]")
    console.print(f"[dim]{summary.active_split_count} active splits[/dim]")


def balance_command(detail: bool = False) -> None:
    """Show what the current user owes and is owed across active splits.

    Currencies are never summed together; each gets its own block.
    """
    user = require_current_user()
    tracker = get_tracker()

    try:
        ledgers = tracker.list_user_splits(user)
    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)

    balances = aggregate_balances_by_currency(user, ledgers)

    console.print(f"\n[bold cyan]Balance for {user}[/bold cyan]")
    if not balances:
        currency = get_currency(load_config())
        print_summary(BalanceSummary(you_owe=Money(0), owed_to_you=Money(0), currency=currency))
    elif len(balances) == 1:
        print_summary(next(iter(balances.values())))
    else:
        for currency, summary in balances.items():
            console.print(f"[bold]{currency}[/bold]")
            print_summary(summary)

    if not detail:
        return

    active = [ledger for ledger in ledgers if ledger.effective_status == SplitStatus.ACTIVE]
    if not active:
        return

    table = Table(title="Active splits")
    table.add_column("Title", style="cyan")
    table.add_column("You owe", justify="right")
    table.add_column("Owed to you", justify="right")

    for ledger in active:
        split_currency = ledger.split.currency
        table.add_row(
            ledger.split.title,
            format_money(amount_user_owes(user, ledger), split_currency),
            format_money(amount_owed_to_user(user, ledger), split_currency),
        )

    console.print(table)
