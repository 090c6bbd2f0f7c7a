"""Admin commands for backup, init, and the current user."""

import shutil
import sqlite3
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console

from splitledger.config import create_default_config, get_config_path, get_current_user, load_config, set_current_user
from splitledger.domain.models import UserId
from splitledger.store.schema import get_db_path, init_database

console = Console()


def require_current_user() -> UserId:
    """Get the configured user id or exit with a hint.

    Raises:
        SystemExit: If the config is missing or has no user set.
    """
    try:
        user = get_current_user(load_config())
    except FileNotFoundError:
        console.print("[red]Config not found. Run 'splitledger init' first.[/red]", style="bold")
        sys.exit(1)

    if not user:
        console.print("[red]No current user set. Run 'splitledger whoami USER_ID' first.[/red]", style="bold")
        sys.exit(1)

    return user


def backup_command(
    output_dir: str | None = None,
) -> None:
    """Backup database and configuration files."""
    db_path = get_db_path()
    config_path = get_config_path()

    # Check if files exist
    if not db_path.exists():
        console.print("[red]Database not found. Run 'splitledger init' first.[/red]", style="bold")
        sys.exit(1)

    if not config_path.exists():
        console.print("[red]Config not found. Run 'splitledger init' first.[/red]", style="bold")
        sys.exit(1)

    if output_dir:
        backup_dir = Path(output_dir).expanduser()
    else:
        backup_dir = db_path.parent / "backups"

    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    db_backup = backup_dir / f"splitledger_{timestamp}.db"
    config_backup = backup_dir / f"config_{timestamp}.toml"

    try:
        shutil.copy2(db_path, db_backup)
        console.print(f"[green]✓[/green] Database backed up to: {db_backup}")

        shutil.copy2(config_path, config_backup)
        console.print(f"[green]✓[/green] Config backed up to: {config_backup}")

        console.print("\n[green]Backup complete![/green]", style="bold")
        console.print(f"[dim]Backup directory: {backup_dir}[/dim]")

    except OSError as e:
        console.print(f"[red]Backup failed: {e}[/red]", style="bold")
        sys.exit(1)


def run_full_init(db_path: Path, config_path: Path) -> None:
    """Initialize new database and config."""
    console.print(f"[cyan]Initializing database at {db_path}...[/cyan]")
    init_database(db_path)
    console.print("[green]✓[/green] Database initialized")

    console.print(f"[cyan]Creating config file at {config_path}...[/cyan]")
    create_default_config(config_path)
    console.print("[green]✓[/green] Config file created (permissions: 600)")

    console.print("\n[green]Initialization complete![/green]", style="bold")
    console.print(f"[dim]Database: {db_path}[/dim]")
    console.print(f"[dim]Config: {config_path}[/dim]")
    console.print("[dim]Next: 'splitledger whoami USER_ID' to choose who you are[/dim]")


def init_command(force: bool = False, migrate: bool = False) -> None:
    """Initialize splitledger database and configuration."""
    db_path = get_db_path()
    config_path = get_config_path()

    db_exists = db_path.exists()
    config_exists = config_path.exists()

    try:
        # Migration path: update existing database only
        if migrate:
            if not db_exists:
                console.print("[red]No database found to migrate[/red]", style="bold")
                console.print(f"[dim]Expected location: {db_path}[/dim]")
                sys.exit(1)
            console.print(f"[cyan]Running migrations on {db_path}...[/cyan]")
            init_database(db_path)
            console.print("[green]✓[/green] Migrations complete")
            return

        # Guard: refuse to overwrite without force flag
        if not force and (db_exists or config_exists):
            console.print("[red]Initialization failed:[/red]", style="bold")
            if db_exists:
                console.print(f"  Database already exists: {db_path}")
            if config_exists:
                console.print(f"  Config already exists: {config_path}")
            console.print("\n[yellow]Use 'splitledger init --force' to overwrite[/yellow]")
            console.print("[yellow]Or 'splitledger init --migrate' to update database schema only[/yellow]")
            sys.exit(1)

        if force and db_exists:
            db_path.unlink()

        run_full_init(db_path, config_path)

    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)
    except OSError as e:
        console.print(f"[red]Filesystem error: {e}[/red]", style="bold")
        sys.exit(1)


def whoami_command(user_id: str | None = None) -> None:
    """Show or set the user id commands act as."""
    config_path = get_config_path()

    try:
        if user_id:
            set_current_user(user_id.strip(), config_path)
            console.print(f"[green]✓[/green] Acting as: [bold]{user_id.strip()}[/bold]")
            return

        current = get_current_user(load_config(config_path))
    except FileNotFoundError:
        console.print("[red]Config not found. Run 'splitledger init' first.[/red]", style="bold")
        sys.exit(1)

    if current:
        console.print(f"Acting as: [bold]{current}[/bold]")
    else:
        console.print("[yellow]No current user set[/yellow]")
