"""Database management commands."""

from __future__ import annotations

import asyncio
import subprocess
import sys
from pathlib import Path
from typing import Annotated

import typer

from memoria.cli.console import console, error, success

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]


def register(app: typer.Typer) -> None:
    """Register the db command group."""
    db_app = typer.Typer(help="Database management commands")

    @db_app.command("migrate")
    def db_migrate(
        revision: Annotated[
            str,
            typer.Option(
                "--revision",
                "-r",
                help="Target revision",
            ),
        ] = "head",
    ) -> None:
        """Run database migrations."""
        console.print(f"[bold]Running migrations to {revision}...[/bold]")
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", revision],
            capture_output=False,
        )
        if result.returncode == 0:
            success("Migrations completed successfully")
        else:
            error("Migration failed")
            raise typer.Exit(1)

    @db_app.command("status")
    def db_status() -> None:
        """Show migration status."""
        console.print("[bold]Migration status:[/bold]")
        subprocess.run(
            [sys.executable, "-m", "alembic", "current"],
            capture_output=False,
        )
        console.print("\n[bold]Migration history:[/bold]")
        subprocess.run(
            [sys.executable, "-m", "alembic", "history", "--indicate-current"],
            capture_output=False,
        )

    @db_app.command("init")
    def db_init(config_path: ConfigOption = None) -> None:
        """Create any missing tables directly from the models.

        Intended for local development; use `db migrate` for deployments.
        """
        from memoria.cli.runtime import get_config, get_database

        config = get_config(config_path)

        async def do_init() -> None:
            database = await get_database(config)
            try:
                await database.create_tables()
            finally:
                await database.disconnect()

        asyncio.run(do_init())
        success("Database tables created")

    app.add_typer(db_app, name="db")
