"""Chat model registry commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table
from sqlalchemy.exc import IntegrityError

from memoria.cli.console import console, error, success, warning
from memoria.cli.runtime import bootstrap_runtime, get_config

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]


def register(app: typer.Typer) -> None:
    """Register the models command group."""
    models_app = typer.Typer(help="Manage chat models used for extraction")

    @models_app.command("list")
    def models_list(
        include_inactive: Annotated[
            bool,
            typer.Option(
                "--all",
                help="Include inactive models",
            ),
        ] = False,
        config_path: ConfigOption = None,
    ) -> None:
        """List registered models in fallback order."""
        config = get_config(config_path)

        async def do_list():
            async with bootstrap_runtime(config) as runtime:
                return await runtime.models.list_models(active_only=not include_inactive)

        models = asyncio.run(do_list())
        if not models:
            warning("No models registered")
            return

        table = Table(title="Models")
        table.add_column("ID", style="dim", max_width=8)
        table.add_column("Name", style="cyan")
        table.add_column("Identifier", style="white")
        table.add_column("Active", style="green")
        table.add_column("Default", style="yellow")

        for model in models:
            is_default = config.memory.default_model in (model.model_identifier, model.name)
            table.add_row(
                model.id[:8],
                model.name,
                model.model_identifier,
                "yes" if model.is_active else "no",
                "*" if is_default else "",
            )

        console.print(table)

    @models_app.command("add")
    def models_add(
        name: Annotated[str, typer.Argument(help="Display name")],
        model_identifier: Annotated[
            str, typer.Argument(help="Model identifier sent to the API")
        ],
        inactive: Annotated[
            bool,
            typer.Option(
                "--inactive",
                help="Register the model without activating it",
            ),
        ] = False,
        config_path: ConfigOption = None,
    ) -> None:
        """Register a chat model."""
        config = get_config(config_path)

        async def do_add():
            async with bootstrap_runtime(config) as runtime:
                return await runtime.models.add_model(
                    name, model_identifier, is_active=not inactive
                )

        try:
            model = asyncio.run(do_add())
        except IntegrityError:
            error(f"A model named {name!r} is already registered")
            raise typer.Exit(1) from None
        success(f"Registered model {model.name} ({model.model_identifier}): {model.id}")

    app.add_typer(models_app, name="models")
