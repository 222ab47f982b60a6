"""Main CLI application."""

from typing import Annotated

import typer

from memoria.cli.commands import database, memory, models
from memoria.logging import configure_logging

app = typer.Typer(
    name="memoria",
    help="Memoria - long-term user memory for chat assistants",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging",
        ),
    ] = False,
    log_file: Annotated[
        bool,
        typer.Option(
            "--log-file",
            help="Also write JSONL logs to ~/.memoria/logs",
        ),
    ] = False,
) -> None:
    """Memoria command-line tools."""
    configure_logging(
        level="DEBUG" if verbose else "WARNING",
        use_rich=True,
        log_to_file=log_file,
    )


database.register(app)
models.register(app)
memory.register(app)


if __name__ == "__main__":
    app()
