"""Memory management commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich.table import Table

from memoria.cli.console import console, dim, error, success, warning
from memoria.cli.runtime import Runtime, bootstrap_runtime, get_config
from memoria.memory.errors import (
    ExtractionError,
    InvalidMemoryError,
    MemoryAccessDeniedError,
    MemoryNotFoundError,
)
from memoria.memory.types import MemoryCategory

T = TypeVar("T")

UserOption = Annotated[
    str,
    typer.Option(
        "--user",
        "-u",
        help="Owner user ID",
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]


def _run(config_path: Path | None, action: Callable[[Runtime], Awaitable[T]]) -> T:
    """Run an async action against a freshly bootstrapped runtime.

    Memory service errors are reported and turned into a non-zero exit.
    """
    config = get_config(config_path)

    async def runner() -> T:
        async with bootstrap_runtime(config) as runtime:
            return await action(runtime)

    try:
        return asyncio.run(runner())
    except MemoryNotFoundError as e:
        error(f"Memory not found: {e.memory_id}")
    except MemoryAccessDeniedError:
        error("Unauthorized")
    except InvalidMemoryError as e:
        error(str(e))
    except ExtractionError as e:
        error(f"Extraction failed: {e}")
    raise typer.Exit(1)


def register(app: typer.Typer) -> None:
    """Register the memory command group."""
    memory_app = typer.Typer(help="Manage user memories")

    @memory_app.command("list")
    def memory_list(
        user_id: UserOption,
        limit: Annotated[
            int,
            typer.Option(
                "--limit",
                "-n",
                help="Maximum entries to show",
            ),
        ] = 20,
        offset: Annotated[
            int,
            typer.Option(
                "--offset",
                help="Entries to skip",
            ),
        ] = 0,
        config_path: ConfigOption = None,
    ) -> None:
        """List a user's memories, most important first."""

        async def action(runtime: Runtime):
            memories = await runtime.manager.get_user_memories(user_id, limit, offset)
            total = await runtime.manager.count_user_memories(user_id)
            return memories, total

        memories, total = _run(config_path, action)
        if not memories:
            warning("No memories found")
            return

        table = Table(title=f"Memories for {user_id}")
        table.add_column("ID", style="dim", max_width=8)
        table.add_column("Category", style="blue")
        table.add_column("Importance", style="yellow", justify="right")
        table.add_column("Used", style="cyan", justify="right")
        table.add_column("Source", style="green", max_width=10)
        table.add_column("Created", style="dim")
        table.add_column("Content", style="white", max_width=50)

        for memory in memories:
            content = memory.content.replace("\n", " ")
            if len(content) > 60:
                content = content[:60] + "..."
            source = "manual" if memory.is_manual else memory.source_conversation_id[:8]
            table.add_row(
                memory.id[:8],
                memory.category.value,
                str(memory.importance),
                str(memory.times_used),
                source,
                memory.created_at.strftime("%Y-%m-%d"),
                content,
            )

        console.print(table)
        dim(f"Showing {len(memories)} of {total}")

    @memory_app.command("add")
    def memory_add(
        content: Annotated[str, typer.Argument(help="Memory content")],
        user_id: UserOption,
        category: Annotated[
            MemoryCategory,
            typer.Option(
                "--category",
                help="Memory category",
            ),
        ] = MemoryCategory.FACT,
        importance: Annotated[
            int,
            typer.Option(
                "--importance",
                "-i",
                help="Importance from 1 (trivial) to 10 (essential)",
            ),
        ] = 5,
        config_path: ConfigOption = None,
    ) -> None:
        """Add a memory manually."""
        memory = _run(
            config_path,
            lambda runtime: runtime.manager.create_memory(
                user_id, content, category, importance
            ),
        )
        success(f"Added memory: {memory.id}")

    @memory_app.command("update")
    def memory_update(
        memory_id: Annotated[str, typer.Argument(help="Memory ID")],
        user_id: UserOption,
        content: Annotated[
            str | None,
            typer.Option(
                "--content",
                help="New content",
            ),
        ] = None,
        category: Annotated[
            MemoryCategory | None,
            typer.Option(
                "--category",
                help="New category",
            ),
        ] = None,
        importance: Annotated[
            int | None,
            typer.Option(
                "--importance",
                "-i",
                help="New importance",
            ),
        ] = None,
        config_path: ConfigOption = None,
    ) -> None:
        """Update fields of a memory."""
        if content is None and category is None and importance is None:
            error("Nothing to update: pass --content, --category or --importance")
            raise typer.Exit(1)

        memory = _run(
            config_path,
            lambda runtime: runtime.manager.update_memory(
                user_id,
                memory_id,
                content=content,
                category=category,
                importance=importance,
            ),
        )
        success(f"Updated memory: {memory.id}")

    @memory_app.command("remove")
    def memory_remove(
        memory_id: Annotated[str, typer.Argument(help="Memory ID")],
        user_id: UserOption,
        force: Annotated[
            bool,
            typer.Option(
                "--force",
                "-f",
                help="Remove without confirmation",
            ),
        ] = False,
        config_path: ConfigOption = None,
    ) -> None:
        """Remove a memory."""
        if not force and not typer.confirm(f"Remove memory {memory_id}?"):
            dim("Cancelled")
            return

        _run(
            config_path,
            lambda runtime: runtime.manager.delete_memory(user_id, memory_id),
        )
        success(f"Removed memory: {memory_id}")

    @memory_app.command("cleanup")
    def memory_cleanup(
        user_id: UserOption,
        config_path: ConfigOption = None,
    ) -> None:
        """Delete old, low-importance, unused memories."""
        deleted = _run(
            config_path,
            lambda runtime: runtime.manager.cleanup_old_memories(user_id),
        )
        if deleted:
            success(f"Removed {deleted} stale memories")
        else:
            dim("No stale memories")

    @memory_app.command("context")
    def memory_context(
        user_id: UserOption,
        config_path: ConfigOption = None,
    ) -> None:
        """Show the memory context that would be injected into a prompt."""
        context = _run(
            config_path,
            lambda runtime: runtime.manager.build_memory_context(user_id),
        )
        if not context:
            dim("No memory context")
            return
        console.print(context, markup=False, highlight=False)

    @memory_app.command("extract")
    def memory_extract(
        conversation_id: Annotated[str, typer.Argument(help="Conversation ID")],
        user_id: UserOption,
        timeout: Annotated[
            float | None,
            typer.Option(
                "--timeout",
                help="Deadline in seconds (defaults to the configured timeout)",
            ),
        ] = None,
        config_path: ConfigOption = None,
    ) -> None:
        """Extract memories from a conversation's recent messages."""
        result = _run(
            config_path,
            lambda runtime: runtime.manager.extract_memories(
                user_id, conversation_id, timeout=timeout
            ),
        )
        success(
            f"Extracted {result.extracted}, stored {result.inserted}, "
            f"skipped {result.skipped_duplicates} duplicates"
        )
        if result.dropped_invalid or result.failed:
            warning(
                f"Dropped {result.dropped_invalid} invalid, "
                f"{result.failed} failed to store"
            )

    app.add_typer(memory_app, name="memory")
