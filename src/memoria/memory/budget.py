"""Greedy packing of ranked memories into a character budget."""

from collections.abc import Iterable

from memoria.memory.types import MemoryEntry

DEFAULT_CHAR_BUDGET = 1200


def render_memory_line(memory: MemoryEntry) -> str:
    """Render a memory as a single context line."""
    return f"- [{memory.category.value}] {memory.content}\n"


def build_budgeted_context(
    memories: Iterable[MemoryEntry],
    char_budget: int = DEFAULT_CHAR_BUDGET,
) -> str:
    """Pack memories, in the order given, into at most char_budget characters.

    Stops at the first line that would overflow the budget; later (possibly
    shorter) lines are not considered, and a line is never split. Ranking is
    the caller's job.
    """
    lines: list[str] = []
    total = 0

    for memory in memories:
        line = render_memory_line(memory)
        if total + len(line) > char_budget:
            break
        lines.append(line)
        total += len(line)

    return "".join(lines)
