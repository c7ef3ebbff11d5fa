"""Sequential command execution within a single session."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Callable, Protocol

from .errors import ExecError
from .models import Transcript

# (index, command) -> None
CommandCallback = Callable[[int, str], None]
# (index, command, output) -> None
ResultCallback = Callable[[int, str, str], None]


class CommandSession(Protocol):
    """Anything that can run one command and return its output."""

    async def run(self, command: str) -> str: ...


async def run_commands(
    session: CommandSession,
    commands: Sequence[str],
    on_command: CommandCallback | None = None,
    on_result: ResultCallback | None = None,
) -> Transcript:
    """Run ``commands`` in order and collect their output.

    Stops at the first failing command; the raised ExecError carries its
    index and the remaining commands are never sent.
    """
    entries: list[tuple[str, str]] = []

    for index, command in enumerate(commands):
        if on_command:
            on_command(index, command)
        try:
            output = await session.run(command)
        except ExecError as e:
            raise ExecError(command, e.cause, index=index, timed_out=e.timed_out) from e
        entries.append((command, output))
        if on_result:
            on_result(index, command, output)

    return Transcript(tuple(entries))
