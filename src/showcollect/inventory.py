"""Host and command inventories read from CSV, plus command validation."""

from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path
from typing import Callable

from .errors import InputError
from .models import Target

CommandPredicate = Callable[[str], bool]


def contains_marker(marker: str = "show") -> CommandPredicate:
    """Predicate accepting commands that contain ``marker``."""

    def predicate(command: str) -> bool:
        return marker in command

    predicate.__name__ = f"contains_{marker}"
    return predicate


def validate_commands(
    commands: Iterable[str], predicate: CommandPredicate
) -> tuple[str, ...]:
    """Check a command list once before fan-out.

    Returns the commands as a tuple. Pure: validating an already-valid
    tuple returns an equal tuple.

    Raises:
        InputError: If the list is empty or a command is rejected.
    """
    validated = tuple(commands)
    if not validated:
        raise InputError("No commands to run")
    rejected = [c for c in validated if not c.strip() or not predicate(c)]
    if rejected:
        raise InputError(
            f"Refusing to run commands that are not read-only queries: "
            f"{', '.join(repr(c) for c in rejected)}"
        )
    return validated


def _read_rows(path: str | Path) -> list[list[str]]:
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    with open(path, newline="", encoding="utf-8-sig") as f:
        return [[cell.strip() for cell in row] for row in csv.reader(f)]


def read_targets(path: str | Path) -> list[Target]:
    """Read ``label,address`` rows (or bare ``address`` rows) from a CSV file."""
    targets = []
    for line_no, row in enumerate(_read_rows(path), start=1):
        cells = [cell for cell in row if cell]
        if not cells or cells[0].startswith("#"):
            continue
        try:
            if len(cells) == 1:
                targets.append(Target(address=cells[0]))
            else:
                targets.append(Target(address=cells[1], label=cells[0]))
        except InputError as e:
            raise InputError(f"{path}, line {line_no}: {e}") from e
    return targets


def read_commands(path: str | Path) -> list[str]:
    """Read every non-empty cell of a CSV file as one command, in order."""
    return [cell for row in _read_rows(path) for cell in row if cell]


def parse_command_string(text: str) -> list[str]:
    """Split a comma-separated command string."""
    return [part.strip() for part in text.split(",") if part.strip()]
