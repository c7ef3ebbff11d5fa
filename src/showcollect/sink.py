"""Result sinks that persist per-host transcripts."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Protocol

from .errors import PersistError

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "{label}_output.txt"
DEFAULT_TIMESTAMP_FORMAT = "%y_%m_%d_%H%M%S"

_UNSAFE_CHARS = re.compile(r"[\\/\x00]")


class ResultSink(Protocol):
    """Durable storage for a host's transcript."""

    def key_for(self, label: str) -> str:
        """Where ``write(label, ...)`` will store its text."""
        ...

    async def write(self, label: str, text: str) -> str:
        """Store ``text`` under ``label`` and return where it went."""
        ...


def timestamped_directory(
    base: str | Path = ".",
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
    now: datetime | None = None,
) -> Path:
    """Per-run output directory named after the start time (YY_MM_DD_HHMMSS)."""
    now = now or datetime.now()
    return Path(base).expanduser() / now.strftime(fmt)


class DirectorySink:
    """Writes each transcript to its own text file in one directory."""

    def __init__(self, directory: str | Path, filename_template: str = DEFAULT_FILENAME):
        self.directory = Path(directory).expanduser()
        self.filename_template = filename_template
        self._written: dict[Path, str] = {}

    def path_for(self, label: str) -> Path:
        safe_label = _UNSAFE_CHARS.sub("_", label)
        return self.directory / self.filename_template.format(label=safe_label)

    def key_for(self, label: str) -> str:
        return str(self.path_for(label))

    async def write(self, label: str, text: str) -> str:
        path = self.path_for(label)
        # Two labels can sanitize to one file name
        owner = self._written.setdefault(path, label)
        if owner != label:
            raise PersistError(label, f"{path} already holds output for {owner!r}")
        try:
            await asyncio.to_thread(self._write_file, path, text)
        except OSError as e:
            raise PersistError(label, str(e)) from e
        logger.debug("Wrote %d bytes for %s to %s", len(text), label, path)
        return str(path)

    @staticmethod
    def _write_file(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
