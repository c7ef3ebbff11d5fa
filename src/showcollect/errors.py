"""Exception hierarchy for showcollect."""

from __future__ import annotations


class ShowCollectError(Exception):
    """Base class for all showcollect errors."""


class InputError(ShowCollectError, ValueError):
    """Required run input is missing or malformed.

    Raised before any connection is attempted; aborts the whole run.
    """


class ConnectError(ShowCollectError):
    """Failed to establish an authenticated session with a target."""

    def __init__(self, address: str, cause: str):
        self.address = address
        self.cause = cause
        super().__init__(f"Cannot connect to {address}: {cause}")


class ExecError(ShowCollectError):
    """A command could not be executed on an open session."""

    def __init__(
        self,
        command: str,
        cause: str,
        index: int | None = None,
        timed_out: bool = False,
    ):
        self.command = command
        self.cause = cause
        self.index = index
        self.timed_out = timed_out
        where = f"command {index} " if index is not None else "command "
        super().__init__(f"{where}{command!r} failed: {cause}")


class PersistError(ShowCollectError):
    """The result sink could not store a transcript."""

    def __init__(self, label: str, cause: str):
        self.label = label
        self.cause = cause
        super().__init__(f"Cannot store output for {label}: {cause}")
