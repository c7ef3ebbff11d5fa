"""Data models shared by the execution engine and its front-ends."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

from .errors import InputError


def split_address(address: str) -> tuple[str, int | None]:
    """Split ``host``, ``host:port`` or ``[v6addr]:port`` into its parts."""
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif address.count(":") == 1:
        host, port = address.split(":")
    else:
        # Bare hostname, IPv4 address or unbracketed IPv6 address
        host, port = address, ""

    if not host:
        raise InputError(f"Invalid address: {address!r}")
    if not port:
        return host, None
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise InputError(f"Invalid port in address: {address!r}")
    return host, int(port)


@dataclass(frozen=True)
class Target:
    """One network device to query."""

    address: str
    label: str = ""

    def __post_init__(self) -> None:
        address = self.address.strip()
        if not address:
            raise InputError("Target address must not be empty")
        split_address(address)
        object.__setattr__(self, "address", address)
        object.__setattr__(self, "label", self.label.strip() or address)

    @property
    def host(self) -> str:
        return split_address(self.address)[0]

    def port(self, default: int = 22) -> int:
        """Port from the address, or ``default`` when the address has none."""
        port = split_address(self.address)[1]
        return default if port is None else port


@dataclass(frozen=True)
class Credentials:
    """Username and password shared read-only by every worker of a run."""

    username: str
    secret: str = field(repr=False)


class Stage(Enum):
    """Host lifecycle stage at which a failure happened."""

    CONNECT = "connect"
    EXECUTE = "execute"
    PERSIST = "persist"


@dataclass(frozen=True)
class Transcript:
    """Ordered (command, output) pairs collected from one host."""

    entries: tuple[tuple[str, str], ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def commands(self) -> list[str]:
        return [command for command, _ in self.entries]

    def render(self) -> str:
        """Render as labeled text blocks, one per command, in run order."""
        blocks = []
        for command, output in self.entries:
            if output and not output.endswith("\n"):
                output += "\n"
            blocks.append(f"Command: {command}\n{output}\n")
        return "".join(blocks)


@dataclass(frozen=True)
class HostOutcome:
    """Terminal result for one target: a transcript or a staged failure."""

    label: str
    transcript: Transcript | None = None
    artifact: str | None = None
    stage: Stage | None = None
    cause: str = ""
    command_index: int | None = None
    command: str | None = None

    @classmethod
    def success(
        cls, label: str, transcript: Transcript, artifact: str | None = None
    ) -> HostOutcome:
        return cls(label=label, transcript=transcript, artifact=artifact)

    @classmethod
    def failure(
        cls,
        label: str,
        stage: Stage,
        cause: str,
        command_index: int | None = None,
        command: str | None = None,
    ) -> HostOutcome:
        return cls(
            label=label,
            stage=stage,
            cause=cause,
            command_index=command_index,
            command=command,
        )

    @property
    def ok(self) -> bool:
        return self.stage is None

    def describe(self) -> str:
        """One-line human readable summary."""
        if self.ok:
            return f"success ({len(self.transcript or ())} commands)"
        return f"failed during {self.stage.value}: {self.cause}"


class RunReport(Mapping[str, HostOutcome]):
    """Complete mapping from target label to outcome for one run."""

    def __init__(self, outcomes: Mapping[str, HostOutcome] | None = None):
        self._outcomes: dict[str, HostOutcome] = dict(outcomes or {})

    def __getitem__(self, label: str) -> HostOutcome:
        return self._outcomes[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __repr__(self) -> str:
        return f"RunReport({self._outcomes!r})"

    @property
    def succeeded(self) -> list[str]:
        return sorted(label for label, o in self._outcomes.items() if o.ok)

    @property
    def failed(self) -> list[str]:
        return sorted(label for label, o in self._outcomes.items() if not o.ok)
