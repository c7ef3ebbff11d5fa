"""Configuration loader for showcollect."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import InputError
from .models import Target
from .sink import DEFAULT_FILENAME, DEFAULT_TIMESTAMP_FORMAT

DEFAULT_COMMANDS = ["show version", "show interfaces", "show ip route"]


@dataclass
class Defaults:
    """Connection settings applied to every target."""

    port: int = 22
    connect_timeout: float | None = 30
    command_timeout: float | None = 60
    known_hosts: str | None = None  # None means ~/.ssh/known_hosts
    strict_host_keys: bool = True
    max_concurrency: int | None = None


@dataclass
class OutputConfig:
    """Where transcripts are written."""

    dir: Path = field(default_factory=lambda: Path("."))
    timestamped: bool = True
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    filename: str = DEFAULT_FILENAME


@dataclass
class Config:
    """Main configuration for a collection run."""

    defaults: Defaults = field(default_factory=Defaults)
    output: OutputConfig = field(default_factory=OutputConfig)
    query_marker: str = "show"
    default_commands: list[str] = field(default_factory=lambda: list(DEFAULT_COMMANDS))
    targets: list[Target] = field(default_factory=list)
    source_path: Path | None = None  # Path to the original config file


def load_config(config_path: str | Path) -> Config:
    """Load and validate configuration from a YAML file."""
    config_path = Path(config_path).expanduser().resolve()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration must be a mapping")

    config = _parse_config(raw)
    config.source_path = config_path
    return config


def _optional_number(value: Any, name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"'{name}' must be a positive number or null")
    return value


def _parse_defaults(raw: dict[str, Any]) -> Defaults:
    """Parse the defaults section."""
    defaults_raw = raw.get("defaults") or {}

    port = defaults_raw.get("port", 22)
    if not isinstance(port, int) or not 0 < port < 65536:
        raise ValueError(f"Invalid default port: {port!r}")

    max_concurrency = defaults_raw.get("max_concurrency")
    if max_concurrency is not None and (
        not isinstance(max_concurrency, int) or max_concurrency < 1
    ):
        raise ValueError("'max_concurrency' must be a positive integer or null")

    known_hosts = defaults_raw.get("known_hosts")
    return Defaults(
        port=port,
        connect_timeout=_optional_number(
            defaults_raw.get("connect_timeout", 30), "connect_timeout"
        ),
        command_timeout=_optional_number(
            defaults_raw.get("command_timeout", 60), "command_timeout"
        ),
        known_hosts=str(known_hosts) if known_hosts is not None else None,
        strict_host_keys=bool(defaults_raw.get("strict_host_keys", True)),
        max_concurrency=max_concurrency,
    )


def _parse_output(raw: dict[str, Any]) -> OutputConfig:
    """Parse the output section."""
    output_raw = raw.get("output") or {}
    filename = output_raw.get("filename", DEFAULT_FILENAME)
    if "{label}" not in filename:
        raise ValueError("'output.filename' must contain '{label}'")

    return OutputConfig(
        dir=Path(output_raw.get("dir", ".")).expanduser(),
        timestamped=bool(output_raw.get("timestamped", True)),
        timestamp_format=output_raw.get("timestamp_format", DEFAULT_TIMESTAMP_FORMAT),
        filename=filename,
    )


def _parse_config(raw: dict[str, Any]) -> Config:
    """Parse raw YAML data into Config object."""
    defaults = _parse_defaults(raw)
    output = _parse_output(raw)

    query_marker = raw.get("query_marker", "show")
    if not query_marker or not isinstance(query_marker, str):
        raise ValueError("'query_marker' must be a non-empty string")

    # Parse command groups
    command_groups: dict[str, list[str]] = raw.get("command_groups") or {}

    default_commands = DEFAULT_COMMANDS
    if "default_commands" in raw:
        default_commands = _resolve_commands(
            raw.get("default_commands") or [], command_groups
        )
        if not default_commands:
            raise ValueError("'default_commands' must list at least one command")

    targets = [_parse_target(t) for t in raw.get("targets") or []]

    return Config(
        defaults=defaults,
        output=output,
        query_marker=query_marker,
        default_commands=list(default_commands),
        targets=targets,
    )


def _parse_target(target_raw: dict[str, Any]) -> Target:
    """Parse a single target entry."""
    if not isinstance(target_raw, dict):
        raise ValueError(f"Target entry must be a mapping, got {target_raw!r}")

    name = target_raw.get("name", "?")
    host = target_raw.get("host")
    if not host:
        raise ValueError(f"Target '{name}' must have a 'host' field")

    address = str(host)
    if "port" in target_raw:
        # Bracket IPv6 literals so the port stays unambiguous
        host_part = f"[{address}]" if ":" in address else address
        address = f"{host_part}:{target_raw['port']}"

    try:
        return Target(address=address, label=str(target_raw.get("name") or ""))
    except InputError as e:
        raise ValueError(str(e)) from e


def _resolve_commands(
    commands_raw: list[str], command_groups: dict[str, list[str]]
) -> list[str]:
    """Resolve command references to actual commands."""
    commands = []

    for cmd in commands_raw:
        if cmd in command_groups:
            # It's a group reference, expand it
            commands.extend(command_groups[cmd])
        else:
            # It's a direct command
            commands.append(cmd)

    return commands
