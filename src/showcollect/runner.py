#!/usr/bin/env python3
"""Main entry point for showcollect."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .config import Config, load_config
from .errors import InputError
from .executor import Executor, HostStatus
from .inventory import (
    contains_marker,
    parse_command_string,
    read_commands,
    read_targets,
    validate_commands,
)
from .models import Credentials, RunReport, Target
from .sink import DirectorySink, timestamped_directory

PASSWORD_ENV = "SHOWCOLLECT_PASSWORD"
DEFAULT_HOSTS_FILE = "ip_addresses.csv"
DEFAULT_COMMANDS_FILE = "show_commands.csv"

BANNER = r"""
     _                            _ _           _
 ___| |__   _____      _____ ___ | | | ___  ___| |_
/ __| '_ \ / _ \ \ /\ / / __/ _ \| | |/ _ \/ __| __|
\__ \ | | | (_) \ V  V / (_| (_) | | |  __/ (__| |_
|___/_| |_|\___/ \_/\_/ \___\___/|_|_|\___|\___|\__|
"""

Prompt = Callable[[str], str]


@dataclass
class RunInputs:
    """Everything the executor needs, gathered before fan-out."""

    targets: list[Target]
    credentials: Credentials
    commands: tuple[str, ...]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run read-only show commands on many network devices over SSH"
    )
    parser.add_argument("--config", type=Path, help="Path to YAML configuration file")
    parser.add_argument("--hosts", type=Path, help="CSV file of label,address rows")
    parser.add_argument("--commands", type=Path, help="CSV file of show commands")
    parser.add_argument(
        "--default-commands",
        action="store_true",
        help="Use the configured default command list",
    )
    parser.add_argument("--username", help="SSH username")
    parser.add_argument("--output-dir", type=Path, help="Override output directory")
    parser.add_argument(
        "--known-hosts",
        help="known_hosts file, or 'none' to disable host key verification",
    )
    parser.add_argument("--timeout", type=float, help="Per-command timeout in seconds")
    parser.add_argument(
        "--max-concurrency",
        type=int,
        help="Maximum number of hosts contacted at once",
    )
    parser.add_argument(
        "--dashboard",
        action="store_true",
        help="Run with the TUI dashboard",
    )
    parser.add_argument("--no-banner", action="store_true", help="Do not print the banner")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncssh").setLevel(logging.WARNING)


def apply_overrides(config: Config, args: argparse.Namespace) -> None:
    """Apply command line overrides on top of the loaded configuration."""
    if args.output_dir:
        config.output.dir = args.output_dir.expanduser()
    if args.known_hosts:
        config.defaults.known_hosts = args.known_hosts
    if args.timeout is not None:
        config.defaults.command_timeout = args.timeout
    if args.max_concurrency is not None:
        config.defaults.max_concurrency = args.max_concurrency


def _prompt_path(prompt: Prompt, question: str, default: str) -> Path:
    answer = prompt(f"{question} (or press Enter for default: {default}): ").strip()
    return Path(answer or default).expanduser()


def _prompt_yes_no(prompt: Prompt, question: str) -> bool:
    while True:
        response = prompt(question).strip().lower()
        if response in ("y", "yes"):
            return True
        if response in ("n", "no"):
            return False
        print("Invalid response. Please enter 'Y' or 'N'.")


def collect_inputs(
    config: Config,
    args: argparse.Namespace,
    prompt: Prompt = input,
    read_password: Prompt = getpass.getpass,
) -> RunInputs:
    """Gather targets, credentials and commands, prompting for what is missing.

    Raises:
        InputError: If any required input is empty or invalid.
        FileNotFoundError: If a CSV file does not exist.
    """
    if args.hosts:
        targets = read_targets(args.hosts)
    elif config.targets:
        targets = list(config.targets)
    else:
        targets = read_targets(
            _prompt_path(prompt, "Enter the path to the hosts CSV file", DEFAULT_HOSTS_FILE)
        )
    if not targets:
        raise InputError("No targets to contact")
    labels = [t.label for t in targets]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise InputError(f"Duplicate target labels: {', '.join(duplicates)}")

    username = args.username or prompt("Enter the SSH username: ").strip()
    if not username:
        raise InputError("SSH username is required")
    secret = os.environ.get(PASSWORD_ENV) or read_password("Enter the SSH password: ")

    if args.commands:
        commands = read_commands(args.commands)
    elif args.default_commands:
        commands = list(config.default_commands)
    elif _prompt_yes_no(prompt, "Do you want to use default show commands? (Y/N): "):
        commands = list(config.default_commands)
    else:
        answer = prompt(
            "Enter a show commands CSV file or comma-separated commands "
            f"(or press Enter for default: {DEFAULT_COMMANDS_FILE}): "
        ).strip()
        candidate = Path(answer or DEFAULT_COMMANDS_FILE).expanduser()
        if not answer or candidate.exists():
            commands = read_commands(candidate)
        else:
            commands = parse_command_string(answer)

    return RunInputs(
        targets=targets,
        credentials=Credentials(username=username, secret=secret),
        commands=validate_commands(commands, contains_marker(config.query_marker)),
    )


def make_sink(config: Config) -> DirectorySink:
    directory = config.output.dir
    if config.output.timestamped:
        directory = timestamped_directory(directory, config.output.timestamp_format)
    return DirectorySink(directory, config.output.filename)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if not args.no_banner:
        print(BANNER)

    # Load configuration
    try:
        config = load_config(args.config) if args.config else Config()
        apply_overrides(config, args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        inputs = collect_inputs(config, args)
        sink = make_sink(config)
        executor = Executor.from_config(config, sink)
    except (InputError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (KeyboardInterrupt, EOFError):
        print("\nAborted.", file=sys.stderr)
        return 2

    try:
        if not args.dashboard:
            # Run without TUI dashboard (default)
            report = _run_headless(executor, inputs)
        else:
            report = _run_dashboard(executor, inputs)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    if report is None:
        print("Run interrupted before completion.", file=sys.stderr)
        return 1

    return _summarize(report)


def _run_headless(executor: Executor, inputs: RunInputs) -> RunReport:
    """Run executor without TUI dashboard."""
    # ANSI colors for different hosts
    colors = [
        "\033[36m",  # Cyan
        "\033[33m",  # Yellow
        "\033[35m",  # Magenta
        "\033[32m",  # Green
        "\033[34m",  # Blue
        "\033[91m",  # Light Red
        "\033[96m",  # Light Cyan
        "\033[93m",  # Light Yellow
    ]
    reset = "\033[0m" if sys.stdout.isatty() else ""
    if not reset:
        colors = [""]

    # Assign colors to hosts
    host_colors = {
        target.label: colors[i % len(colors)]
        for i, target in enumerate(inputs.targets)
    }

    def on_output(label: str, line: str) -> None:
        # Command output is only written to the artifact
        if line.startswith(("Connecting", "$ ", "Output written", "ERROR:")):
            color = host_colors.get(label, "")
            print(f"{color}[{label}]{reset} {line}")

    def on_status(label: str, status: HostStatus) -> None:
        if status in (HostStatus.SUCCESS, HostStatus.FAILED):
            color = host_colors.get(label, "")
            print(f"{color}[{label}]{reset} Status: {status.value}")

    executor.on_output = on_output
    executor.on_status = on_status

    return asyncio.run(
        executor.run_all(inputs.targets, inputs.credentials, inputs.commands)
    )


def _run_dashboard(executor: Executor, inputs: RunInputs) -> RunReport | None:
    from .dashboard import Dashboard

    app = Dashboard(executor, inputs.targets, inputs.credentials, inputs.commands)
    app.run()
    if app.error is not None:
        raise app.error
    return app.report


def _summarize(report: RunReport) -> int:
    print(f"\n{len(report.succeeded)}/{len(report)} hosts succeeded")
    if report.failed:
        print("Failed hosts:", file=sys.stderr)
        for label in report.failed:
            print(f"  {label}: {report[label].describe()}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
