"""Concurrent SSH execution engine for showcollect."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Sequence
from enum import Enum
from typing import Callable

from .commands import run_commands
from .config import Config
from .errors import ConnectError, ExecError, InputError, PersistError
from .host_keys import HostKeyPolicy
from .inventory import CommandPredicate, contains_marker, validate_commands
from .models import Credentials, HostOutcome, RunReport, Stage, Target
from .sink import ResultSink
from .transport import Session, TransportOptions, open_session

logger = logging.getLogger(__name__)


class HostStatus(Enum):
    """Progress of a host's execution."""

    PENDING = "pending"
    CONNECTING = "connecting"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


# Type alias for output callback
OutputCallback = Callable[[str, str], None]  # (label, line) -> None
StatusCallback = Callable[[str, HostStatus], None]  # (label, status) -> None
SessionOpener = Callable[[Target, Credentials, TransportOptions], Awaitable[Session]]


class Executor:
    """Runs a command list on many targets concurrently."""

    def __init__(
        self,
        options: TransportOptions,
        sink: ResultSink,
        predicate: CommandPredicate | None = None,
        max_concurrency: int | None = None,
        opener: SessionOpener | None = None,
        on_output: OutputCallback | None = None,
        on_status: StatusCallback | None = None,
    ):
        self.options = options
        self.sink = sink
        self.predicate = predicate or contains_marker("show")
        self.max_concurrency = max_concurrency
        self.opener = opener or open_session
        self.on_output = on_output
        self.on_status = on_status

    @classmethod
    def from_config(cls, config: Config, sink: ResultSink, **kwargs) -> Executor:
        """Build an executor from loaded configuration.

        Raises:
            FileNotFoundError: If host key verification is required but the
                known_hosts file is missing.
        """
        defaults = config.defaults
        policy = HostKeyPolicy(defaults.known_hosts, strict=defaults.strict_host_keys)
        options = TransportOptions(
            known_hosts=policy.known_hosts,
            port=defaults.port,
            connect_timeout=defaults.connect_timeout,
            command_timeout=defaults.command_timeout,
        )
        kwargs.setdefault("predicate", contains_marker(config.query_marker))
        kwargs.setdefault("max_concurrency", defaults.max_concurrency)
        return cls(options, sink, **kwargs)

    def _emit_output(self, label: str, line: str) -> None:
        if self.on_output:
            self.on_output(label, line)

    def _emit_status(self, label: str, status: HostStatus) -> None:
        if self.on_status:
            self.on_status(label, status)

    async def run_all(
        self,
        targets: Iterable[Target],
        credentials: Credentials,
        commands: Sequence[str],
    ) -> RunReport:
        """Run commands on all targets in parallel and wait for every one.

        Raises:
            InputError: Before any connection, if the command list is empty
                or rejected, or two targets share a label or an artifact.
        """
        targets = list(targets)
        commands = validate_commands(commands, self.predicate)
        self._check_unique(targets)

        if not targets:
            return RunReport()

        for target in targets:
            self._emit_status(target.label, HostStatus.PENDING)

        limit = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def bounded(target: Target) -> HostOutcome:
            if limit is None:
                return await self.run_host(target, credentials, commands)
            async with limit:
                return await self.run_host(target, credentials, commands)

        # Run all targets in parallel
        outcomes = await asyncio.gather(*(bounded(t) for t in targets))

        report = RunReport({outcome.label: outcome for outcome in outcomes})
        logger.info(
            "Run complete: %d succeeded, %d failed",
            len(report.succeeded),
            len(report.failed),
        )
        return report

    async def run_host(
        self, target: Target, credentials: Credentials, commands: Sequence[str]
    ) -> HostOutcome:
        """Connect, run, persist and disconnect for one target.

        Never raises: every failure becomes a HostOutcome with the stage
        it happened in.
        """
        label = target.label
        stage = Stage.CONNECT

        def on_command(index: int, command: str) -> None:
            self._emit_output(label, f"$ {command}")

        def on_result(index: int, command: str, output: str) -> None:
            for line in output.splitlines():
                self._emit_output(label, line)

        try:
            self._emit_status(label, HostStatus.CONNECTING)
            self._emit_output(
                label, f"Connecting to {credentials.username}@{target.address}..."
            )
            session = await self.opener(target, credentials, self.options)
            try:
                stage = Stage.EXECUTE
                self._emit_status(label, HostStatus.RUNNING)
                transcript = await run_commands(
                    session, commands, on_command=on_command, on_result=on_result
                )

                stage = Stage.PERSIST
                artifact = await self.sink.write(label, transcript.render())
            finally:
                await self._release(label, session)
        except ConnectError as e:
            outcome = HostOutcome.failure(label, Stage.CONNECT, e.cause)
        except ExecError as e:
            outcome = HostOutcome.failure(
                label, Stage.EXECUTE, e.cause, command_index=e.index, command=e.command
            )
        except PersistError as e:
            outcome = HostOutcome.failure(label, Stage.PERSIST, e.cause)
        except Exception as e:
            logger.exception("Unexpected error on %s during %s", label, stage.value)
            outcome = HostOutcome.failure(label, stage, f"{type(e).__name__}: {e}")
        else:
            outcome = HostOutcome.success(label, transcript, artifact)

        self._finish(label, outcome)
        return outcome

    def _check_unique(self, targets: list[Target]) -> None:
        """Reject targets that would share a report slot or an artifact."""
        labels = [t.label for t in targets]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise InputError(f"Duplicate target labels: {', '.join(duplicates)}")

        owners: dict[str, str] = {}
        for label in labels:
            key = self.sink.key_for(label)
            if key in owners:
                raise InputError(
                    f"Targets {owners[key]!r} and {label!r} would both be stored as {key}"
                )
            owners[key] = label

    async def _release(self, label: str, session: Session) -> None:
        # Output is already stored or the failure recorded by now
        try:
            await session.close()
        except Exception:
            logger.warning("Error closing session to %s", label, exc_info=True)

    def _finish(self, label: str, outcome: HostOutcome) -> None:
        if outcome.ok:
            logger.info("%s: %s", label, outcome.describe())
        else:
            logger.warning("%s: %s", label, outcome.describe())

        try:
            if outcome.ok:
                self._emit_output(label, f"Output written to {outcome.artifact}")
                self._emit_status(label, HostStatus.SUCCESS)
            else:
                self._emit_output(label, f"ERROR: {outcome.describe()}")
                self._emit_status(label, HostStatus.FAILED)
        except Exception:
            logger.exception("Status callback failed for %s", label)
