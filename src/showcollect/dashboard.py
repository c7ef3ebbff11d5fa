"""Optional live view of a collection run."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Footer, Label, RichLog, Static
from textual.worker import Worker, WorkerState

from .errors import InputError
from .executor import Executor, HostStatus
from .models import Credentials, HostOutcome, RunReport, Target

STATUS_STYLES = {
    HostStatus.PENDING: ("○", "dim"),
    HostStatus.CONNECTING: ("◌", "yellow"),
    HostStatus.RUNNING: ("●", "yellow"),
    HostStatus.SUCCESS: ("✓", "green"),
    HostStatus.FAILED: ("✗", "red"),
}


class HostPanel(Static):
    """Header line plus a short log for one target."""

    status: reactive[HostStatus] = reactive(HostStatus.PENDING)
    outcome: reactive[HostOutcome | None] = reactive(None)

    def __init__(self, slot: str, target: Target, username: str, **kwargs) -> None:
        super().__init__(**kwargs)
        # Labels are free-form, so widget ids use a positional key instead
        self.slot = slot
        self.target = target
        self.username = username

    def compose(self) -> ComposeResult:
        yield Label(self.header_text(), id=f"header-{self.slot}")
        yield RichLog(id=f"log-{self.slot}", markup=True, wrap=True, max_lines=200)

    def header_text(self) -> str:
        icon, color = STATUS_STYLES[self.status]
        text = f"[{color}]{icon} [bold]{self.target.label}[/bold][/] {self.username}@{self.target.address}"
        if self.outcome is not None:
            text += f"  [{color}]{self.outcome.describe()}[/]"
        return text

    def _refresh_header(self) -> None:
        if self.is_mounted:
            self.query_one(f"#header-{self.slot}", Label).update(self.header_text())

    def watch_status(self, status: HostStatus) -> None:
        self._refresh_header()

    def watch_outcome(self, outcome: HostOutcome | None) -> None:
        self._refresh_header()

    def append_output(self, line: str) -> None:
        log = self.query_one(f"#log-{self.slot}", RichLog)
        if line.startswith("$ "):
            line = f"[bold cyan]{line}[/]"
        elif line.startswith("ERROR:"):
            line = f"[bold red]{line}[/]"
        log.write(line)


class StatusBar(Static):
    """Run totals."""

    completed: reactive[int] = reactive(0)
    failed: reactive[int] = reactive(0)
    total: reactive[int] = reactive(0)
    running: reactive[bool] = reactive(True)

    def render(self) -> str:
        state = "running" if self.running else "done"
        return f"{self.completed}/{self.total} hosts complete, {self.failed} failed ({state})"


@dataclass
class HostOutput(Message):
    label: str
    line: str


@dataclass
class HostStatusChange(Message):
    label: str
    status: HostStatus


class Dashboard(App):
    """Runs an executor in a worker thread and shows each host's progress."""

    CSS = """
    HostPanel { height: auto; border: round $primary; }
    HostPanel RichLog { height: 6; }
    StatusBar { dock: bottom; height: 1; }
    """

    BINDINGS = [("q", "quit", "Quit")]

    def __init__(
        self,
        executor: Executor,
        targets: Sequence[Target],
        credentials: Credentials,
        commands: Sequence[str],
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.executor = executor
        self.targets = list(targets)
        self.credentials = credentials
        self.commands = list(commands)
        self.panels: dict[str, HostPanel] = {}
        self.report: RunReport | None = None
        self.error: InputError | None = None
        self._worker: Worker | None = None

    def compose(self) -> ComposeResult:
        with VerticalScroll():
            for i, target in enumerate(self.targets):
                panel = HostPanel(f"host{i}", target, self.credentials.username)
                self.panels[target.label] = panel
                yield panel
        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#status-bar", StatusBar).total = len(self.targets)
        self.executor.on_output = lambda label, line: self.post_message(HostOutput(label, line))
        self.executor.on_status = lambda label, status: self.post_message(
            HostStatusChange(label, status)
        )
        self._worker = self.run_worker(self._collect(), exclusive=True, thread=True)

    async def _collect(self) -> None:
        try:
            self.report = await self.executor.run_all(
                self.targets, self.credentials, self.commands
            )
        except InputError as e:
            # Rejected before any host was contacted
            self.error = e
            self.call_from_thread(self.exit)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker is not self._worker or event.state != WorkerState.SUCCESS:
            return
        self.query_one("#status-bar", StatusBar).running = False
        if self.report is not None:
            for label, outcome in self.report.items():
                self.panels[label].outcome = outcome

    def on_host_output(self, message: HostOutput) -> None:
        if message.label in self.panels:
            self.panels[message.label].append_output(message.line)

    def on_host_status_change(self, message: HostStatusChange) -> None:
        if message.label in self.panels:
            self.panels[message.label].status = message.status

        if message.status in (HostStatus.SUCCESS, HostStatus.FAILED):
            bar = self.query_one("#status-bar", StatusBar)
            bar.completed += 1
            if message.status == HostStatus.FAILED:
                bar.failed += 1

    async def action_quit(self) -> None:
        if self._worker and self._worker.is_running:
            self._worker.cancel()
        self.exit()
