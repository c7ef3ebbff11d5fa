"""Shared fixtures: an in-memory network of fake devices and a memory sink."""

import asyncio

import pytest

from showcollect.errors import ConnectError, PersistError
from showcollect.models import Credentials, Target
from showcollect.transport import TransportOptions


class FakeSession:
    """Stands in for a Session; answers commands from a response table."""

    def __init__(self, network: "FakeNetwork", target: Target):
        self.network = network
        self.target = target
        self.calls: list[str] = []
        self.closed = False

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def run(self, command: str) -> str:
        self.calls.append(command)
        delay = self.network.command_delays.get(self.target.label, 0)
        if delay:
            await asyncio.sleep(delay)
        responses = self.network.responses.get(self.target.label, {})
        response = responses.get(command, f"{command} output from {self.target.label}\n")
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True
        self.network.active -= 1
        error = self.network.close_errors.get(self.target.label)
        if error is not None:
            raise error


class FakeNetwork:
    """Async callable with the open_session signature."""

    def __init__(self) -> None:
        self.unreachable: set[str] = set()
        self.open_errors: dict[str, BaseException] = {}
        self.responses: dict[str, dict[str, object]] = {}
        self.connect_delays: dict[str, float] = {}
        self.command_delays: dict[str, float] = {}
        self.close_errors: dict[str, BaseException] = {}
        self.sessions: dict[str, FakeSession] = {}
        self.opened: list[str] = []
        self.options: list[TransportOptions] = []
        self.active = 0
        self.peak = 0

    async def __call__(
        self, target: Target, credentials: Credentials, options: TransportOptions
    ) -> FakeSession:
        self.opened.append(target.label)
        self.options.append(options)
        delay = self.connect_delays.get(target.label, 0)
        if delay:
            await asyncio.sleep(delay)
        if target.label in self.open_errors:
            raise self.open_errors[target.label]
        if target.label in self.unreachable:
            raise ConnectError(target.address, "No route to host")

        session = FakeSession(self, target)
        self.sessions[target.label] = session
        self.active += 1
        self.peak = max(self.peak, self.active)
        return session


class MemorySink:
    """Result sink that keeps transcripts in a dict."""

    def __init__(self, failing: tuple[str, ...] = ()):
        self.written: dict[str, str] = {}
        self.failing = set(failing)

    def key_for(self, label: str) -> str:
        return f"memory://{label}"

    async def write(self, label: str, text: str) -> str:
        if label in self.failing:
            raise PersistError(label, "No space left on device")
        self.written[label] = text
        return f"memory://{label}"


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def options() -> TransportOptions:
    return TransportOptions(known_hosts=None, connect_timeout=5, command_timeout=5)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="netops", secret="s3cret")


@pytest.fixture
def switches() -> list[Target]:
    return [
        Target(address="10.0.0.1", label="sw1"),
        Target(address="10.0.0.2", label="sw2"),
    ]


@pytest.fixture
def network_factory() -> type[FakeNetwork]:
    return FakeNetwork


@pytest.fixture
def sink_factory() -> type[MemorySink]:
    return MemorySink
