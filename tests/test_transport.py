"""Tests for the asyncssh session transport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from showcollect.errors import ConnectError, ExecError
from showcollect.models import Credentials, Target
from showcollect.transport import Session, TransportOptions, open_session


@pytest.fixture
def options() -> TransportOptions:
    return TransportOptions(known_hosts="/etc/ssh/known_hosts", connect_timeout=10, command_timeout=20)


@pytest.fixture
def mock_connection() -> MagicMock:
    """Create a mock SSH connection."""
    conn = MagicMock()
    conn.run = AsyncMock()
    conn.wait_closed = AsyncMock()
    return conn


def completed(stdout: str = "", exit_status: int | None = 0, exit_signal=None) -> MagicMock:
    return MagicMock(stdout=stdout, exit_status=exit_status, exit_signal=exit_signal)


class TestOpenSession:
    """Connection establishment and error mapping."""

    @pytest.mark.asyncio
    async def test_connects_with_password_and_host_key_policy(self, options, mock_connection):
        target = Target("10.0.0.1:2222", "sw1")
        creds = Credentials("admin", "pw")

        with patch("showcollect.transport.asyncssh.connect", AsyncMock(return_value=mock_connection)) as connect:
            session = await open_session(target, creds, options)

        assert isinstance(session, Session)
        args, kwargs = connect.call_args
        assert args == ("10.0.0.1",)
        assert kwargs["port"] == 2222
        assert kwargs["username"] == "admin"
        assert kwargs["password"] == "pw"
        assert kwargs["known_hosts"] == "/etc/ssh/known_hosts"
        assert kwargs["client_keys"] is None
        assert kwargs["connect_timeout"] == 10

    @pytest.mark.asyncio
    async def test_default_port(self, options, mock_connection):
        with patch("showcollect.transport.asyncssh.connect", AsyncMock(return_value=mock_connection)) as connect:
            await open_session(Target("core1.example.net"), Credentials("u", "p"), options)

        assert connect.call_args.kwargs["port"] == 22

    @pytest.mark.asyncio
    async def test_auth_rejected(self, options):
        error = asyncssh.PermissionDenied("Permission denied")
        with patch("showcollect.transport.asyncssh.connect", AsyncMock(side_effect=error)):
            with pytest.raises(ConnectError, match="authentication rejected"):
                await open_session(Target("10.0.0.1"), Credentials("u", "bad"), options)

    @pytest.mark.asyncio
    async def test_host_key_rejected(self, options):
        error = asyncssh.HostKeyNotVerifiable("Host key is not trusted")
        with patch("showcollect.transport.asyncssh.connect", AsyncMock(side_effect=error)):
            with pytest.raises(ConnectError, match="host key not verifiable"):
                await open_session(Target("10.0.0.1"), Credentials("u", "p"), options)

    @pytest.mark.asyncio
    async def test_unreachable(self, options):
        error = ConnectionRefusedError(111, "Connection refused")
        with patch("showcollect.transport.asyncssh.connect", AsyncMock(side_effect=error)):
            with pytest.raises(ConnectError, match="Connection refused") as exc_info:
                await open_session(Target("10.0.0.9", "edge"), Credentials("u", "p"), options)

        assert exc_info.value.address == "10.0.0.9"

    @pytest.mark.asyncio
    async def test_connect_timeout(self, options):
        with patch("showcollect.transport.asyncssh.connect", AsyncMock(side_effect=asyncio.TimeoutError())):
            with pytest.raises(ConnectError, match="timeout after 10s"):
                await open_session(Target("10.0.0.1"), Credentials("u", "p"), options)


class TestSession:
    """Command execution on an open session."""

    @pytest.mark.asyncio
    async def test_run_returns_combined_output(self, mock_connection):
        mock_connection.run.return_value = completed("Arista vEOS\n")
        session = Session(Target("10.0.0.1"), mock_connection, command_timeout=20)

        output = await session.run("show version")

        assert output == "Arista vEOS\n"
        args, kwargs = mock_connection.run.call_args
        assert args == ("show version",)
        assert kwargs["stderr"] == asyncssh.STDOUT
        assert kwargs["timeout"] == 20
        assert kwargs["check"] is False

    @pytest.mark.asyncio
    async def test_missing_exit_status_is_success(self, mock_connection):
        mock_connection.run.return_value = completed("ok", exit_status=None)
        session = Session(Target("10.0.0.1"), mock_connection)

        assert await session.run("show clock") == "ok"

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, mock_connection):
        mock_connection.run.return_value = completed("% Invalid input", exit_status=1)
        session = Session(Target("10.0.0.1"), mock_connection)

        with pytest.raises(ExecError, match="exited with status 1") as exc_info:
            await session.run("show bogus")

        assert exc_info.value.command == "show bogus"
        assert not exc_info.value.timed_out

    @pytest.mark.asyncio
    async def test_exit_signal_raises(self, mock_connection):
        mock_connection.run.return_value = completed(exit_status=None, exit_signal=("KILL", False, "", ""))
        session = Session(Target("10.0.0.1"), mock_connection)

        with pytest.raises(ExecError, match="signal KILL"):
            await session.run("show tech-support")

    @pytest.mark.asyncio
    async def test_timeout(self, mock_connection):
        mock_connection.run.side_effect = asyncssh.TimeoutError(
            None, "show tech-support", None, None, None, None, "", ""
        )
        session = Session(Target("10.0.0.1"), mock_connection, command_timeout=20)

        with pytest.raises(ExecError, match="timeout after 20s") as exc_info:
            await session.run("show tech-support")

        assert exc_info.value.timed_out

    @pytest.mark.asyncio
    async def test_lost_connection(self, mock_connection):
        mock_connection.run.side_effect = asyncssh.ConnectionLost("Connection lost")
        session = Session(Target("10.0.0.1"), mock_connection)

        with pytest.raises(ExecError, match="Connection lost"):
            await session.run("show version")

    @pytest.mark.asyncio
    async def test_socket_error(self, mock_connection):
        mock_connection.run.side_effect = BrokenPipeError("Broken pipe")
        session = Session(Target("10.0.0.1"), mock_connection)

        with pytest.raises(ExecError, match="connection error"):
            await session.run("show version")

    @pytest.mark.asyncio
    async def test_context_manager_closes_on_error(self, mock_connection):
        mock_connection.run.return_value = completed(exit_status=2)

        with pytest.raises(ExecError):
            async with Session(Target("10.0.0.1"), mock_connection) as session:
                await session.run("show version")

        mock_connection.close.assert_called_once()
        mock_connection.wait_closed.assert_awaited_once()
