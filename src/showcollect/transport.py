"""SSH session transport built on asyncssh."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import asyncssh

from .errors import ConnectError, ExecError
from .models import Credentials, Target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportOptions:
    """Connection settings shared by every session of a run."""

    known_hosts: str | None
    port: int = 22
    connect_timeout: float | None = 30
    command_timeout: float | None = 60


class Session:
    """One authenticated SSH connection to a single target.

    Use as an async context manager; the connection is closed on exit.
    """

    def __init__(
        self,
        target: Target,
        conn: asyncssh.SSHClientConnection,
        command_timeout: float | None = None,
    ):
        self.target = target
        self._conn = conn
        self._command_timeout = command_timeout

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def run(self, command: str) -> str:
        """Run one command on its own channel and return stdout+stderr.

        Raises:
            ExecError: Non-zero exit, session error, lost transport or timeout.
        """
        try:
            result = await self._conn.run(
                command,
                check=False,
                stderr=asyncssh.STDOUT,
                timeout=self._command_timeout,
                errors="replace",
            )
        except asyncssh.TimeoutError as e:
            raise ExecError(
                command, f"timeout after {self._command_timeout}s", timed_out=True
            ) from e
        except asyncssh.Error as e:
            raise ExecError(command, f"SSH error: {e.reason}") from e
        except OSError as e:
            raise ExecError(command, f"connection error: {e}") from e

        if result.exit_signal:
            raise ExecError(command, f"terminated by signal {result.exit_signal[0]}")
        # Some network OSes never send an exit status; only a real failure counts
        if result.exit_status:
            raise ExecError(command, f"exited with status {result.exit_status}")

        output = result.stdout or ""
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        return output

    async def close(self) -> None:
        logger.debug("Closing connection to %s", self.target.address)
        self._conn.close()
        await self._conn.wait_closed()


async def open_session(
    target: Target, credentials: Credentials, options: TransportOptions
) -> Session:
    """Open an authenticated session to ``target``.

    Only password authentication is offered; asyncssh answers
    keyboard-interactive password prompts with the same secret.

    Raises:
        ConnectError: Unreachable host, rejected credentials or host key,
            handshake failure or connect timeout.
    """
    host = target.host
    port = target.port(options.port)
    logger.debug("Connecting to %s@%s:%d", credentials.username, host, port)

    try:
        conn = await asyncssh.connect(
            host,
            port=port,
            username=credentials.username,
            password=credentials.secret,
            known_hosts=options.known_hosts,
            client_keys=None,
            agent_path=None,
            preferred_auth="password,keyboard-interactive",
            connect_timeout=options.connect_timeout,
        )
    except asyncssh.PermissionDenied as e:
        raise ConnectError(target.address, f"authentication rejected: {e.reason}") from e
    except asyncssh.HostKeyNotVerifiable as e:
        raise ConnectError(target.address, f"host key not verifiable: {e.reason}") from e
    except asyncssh.Error as e:
        raise ConnectError(target.address, f"SSH error: {e.reason}") from e
    except asyncio.TimeoutError as e:
        raise ConnectError(
            target.address, f"timeout after {options.connect_timeout}s"
        ) from e
    except OSError as e:
        raise ConnectError(target.address, str(e) or type(e).__name__) from e

    logger.info("Connected to %s (%s)", target.label, target.address)
    return Session(target, conn, command_timeout=options.command_timeout)
