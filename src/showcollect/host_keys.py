"""SSH host key verification policy.

Resolves the configured known_hosts setting into the value handed to
asyncssh. Verification is on unless the caller explicitly disables it.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DISABLED = "none"


class HostKeyPolicy:
    """Known_hosts based host key verification."""

    def __init__(self, known_hosts: str | Path | None = None, strict: bool = True):
        """Resolve the policy.

        Args:
            known_hosts: Path to a known_hosts file, ``None`` for
                ``~/.ssh/known_hosts``, or ``"none"`` to disable verification.
            strict: Fail when the known_hosts file is missing instead of
                falling back to no verification.

        Raises:
            FileNotFoundError: If strict and the known_hosts file is missing.
        """
        self.strict = strict
        self._known_hosts = self._resolve(known_hosts)

    def _resolve(self, value: str | Path | None) -> str | None:
        if isinstance(value, str) and value.strip().lower() == DISABLED:
            logger.critical(
                "SSH HOST KEY VERIFICATION DISABLED. "
                "Device identities will not be checked; "
                "only use this on a trusted management network."
            )
            return None

        path = Path(value).expanduser() if value else Path.home() / ".ssh" / "known_hosts"
        if not path.exists():
            if self.strict:
                raise FileNotFoundError(
                    f"SSH host key verification required but known_hosts "
                    f"file not found: {path}\n"
                    f"Add device keys with: ssh-keyscan <address> >> {path}\n"
                    f"or disable verification explicitly with known_hosts: none"
                )
            logger.warning(
                "known_hosts not found at %s, verification disabled. "
                "This is insecure!",
                path,
            )
            return None
        return str(path)

    @property
    def known_hosts(self) -> str | None:
        """Value for asyncssh's ``known_hosts`` option (None disables checks)."""
        return self._known_hosts

    def is_enabled(self) -> bool:
        return self._known_hosts is not None
