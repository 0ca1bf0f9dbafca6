"""SSH host key verification.

Remote runners verify host identity against a known_hosts file and fail
closed by default. Accepting any host key must be requested explicitly.
"""

import logging
import os
from pathlib import Path

from runcmd.config.settings import Settings

logger = logging.getLogger(__name__)

DISABLED = "none"


class HostKeyVerifier:
    """SSH host key verification policy.

    Handles known_hosts configuration for MITM prevention.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file or 'none' to disable
            strict_checking: Reject unknown host keys

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    @classmethod
    def from_settings(cls, settings: Settings) -> "HostKeyVerifier":
        """Build the policy configured by RUNCMD_KNOWN_HOSTS and friends."""
        return cls(
            known_hosts_path=settings.known_hosts,
            strict_checking=settings.strict_host_key_checking,
        )

    @classmethod
    def accept_any(cls) -> "HostKeyVerifier":
        """Disable verification entirely. Insecure."""
        return cls(known_hosts_path=DISABLED, strict_checking=False)

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path with security defaults.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        # Explicit disable
        if value and value.lower() == DISABLED:
            logger.critical(
                "SSH HOST KEY VERIFICATION DISABLED. "
                "Any host key will be accepted, which is vulnerable to MITM attacks."
            )
            return None

        if value:
            path = Path(os.path.expanduser(value))
            hint = "point RUNCMD_KNOWN_HOSTS at an existing file"
        else:
            path = Path.home() / ".ssh" / "known_hosts"
            hint = "connect once with ssh or run ssh-keyscan <hostname> >> " + str(path)

        if not path.exists():
            if self.strict_checking:
                raise FileNotFoundError(
                    f"SSH host key verification required but "
                    f"known_hosts file not found: {path}\n\n"
                    f"To fix this: {hint}, or disable verification "
                    f"(NOT RECOMMENDED) with RUNCMD_KNOWN_HOSTS=none"
                )
            logger.warning(
                "known_hosts not found at %s, verification disabled. This is insecure!",
                path,
            )
            return None

        return str(path)

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if verification disabled
        """
        return self._known_hosts

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self._known_hosts is not None
