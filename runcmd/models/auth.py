"""SSH authentication methods.

A remote runner is built from exactly one of these variants.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class KeyAuth:
    """Authenticate with a private key file."""

    key_path: str
    passphrase: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class PasswordAuth:
    """Authenticate with a password."""

    password: str = field(repr=False)


@dataclass(frozen=True)
class AgentAuth:
    """Authenticate with keys held by a running ssh-agent."""

    socket_path: str


Auth = KeyAuth | PasswordAuth | AgentAuth
