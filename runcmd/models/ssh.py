"""SSH-related data models."""

from dataclasses import dataclass

DEFAULT_SSH_PORT = 22


@dataclass(frozen=True)
class SSHTarget:
    """A parsed remote endpoint."""

    user: str
    hostname: str
    port: int = DEFAULT_SSH_PORT

    @property
    def address(self) -> str:
        """Get host:port as given to the transport."""
        return f"{self.hostname}:{self.port}"

    def __str__(self) -> str:
        return f"{self.user}@{self.hostname}:{self.port}"
