"""Error types raised by runners and workers.

Every error keeps the context needed to diagnose it (command line, host,
key path or hop name) as attributes, and chains the original exception.
"""

import signal as _signal


class RuncmdError(Exception):
    """Base class for all runcmd errors."""

    pass


class InvalidArgumentError(RuncmdError, ValueError):
    """Caller passed an unusable argument (e.g. an empty command line)."""

    pass


class ParseError(RuncmdError, ValueError):
    """A command line or host:port string could not be parsed."""

    def __init__(self, value: str, message: str):
        """Initialize parse error.

        Args:
            value: The string that failed to parse
            message: Human readable description of the failure
        """
        self.value = value
        super().__init__(message)


class CredentialError(RuncmdError):
    """Private key or agent socket is missing, unreadable or invalid."""

    def __init__(self, path: str, message: str, original_error: Exception | None = None):
        """Initialize credential error.

        Args:
            path: Key file or agent socket path
            message: Description of what is wrong with it
            original_error: Underlying exception, if any
        """
        self.path = path
        self.original_error = original_error
        super().__init__(message)


class ConnectionError(RuncmdError):
    """Failed to resolve, dial or authenticate a remote host."""

    def __init__(self, host_name: str, original_error: Exception, hop: str = "target"):
        """Initialize connection error.

        Args:
            host_name: Host that could not be reached
            original_error: Original exception that caused the failure
            hop: Which hop failed ("target" or "jump host")
        """
        self.host_name = host_name
        self.hop = hop
        self.original_error = original_error
        super().__init__(f"Cannot connect to {hop} {host_name}: {original_error}")


class SessionError(RuncmdError):
    """A healthy-looking connection could not carry a command session."""

    def __init__(self, host_name: str, message: str, original_error: Exception | None = None):
        self.host_name = host_name
        self.original_error = original_error
        super().__init__(f"{host_name}: {message}")


class StartError(RuncmdError):
    """The backend failed to launch the command."""

    def __init__(self, command_line: str, original_error: Exception):
        """Initialize start error.

        Args:
            command_line: Command line that failed to launch
            original_error: Exception raised by the backend
        """
        self.command_line = command_line
        self.original_error = original_error
        super().__init__(f"`{command_line}` failed to start: {original_error}")


class ExitError(RuncmdError):
    """Command terminated abnormally.

    Exactly one of ``returncode`` or ``signal`` describes the termination;
    both are None when a remote command ended without reporting either.
    """

    def __init__(self, returncode: int | None = None, signal: str | None = None):
        self.returncode = returncode
        self.signal = signal
        if signal is not None:
            message = f"signal: {signal}"
        elif returncode is None:
            message = "command exited without an exit status"
        else:
            message = f"exit status {returncode}"
        super().__init__(message)

    @classmethod
    def from_returncode(cls, returncode: int) -> "ExitError":
        """Build from a local process return code (negative means signal)."""
        if returncode < 0:
            try:
                name = _signal.Signals(-returncode).name
            except ValueError:
                name = f"signal {-returncode}"
            return cls(returncode=returncode, signal=name)
        return cls(returncode=returncode)


class ExecutionError(RuncmdError):
    """Command started but failed; carries everything it printed."""

    def __init__(self, execution_error: Exception, command_line: str, output: list[str]):
        """Initialize execution error.

        Args:
            execution_error: Failure reported by the worker's wait()
            command_line: Original command line
            output: Combined stdout/stderr lines captured before the failure
        """
        self.execution_error = execution_error
        self.command_line = command_line
        self.output = output
        super().__init__(execution_error, command_line, output)

    def __str__(self) -> str:
        message = f"`{self.command_line}` failed: {self.execution_error}"
        output = "\n".join(self.output)
        if output.strip():
            message = message + ", output: \n" + output
        return message


class WorkerStateError(RuncmdError, RuntimeError):
    """Worker operation called in the wrong lifecycle state."""

    pass
