"""Protocol interfaces shared by all execution backends.

Calling code depends on these contracts, not on a concrete backend, so it
can be pointed at another execution target without modification:

    async def disk_usage(runner: Runner) -> list[str]:
        worker = runner.command("df -h")
        return await worker.run()

    await disk_usage(LocalRunner())
    async with await RemoteRunner.connect("root", "db1:2222", KeyAuth("~/.ssh/id_ed25519")) as remote:
        await disk_usage(remote)

The local and remote backends share no internal state, only this shape.
"""

from typing import Protocol, runtime_checkable

from runcmd.models import WorkerState
from runcmd.services.streams import PipeReader, PipeWriter, Sink


@runtime_checkable
class Worker(Protocol):
    """One command invocation: CREATED -> STARTED -> COMPLETED.

    Either call run(), or configure pipes/sinks and drive start()/wait()
    manually. A worker is not reusable once wait() has returned or raised.
    """

    @property
    def command_line(self) -> str:
        """Original command line, for diagnostics."""
        ...

    @property
    def state(self) -> WorkerState:
        """Current lifecycle state."""
        ...

    async def start(self) -> None:
        """Launch the command without waiting for it to finish.

        Raises:
            StartError: If the backend cannot launch the command
            WorkerStateError: If the worker was already started
        """
        ...

    async def wait(self) -> None:
        """Wait for the command to terminate.

        Raises:
            ExitError: On nonzero exit or termination by signal
            SessionError: On remote transport failure
        """
        ...

    async def run(self) -> list[str]:
        """Start, wait, and return combined stdout/stderr lines.

        Raises:
            StartError: If the command could not be launched
            ExecutionError: If it ran but failed; carries captured output
        """
        ...

    def stdin_pipe(self) -> PipeWriter:
        """Writable stdin handle. Only valid before start()."""
        ...

    def stdout_pipe(self) -> PipeReader:
        """Readable stdout handle. Only valid before start()."""
        ...

    def stderr_pipe(self) -> PipeReader:
        """Readable stderr handle. Only valid before start()."""
        ...

    def set_stdout(self, sink: Sink) -> None:
        """Copy stdout into sink. Only valid before start()."""
        ...

    def set_stderr(self, sink: Sink) -> None:
        """Copy stderr into sink. Only valid before start()."""
        ...


@runtime_checkable
class Runner(Protocol):
    """Factory of workers bound to one execution target."""

    def command(self, command_line: str) -> Worker:
        """Create a worker for command_line without starting it.

        Raises:
            InvalidArgumentError: If command_line is empty
        """
        ...
