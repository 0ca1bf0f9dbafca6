"""Stream plumbing shared by local and remote workers.

Before a worker starts, each standard stream is either left alone (sent to
/dev/null), handed to the caller as a pipe, or copied into a caller-supplied
sink. Pipes are handed out before the backend stream exists, so they bind
to it once the command has started.

Both asyncio subprocess streams and asyncssh SSHReader/SSHWriter objects
expose the same read()/readline()/write()/drain()/write_eof() surface, which
is all this module relies on.
"""

import asyncio
import logging
from typing import Any, Protocol

from runcmd.errors import WorkerStateError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536

STDOUT = "stdout"
STDERR = "stderr"


class Sink(Protocol):
    """Anything bytes can be written to (io.BytesIO, a binary file, ...)."""

    def write(self, data: bytes, /) -> Any: ...


class PipeReader:
    """Readable end of a worker's stdout or stderr."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._stream: Any = None

    def _bind(self, stream: Any) -> None:
        self._stream = stream

    @property
    def stream(self) -> Any:
        """The live backend stream.

        Raises:
            WorkerStateError: If the command has not started yet
        """
        if self._stream is None:
            raise WorkerStateError(f"{self.name} pipe is not connected until the command starts")
        return self._stream

    async def read(self, n: int = -1) -> bytes:
        """Read up to n bytes, or until EOF when n is -1."""
        data: bytes = await self.stream.read(n)
        return data

    async def readline(self) -> bytes:
        data: bytes = await self.stream.readline()
        return data

    def at_eof(self) -> bool:
        return bool(self.stream.at_eof())

    def __aiter__(self) -> "PipeReader":
        return self

    async def __anext__(self) -> bytes:
        line = await self.readline()
        if not line:
            raise StopAsyncIteration
        return line


class PipeWriter:
    """Writable end of a worker's stdin."""

    def __init__(self) -> None:
        self.name = "stdin"
        self._stream: Any = None

    def _bind(self, stream: Any) -> None:
        self._stream = stream

    @property
    def stream(self) -> Any:
        """The live backend stream.

        Raises:
            WorkerStateError: If the command has not started yet
        """
        if self._stream is None:
            raise WorkerStateError("stdin pipe is not connected until the command starts")
        return self._stream

    def write(self, data: bytes) -> None:
        self.stream.write(data)

    async def drain(self) -> None:
        """Wait until buffered data has been handed to the backend."""
        await self.stream.drain()

    def close(self) -> None:
        """Signal EOF to the command; the process or channel stays open."""
        self.stream.write_eof()


async def copy_stream(reader: Any, sink: Sink) -> int:
    """Copy a backend stream into a sink until EOF.

    Returns:
        Number of bytes copied
    """
    copied = 0
    while True:
        chunk = await reader.read(CHUNK_SIZE)
        if not chunk:
            break
        sink.write(chunk)
        copied += len(chunk)
    return copied


class WorkerStreams:
    """Pipes and sinks configured on one worker.

    A stream can have either a pipe or a sink, never both. Giving stdout and
    stderr the same sink merges stderr into stdout at the source, so output
    interleaves in the order the command wrote it.
    """

    def __init__(self) -> None:
        self._stdin: PipeWriter | None = None
        self._pipes: dict[str, PipeReader] = {}
        self._sinks: dict[str, Sink] = {}
        self._tasks: list[asyncio.Task[int]] = []

    def stdin_pipe(self) -> PipeWriter:
        if self._stdin is None:
            self._stdin = PipeWriter()
        return self._stdin

    def output_pipe(self, name: str) -> PipeReader:
        if name in self._sinks:
            raise WorkerStateError(f"{name} already redirected to a sink; cannot also pipe it")
        if name not in self._pipes:
            self._pipes[name] = PipeReader(name)
        return self._pipes[name]

    def set_sink(self, name: str, sink: Sink) -> None:
        if name in self._pipes:
            raise WorkerStateError(f"{name} already piped; cannot also redirect it to a sink")
        self._sinks[name] = sink

    @property
    def merged(self) -> bool:
        """Whether stdout and stderr share one sink."""
        stdout_sink = self._sinks.get(STDOUT)
        return stdout_sink is not None and self._sinks.get(STDERR) is stdout_sink

    def _wanted(self, name: str) -> bool:
        return name in self._pipes or name in self._sinks

    def redirects(self, pipe: Any, devnull: Any, merge: Any) -> tuple[Any, Any, Any]:
        """Translate the configuration into backend redirect constants.

        Args:
            pipe: The backend's PIPE constant
            devnull: The backend's DEVNULL constant
            merge: The backend's "stderr to stdout" constant

        Returns:
            (stdin, stdout, stderr) redirect arguments
        """
        stdin = pipe if self._stdin is not None else devnull
        stdout = pipe if self._wanted(STDOUT) else devnull
        if self.merged:
            stderr = merge
        else:
            stderr = pipe if self._wanted(STDERR) else devnull
        return stdin, stdout, stderr

    def attach(self, stdin: Any, stdout: Any, stderr: Any) -> None:
        """Bind pipes and start copying into sinks once the command runs."""
        if self._stdin is not None:
            self._stdin._bind(stdin)

        for name, stream in ((STDOUT, stdout), (STDERR, stderr)):
            if name in self._pipes:
                self._pipes[name]._bind(stream)
            elif name in self._sinks and not (name == STDERR and self.merged):
                self._tasks.append(asyncio.create_task(copy_stream(stream, self._sinks[name])))

    async def drain(self) -> None:
        """Wait for all sink copies to reach EOF.

        Cancelling the caller leaves the copies running, so a later drain()
        picks them up again.
        """
        if self._tasks:
            copied = await asyncio.shield(asyncio.gather(*self._tasks))
            self._tasks = []
            logger.debug("Copied %d byte(s) into sinks", sum(copied))

    def cancel(self) -> None:
        """Stop sink copies that are still running."""
        for task in self._tasks:
            task.cancel()
        self._tasks = []
