"""Run commands as local OS processes."""

import asyncio
import logging

from runcmd.errors import ExitError, StartError
from runcmd.models import WorkerState
from runcmd.models.worker import require_state
from runcmd.services.capture import run_and_capture
from runcmd.services.streams import STDERR, STDOUT, PipeReader, PipeWriter, Sink, WorkerStreams
from runcmd.utils.shell import split_command_line
from runcmd.utils.validation import validate_command_line

logger = logging.getLogger(__name__)


class LocalWorker:
    """A command line executed as a child process of this one."""

    def __init__(self, command_line: str, argv: list[str]) -> None:
        self._command_line = command_line
        self.argv = argv
        self._state = WorkerState.CREATED
        self._streams = WorkerStreams()
        self._process: asyncio.subprocess.Process | None = None

    @property
    def command_line(self) -> str:
        return self._command_line

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def pid(self) -> int | None:
        """Process id once started."""
        return self._process.pid if self._process is not None else None

    def stdin_pipe(self) -> PipeWriter:
        require_state(self._state, WorkerState.CREATED, "acquire stdin pipe")
        return self._streams.stdin_pipe()

    def stdout_pipe(self) -> PipeReader:
        require_state(self._state, WorkerState.CREATED, "acquire stdout pipe")
        return self._streams.output_pipe(STDOUT)

    def stderr_pipe(self) -> PipeReader:
        require_state(self._state, WorkerState.CREATED, "acquire stderr pipe")
        return self._streams.output_pipe(STDERR)

    def set_stdout(self, sink: Sink) -> None:
        require_state(self._state, WorkerState.CREATED, "redirect stdout")
        self._streams.set_sink(STDOUT, sink)

    def set_stderr(self, sink: Sink) -> None:
        require_state(self._state, WorkerState.CREATED, "redirect stderr")
        self._streams.set_sink(STDERR, sink)

    async def start(self) -> None:
        """Spawn the process.

        Raises:
            StartError: If the executable is missing or cannot be executed
        """
        require_state(self._state, WorkerState.CREATED, "start")
        stdin, stdout, stderr = self._streams.redirects(
            asyncio.subprocess.PIPE,
            asyncio.subprocess.DEVNULL,
            asyncio.subprocess.STDOUT,
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
            )
        except OSError as e:
            self._state = WorkerState.COMPLETED
            logger.debug("Failed to start `%s`: %s", self._command_line, e)
            raise StartError(self._command_line, e) from e

        self._process = process
        self._streams.attach(process.stdin, process.stdout, process.stderr)
        self._state = WorkerState.STARTED
        logger.debug("Started `%s` (pid=%d)", self._command_line, process.pid)

    async def wait(self) -> None:
        """Wait for the process to exit and its output to be copied.

        If the awaiting task is cancelled (e.g. by ``asyncio.wait_for``) the
        process keeps running and the worker stays STARTED. Stop it with
        kill() and call wait() again to reap it.

        Raises:
            ExitError: On nonzero exit status or death by signal
        """
        require_state(self._state, WorkerState.STARTED, "wait")
        assert self._process is not None

        try:
            await self._streams.drain()
            returncode = await self._process.wait()
        except asyncio.CancelledError:
            raise
        except BaseException:
            self._streams.cancel()
            self._state = WorkerState.COMPLETED
            raise

        self._state = WorkerState.COMPLETED

        logger.debug("`%s` exited with status %d", self._command_line, returncode)
        if returncode != 0:
            raise ExitError.from_returncode(returncode)

    def kill(self) -> None:
        """Send SIGKILL to a started process. wait() still has to reap it."""
        require_state(self._state, WorkerState.STARTED, "kill")
        assert self._process is not None
        if self._process.returncode is None:
            self._process.kill()
            logger.debug("Killed `%s` (pid=%d)", self._command_line, self._process.pid)

    async def run(self) -> list[str]:
        return await run_and_capture(self)

    def __repr__(self) -> str:
        return f"LocalWorker({self._command_line!r}, state={self._state.value})"


class LocalRunner:
    """Runner for the machine this code runs on."""

    def command(self, command_line: str) -> LocalWorker:
        """Create a worker for a local command line.

        Args:
            command_line: Shell-style command line; tokenized, not passed to a shell

        Raises:
            InvalidArgumentError: If command_line is empty
            ParseError: If command_line has unbalanced quoting
        """
        validate_command_line(command_line)
        argv = split_command_line(command_line)
        return LocalWorker(command_line, argv)

    def __repr__(self) -> str:
        return "LocalRunner()"
