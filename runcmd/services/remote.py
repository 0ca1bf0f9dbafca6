"""Run commands on a remote host over SSH."""

import logging
from types import TracebackType

import asyncssh

from runcmd.config import HostKeyVerifier, Settings
from runcmd.errors import CredentialError, ExitError, SessionError, StartError
from runcmd.models import Auth, SSHTarget, WorkerState
from runcmd.models.worker import require_state
from runcmd.services.capture import run_and_capture
from runcmd.services.connection import (
    JUMP_HOP,
    TARGET_HOP,
    agent_keys,
    open_connection,
    resolve_auth,
)
from runcmd.services.streams import STDERR, STDOUT, PipeReader, PipeWriter, Sink, WorkerStreams
from runcmd.utils.hostname import parse_host_port
from runcmd.utils.validation import validate_command_line

logger = logging.getLogger(__name__)


class RemoteWorker:
    """A command line executed by the remote user's shell on its own channel.

    The channel is opened by start() and released exactly once when wait()
    finishes, whether the command succeeded or not.
    """

    def __init__(
        self,
        command_line: str,
        connection: asyncssh.SSHClientConnection,
        host_name: str,
    ) -> None:
        self._command_line = command_line
        self._conn = connection
        self.host_name = host_name
        self._state = WorkerState.CREATED
        self._streams = WorkerStreams()
        self._process: asyncssh.SSHClientProcess | None = None
        self._released = False

    @property
    def command_line(self) -> str:
        return self._command_line

    @property
    def state(self) -> WorkerState:
        return self._state

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
        """Open a session channel and execute the command line on it.

        Raises:
            SessionError: If the connection refuses a new channel
            StartError: If the exec request fails
        """
        require_state(self._state, WorkerState.CREATED, "start")
        stdin, stdout, stderr = self._streams.redirects(asyncssh.PIPE, asyncssh.DEVNULL, asyncssh.STDOUT)

        try:
            process = await self._conn.create_process(
                self._command_line,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                encoding=None,
            )
        except asyncssh.ChannelOpenError as e:
            self._state = WorkerState.COMPLETED
            raise SessionError(self.host_name, f"cannot open session: {e}", e) from e
        except (asyncssh.Error, OSError) as e:
            self._state = WorkerState.COMPLETED
            raise StartError(self._command_line, e) from e

        self._process = process
        self._streams.attach(process.stdin, process.stdout, process.stderr)
        self._state = WorkerState.STARTED
        logger.debug("Started `%s` on %s", self._command_line, self.host_name)

    async def wait(self) -> None:
        """Wait for the remote command to finish, then release its channel.

        Cancelling the awaiting task also closes the channel, which ends the
        remote command's session; the worker is COMPLETED afterwards.

        Raises:
            ExitError: On nonzero exit status, signal, or missing exit status
            SessionError: If the transport fails while waiting
        """
        require_state(self._state, WorkerState.STARTED, "wait")
        assert self._process is not None
        process = self._process

        try:
            await self._streams.drain()
            await process.wait_closed()
        except asyncssh.Error as e:
            self._streams.cancel()
            raise SessionError(
                self.host_name, f"session for `{self._command_line}` failed: {e}", e
            ) from e
        except BaseException:
            self._streams.cancel()
            raise
        finally:
            self._release()
            self._state = WorkerState.COMPLETED

        exit_signal = process.exit_signal
        if exit_signal:
            raise ExitError(signal=exit_signal[0])

        exit_status = process.exit_status
        logger.debug("`%s` on %s exited with status %s", self._command_line, self.host_name, exit_status)
        if exit_status is None or exit_status < 0:
            raise ExitError()
        if exit_status != 0:
            raise ExitError(returncode=exit_status)

    async def run(self) -> list[str]:
        return await run_and_capture(self)

    def _release(self) -> None:
        if self._process is None or self._released:
            return
        self._released = True
        self._process.close()
        logger.debug("Released session for `%s` on %s", self._command_line, self.host_name)

    def __repr__(self) -> str:
        return f"RemoteWorker({self._command_line!r}, host={self.host_name}, state={self._state.value})"


class RemoteRunner:
    """Runner bound to one authenticated SSH connection.

    The runner owns the connection (and the jump host connection, if any)
    until close_connection() is called. Build one with connect().
    """

    def __init__(
        self,
        target: SSHTarget,
        connection: asyncssh.SSHClientConnection,
        tunnel: asyncssh.SSHClientConnection | None = None,
    ) -> None:
        self.target = target
        self._conn: asyncssh.SSHClientConnection | None = connection
        self._tunnel = tunnel

    @classmethod
    async def connect(
        cls,
        user: str,
        host: str,
        auth: Auth,
        *,
        jump_host: str | None = None,
        host_keys: HostKeyVerifier | None = None,
        settings: Settings | None = None,
    ) -> "RemoteRunner":
        """Connect to a remote host, optionally through a jump host.

        Host strings and credentials are validated before any network I/O.
        Cancelling the awaiting task aborts a stalled handshake.

        Args:
            user: Remote user name
            host: "host" or "host:port" of the target (port defaults to 22)
            auth: KeyAuth, PasswordAuth or AgentAuth
            jump_host: "host" or "host:port" to relay through, same credentials
            host_keys: Host key policy; built from settings when omitted
            settings: Library settings; loaded from the environment when omitted

        Returns:
            Connected runner

        Raises:
            ParseError: If host or jump_host is malformed
            CredentialError: If the key, the agent or the known_hosts file is unusable
            ConnectionError: If either hop cannot be reached or authenticated
        """
        if settings is None:
            settings = Settings.from_env()

        target = SSHTarget(user, *parse_host_port(host))
        jump = SSHTarget(user, *parse_host_port(jump_host)) if jump_host else None
        auth_options = resolve_auth(auth)

        if host_keys is None:
            try:
                host_keys = HostKeyVerifier.from_settings(settings)
            except FileNotFoundError as e:
                known_hosts = settings.known_hosts or "~/.ssh/known_hosts"
                raise CredentialError(known_hosts, str(e), e) from e

        async with agent_keys(auth_options) as auth_options:
            tunnel = None
            if jump is not None:
                tunnel = await open_connection(jump, auth_options, host_keys, settings, hop=JUMP_HOP)

            try:
                conn = await open_connection(
                    target, auth_options, host_keys, settings, hop=TARGET_HOP, tunnel=tunnel
                )
            except BaseException:
                if tunnel is not None:
                    tunnel.close()
                raise

        return cls(target, conn, tunnel=tunnel)

    @property
    def is_connected(self) -> bool:
        return self._conn is not None and not self._conn.is_closed()

    def command(self, command_line: str) -> RemoteWorker:
        """Create a worker for a remote command line.

        The command line is passed to the remote shell verbatim.

        Raises:
            InvalidArgumentError: If command_line is empty
            SessionError: If the connection is already closed
        """
        validate_command_line(command_line)
        if self._conn is None or self._conn.is_closed():
            raise SessionError(str(self.target), "connection is closed")
        return RemoteWorker(command_line, self._conn, str(self.target))

    async def close_connection(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._conn is None:
            logger.debug("Connection to %s already closed", self.target)
            return

        conn, tunnel = self._conn, self._tunnel
        self._conn = None
        self._tunnel = None

        logger.info("Closing SSH connection to %s", self.target)
        conn.close()
        await conn.wait_closed()
        if tunnel is not None:
            tunnel.close()
            await tunnel.wait_closed()

    async def __aenter__(self) -> "RemoteRunner":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close_connection()

    def __repr__(self) -> str:
        state = "connected" if self._conn is not None else "closed"
        return f"RemoteRunner({self.target}, {state})"
