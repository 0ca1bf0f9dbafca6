"""Tests for the SSH runner and worker."""

import asyncio
import io
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import asyncssh
import pytest

from runcmd.errors import (
    ExecutionError,
    ExitError,
    InvalidArgumentError,
    SessionError,
    StartError,
    WorkerStateError,
)
from runcmd.models import SSHTarget, WorkerState
from runcmd.protocols import Runner, Worker
from runcmd.services.remote import RemoteRunner, RemoteWorker


def make_reader(data: bytes = b"") -> asyncio.StreamReader:
    """StreamReader pre-filled with data and EOF."""
    reader = asyncio.StreamReader()
    if data:
        reader.feed_data(data)
    reader.feed_eof()
    return reader


def make_process(
    output: bytes = b"",
    exit_status: int | None = 0,
    exit_signal: tuple[Any, ...] | None = None,
) -> MagicMock:
    """Fake asyncssh.SSHClientProcess."""
    process = MagicMock()
    process.stdin = MagicMock()
    process.stdout = make_reader(output)
    process.stderr = make_reader()
    process.exit_status = exit_status
    process.exit_signal = exit_signal
    process.wait_closed = AsyncMock()
    return process


def make_connection(process: MagicMock | None = None) -> MagicMock:
    """Fake asyncssh.SSHClientConnection."""
    conn = MagicMock()
    conn.is_closed.return_value = False
    conn.create_process = AsyncMock(return_value=process)
    conn.wait_closed = AsyncMock()
    return conn


@pytest.fixture
def target() -> SSHTarget:
    return SSHTarget(user="deploy", hostname="db1", port=2222)


class TestRemoteRunnerCommand:
    """Test worker creation on a remote runner."""

    def test_runner_and_worker_satisfy_protocols(self, target: SSHTarget) -> None:
        """RemoteRunner and RemoteWorker implement the shared contracts."""
        runner = RemoteRunner(target, make_connection())
        assert isinstance(runner, Runner)
        assert isinstance(runner.command("uptime"), Worker)

    def test_empty_command_rejected_before_backend(self, target: SSHTarget) -> None:
        """Empty command line never reaches the connection."""
        conn = make_connection()
        runner = RemoteRunner(target, conn)

        with pytest.raises(InvalidArgumentError):
            runner.command("")

        conn.is_closed.assert_not_called()
        conn.create_process.assert_not_called()

    def test_closed_connection_rejected(self, target: SSHTarget) -> None:
        """A dropped connection cannot produce sessions."""
        conn = make_connection()
        conn.is_closed.return_value = True
        runner = RemoteRunner(target, conn)

        with pytest.raises(SessionError, match="connection is closed"):
            runner.command("uptime")
        assert runner.is_connected is False

    def test_command_line_kept_verbatim(self, target: SSHTarget) -> None:
        """Remote command lines are not tokenized."""
        worker = RemoteRunner(target, make_connection()).command('ls "-la" | wc -l')
        assert worker.command_line == 'ls "-la" | wc -l'
        assert worker.host_name == "deploy@db1:2222"
        assert worker.state is WorkerState.CREATED


class TestRemoteRun:
    """Test run() over a fake SSH session."""

    @pytest.mark.asyncio
    async def test_run_success(self, target: SSHTarget) -> None:
        """Output is split on newlines and the session is released."""
        process = make_process(b"total 0\nfile.txt\n")
        conn = make_connection(process)
        worker = RemoteRunner(target, conn).command("ls -la")

        lines = await worker.run()

        assert lines == ["total 0", "file.txt", ""]
        conn.create_process.assert_awaited_once_with(
            "ls -la",
            stdin=asyncssh.DEVNULL,
            stdout=asyncssh.PIPE,
            stderr=asyncssh.STDOUT,
            encoding=None,
        )
        process.close.assert_called_once()
        assert worker.state is WorkerState.COMPLETED

    @pytest.mark.asyncio
    async def test_run_nonzero_exit(self, target: SSHTarget) -> None:
        """Failure keeps output and still releases the session once."""
        process = make_process(b"uname: invalid option -- 'b'\n", exit_status=1)
        worker = RemoteRunner(target, make_connection(process)).command("uname -badflag")

        with pytest.raises(ExecutionError) as exc_info:
            await worker.run()

        error = exc_info.value
        assert "uname -badflag" in str(error)
        assert error.output == ["uname: invalid option -- 'b'", ""]
        assert error.execution_error.returncode == 1
        process.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_remote_missing_binary_is_execution_error(self, target: SSHTarget) -> None:
        """The remote shell reports missing binaries through exit status 127."""
        process = make_process(b"sh: nonexistent-binary-xyz: not found\n", exit_status=127)
        worker = RemoteRunner(target, make_connection(process)).command("nonexistent-binary-xyz")

        with pytest.raises(ExecutionError) as exc_info:
            await worker.run()

        assert exc_info.value.execution_error.returncode == 127

    @pytest.mark.asyncio
    async def test_exit_signal(self, target: SSHTarget) -> None:
        """Termination by signal is reported by signal name."""
        process = make_process(exit_status=None, exit_signal=("KILL", False, "", "en-US"))
        worker = RemoteRunner(target, make_connection(process)).command("sleep 100")

        with pytest.raises(ExecutionError) as exc_info:
            await worker.run()

        assert exc_info.value.execution_error.signal == "KILL"
        assert "signal: KILL" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_exit_status(self, target: SSHTarget) -> None:
        """A session that ends without status is a failure."""
        process = make_process(b"partial\n", exit_status=None)
        worker = RemoteRunner(target, make_connection(process)).command("uptime")

        with pytest.raises(ExecutionError) as exc_info:
            await worker.run()

        assert exc_info.value.execution_error.returncode is None
        assert exc_info.value.output == ["partial", ""]

    @pytest.mark.asyncio
    async def test_transport_failure_while_waiting(self, target: SSHTarget) -> None:
        """Transport errors become SessionError, wrapped by run()."""
        process = make_process(b"half")
        process.wait_closed = AsyncMock(side_effect=asyncssh.ConnectionLost("connection lost"))
        worker = RemoteRunner(target, make_connection(process)).command("uptime")

        with pytest.raises(ExecutionError) as exc_info:
            await worker.run()

        assert isinstance(exc_info.value.execution_error, SessionError)
        assert exc_info.value.output == ["half"]
        process.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_channel_open_failure(self, target: SSHTarget) -> None:
        """Channel refusal is a session error raised by start()."""
        conn = make_connection()
        conn.create_process = AsyncMock(side_effect=asyncssh.ChannelOpenError(1, "too many channels"))
        worker = RemoteRunner(target, conn).command("uptime")

        with pytest.raises(SessionError) as exc_info:
            await worker.run()

        assert "too many channels" in str(exc_info.value)
        assert worker.state is WorkerState.COMPLETED

    @pytest.mark.asyncio
    async def test_exec_failure_is_start_error(self, target: SSHTarget) -> None:
        """Other failures while launching are start errors."""
        conn = make_connection()
        conn.create_process = AsyncMock(side_effect=asyncssh.ConnectionLost("gone"))
        worker = RemoteRunner(target, conn).command("uptime")

        with pytest.raises(StartError) as exc_info:
            await worker.start()

        assert exc_info.value.command_line == "uptime"


class TestRemoteStartWait:
    """Test manual start()/wait() over a fake SSH session."""

    @pytest.mark.asyncio
    async def test_stdout_pipe(self, target: SSHTarget) -> None:
        """Caller reads stdout straight from the channel."""
        process = make_process(b"Mon Jan  1\n")
        conn = make_connection(process)
        worker = RemoteRunner(target, conn).command("date")
        stdout = worker.stdout_pipe()

        await worker.start()
        data = await stdout.read()
        await worker.wait()

        assert data == b"Mon Jan  1\n"
        _, kwargs = conn.create_process.call_args
        assert kwargs["stdout"] == asyncssh.PIPE
        assert kwargs["stderr"] == asyncssh.DEVNULL

    @pytest.mark.asyncio
    async def test_stdin_pipe_sends_eof(self, target: SSHTarget) -> None:
        """Closing the stdin pipe sends EOF without closing the channel."""
        process = make_process()
        conn = make_connection(process)
        worker = RemoteRunner(target, conn).command("/usr/bin/tee /tmp/blah")
        stdin = worker.stdin_pipe()

        await worker.start()
        stdin.write(b"payload")
        stdin.close()
        await worker.wait()

        process.stdin.write.assert_called_once_with(b"payload")
        process.stdin.write_eof.assert_called_once()
        _, kwargs = conn.create_process.call_args
        assert kwargs["stdin"] == asyncssh.PIPE

    @pytest.mark.asyncio
    async def test_separate_sinks(self, target: SSHTarget) -> None:
        """Different sinks get their own streams."""
        process = make_process(b"out\n")
        process.stderr = make_reader(b"err\n")
        conn = make_connection(process)
        worker = RemoteRunner(target, conn).command("cmd")
        out, err = io.BytesIO(), io.BytesIO()
        worker.set_stdout(out)
        worker.set_stderr(err)

        await worker.start()
        await worker.wait()

        assert out.getvalue() == b"out\n"
        assert err.getvalue() == b"err\n"
        _, kwargs = conn.create_process.call_args
        assert kwargs["stderr"] == asyncssh.PIPE

    @pytest.mark.asyncio
    async def test_session_released_once(self, target: SSHTarget) -> None:
        """The channel is closed exactly once even on failure."""
        process = make_process(exit_status=2)
        worker = RemoteRunner(target, make_connection(process)).command("false")
        await worker.start()

        with pytest.raises(ExitError):
            await worker.wait()
        with pytest.raises(WorkerStateError):
            await worker.wait()

        process.close.assert_called_once()

    def test_repr(self, target: SSHTarget) -> None:
        worker = RemoteWorker("uptime", make_connection(), "deploy@db1:2222")
        assert repr(worker) == "RemoteWorker('uptime', host=deploy@db1:2222, state=created)"


class TestCloseConnection:
    """Test connection release."""

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, target: SSHTarget) -> None:
        """Second close is a no-op."""
        conn = make_connection()
        runner = RemoteRunner(target, conn)

        await runner.close_connection()
        await runner.close_connection()

        conn.close.assert_called_once()
        conn.wait_closed.assert_awaited_once()
        assert runner.is_connected is False

    @pytest.mark.asyncio
    async def test_close_releases_jump_host(self, target: SSHTarget) -> None:
        """The jump host connection is closed after the target."""
        conn = make_connection()
        tunnel = make_connection()
        runner = RemoteRunner(target, conn, tunnel=tunnel)

        await runner.close_connection()

        conn.close.assert_called_once()
        tunnel.close.assert_called_once()
        tunnel.wait_closed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_command_after_close(self, target: SSHTarget) -> None:
        """A closed runner refuses new commands."""
        runner = RemoteRunner(target, make_connection())
        await runner.close_connection()

        with pytest.raises(SessionError):
            runner.command("uptime")

    @pytest.mark.asyncio
    async def test_async_context_manager(self, target: SSHTarget) -> None:
        """Leaving the context closes the connection."""
        conn = make_connection()

        async with RemoteRunner(target, conn) as runner:
            assert runner.is_connected

        conn.close.assert_called_once()
        assert repr(runner) == "RemoteRunner(deploy@db1:2222, closed)"
