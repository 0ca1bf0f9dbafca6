"""Run a worker to completion and capture its combined output."""

import io
import logging
from typing import TYPE_CHECKING

from runcmd.errors import ExecutionError, ExitError, SessionError

if TYPE_CHECKING:
    from runcmd.protocols import Worker

logger = logging.getLogger(__name__)


def split_lines(data: bytes) -> list[str]:
    """Decode output and split it on newlines.

    Output ending in a newline yields a trailing empty string, and empty
    output yields ``[""]``. Callers may rely on that line count.
    """
    return data.decode("utf-8", errors="replace").split("\n")


async def run_and_capture(worker: "Worker") -> list[str]:
    """Start a worker, wait for it, and return everything it printed.

    Stdout and stderr share one buffer, so diagnostics and program output
    interleave as written. The buffer is installed before starting, since
    redirections cannot change once a command runs.

    Args:
        worker: A freshly created worker

    Returns:
        Combined stdout/stderr split on newlines

    Raises:
        StartError: If the command could not be launched
        SessionError: If a remote session could not be opened
        ExecutionError: If the command ran but failed; carries the output
    """
    buffer = io.BytesIO()
    worker.set_stdout(buffer)
    worker.set_stderr(buffer)

    await worker.start()

    try:
        await worker.wait()
    except (ExitError, SessionError) as e:
        output = split_lines(buffer.getvalue())
        logger.debug("`%s` failed: %s (%d line(s) captured)", worker.command_line, e, len(output))
        raise ExecutionError(e, worker.command_line, output) from e

    return split_lines(buffer.getvalue())
