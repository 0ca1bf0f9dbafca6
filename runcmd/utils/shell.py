"""Command-line tokenization."""

import shlex

from runcmd.errors import ParseError


def split_command_line(command_line: str) -> list[str]:
    """Split a command line into argv using POSIX shell quoting.

    Args:
        command_line: Command line such as ``ls "-la" /tmp``

    Returns:
        Argument list, executable first

    Raises:
        ParseError: On unbalanced quoting or when no tokens remain
    """
    try:
        argv = shlex.split(command_line, posix=True)
    except ValueError as e:
        raise ParseError(command_line, f"error parsing cmdline {command_line}: {e}") from e

    if not argv:
        raise ParseError(command_line, f"error parsing cmdline {command_line!r}: no executable")

    return argv
