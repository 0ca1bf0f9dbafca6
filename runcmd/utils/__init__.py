"""Utilities for runcmd."""

from runcmd.utils.console import ColorfulFormatter, configure_logging
from runcmd.utils.hostname import parse_host_port
from runcmd.utils.shell import split_command_line
from runcmd.utils.validation import validate_command_line, validate_host

__all__ = [
    "ColorfulFormatter",
    "configure_logging",
    "parse_host_port",
    "split_command_line",
    "validate_command_line",
    "validate_host",
]
