"""Input validation utilities."""

from typing import Final

from runcmd.errors import InvalidArgumentError

# Characters that have no business in a host name
SUSPICIOUS_HOST_CHARS: Final[list[str]] = ["/", "\\", ";", "&", "|", "$", "`", "\n", "\r", "\x00", " "]


def validate_command_line(command_line: str) -> str:
    """Reject empty command lines before any backend is touched.

    Raises:
        InvalidArgumentError: If command_line is empty
    """
    if not command_line:
        raise InvalidArgumentError("command cannot be empty")
    return command_line


def validate_host(host: str) -> str:
    """Validate a host name.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("Host cannot be empty")

    # Basic hostname validation
    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    # Check for suspicious characters that could enable injection
    for char in SUSPICIOUS_HOST_CHARS:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host
