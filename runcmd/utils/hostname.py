"""Host and port parsing for remote targets."""

from runcmd.errors import ParseError
from runcmd.models.ssh import DEFAULT_SSH_PORT
from runcmd.utils.validation import validate_host


def parse_host_port(hostport: str, default_port: int = DEFAULT_SSH_PORT) -> tuple[str, int]:
    """Split a "host" or "host:port" string.

    <parameters>
    hostport: Host name, optionally followed by ":" and a port
    default_port: Port used when none is given
    </parameters>

    <returns>
    (host, port) tuple
    </returns>

    <raises>
    ParseError: If the port is not a nonnegative integer or the host is invalid
    </raises>
    """
    if ":" in hostport:
        # Split on first colon only
        host, port_str = hostport.split(":", 1)
        if not (port_str.isascii() and port_str.isdigit()):
            raise ParseError(
                hostport,
                f"Invalid host:port '{hostport}': port must be a nonnegative integer",
            )
        port = int(port_str)
    else:
        host, port = hostport, default_port

    try:
        host = validate_host(host.strip())
    except ValueError as e:
        raise ParseError(hostport, f"Invalid host:port '{hostport}': {e}") from e

    return host, port
