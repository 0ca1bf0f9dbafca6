"""SSH credential loading and connection establishment.

Credentials are validated locally before any network I/O. Connections are
opened once; there is no retry here, callers own that policy.
"""

import asyncio
import logging
import os
import stat
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import asyncssh

from runcmd.config import HostKeyVerifier, Settings
from runcmd.errors import ConnectionError, CredentialError, InvalidArgumentError
from runcmd.models import AgentAuth, Auth, KeyAuth, PasswordAuth, SSHTarget

logger = logging.getLogger(__name__)

TARGET_HOP = "target"
JUMP_HOP = "jump host"


def load_private_key(key_path: str, passphrase: str | None = None) -> asyncssh.SSHKey:
    """Read and parse a private key file.

    Args:
        key_path: Path to the key, "~" is expanded
        passphrase: Passphrase for encrypted keys

    Returns:
        Parsed private key

    Raises:
        CredentialError: If the key is missing, unreadable or unparseable
    """
    path = Path(os.path.expanduser(key_path))
    if not path.exists():
        raise CredentialError(key_path, f"error reading private ssh key {key_path}: file does not exist")

    try:
        data = path.read_bytes()
    except OSError as e:
        raise CredentialError(key_path, f"error reading private ssh key {key_path}: {e}", e) from e

    try:
        return asyncssh.import_private_key(data, passphrase)
    except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as e:
        raise CredentialError(key_path, f"error parsing private ssh key {key_path}: {e}", e) from e


def check_agent_socket(socket_path: str) -> str:
    """Make sure an ssh-agent socket is present.

    Raises:
        CredentialError: If the path is missing or not a UNIX socket
    """
    path = Path(os.path.expanduser(socket_path))
    try:
        mode = path.stat().st_mode
    except OSError as e:
        raise CredentialError(socket_path, f"agent socket {socket_path} does not exist: {e}", e) from e

    if not stat.S_ISSOCK(mode):
        raise CredentialError(socket_path, f"agent socket {socket_path} is not a socket")

    return str(path)


def resolve_auth(auth: Auth) -> dict[str, Any]:
    """Turn an auth variant into asyncssh.connect() keyword arguments.

    Raises:
        CredentialError: If local credentials are unusable
        InvalidArgumentError: If auth is not a known variant
    """
    if isinstance(auth, KeyAuth):
        key = load_private_key(auth.key_path, auth.passphrase)
        return {"client_keys": [key], "agent_path": None}

    if isinstance(auth, PasswordAuth):
        # Nothing to check locally; bad passwords surface at connect time
        return {"password": auth.password, "client_keys": None, "agent_path": None}

    if isinstance(auth, AgentAuth):
        return {"agent_path": check_agent_socket(auth.socket_path)}

    raise InvalidArgumentError(f"unsupported auth method: {type(auth).__name__}")


@asynccontextmanager
async def agent_keys(auth_options: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
    """Offer only the keys held by the agent, never ~/.ssh key files.

    asyncssh falls back to default key files whenever client_keys is left
    unset, and client_keys=None disables the agent as well. So the agent's
    keys are listed up front and passed as client_keys. The agent stays
    connected while the block runs, since signing goes through it.

    Options without an agent_path are yielded unchanged.

    Raises:
        CredentialError: If the agent cannot be queried or holds no keys
    """
    agent_path = auth_options.get("agent_path")
    if agent_path is None:
        yield auth_options
        return

    agent = asyncssh.SSHAgentClient(agent_path)
    async with agent:
        try:
            keys = await agent.get_keys()
        except (OSError, ValueError) as e:
            raise CredentialError(agent_path, f"cannot list keys from agent {agent_path}: {e}", e) from e

        if not keys:
            raise CredentialError(agent_path, f"agent {agent_path} holds no keys")

        logger.debug("Using %d key(s) from agent %s", len(keys), agent_path)
        yield {**auth_options, "client_keys": list(keys), "agent_path": None}


async def open_connection(
    target: SSHTarget,
    auth_options: dict[str, Any],
    host_keys: HostKeyVerifier,
    settings: Settings,
    hop: str = TARGET_HOP,
    tunnel: asyncssh.SSHClientConnection | None = None,
) -> asyncssh.SSHClientConnection:
    """Open one authenticated SSH connection.

    Args:
        target: Endpoint to connect to
        auth_options: Output of resolve_auth()
        host_keys: Host key verification policy
        settings: Connect timeout source
        hop: Hop name used in logs and errors
        tunnel: Existing connection to relay through (jump host)

    Returns:
        Active SSH connection

    Raises:
        ConnectionError: If resolving, dialing or authenticating fails
    """
    kwargs: dict[str, Any] = {
        "port": target.port,
        "username": target.user,
        "known_hosts": host_keys.get_known_hosts_path(),
        **auth_options,
    }
    if settings.connect_timeout_or_none is not None:
        kwargs["connect_timeout"] = settings.connect_timeout_or_none
    if tunnel is not None:
        kwargs["tunnel"] = tunnel

    logger.info("Opening SSH connection to %s %s", hop, target)

    try:
        try:
            conn = await asyncssh.connect(target.hostname, **kwargs)
        except asyncssh.HostKeyNotVerifiable as e:
            if host_keys.strict_checking:
                logger.error(
                    "Host key verification failed for %s: %s. Add the host key to %s or set "
                    "RUNCMD_STRICT_HOST_KEY_CHECKING=false",
                    target,
                    e,
                    host_keys.get_known_hosts_path(),
                )
                raise
            logger.warning(
                "Host key not verified for %s (strict mode disabled): %s",
                target,
                e,
            )
            # Retry with verification disabled for this host
            kwargs["known_hosts"] = None
            conn = await asyncssh.connect(target.hostname, **kwargs)
    except (OSError, asyncssh.Error, asyncio.TimeoutError) as e:
        logger.error("SSH connection to %s %s failed: %s", hop, target, e)
        raise ConnectionError(target.hostname, e, hop=hop) from e

    logger.info("SSH connection established to %s %s", hop, target)
    return conn
