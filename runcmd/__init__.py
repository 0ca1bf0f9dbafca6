"""Run shell commands locally or over SSH through one Runner/Worker contract."""

from runcmd.config import HostKeyVerifier, Settings
from runcmd.errors import (
    ConnectionError,
    CredentialError,
    ExecutionError,
    ExitError,
    InvalidArgumentError,
    ParseError,
    RuncmdError,
    SessionError,
    StartError,
    WorkerStateError,
)
from runcmd.models import AgentAuth, KeyAuth, PasswordAuth, SSHTarget, WorkerState
from runcmd.protocols import Runner, Worker
from runcmd.services import LocalRunner, LocalWorker, RemoteRunner, RemoteWorker
from runcmd.utils import configure_logging, parse_host_port

__version__ = "0.1.0"

__all__ = [
    "AgentAuth",
    "ConnectionError",
    "CredentialError",
    "ExecutionError",
    "ExitError",
    "HostKeyVerifier",
    "InvalidArgumentError",
    "KeyAuth",
    "LocalRunner",
    "LocalWorker",
    "ParseError",
    "PasswordAuth",
    "RemoteRunner",
    "RemoteWorker",
    "Runner",
    "RuncmdError",
    "SSHTarget",
    "SessionError",
    "Settings",
    "StartError",
    "Worker",
    "WorkerState",
    "WorkerStateError",
    "configure_logging",
    "parse_host_port",
]
