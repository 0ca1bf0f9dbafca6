"""Data models for runcmd."""

from runcmd.models.auth import AgentAuth, Auth, KeyAuth, PasswordAuth
from runcmd.models.ssh import SSHTarget
from runcmd.models.worker import WorkerState

__all__ = [
    "AgentAuth",
    "Auth",
    "KeyAuth",
    "PasswordAuth",
    "SSHTarget",
    "WorkerState",
]
