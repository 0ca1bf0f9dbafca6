"""Execution backends and shared worker plumbing."""

from runcmd.services.capture import run_and_capture, split_lines
from runcmd.services.connection import (
    agent_keys,
    load_private_key,
    open_connection,
    resolve_auth,
)
from runcmd.services.local import LocalRunner, LocalWorker
from runcmd.services.remote import RemoteRunner, RemoteWorker
from runcmd.services.streams import PipeReader, PipeWriter, Sink, WorkerStreams

__all__ = [
    "LocalRunner",
    "LocalWorker",
    "PipeReader",
    "PipeWriter",
    "RemoteRunner",
    "RemoteWorker",
    "Sink",
    "WorkerStreams",
    "agent_keys",
    "load_private_key",
    "open_connection",
    "resolve_auth",
    "run_and_capture",
    "split_lines",
]
