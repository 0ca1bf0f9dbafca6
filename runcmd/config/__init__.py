"""Configuration module for runcmd.

- Settings: Environment variable configuration
- HostKeyVerifier: Manages SSH host key verification
"""

from runcmd.config.host_keys import HostKeyVerifier
from runcmd.config.settings import Settings

__all__ = ["HostKeyVerifier", "Settings"]
