"""Colorful console logging for applications embedding runcmd.

The library itself only logs through ``logging.getLogger(__name__)``;
``configure_logging`` is an opt-in helper for callers.
"""

import logging
import re
import sys
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from runcmd.config import Settings

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "white": "\033[37m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

# Log level colors
LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names
COMPONENT_COLORS = {
    "runcmd.services.local": COLORS["bright_cyan"],
    "runcmd.services.remote": COLORS["bright_magenta"],
    "runcmd.services.connection": COLORS["bright_blue"],
    "runcmd.config": COLORS["green"],
    "default": COLORS["white"],
}

SSH_TARGET_PATTERN = re.compile(r"([\w.\-]+@[\w.\-]+:\d+)")
COMMAND_LINE_PATTERN = re.compile(r"(`[^`]+`)")
EXIT_PATTERN = re.compile(r"(exit status \d+|signal: \w+)")

NOISY_LOGGERS = ("asyncssh",)


class ColorfulFormatter(logging.Formatter):
    """Colorful log formatter with component highlighting."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        """Get color for a logger name/component."""
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt.strftime('%H:%M:%S')}.{int(record.msecs):03d} {dt.strftime('%m/%d')}"

    def _format_level(self, record: logging.LogRecord) -> str:
        """Format log level with color and fixed width."""
        level = record.levelname
        color = LEVEL_COLORS.get(level, COLORS["white"])
        return self._colorize(f"{level:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        """Format component/logger name with color."""
        name = record.name
        if name.startswith("runcmd."):
            name = name[len("runcmd.") :]
        color = self._get_component_color(record.name)
        return self._colorize(f"{name:<20}", color)

    def _highlight_message(self, message: str) -> str:
        """Highlight SSH targets, command lines and exit statuses."""
        if not self.use_colors:
            return message

        if "@" in message:
            message = SSH_TARGET_PATTERN.sub(
                f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message
            )
        if "`" in message:
            message = COMMAND_LINE_PATTERN.sub(
                f"{COLORS['bright_cyan']}\\1{COLORS['reset']}", message
            )
        message = EXIT_PATTERN.sub(f"{COLORS['bright_red']}\\1{COLORS['reset']}", message)
        return message

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as ``time | level | component | message``."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._format_level(record)
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(settings: "Settings | None" = None) -> logging.Logger:
    """Attach a console handler to the ``runcmd`` logger.

    Only adds a handler if none is configured yet, and quiets noisy
    third-party loggers.

    Args:
        settings: Settings to read log level and color preference from.
            Loaded from the environment when omitted.

    Returns:
        The configured ``runcmd`` logger
    """
    if settings is None:
        from runcmd.config import Settings

        settings = Settings.from_env()

    runcmd_logger = logging.getLogger("runcmd")
    runcmd_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    if not runcmd_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorfulFormatter(use_colors=settings.log_colors))
        runcmd_logger.addHandler(handler)

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    return runcmd_logger
