"""Coloured, channel-tagged log lines for the console."""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TextIO

__all__ = [
    "LogOptions",
    "Channel",
    "strip_colors",
    "set_thread_name",
    "get_thread_name",
    "format_prefix",
    "simple_debug_out",
    "log_line",
    "LOG_JSON",
    "LOG_PER_GPU",
    "LOG_CONNECT",
    "LOG_SWITCH",
    "LOG_SUBMIT",
    "LOG_PROGRAMFLOW",
    "LOG_NEXT",
]

LOG_JSON = 1
LOG_PER_GPU = 2
LOG_CONNECT = 32
LOG_SWITCH = 64
LOG_SUBMIT = 128
LOG_PROGRAMFLOW = 256
LOG_NEXT = 512

RESET = "\x1b[0m"

BLACK = "\x1b[30m"
COAL = "\x1b[90m"
GRAY = "\x1b[37m"
WHITE = "\x1b[97m"
MAROON = "\x1b[31m"
RED = "\x1b[91m"
GREEN = "\x1b[32m"
LIME = "\x1b[92m"
ORANGE = "\x1b[33m"
YELLOW = "\x1b[93m"
NAVY = "\x1b[34m"
BLUE = "\x1b[94m"
VIOLET = "\x1b[35m"
PURPLE = "\x1b[95m"
TEAL = "\x1b[36m"
CYAN = "\x1b[96m"

BLACK_BOLD = "\x1b[1;30m"
COAL_BOLD = "\x1b[1;90m"
GRAY_BOLD = "\x1b[1;37m"
WHITE_BOLD = "\x1b[1;97m"
MAROON_BOLD = "\x1b[1;31m"
RED_BOLD = "\x1b[1;91m"
GREEN_BOLD = "\x1b[1;32m"
LIME_BOLD = "\x1b[1;92m"
ORANGE_BOLD = "\x1b[1;33m"
YELLOW_BOLD = "\x1b[1;93m"
NAVY_BOLD = "\x1b[1;34m"
BLUE_BOLD = "\x1b[1;94m"
VIOLET_BOLD = "\x1b[1;35m"
PURPLE_BOLD = "\x1b[1;95m"
TEAL_BOLD = "\x1b[1;36m"
CYAN_BOLD = "\x1b[1;96m"

ON_BLACK = "\x1b[40m"
ON_COAL = "\x1b[100m"
ON_GRAY = "\x1b[47m"
ON_WHITE = "\x1b[107m"
ON_MAROON = "\x1b[41m"
ON_RED = "\x1b[101m"
ON_GREEN = "\x1b[42m"
ON_LIME = "\x1b[102m"
ON_ORANGE = "\x1b[43m"
ON_YELLOW = "\x1b[103m"
ON_NAVY = "\x1b[44m"
ON_BLUE = "\x1b[104m"
ON_VIOLET = "\x1b[45m"
ON_PURPLE = "\x1b[105m"
ON_TEAL = "\x1b[46m"
ON_CYAN = "\x1b[106m"

BLACK_UNDER = "\x1b[4;30m"
GRAY_UNDER = "\x1b[4;37m"
MAROON_UNDER = "\x1b[4;31m"
GREEN_UNDER = "\x1b[4;32m"
ORANGE_UNDER = "\x1b[4;33m"
NAVY_UNDER = "\x1b[4;34m"
VIOLET_UNDER = "\x1b[4;35m"
TEAL_UNDER = "\x1b[4;36m"


@dataclass
class LogOptions:
    """Settings that shape log output."""

    verbosity: int = 0
    no_color: bool = False
    syslog: bool = False
    to_stdout: bool = False

    def enabled(self, flag: int) -> bool:
        """Return whether the verbosity bit ``flag`` is set."""
        return bool(self.verbosity & flag)


class Channel(Enum):
    """A log channel and the coloured tag that starts its lines."""

    LOG = GRAY + ".."
    WARN = RED + " X"
    NOTE = BLUE + " i"
    MINING = GREEN + " m"

    @property
    def tag(self) -> str:
        return self.value


_names = threading.local()


def set_thread_name(name: str) -> None:
    """Name the current thread for log lines."""
    _names.name = name
    threading.current_thread().name = name


def get_thread_name() -> str:
    """Return the log name of the current thread."""
    name = getattr(_names, "name", None)
    if name is not None:
        return name
    thread = threading.current_thread()
    if thread is threading.main_thread():
        return "main"
    return thread.name or "<unknown>"


def strip_colors(text: str) -> str:
    """Remove terminal colour sequences (from ESC through ``m``) from ``text``."""
    out = []
    skip = False
    for ch in text:
        if not skip and ch == "\x1b":
            skip = True
        elif skip and ch == "m":
            skip = False
        elif not skip:
            out.append(ch)
    return "".join(out)


def format_prefix(
    channel: Channel = Channel.LOG,
    options: LogOptions | None = None,
    now: datetime | None = None,
) -> str:
    """Return the start of a log line: channel tag, time and thread name."""
    options = options or LogOptions()
    thread = f"{get_thread_name():<8}"
    if options.syslog:
        return f"{thread} {RESET}"
    stamp = (now or datetime.now()).strftime("%X")
    return f"{channel.tag} {VIOLET}{stamp} {BLUE}{thread} {RESET}"


def simple_debug_out(
    text: str, options: LogOptions | None = None, stream: TextIO | None = None
) -> str:
    """Write one line to the log stream and return what was written."""
    options = options or LogOptions()
    if stream is None:
        stream = sys.stdout if options.to_stdout else sys.stderr
    line = (strip_colors(text) if options.no_color else text) + "\n"
    try:
        stream.write(line)
        stream.flush()
    except (OSError, ValueError):
        pass
    return line


def log_line(
    channel: Channel,
    message: str,
    options: LogOptions | None = None,
    stream: TextIO | None = None,
) -> str:
    """Write ``message`` on ``channel`` with its prefix; return the written line."""
    options = options or LogOptions()
    return simple_debug_out(format_prefix(channel, options) + message, options, stream)