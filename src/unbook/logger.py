import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import loguru
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.style import Style
from rich.text import Text as RichText
from rich.traceback import install as tr_install
from rich_color_ext import install as rc_install
from rich_gradient import Text

tr_install()
rc_install()

__all__ = [
    "get_console",
    "get_progress",
    "get_logger",
]

_console: Console = Console(stderr=True)


def get_progress(console: Optional[Console] = _console) -> Progress:
    """Get a Progress instance with the provided console or the global console."""
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        SpinnerColumn("simpleDots"),
        BarColumn(bar_width=None),
        TimeElapsedColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    )


def get_console(
    console: Optional[Console] = None, progress: Optional[Progress] = None
) -> Console:
    """Get the provided console or the global console."""
    if console:
        return console
    if progress:
        return progress.console
    return _console


def get_log_dir() -> Path:
    """Directory for the file sink, from ``UNBOOK_LOG_DIR`` (default ``logs``)."""
    return Path(os.getenv("UNBOOK_LOG_DIR", "logs"))


class RichSink:
    """
    A custom Loguru sink that uses Rich to print styled log messages.
    Args:
        console (Console): The Rich console to print to. Defaults to the global console.
        padding (Tuple[int, int]): Padding for the panel (top/bottom, left/right). Defaults to (1, 2).
        expand (bool): Whether the panel should expand to the console width. Defaults to False.
    """

    LEVEL_STYLES: Dict[str, Style] = {
        "TRACE": Style(italic=True),
        "DEBUG": Style(color="#aaaaaa"),
        "INFO": Style(color="#00afff"),
        "SUCCESS": Style(bold=True, color="#00ff00"),
        "WARNING": Style(italic=True, color="#ffaf00"),
        "ERROR": Style(bold=True, color="#ff5000"),
        "CRITICAL": Style(bold=True, color="#ff0000"),
    }

    # Gradients for log level titles
    GRADIENTS: Dict[str, list[str]] = {
        "TRACE": ["#888888", "#aaaaaa", "#cccccc"],
        "DEBUG": ["#0F8C8C", "#19cfcf", "#00ffff"],
        "INFO": ["#1b83d3", "#00afff", "#54d1ff"],
        "SUCCESS": ["#00ff90", "#00ff00", "#afff00"],
        "WARNING": ["#ffaa00", "#ffcc00", "#ffff00"],
        "ERROR": ["#ff7700", "#ff5500", "#ff3300"],
        "CRITICAL": ["#ff0000", "#ff005f", "#ff009f"],
    }

    MSG_COLORS: Dict[str, list[str]] = {
        "TRACE": ["#eeeeee", "#dddddd", "#bbbbbb"],
        "INFO": ["#a4e7ff", "#72d3ff", "#52daff"],
        "SUCCESS": ["#d3ffd3", "#a9ffa9", "#64ff64"],
        "WARNING": ["#ffeb9b", "#ffe26e", "#ffc041"],
        "ERROR": ["#ffc59c", "#ffaa6e", "#FF4E3A"],
        "CRITICAL": ["#ffaaaa", "#FF6FA4", "#FF49C2"],
    }

    def __init__(
        self,
        console: Optional[Console] = None,
        padding: Tuple[int, int] = (0, 2),
        expand: bool = True,
    ) -> None:
        self.console = get_console(console)
        self.padding = padding
        self.expand = expand

    def __call__(self, message: Any) -> None:
        """Print a loguru.Message to the Rich console as a styled panel."""
        record = message.record
        panel = self._build_panel(record)
        self.console.print(panel)

    def _build_panel(self, record: Any) -> Panel:
        """Build a Rich Panel for a log record.
        Args:
            record (Record): The log record.
        Returns:
            Panel: A Rich Panel containing the formatted log message.
        """
        level_name = record["level"].name
        colors = self.GRADIENTS.get(level_name, [])
        style = self.LEVEL_STYLES.get(level_name, Style())
        msg_style = self.MSG_COLORS.get(
            level_name,
            ["#eeeeee", "#aaaaaa", "#888888"],
        )
        title: Text = Text(
            f" {level_name} | {record['name']} | Line {record['line']} ",
            colors=colors,
        )

        now_iso = datetime.now().isoformat(timespec="milliseconds").replace("T", " | ")
        subtitle: RichText = Text(
            now_iso,
            colors=list(reversed(msg_style)),
        ).as_rich()
        subtitle.highlight_words([":", ".", "-"], style="dim #aaaaaa")

        msg: str = record["message"]
        message_text: Text = Text(msg, colors=msg_style)
        return Panel(
            message_text,
            title=title,
            title_align="left",
            subtitle=subtitle,
            subtitle_align="right",
            border_style=style + Style(bold=True),
            padding=self.padding,
            expand=self.expand,
        )


_LEVELS: Dict[str, int] = {
    "TRACE": 5,
    "DEBUG": 10,
    "INFO": 20,
    "SUCCESS": 25,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


def _validate_level(level: str | int) -> int:
    """
    Validate the log level and convert it to an integer.
    Args:
        level (str|int): The logging level. Can be a string (e.g., "DEBUG", "INFO", etc.) or an integer (0-50).
    Returns:
        int: The validated log level as an integer.
    Raises:
        TypeError: If the log level is not a string or an integer.
        ValueError: If the log level is not valid.
    """
    if isinstance(level, bool) or not isinstance(level, (int, str)):
        raise TypeError(f"Log level must be a string or an integer, got {type(level)}.")
    if isinstance(level, int):
        if not (0 <= level <= 50):
            raise ValueError(
                f"Log level integer must be between 0 and 50, got {level}."
            )
        return level
    _level = level.upper()
    if _level not in _LEVELS:
        raise ValueError(
            f"Invalid log level: {level!r}. Must be one of: {', '.join(_LEVELS)}."
        )
    return _LEVELS[_level]


_configured: Optional[Tuple[int, int]] = None


def get_logger(
    level: Optional[int | str] = None,
    console: Optional[Console] = None,
    padding: Tuple[int, int] = (0, 2),
    expand: bool = True,
):
    """Get the Loguru logger configured with a file sink and a RichSink.

    The sinks are (re)installed only when the level or console changes, so every
    module can call this at import time.
    """
    if level is None:
        level = os.getenv("UNBOOK_LOG_LEVEL", "SUCCESS")
    numeric_level = _validate_level(level)
    resolved_console = get_console(console)

    global _configured
    key = (numeric_level, id(resolved_console))
    if _configured == key:
        return loguru.logger

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    rich_sink = RichSink(console=resolved_console, padding=padding, expand=expand)
    loguru.logger.remove()
    loguru.logger.configure(
        handlers=[
            {
                "sink": str(log_dir / "unbook.log"),
                "format": "{time:hh:mm:ss.SSS} | {name: ^18} | Line {line} | {level} ➤ {message}",
                "level": "TRACE",
                "backtrace": True,
                "diagnose": True,
                "catch": True,
                "mode": "w",
            },
            {
                "sink": rich_sink,
                "level": numeric_level,
                "format": "{message}",
                "backtrace": True,
                "diagnose": False,
                "catch": True,
                "colorize": False,
            },
        ]
    )
    _configured = key
    return loguru.logger
