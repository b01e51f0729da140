# src/taskboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

# Background components whose INFO chatter would interleave with the REPL prompt.
QUIET_ON_CONSOLE = (
    "taskboard.query.",
    "taskboard.tasks.task_service",
    "taskboard.tasks.task_store",
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for the interactive REPL:
    - taskboard logs pass, except the quiet prefixes, which need WARNING+
    - captured Python warnings and third-party loggers need ERROR+
    """

    def __init__(self, quiet: Iterable[str] = QUIET_ON_CONSOLE) -> None:
        super().__init__()
        self._quiet = tuple(quiet)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == "taskboard" or name.startswith("taskboard."):
            if name.startswith(self._quiet):
                return record.levelno >= logging.WARNING
            return True

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskboard",
    app_name: str = "taskboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    console: bool = True,
    quiet: Iterable[str] = QUIET_ON_CONSOLE,
) -> Path:
    """
    Configure root logging once per process and return the log file path.

    The file at <log_dir>/<app_name>.log gets everything (cache fetches,
    retries, rollbacks); the console only gets what the filter lets through.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{app_name}.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(fmt)
        ch.addFilter(_ConsoleNoiseFilter(quiet))
        root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    # asyncio debug output is noise even in the file.
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return log_file
