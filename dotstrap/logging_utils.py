from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"

# Marks handlers installed by configure_logging() so a second call replaces them.
_HANDLER_TAG = "_dotstrap_handler"


def _open_log_file(log_path: str) -> logging.Handler:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return logging.FileHandler(str(Path.cwd() / "dotstrap.log"), encoding="utf-8")


def configure_logging(
    log_path: Optional[str] = None,
    *,
    verbose: bool = False,
    also_console: bool = True,
) -> Optional[str]:
    """Send dotstrap's records to a log file and the console.

    The file always receives DEBUG and up, so every decision of a run can be
    looked up afterwards; the console shows INFO (DEBUG with ``verbose``).
    When ``log_path`` cannot be opened the log goes to ``./dotstrap.log``.

    Calling this again replaces the handlers of the previous call.
    Returns the log file actually in use, or None without one.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]:
        root.removeHandler(h)
        h.close()

    handlers: List[logging.Handler] = []
    chosen: Optional[str] = None

    if log_path:
        file_handler = _open_log_file(log_path)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)
        chosen = getattr(file_handler, "baseFilename", log_path)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        console.setLevel(logging.DEBUG if verbose else logging.INFO)
        handlers.append(console)

    for h in handlers:
        setattr(h, _HANDLER_TAG, True)
        root.addHandler(h)

    logging.getLogger(__name__).debug("Logging initialized (requested=%s, actual=%s)", log_path, chosen)
    return chosen
