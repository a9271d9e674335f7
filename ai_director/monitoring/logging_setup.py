"""
Logging setup: rich console handler plus an optional plain file handler.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    section: Optional[Dict[str, Any]] = None,
    console: Optional[Console] = None,
    verbose: bool = False
) -> logging.Logger:
    """
    Configure the `ai_director` logger from the `logging` config section.
    Safe to call more than once; previous handlers are replaced.
    """
    section = section or {}
    level_name = "DEBUG" if verbose else str(section.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger("ai_director")
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.addHandler(RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    ))

    log_file = section.get("file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)

    return root
