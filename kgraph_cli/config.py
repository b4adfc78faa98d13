"""Configuration paths, UI defaults and logging setup for the navigator."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

BASE_DIR = Path(os.environ.get("KGRAPH_HOME", str(Path.home() / ".kgraph"))).expanduser()
LOG_FILE = BASE_DIR / "kgraph.log"

# Load configuration from TOML file (if available)
from .config_manager import load_sources_config, load_ui_config  # noqa: E402

_ui_config = load_ui_config()
_sources_config = load_sources_config()

# Navigator defaults, set via `kg config set-filter`
DEFAULT_TYPE_FILTER = _ui_config.get("type_filter", "ProjectsAndWork")
DEFAULT_STATUS_FILTER = _ui_config.get("status_filter", "All")
VIEWPORT_PADDING = int(_ui_config.get("padding", 2))

# Screen rows outside the scrolling body: title, filter header, scroll hint, status bar and margins
CHROME_LINES = 6
MIN_VISIBLE_LINES = 5

# Sources, set via `kg config set-default-source`
DEFAULT_SOURCES = list(_sources_config.get("default", ["mock"]))
MAX_COMMITS = int(_sources_config.get("max_commits", 50))
MAX_FILES = int(_sources_config.get("max_files", 200))

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def ensure_base_dirs() -> None:
    """Create the base directory for config and logs if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Route log records to the terminal or, while the navigator owns the screen, a file.

    Args:
        verbose: Log at DEBUG instead of WARNING.
        log_file: When given, write there instead of the console.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        level = logging.DEBUG if verbose else logging.INFO
    else:
        handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger("kgraph_cli")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
        existing.close()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
